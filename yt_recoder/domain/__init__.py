"""
This package contains the core domain models of the recoder application.

The domain layer describes what a job is and how it can fail, independently of
the services that run external tools and of the chat transport that delivers
requests.

Modules:
    exceptions.py: The exception hierarchy. Every job failure is one of these.
    job.py: The `Job` record, the `EncodeStrategy` selector and the
            `FetchResult` parsed from the fetch tool's metadata line.
    media.py: `MediaFile`, a fetched file on disk, including the container
              fallback rule and best-effort metadata reading with ffprobe.
"""
