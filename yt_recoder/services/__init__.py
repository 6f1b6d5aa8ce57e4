"""
Services Package for the recoder.

A service performs one stage of a job or one supporting task:

- **Fetch Service (`MediaFetcher`):** runs the fetch tool, reads its metadata
  line, enforces the stall timeout and retries stalled downloads.

- **Admission Gate (`EncoderGate`):** the process-wide cap on concurrent
  transcodes.

- **Transcode Service (`GpuSinglePassTranscoder`, `CpuTwoPassTranscoder`):**
  runs ffmpeg inside an admission slot.

- **Progress Service (`ProgressReporter`):** per-job timestamped status log
  pushed to a sink.

- **Chat Service (`ChatBot`):** authorisation, identifier extraction and
  routing of inbound chat messages.

- **Logging Service (`ErrorLog`, `SuccessLog`):** failure and success records
  kept on disk, separate from the console log.
"""
