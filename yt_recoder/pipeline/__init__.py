"""
This package contains the job pipeline of the recoder.

The pipeline sequences the fetch stage, the encoder admission gate and the
transcode stage for each accepted request, reports progress through the
job's `ProgressReporter`, and runs the transcode phase in the background.
"""
