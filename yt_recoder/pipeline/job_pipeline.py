"""
The job pipeline: Fetch -> Admission -> Transcode for one request.

The fetch runs on the caller's thread so the requester gets early feedback
(and sees identifier or fetch errors immediately). The transcode phase is then
handed to a thread pool and `submit()` returns; the encoder admission gate,
not the pool, decides how many transcodes actually run at once. When every
pool worker is taken, further jobs wait in the pool queue and are reported as
queued straight away.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from loguru import logger

from ..config.common import JOB_STATUS_FAILED, JOB_STATUS_FETCHING, JOB_STATUS_QUEUED, JOB_STATUS_SKIPPED
from ..config.settings import Settings
from ..domain.exceptions import (
    EncodeFailedException,
    RecoderException,
    SourceFileNotFoundException,
)
from ..domain.job import EncodeStrategy, Job
from ..services.admission_gate import EncoderGate
from ..services.fetch_service import MediaFetcher
from ..services.progress_service import ProgressReporter, ProgressSink
from ..services.transcode_service import Transcoder, transcoder_for

STATUS_HEADER = "Downloading information...\n"

_PASS_NAMES = {1: "first", 2: "second"}


class JobPipeline:
    """
    Accepts jobs and drives each one to a terminal state.

    Args:
        settings: Runtime settings (retries, default strategy, pool size).
        fetcher: Fetch stage; built from `settings` if None.
        gate: Process-wide encoder gate; built from `settings` if None.
        transcoder_factory: Maps a strategy and the gate to a `Transcoder`.
        transcoder_kwargs: Extra keyword arguments for the factory.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: Optional[MediaFetcher] = None,
        gate: Optional[EncoderGate] = None,
        transcoder_factory: Callable[..., Transcoder] = transcoder_for,
        transcoder_kwargs: Optional[Dict[str, Any]] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher or MediaFetcher(settings)
        self.gate = gate or EncoderGate(settings.parallel_encoders)
        self._transcoder_factory = transcoder_factory
        self._transcoder_kwargs = transcoder_kwargs or {}
        self._workers = max(1, settings.max_pending_jobs)
        self._in_flight = 0
        self._in_flight_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=self._workers,
            thread_name_prefix="recode",
        )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.shutdown(wait=True)

    def shutdown(self, wait: bool = True):
        self._executor.shutdown(wait=wait)

    def submit(
        self,
        identifier: str,
        sink: Optional[ProgressSink] = None,
        strategy: Optional[EncodeStrategy] = None,
        header: str = STATUS_HEADER,
    ) -> Optional[Future]:
        """
        Fetches `identifier` and schedules its transcode.

        Args:
            identifier: Media identifier to fetch.
            sink: Receives the rendered progress log after every update.
            strategy: Encoding strategy; the configured default if None.
            header: Text shown above the progress entries.

        Returns:
            A Future resolving to the finished `Job` once the transcode phase
            has reached a terminal state, or None when the job already ended
            during the fetch (failure or nothing to transcode).
        """
        job, reporter = self._new_job(identifier, sink, strategy, header)
        if not self.run_fetch(job, reporter):
            return None
        with self._in_flight_lock:
            saturated = self._in_flight >= self._workers
            self._in_flight += 1
        if saturated:
            job.update_status(JOB_STATUS_QUEUED)
            reporter.report("Encoders are busy. Queued...")
        try:
            return self._executor.submit(self._run_scheduled, job, reporter)
        except RuntimeError:
            with self._in_flight_lock:
                self._in_flight -= 1
            raise

    def _run_scheduled(self, job: Job, reporter: ProgressReporter) -> Job:
        try:
            return self.run_transcode(job, reporter)
        finally:
            with self._in_flight_lock:
                self._in_flight -= 1

    def run(
        self,
        identifier: str,
        sink: Optional[ProgressSink] = None,
        strategy: Optional[EncodeStrategy] = None,
        header: str = STATUS_HEADER,
    ) -> Job:
        """
        Like `submit()`, but runs the transcode on the calling thread and
        returns the job in its terminal state.
        """
        job, reporter = self._new_job(identifier, sink, strategy, header)
        if self.run_fetch(job, reporter):
            self.run_transcode(job, reporter)
        return job

    def _new_job(self, identifier, sink, strategy, header):
        job = Job(identifier=identifier, strategy=strategy or self.settings.encode_strategy)
        reporter = ProgressReporter(sink, header=header, start_time=job.start_time)
        logger.info(f"Accepted job for {identifier!r} ({job.strategy.value})")
        return job, reporter

    def run_fetch(self, job: Job, reporter: ProgressReporter) -> bool:
        """
        Runs the fetch stage for `job`.

        Returns:
            True if there is a file to transcode.
        """
        job.update_status(JOB_STATUS_FETCHING)
        try:
            result = self.fetcher.fetch(job.identifier, self.settings.fetch_retries, reporter.report)
        except RecoderException as e:
            logger.error(f"Fetch failed for {job.identifier}: {e}")
            job.update_status(JOB_STATUS_FAILED, error=str(e))
            reporter.report(f"Download failed: {e}")
            return False
        except Exception as e:
            logger.exception(f"Unexpected error while fetching {job.identifier}")
            job.update_status(JOB_STATUS_FAILED, error=str(e))
            reporter.report("Download failed.")
            return False

        job.fetch_result = result
        reporter.report("Download completed.")

        if not result.filename:
            logger.info(f"No filename reported for {job.identifier}, skipping recode")
            job.update_status(JOB_STATUS_SKIPPED)
            reporter.report("Filename not provided, skipping recode.")
            return False

        job.resolved_path = Path(result.filename)
        return True

    def run_transcode(self, job: Job, reporter: ProgressReporter) -> Job:
        """
        Runs the transcode stage for `job`. Never raises.
        """
        try:
            transcoder = self._transcoder_factory(job.strategy, self.gate, **self._transcoder_kwargs)
            transcoder.start(job, reporter.report)
        except SourceFileNotFoundException as e:
            self._fail(job, reporter, e, "Output file not found. Fail?")
        except EncodeFailedException as e:
            if e.pass_number:
                message = f"Recoding failed in {_PASS_NAMES.get(e.pass_number, str(e.pass_number))} pass."
            else:
                message = "Recoding failed."
            self._fail(job, reporter, e, message)
        except RecoderException as e:
            self._fail(job, reporter, e, f"Failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error while transcoding {job.identifier}")
            self._fail(job, reporter, e, "Failed: internal error.")
        return job

    @staticmethod
    def _fail(job: Job, reporter: ProgressReporter, error: Exception, message: str):
        logger.error(f"Job {job.identifier} failed: {error}")
        job.update_status(JOB_STATUS_FAILED, error=str(error))
        reporter.report(message)
