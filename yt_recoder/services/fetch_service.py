"""
This module defines the MediaFetcher, which retrieves a media asset by running
the external fetch tool (yt-dlp or youtube-dl).

The tool is asked to print one line of JSON metadata before it starts the
download. The fetcher reads that line under a deadline, then gives the tool a
fixed stall timeout to finish. A tool that is still running after the timeout
is considered hung: it is terminated and, while retries remain, started again.
"""

import subprocess
import threading
from typing import Callable, IO, List, Optional

from loguru import logger

from ..config.common import DOWNLOAD_OUTPUT_TEMPLATE, TERMINATE_GRACE_PERIOD, VALID_ID_CHARACTERS
from ..config.settings import Settings
from ..domain.exceptions import (
    FetchFailedException,
    FetchTimeoutException,
    InvalidIdentifierException,
    NoMetadataException,
    ToolUnavailableException,
)
from ..domain.job import FetchResult
from ..utils.ffmpeg_utils import display_command
from ..utils.module_updater import Modules

_VALID_ID_SET = frozenset(VALID_ID_CHARACTERS)


def is_valid_identifier(identifier: str) -> bool:
    """True if `identifier` is non-empty and uses only the safe alphabet."""
    return bool(identifier) and all(char in _VALID_ID_SET for char in identifier)


def _read_first_line(stream: IO[bytes], timeout: float) -> Optional[bytes]:
    """
    Reads one line from `stream` on a helper thread.

    Returns:
        The line (possibly empty at end of stream), or None if nothing arrived
        within `timeout` seconds.
    """
    holder: List[bytes] = []

    def reader():
        try:
            holder.append(stream.readline())
        except (OSError, ValueError):
            holder.append(b"")

    thread = threading.Thread(target=reader, name="fetch-metadata", daemon=True)
    thread.start()
    thread.join(timeout)
    return holder[0] if holder else None


def _drain(stream: Optional[IO[bytes]], log_lines: bool = False):
    """Consumes `stream` in the background so the child never blocks on a full pipe."""
    if stream is None:
        return

    def drainer():
        try:
            for raw_line in stream:
                if log_lines:
                    line = raw_line.decode("utf-8", errors="replace").rstrip()
                    if line:
                        logger.debug(f"fetch tool: {line}")
        except (OSError, ValueError):
            pass

    threading.Thread(target=drainer, name="fetch-drain", daemon=True).start()


class MediaFetcher:
    """
    Runs the fetch tool for one identifier at a time.

    Args:
        settings: Supplies the tool name, format selector, optional
                  credentials, retry count and timeouts.
        popen: Factory used to start the tool, `subprocess.Popen` by default.
    """

    def __init__(self, settings: Settings, popen: Callable[..., subprocess.Popen] = subprocess.Popen):
        self.settings = settings
        self.tool = Modules.get_fetch_tool_path(settings.fetch_tool)
        self._popen = popen

    def build_command(self, identifier: str) -> List[str]:
        cmd = [self.tool, "--print-json", "-f", self.settings.fetch_format]
        if self.settings.has_fetch_credentials:
            cmd += ["-u", self.settings.fetch_user, "-p", self.settings.fetch_password, "--mark-watched"]
        if self.settings.download_dir:
            cmd += ["-o", str(self.settings.download_dir / DOWNLOAD_OUTPUT_TEMPLATE)]
        # '--' keeps identifiers starting with '-' from being read as options.
        cmd += ["--", identifier]
        return cmd

    def fetch(
        self,
        identifier: str,
        max_retries: Optional[int] = None,
        on_progress: Optional[Callable[[str], None]] = None,
    ) -> FetchResult:
        """
        Downloads the asset and returns the metadata the tool reported.

        Args:
            identifier: Media identifier, restricted to the safe alphabet.
            max_retries: How many times a stalled download is restarted.
                         Defaults to the configured value.
            on_progress: Receives human-readable progress messages.

        Raises:
            InvalidIdentifierException: Before anything runs, for unsafe input.
            NoMetadataException: The tool produced no usable metadata line.
            FetchTimeoutException: Every attempt stalled.
            FetchFailedException: The tool exited with a non-zero status.
            ToolUnavailableException: The tool could not be started.
        """
        if not is_valid_identifier(identifier):
            raise InvalidIdentifierException(f"Invalid media identifier: {identifier!r}")

        report = on_progress or (lambda message: None)
        retries_left = self.settings.fetch_retries if max_retries is None else max(0, max_retries)

        while True:
            result = self._attempt(identifier, report)
            if result is not None:
                return result
            if retries_left <= 0:
                raise FetchTimeoutException(
                    f"Download of {identifier} stalled for {self.settings.stall_timeout:.0f}s on every attempt"
                )
            retries_left -= 1
            logger.info(f"Retrying download of {identifier} ({retries_left} retries left after this one)")
            report("Retrying...")

    def _attempt(self, identifier: str, report: Callable[[str], None]) -> Optional[FetchResult]:
        """
        Runs the tool once.

        Returns:
            The FetchResult, or None if the download stalled and was terminated.
        """
        cmd = self.build_command(identifier)
        logger.debug(f"Starting fetch: {display_command(self._redact(cmd))}")
        try:
            process = self._popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as e:
            logger.error(f"Could not start fetch tool '{self.tool}': {e}")
            raise ToolUnavailableException(f"{self.tool} could not be started: {e}")

        _drain(process.stderr, log_lines=True)

        first_line = _read_first_line(process.stdout, self.settings.metadata_timeout)
        if not first_line or not first_line.strip():
            self._terminate(process)
            raise NoMetadataException(f"{self.tool} printed no metadata for {identifier}")

        try:
            result = FetchResult.from_json_line(first_line.decode("utf-8", errors="replace"))
        except ValueError as e:
            self._terminate(process)
            raise NoMetadataException(f"Unreadable metadata for {identifier}: {e}")

        logger.info(f"Downloading {identifier}: {result.title or 'untitled'}")
        report("Downloading video...")
        _drain(process.stdout)

        try:
            return_code = process.wait(timeout=self.settings.stall_timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Download of {identifier} did not finish within {self.settings.stall_timeout:.0f}s")
            self._terminate(process)
            return None

        if return_code != 0:
            raise FetchFailedException(f"{self.tool} exited with status {return_code}", return_code=return_code)

        logger.info(f"Download of {identifier} finished: {result.filename}")
        return result

    @staticmethod
    def _terminate(process: subprocess.Popen):
        if process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=TERMINATE_GRACE_PERIOD)
        except subprocess.TimeoutExpired:
            logger.warning(f"Fetch tool (pid {process.pid}) ignored SIGTERM, killing it")
            process.kill()
            process.wait()

    def _redact(self, cmd: List[str]) -> List[str]:
        if not self.settings.fetch_password:
            return cmd
        return ["***" if part == self.settings.fetch_password else part for part in cmd]
