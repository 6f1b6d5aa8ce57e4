"""Shared fixtures and fakes for the recoder tests."""

import io
import json
import subprocess
import threading
from pathlib import Path

import pytest

from yt_recoder.config.settings import Settings
from yt_recoder.domain.job import FetchResult
from yt_recoder.services.admission_gate import EncoderGate


class BlockingStream:
    """A stdout that never yields a line until released."""

    def __init__(self):
        self.released = threading.Event()

    def readline(self):
        self.released.wait(5)
        return b""

    def __iter__(self):
        return iter(())


class FakeProcess:
    """
    Stands in for `subprocess.Popen`.

    Args:
        stdout: Bytes the process prints, or a stream object.
        hang: If True, `wait()` with a timeout never sees the process exit.
        returncode: Exit status once the process finishes on its own.
    """

    def __init__(self, stdout=b"", hang=False, returncode=0):
        self.stdout = io.BytesIO(stdout) if isinstance(stdout, bytes) else stdout
        self.stderr = io.BytesIO(b"")
        self.hang = hang
        self.final_returncode = returncode
        self.returncode = None
        self.terminated = False
        self.pid = 4242

    def poll(self):
        if self.terminated:
            return self.returncode
        if self.hang:
            return None
        self.returncode = self.final_returncode
        return self.returncode

    def wait(self, timeout=None):
        if self.terminated:
            return self.returncode
        if self.hang:
            raise subprocess.TimeoutExpired("fake-fetch", timeout)
        self.returncode = self.final_returncode
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15
        if isinstance(self.stdout, BlockingStream):
            self.stdout.released.set()

    def kill(self):
        self.terminate()


class FakePopen:
    """Records each command and returns the next scripted process."""

    def __init__(self, *processes):
        self.processes = list(processes)
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        if len(self.processes) > 1:
            return self.processes.pop(0)
        return self.processes[0]


def metadata_line(**fields) -> bytes:
    return (json.dumps(fields) + "\n").encode("utf-8")


class FakeFetcher:
    """A fetch stage that returns a fixed result or raises a fixed error."""

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def fetch(self, identifier, max_retries=None, on_progress=None):
        self.calls.append(identifier)
        if self.error is not None:
            raise self.error
        if on_progress:
            on_progress("Downloading video...")
        return self.result


class SpyGate(EncoderGate):
    """An EncoderGate that counts acquisitions."""

    def __init__(self, capacity=1):
        super().__init__(capacity)
        self.acquisitions = 0
        self.releases = 0

    def try_acquire(self):
        acquired = super().try_acquire()
        if acquired:
            self.acquisitions += 1
        return acquired

    def acquire(self):
        super().acquire()
        self.acquisitions += 1

    def release(self):
        super().release()
        self.releases += 1


class SinkRecorder:
    def __init__(self):
        self.updates = []
        self._lock = threading.Lock()

    def __call__(self, text):
        with self._lock:
            self.updates.append(text)

    @property
    def last(self):
        return self.updates[-1] if self.updates else ""


@pytest.fixture
def settings(tmp_path):
    return Settings(
        fetch_tool="yt-dlp",
        fetch_retries=2,
        stall_timeout=0.05,
        metadata_timeout=0.2,
        max_pending_jobs=4,
    )


@pytest.fixture
def media_file(tmp_path) -> Path:
    path = tmp_path / "video.mp4"
    path.write_bytes(b"not really a video")
    return path


@pytest.fixture
def fetch_result(media_file) -> FetchResult:
    return FetchResult({"_filename": str(media_file), "title": "A video"})


@pytest.fixture
def log_dirs(tmp_path):
    return {"error_log_dir": tmp_path / "errors", "success_log_dir": tmp_path / "success"}
