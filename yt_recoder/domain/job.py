"""
Domain models for one fetch-and-transcode request.

A `Job` lives in memory only: it is created when a request is accepted,
updated by the fetch and transcode stages, and dropped once its terminal
status has been reported.
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from ..config.common import JOB_STATUS_IDLE, TERMINAL_JOB_STATUSES


class EncodeStrategy(str, Enum):
    """Which transcoder a job is handed to."""

    GPU_SINGLE_PASS = "gpu"
    CPU_TWO_PASS = "cpu"


@dataclass
class FetchResult:
    """
    Metadata reported by the fetch tool for one asset.

    `metadata` is the decoded JSON object printed by the tool before the
    payload starts streaming.
    """

    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json_line(cls, line: str) -> "FetchResult":
        """
        Parses the first line of the fetch tool output.

        Raises:
            ValueError: If the line is not a JSON object.
        """
        data = json.loads(line)
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object, got {type(data).__name__}")
        return cls(metadata=data)

    @property
    def filename(self) -> Optional[str]:
        # yt-dlp and youtube-dl report the target path as '_filename'.
        for key in ("_filename", "filename"):
            value = self.metadata.get(key)
            if value:
                return str(value)
        return None

    @property
    def title(self) -> Optional[str]:
        return self.metadata.get("title")


@dataclass
class Job:
    """A single fetch + transcode request."""

    identifier: str
    strategy: EncodeStrategy = EncodeStrategy.CPU_TWO_PASS
    start_time: float = field(default_factory=time.monotonic)
    status: str = JOB_STATUS_IDLE

    resolved_path: Optional[Path] = None
    source_path: Optional[Path] = None
    output_path: Optional[Path] = None

    # 1 or 2 while the two pass encoder runs, None otherwise.
    encode_pass: Optional[int] = None
    error: Optional[str] = None
    fetch_result: Optional[FetchResult] = None

    def update_status(self, status: str, error: Optional[str] = None, encode_pass: Optional[int] = None) -> None:
        self.status = status
        self.encode_pass = encode_pass
        if error:
            self.error = error

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_JOB_STATUSES
