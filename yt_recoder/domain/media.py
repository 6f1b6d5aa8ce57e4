import re
from pathlib import Path
from typing import Optional

import ffmpeg
from loguru import logger

from .exceptions import SourceFileNotFoundException
from ..config.video import ALTERNATE_CONTAINER_EXTENSION


def parse_duration(duration_str: str) -> float:
    """
    Parses a duration string into total seconds.

    Handles the two formats ffprobe emits: a plain number of seconds
    ("3600.5") and a timecode ("01:00:00.500", hours optional).

    Args:
        duration_str: The string containing the duration to parse.

    Returns:
        The total duration in seconds. Returns 0.0 if parsing fails.
    """
    try:
        return float(duration_str)
    except ValueError:
        pattern = r"(?:(\d{1,2}):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)"
        match = re.fullmatch(pattern, duration_str)
        if match:
            hours_str, minutes_str, seconds_str = match.groups()
            hours = int(hours_str) if hours_str else 0
            minutes = int(minutes_str)
            seconds = float(seconds_str)
            return float(hours * 3600 + minutes * 60 + seconds)
        logger.warning(f"Could not parse duration string: {duration_str}")
    return 0.0


def alternate_container_path(path: Path) -> Optional[Path]:
    """
    Returns `path` with its 3-character extension swapped for the alternate
    container, or None when the path has no such extension.
    """
    if len(path.suffix) != 4:
        return None
    return path.with_suffix(f".{ALTERNATE_CONTAINER_EXTENSION}")


class MediaFile:
    """
    A fetched media file on local disk, ready to be transcoded.

    Construct it through `MediaFile.locate()`, which applies the container
    fallback rule: the fetch tool may remux into .mkv while still reporting the
    original .mp4 name. Reading metadata with ffprobe (via ffmpeg-python) is lazy and
    best effort; a file ffprobe cannot read is still handed to the encoder,
    which is the authority on whether it can be read.

    Attributes:
        path (Path): Absolute path of the existing file.
        reported_path (Path): The path as reported by the fetch tool.
        media_info (dict | None): Raw ffprobe output once `load_media_info()` succeeded.
        duration (float): Duration in seconds, 0 when unknown.
    """

    def __init__(self, path: Path, reported_path: Optional[Path] = None):
        self.path: Path = path.resolve()
        self.reported_path: Path = reported_path or path
        self.filename: str = self.path.name
        self.media_info: dict | None = None
        self.duration: float = 0.0

    @classmethod
    def locate(cls, reported_path: Path) -> "MediaFile":
        """
        Finds the file the fetch tool actually wrote.

        Raises:
            SourceFileNotFoundException: If neither the reported path nor its
                alternate container exists.
        """
        if reported_path.exists():
            return cls(reported_path, reported_path)

        candidate = alternate_container_path(reported_path)
        if candidate is not None and candidate.exists():
            logger.debug(f"{reported_path.name} not found, using remuxed {candidate.name}")
            return cls(candidate, reported_path)

        raise SourceFileNotFoundException(f"Output file not found: {reported_path}")

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def load_media_info(self) -> bool:
        """
        Reads the file with ffprobe and fills `media_info` and `duration`.

        Returns:
            True if ffprobe could read the file.
        """
        try:
            self.media_info = ffmpeg.probe(str(self.path))
        except ffmpeg.Error as e:
            logger.warning(f"ffmpeg.probe failed for {self.path}: {e.stderr}")
            return False
        except OSError as e:
            logger.warning(f"ffprobe could not be started for {self.path}: {e}")
            return False

        duration_str = (self.media_info.get("format") or {}).get("duration")
        if duration_str:
            self.duration = parse_duration(str(duration_str))
        return True
