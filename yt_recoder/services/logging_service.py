"""
This module provides file logs that outlive the console output.

`ErrorLog` appends human-readable failure records (the failed ffmpeg command
and its stderr) to a plain text file. `SuccessLog` keeps a YAML list of
finished recodes. Both are written from background job threads, so writes to
the same file are serialised with a lock.
"""

import threading
from pathlib import Path
from typing import Dict, List

import yaml
from loguru import logger


class Log:
    """
    Base class for file logs. The directory is created on first write.
    """

    linesep_marker: str = "=" * 50
    _write_lock = threading.Lock()

    def __init__(self, log_dir: Path):
        self.log_dir: Path = log_dir.resolve()
        self.log_file_path: Path


class ErrorLog(Log):
    """Appends plain text error records to `error.txt`."""

    DEFAULT_ERROR_FILENAME = "error.txt"

    def __init__(self, error_log_dir: Path, filename: str = DEFAULT_ERROR_FILENAME):
        super().__init__(error_log_dir)
        self.log_file_path = self.log_dir / filename

    def write(self, *error_messages: str):
        """
        Writes one or more error messages, followed by a separator line.

        If the file cannot be written the messages are sent to the console log
        instead, so they are not lost.
        """
        if not error_messages:
            return

        content_to_write = "\n".join(error_messages) + "\n" + self.linesep_marker + "\n"

        try:
            with self._write_lock:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with self.log_file_path.open("a", encoding="utf-8") as f:
                    f.write(content_to_write)
        except OSError as e:
            logger.error(f"Failed to write to error log {self.log_file_path}: {e}")
            for msg in error_messages:
                logger.error(f"  - {msg}")


class SuccessLog(Log):
    """Keeps a YAML list of successful recodes in `success_log.yaml`."""

    DEFAULT_SUCCESS_FILENAME = "success_log.yaml"

    def __init__(self, success_log_dir: Path, filename: str = DEFAULT_SUCCESS_FILENAME):
        super().__init__(success_log_dir)
        self.log_file_path = self.log_dir / filename

    def _load_entries(self) -> List[Dict]:
        if not self.log_file_path.is_file():
            return []
        try:
            with self.log_file_path.open("r", encoding="utf-8") as f:
                loaded_entries = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error reading success log {self.log_file_path}: {e}. Starting a new log.")
            return []
        if isinstance(loaded_entries, list):
            return loaded_entries
        if loaded_entries is not None:
            logger.warning(f"Success log {self.log_file_path} contained unexpected data. Starting a new log.")
        return []

    def write(self, new_log_entry: dict):
        """
        Appends one entry, numbering it after the highest existing index.
        """
        with self._write_lock:
            log_entries = self._load_entries()
            current_max_index = max(
                (entry.get("index", 0) for entry in log_entries if isinstance(entry, dict)),
                default=0,
            )
            log_entries.append({"index": current_max_index + 1, **new_log_entry})

            try:
                self.log_dir.mkdir(parents=True, exist_ok=True)
                with self.log_file_path.open("w", encoding="utf-8") as f:
                    yaml.safe_dump(
                        log_entries,
                        f,
                        default_flow_style=False,
                        sort_keys=False,
                        allow_unicode=True,
                        indent=4,
                        width=220,
                    )
            except OSError as e:
                logger.error(f"Failed to write to success log {self.log_file_path}: {e}")
