"""
Common configuration settings used throughout the application.

This module contains globally shared constants for the fetch and transcode
stages, the job status vocabulary and the logging format. It also handles the
loading of user-specific paths from an external YAML file, so that the
locations of external tools (ffmpeg, yt-dlp) can be customised without
modifying the source code.
"""
from pathlib import Path

import yaml
from loguru import logger

# --- User-Defined Path Configuration ---
# This block loads user-specific paths from a 'config.user.yaml' file located
# at the project root. Both keys are optional; when absent the executables are
# looked up on the system PATH.

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
USER_CONFIG_PATH = PROJECT_ROOT / "config.user.yaml"

# The directory containing the ffmpeg and ffprobe executables.
MODULE_PATH: Path | None = None

# The directory containing the fetch tool executable (yt-dlp or youtube-dl).
FETCH_TOOL_PATH: Path | None = None

if USER_CONFIG_PATH.is_file():
    try:
        with USER_CONFIG_PATH.open("r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
        if user_config and "paths" in user_config:
            paths_config = user_config.get("paths") or {}
            ffmpeg_dir_str = paths_config.get("ffmpeg_dir")
            fetch_tool_dir_str = paths_config.get("fetch_tool_dir")

            if ffmpeg_dir_str:
                MODULE_PATH = Path(ffmpeg_dir_str)
            if fetch_tool_dir_str:
                FETCH_TOOL_PATH = Path(fetch_tool_dir_str)
    except Exception as e:
        logger.warning(f"Could not load or parse '{USER_CONFIG_PATH}': {e}")
else:
    logger.debug(f"User config '{USER_CONFIG_PATH}' not found. Relying on system PATH for executables.")


# --- Logging Configuration ---

# The format string for the Loguru logger.
LOGGER_FORMAT = (
    "<green>{time:MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{thread.name} - <level>{message}</level>"
)


# --- Media Identifier Rules ---

# Characters allowed in a media identifier. All of them are shell-safe.
VALID_ID_CHARACTERS = (
    "0123456789"
    "abcdefghijklmnopqrstuvwxyz"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    "-_"
)

# URL prefixes that precede a video identifier in chat messages.
IDENTIFIER_URL_PREFIXES = (
    "https://www.youtube.com/watch?v=",
    "https://youtu.be/",
)


# --- Fetch Stage ---

# Default executable name of the fetch tool.
DEFAULT_FETCH_TOOL = "yt-dlp"

# Default quality/format selector passed to the fetch tool.
DEFAULT_FETCH_FORMAT = "bestvideo[height<=1080]+bestaudio"

# How many times a stalled fetch is restarted before giving up.
DEFAULT_FETCH_RETRIES = 5

# Seconds to wait for the fetch tool to exit after the metadata line was read.
FETCH_STALL_TIMEOUT = 120.0

# Seconds to wait for the metadata line itself.
METADATA_READ_TIMEOUT = 60.0

# Seconds granted to a terminated subprocess before it is killed.
TERMINATE_GRACE_PERIOD = 5.0

# Output template used when a download directory is configured.
DOWNLOAD_OUTPUT_TEMPLATE = "%(title)s-%(id)s.%(ext)s"


# --- Admission Gate ---

DEFAULT_PARALLEL_ENCODERS = 1

# Upper bound on background jobs handled by the executor at the same time.
# Jobs beyond this wait in the executor queue before reaching the gate.
DEFAULT_MAX_PENDING_JOBS = 16


# --- Job Status Constants ---
# A job moves forward through these states and never revisits one.

JOB_STATUS_IDLE = "idle"  # Created, nothing started yet.
JOB_STATUS_FETCHING = "fetching"  # The fetch tool is running.
JOB_STATUS_QUEUED = "queued"  # Waiting for an encoder slot.
JOB_STATUS_ENCODING = "encoding"  # ffmpeg is running (see Job.encode_pass).
JOB_STATUS_DONE = "done"  # Recoded file produced.
JOB_STATUS_SKIPPED = "skipped"  # Fetched, but no filename was reported.
JOB_STATUS_FAILED = "failed"  # Any terminal error.

TERMINAL_JOB_STATUSES = (JOB_STATUS_DONE, JOB_STATUS_SKIPPED, JOB_STATUS_FAILED)
