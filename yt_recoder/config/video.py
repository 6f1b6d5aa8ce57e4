"""
Configuration settings related to video processing.

This module defines the ffmpeg argument sets for both encoding strategies,
the container extensions used when resolving fetched files, and the
directories used for error and success logs.
"""
from pathlib import Path

# --- Container Settings ---
# Some fetch formats are merged into .mkv while the reported filename keeps
# the original .mp4 extension.
ALTERNATE_CONTAINER_EXTENSION = "mkv"

# Suffix appended to the source path to build the recoded output path.
RECODED_SUFFIX = "-recoded.mkv"

# --- GPU single pass (NVENC) ---
GPU_HWACCEL_ARGS = ["-hwaccel", "cuda", "-hwaccel_output_format", "cuda"]
GPU_VIDEO_ENCODER = "h264_nvenc"
GPU_PRESET = "medium"

# --- CPU two pass ---
# Sized for an old Raspberry Pi driving a 1600x900 monitor.
CPU_VIDEO_ENCODER = "h264"
CPU_VIDEO_BITRATE = "2M"
CPU_FRAME_SIZE = "1600x900"

# --- Shared ---
AUDIO_CODEC = "copy"
OUTPUT_FRAME_RATE = "29.97"

# --- Log Directories ---
BASE_ERROR_DIR = Path("encode_error").resolve()
SUCCESS_LOG_DIR = Path("encode_success").resolve()
