"""
yt-recoder: fetch videos on request from a chat and recode them with ffmpeg,
with a process-wide cap on concurrent encoders.
"""

__version__ = "0.1.0"
