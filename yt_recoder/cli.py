"""
Command-Line Interface (CLI) setup for the recoder.

This module uses Python's `argparse` to define and parse the command-line
arguments. Options given here override the matching environment variables.
"""
import argparse
from typing import List, Optional

from .domain.job import EncodeStrategy


def get_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parses command-line arguments.

    Without `--once`, the Telegram bot is started and serves messages until
    interrupted. With `--once`, a single identifier (or video URL) is fetched
    and recoded with progress printed to the terminal.

    Returns:
        argparse.Namespace: The parsed arguments.
    """
    parser = argparse.ArgumentParser(description="Fetch videos and recode them with ffmpeg.")
    parser.add_argument(
        "--once", type=str, default=None, metavar="ID_OR_URL",
        help="Process a single video identifier or URL and exit.",
    )
    parser.add_argument(
        "--strategy", type=str, default=None, choices=[s.value for s in EncodeStrategy],
        help="Encoding strategy: 'gpu' (NVENC single pass) or 'cpu' (two pass). Overrides ENCODE_STRATEGY.",
    )
    parser.add_argument(
        "--parallel-encoders", type=int, default=None,
        help="Maximum number of concurrent encoders. Overrides PARALLEL_ENCODERS.",
    )
    parser.add_argument(
        "--skip-tool-check", action="store_true",
        help="Do not verify ffmpeg and the fetch tool at startup.",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level.",
    )

    args = parser.parse_args(argv)

    if args.parallel_encoders is not None and args.parallel_encoders < 1:
        parser.error("--parallel-encoders must be at least 1")

    return args
