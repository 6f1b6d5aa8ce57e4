"""
This module provides the helper used to run external encoder commands.

`run_cmd` wraps `subprocess.run` with logging and turns spawn failures into
`ToolUnavailableException`, so callers only ever deal with a completed
process (look at its return code) or a domain exception.
"""

import os
import shlex
import subprocess
from typing import List

from loguru import logger

from ..domain.exceptions import ToolUnavailableException


def display_command(cmd_list: List[str]) -> str:
    """Formats a command list as a single shell-quoted string for logs."""
    if os.name == "nt":
        return subprocess.list2cmdline(cmd_list)
    return shlex.join(cmd_list)


def run_cmd(
    cmd_list: List[str],
    show_cmd: bool = False,
) -> subprocess.CompletedProcess:
    """
    Executes an external command and captures its output.

    The call blocks until the command exits; no timeout is applied. The
    command is always passed as a list and never through a shell.

    Args:
        cmd_list: The command to execute as a list of arguments.
        show_cmd: If True, the command is logged at DEBUG level before execution.

    Returns:
        The `subprocess.CompletedProcess`, whatever its return code.

    Raises:
        ToolUnavailableException: If the executable cannot be started.
        ValueError: If `cmd_list` is empty.
    """
    if not cmd_list:
        raise ValueError("run_cmd received an empty command list.")

    display_cmd_str = display_command(cmd_list)
    if show_cmd:
        logger.debug(f"Executing command: {display_cmd_str}")

    try:
        result = subprocess.run(
            cmd_list,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            shell=False,
        )
    except FileNotFoundError:
        logger.error(
            f"Command not found: '{cmd_list[0]}'. Ensure it's in your system's PATH or configured in config.user.yaml."
        )
        raise ToolUnavailableException(f"{cmd_list[0]} is not installed")
    except OSError as e:
        logger.error(f"Could not start '{cmd_list[0]}': {e}")
        raise ToolUnavailableException(f"{cmd_list[0]} could not be started: {e}")

    if result.stdout:
        logger.trace(f"Command stdout: {result.stdout[:500]}")
    if result.stderr and result.returncode != 0:
        logger.debug(f"Command stderr (error, rc={result.returncode}): {result.stderr[-2000:]}")
    elif result.stderr:
        logger.trace(f"Command stderr (rc={result.returncode}): {result.stderr[-500:]}")

    return result
