"""
This module provides the Modules class to locate and verify the external tools
required by the application: ffmpeg and the fetch tool.
"""
import subprocess
import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from ..config.common import FETCH_TOOL_PATH, MODULE_PATH


class Modules:
    """
    Locates the external executables and checks that they can run.

    Paths from the user's `config.user.yaml` take priority; otherwise the
    executables are expected on the system PATH.
    """

    @staticmethod
    def _resolve(executable: str, configured_dir: Optional[Path]) -> str:
        exe_name = f"{executable}.exe" if sys.platform == "win32" else executable

        if configured_dir and configured_dir.is_dir():
            configured_path = configured_dir / exe_name
            if configured_path.is_file():
                logger.debug(f"Using {executable} from configured path: '{configured_path}'")
                return str(configured_path)
            logger.warning(f"'{exe_name}' was not found in '{configured_dir}'. Falling back to system PATH.")

        return executable

    @staticmethod
    def get_ffmpeg_path() -> str:
        return Modules._resolve("ffmpeg", MODULE_PATH)

    @staticmethod
    def get_fetch_tool_path(tool: str) -> str:
        """
        Args:
            tool: Name of the fetch tool executable, or an explicit path to it.
        """
        if Path(tool).parent != Path("."):
            return tool
        return Modules._resolve(tool, FETCH_TOOL_PATH)

    @staticmethod
    def verify(cmd: str, version_flag: str = "-version") -> bool:
        """
        Runs `<cmd> <version_flag>` and logs the first line of its output.

        Returns:
            True if the tool ran successfully.
        """
        try:
            result = subprocess.run(
                [cmd, version_flag],
                check=True,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"{cmd} version command failed (return code {e.returncode}):\n{e.stderr}")
            return False
        except FileNotFoundError:
            logger.error(
                f"{cmd} not found. Either add it to your system's PATH or specify its "
                "location in the 'config.user.yaml' file."
            )
            return False
        except OSError as e:
            logger.error(f"An unexpected error occurred while checking {cmd}: {e}")
            return False

        version_output_lines = result.stdout.splitlines() or [""]
        logger.info(f"{cmd} version check successful: {version_output_lines[0]}")
        return True

    @staticmethod
    def run_all(fetch_tool: str) -> bool:
        """Verifies ffmpeg and the fetch tool. Called once at startup."""
        ffmpeg_ok = Modules.verify(Modules.get_ffmpeg_path(), "-version")
        fetch_ok = Modules.verify(Modules.get_fetch_tool_path(fetch_tool), "--version")
        return ffmpeg_ok and fetch_ok
