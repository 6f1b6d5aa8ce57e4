"""
Utilities Package for the recoder.

Modules:
    - ffmpeg_utils.py: `run_cmd`, the logged wrapper around `subprocess.run`
      used for encoder invocations.
    - format_utils.py: human-readable durations, sizes and progress lines.
    - module_updater.py: locating and verifying ffmpeg and the fetch tool.
"""
