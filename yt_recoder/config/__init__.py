"""
Configuration Package for the recoder.

This package centralizes the configuration of the application:
- `common`: constants shared by every stage, job statuses, the logging format,
  and user-overridable tool paths loaded from `config.user.yaml`.
- `video`: ffmpeg parameters for the GPU single pass and CPU two pass
  strategies, container extensions and log directories.
- `settings`: the immutable `Settings` object read from the environment once
  at startup.
"""
