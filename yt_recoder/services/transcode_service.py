"""
This module defines the transcoders that recode a fetched file with ffmpeg.

Two interchangeable strategies are provided:

- `GpuSinglePassTranscoder`: one NVENC pass with CUDA decoding.
- `CpuTwoPassTranscoder`: a two pass libx264 encode sharing a pass log keyed
  by the source path. A failed first pass aborts before the second one.

Both share the `Transcoder.start()` flow: resolve the file on disk, take an
encoder slot from the admission gate, encode, and give the slot back whatever
happens. Encoding is one-shot; retry policy, if any, belongs to the caller.
"""

import glob
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, List, Optional, Type

from loguru import logger

from ..config.common import JOB_STATUS_DONE, JOB_STATUS_ENCODING, JOB_STATUS_QUEUED
from ..config.video import (
    AUDIO_CODEC,
    BASE_ERROR_DIR,
    CPU_FRAME_SIZE,
    CPU_VIDEO_BITRATE,
    CPU_VIDEO_ENCODER,
    GPU_HWACCEL_ARGS,
    GPU_PRESET,
    GPU_VIDEO_ENCODER,
    OUTPUT_FRAME_RATE,
    RECODED_SUFFIX,
    SUCCESS_LOG_DIR,
)
from ..domain.exceptions import EncodeFailedException
from ..domain.job import EncodeStrategy, Job
from ..domain.media import MediaFile
from ..utils.ffmpeg_utils import display_command, run_cmd
from ..utils.format_utils import format_timedelta, formatted_size
from ..utils.module_updater import Modules
from .admission_gate import EncoderGate
from .logging_service import ErrorLog, SuccessLog

Report = Callable[[str], None]


class Transcoder:
    """
    Base class for the encoding strategies.

    Subclasses implement `encode()`. Everything around it (file resolution,
    admission, status updates, logs, cleanup) lives here.

    Args:
        gate: The process-wide encoder admission gate.
        ffmpeg_path: ffmpeg executable; resolved from the user config if None.
        error_log_dir: Where failed commands are recorded.
        success_log_dir: Where finished recodes are recorded; None disables it.
    """

    strategy: EncodeStrategy

    def __init__(
        self,
        gate: EncoderGate,
        ffmpeg_path: Optional[str] = None,
        error_log_dir: Path = BASE_ERROR_DIR,
        success_log_dir: Optional[Path] = SUCCESS_LOG_DIR,
    ):
        self.gate = gate
        self.ffmpeg_path = ffmpeg_path or Modules.get_ffmpeg_path()
        self.error_log_dir = error_log_dir
        self.success_log_dir = success_log_dir
        self.show_cmd = __debug__

    @staticmethod
    def output_path_for(source: Path) -> Path:
        return source.with_name(source.name + RECODED_SUFFIX)

    def start(self, job: Job, report: Report) -> Path:
        """
        Recodes the file fetched for `job`.

        Returns:
            The path of the recoded file.

        Raises:
            SourceFileNotFoundException: Nothing to encode; no slot was taken.
            EncodeFailedException: ffmpeg exited with a non-zero status.
            ToolUnavailableException: ffmpeg could not be started.
        """
        if job.resolved_path is None:
            raise ValueError(f"Job {job.identifier} has no resolved path")

        media_file = MediaFile.locate(job.resolved_path)
        job.source_path = media_file.path
        output_path = self.output_path_for(media_file.path)
        if media_file.load_media_info() and media_file.duration:
            logger.info(
                f"{media_file.filename}: {format_timedelta(timedelta(seconds=media_file.duration))} of media"
            )

        def on_queued():
            # Already reported by the pipeline when its worker pool was full.
            if job.status == JOB_STATUS_QUEUED:
                return
            job.update_status(JOB_STATUS_QUEUED)
            report("Encoders are busy. Queued...")

        with self.gate.slot(on_queued):
            encode_start = datetime.now()
            logger.info(f"[{self.__class__.__name__}] Encoding started for {media_file.filename}")
            try:
                self.encode(job, media_file, output_path, report)
            except Exception:
                self._remove_partial_output(output_path)
                raise
            finally:
                self._remove_pass_logs(media_file.path)
            encode_time = datetime.now() - encode_start

        job.output_path = output_path
        job.update_status(JOB_STATUS_DONE)
        logger.success(f"Recoded {media_file.filename} in {format_timedelta(encode_time)} -> {output_path.name}")
        try:
            self._write_success_log(job, media_file, output_path, encode_time)
        except OSError as e:
            logger.warning(f"Could not record success log entry for {job.identifier}: {e}")
        return output_path

    def encode(self, job: Job, media_file: MediaFile, output_path: Path, report: Report):
        raise NotImplementedError("Subclasses must implement encode.")

    def _run_ffmpeg(self, job: Job, cmd: List[str], pass_number: Optional[int] = None):
        """
        Runs one ffmpeg invocation and raises on a non-zero exit.

        Raises:
            EncodeFailedException: With `pass_number` set for two pass encodes.
        """
        job.update_status(JOB_STATUS_ENCODING, encode_pass=pass_number)
        res = run_cmd(cmd, show_cmd=self.show_cmd)
        if res.returncode == 0:
            return

        label = f"pass {pass_number}" if pass_number else "single pass"
        logger.error(f"ffmpeg {label} failed for {job.identifier} (rc={res.returncode})")
        ErrorLog(self.error_log_dir).write(
            f"Failed command ({label}): {display_command(cmd)}",
            f"Identifier: {job.identifier}",
            f"Source: {job.source_path}",
            f"Return code: {res.returncode}",
            f"Stderr: {(res.stderr or '')[-4000:]}",
        )
        raise EncodeFailedException(
            f"ffmpeg {label} failed (rc={res.returncode})",
            return_code=res.returncode,
            pass_number=pass_number,
        )

    @staticmethod
    def _remove_partial_output(output_path: Path):
        if output_path.exists():
            try:
                output_path.unlink()
                logger.debug(f"Deleted partially encoded file: {output_path}")
            except OSError as e:
                logger.error(f"Could not delete partially encoded file {output_path}: {e}")

    @staticmethod
    def _remove_pass_logs(source: Path):
        # ffmpeg writes <passlogfile>-0.log and <passlogfile>-0.log.mbtree
        for pass_log in source.parent.glob(f"{glob.escape(source.name)}-*.log*"):
            try:
                pass_log.unlink()
            except OSError as e:
                logger.warning(f"Could not delete pass log {pass_log}: {e}")

    def _write_success_log(self, job: Job, media_file: MediaFile, output_path: Path, encode_time):
        if self.success_log_dir is None:
            return
        SuccessLog(self.success_log_dir).write(
            {
                "identifier": job.identifier,
                "strategy": self.strategy.value,
                "source": str(media_file.path),
                "output": str(output_path),
                "source_size": formatted_size(media_file.size),
                "output_size": formatted_size(output_path.stat().st_size) if output_path.exists() else None,
                "duration_seconds": round(media_file.duration, 3),
                "encode_time": format_timedelta(encode_time),
                "finished_at": datetime.now().isoformat(timespec="seconds"),
            }
        )


class GpuSinglePassTranscoder(Transcoder):
    """Hardware accelerated (CUDA decode, NVENC encode) single pass recode."""

    strategy = EncodeStrategy.GPU_SINGLE_PASS

    def build_command(self, source: Path, output_path: Path) -> List[str]:
        return [
            self.ffmpeg_path, "-y", *GPU_HWACCEL_ARGS,
            "-i", str(source),
            "-c:v", GPU_VIDEO_ENCODER, "-preset", GPU_PRESET,
            "-c:a", AUDIO_CODEC, "-r:v", OUTPUT_FRAME_RATE,
            str(output_path),
        ]

    def encode(self, job: Job, media_file: MediaFile, output_path: Path, report: Report):
        report("Recoding...")
        self._run_ffmpeg(job, self.build_command(media_file.path, output_path))
        report("Done.")


class CpuTwoPassTranscoder(Transcoder):
    """
    Portable two pass software recode.

    Both passes point `-passlogfile` at the source path, so concurrent jobs on
    different files never share statistics.
    """

    strategy = EncodeStrategy.CPU_TWO_PASS

    def build_command(self, source: Path, output_path: Path, pass_number: int) -> List[str]:
        return [
            self.ffmpeg_path, "-i", str(source), "-y",
            "-c:v", CPU_VIDEO_ENCODER, "-b:v", CPU_VIDEO_BITRATE,
            "-c:a", AUDIO_CODEC, "-s", CPU_FRAME_SIZE, "-r:v", OUTPUT_FRAME_RATE,
            "-passlogfile", str(source), "-pass", str(pass_number),
            str(output_path),
        ]

    def encode(self, job: Job, media_file: MediaFile, output_path: Path, report: Report):
        report("Recoding, first pass...")
        self._run_ffmpeg(job, self.build_command(media_file.path, output_path, 1), pass_number=1)

        report("Recoding, second pass...")
        self._run_ffmpeg(job, self.build_command(media_file.path, output_path, 2), pass_number=2)
        report("Done!")


TRANSCODERS: dict[EncodeStrategy, Type[Transcoder]] = {
    EncodeStrategy.GPU_SINGLE_PASS: GpuSinglePassTranscoder,
    EncodeStrategy.CPU_TWO_PASS: CpuTwoPassTranscoder,
}


def transcoder_for(strategy: EncodeStrategy, gate: EncoderGate, **kwargs) -> Transcoder:
    """Builds the transcoder implementing `strategy`."""
    return TRANSCODERS[EncodeStrategy(strategy)](gate, **kwargs)
