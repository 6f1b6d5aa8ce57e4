from pathlib import Path

import ffmpeg
import pytest

from yt_recoder.domain.exceptions import SourceFileNotFoundException
from yt_recoder.domain.media import MediaFile, alternate_container_path, parse_duration


@pytest.mark.parametrize(
    "duration, expected",
    [("3600.5", 3600.5), ("01:00:00.500", 3600.5), ("02:30", 150.0), ("garbage", 0.0)],
)
def test_parse_duration(duration, expected):
    assert parse_duration(duration) == expected


def test_alternate_container_path():
    assert alternate_container_path(Path("a/video.mp4")) == Path("a/video.mkv")
    assert alternate_container_path(Path("a/video.webm")) is None
    assert alternate_container_path(Path("a/video")) is None


def test_locate_prefers_reported_path(tmp_path):
    reported = tmp_path / "v.mp4"
    reported.write_bytes(b"1")
    (tmp_path / "v.mkv").write_bytes(b"2")

    assert MediaFile.locate(reported).path == reported.resolve()


def test_locate_missing(tmp_path):
    with pytest.raises(SourceFileNotFoundException):
        MediaFile.locate(tmp_path / "v.webm")


def test_load_media_info_reads_duration(monkeypatch, media_file):
    monkeypatch.setattr(ffmpeg, "probe", lambda path: {"format": {"duration": "12.5"}})
    media = MediaFile.locate(media_file)

    assert media.load_media_info()
    assert media.duration == 12.5


def test_load_media_info_failure_is_not_fatal(monkeypatch, media_file):
    def unreadable(path):
        raise ffmpeg.Error("ffprobe", b"", b"Invalid data found")

    monkeypatch.setattr(ffmpeg, "probe", unreadable)
    media = MediaFile.locate(media_file)

    assert not media.load_media_info()
    assert media.duration == 0.0
