"""Tests for the fetch stage."""

import pytest

from conftest import BlockingStream, FakePopen, FakeProcess, metadata_line
from yt_recoder.domain.exceptions import (
    FetchFailedException,
    FetchTimeoutException,
    InvalidIdentifierException,
    NoMetadataException,
    ToolUnavailableException,
)
from yt_recoder.services.fetch_service import MediaFetcher, is_valid_identifier


@pytest.mark.parametrize(
    "identifier",
    ["abc;rm -rf /", "a b", "$(reboot)", "", "abc/def", "dQw4w9WgXcé", "x&y", "id\n"],
)
def test_invalid_identifier_spawns_nothing(settings, identifier):
    popen = FakePopen(FakeProcess(metadata_line(_filename="x.mp4")))
    fetcher = MediaFetcher(settings, popen=popen)

    with pytest.raises(InvalidIdentifierException):
        fetcher.fetch(identifier)

    assert popen.calls == []


def test_valid_identifier_alphabet():
    assert is_valid_identifier("dQw4w9WgXcQ")
    assert is_valid_identifier("-_aZ09")
    assert not is_valid_identifier("")


def test_successful_fetch_returns_metadata(settings):
    popen = FakePopen(FakeProcess(metadata_line(_filename="/tmp/video.mp4", title="t")))
    progress = []

    result = MediaFetcher(settings, popen=popen).fetch("dQw4w9WgXcQ", on_progress=progress.append)

    assert result.filename == "/tmp/video.mp4"
    assert result.title == "t"
    assert progress == ["Downloading video..."]
    assert len(popen.calls) == 1


def test_stalled_fetch_retries_exactly_max_retries_times(settings):
    popen = FakePopen(*(FakeProcess(metadata_line(_filename="v.mp4"), hang=True) for _ in range(4)))
    progress = []

    with pytest.raises(FetchTimeoutException):
        MediaFetcher(settings, popen=popen).fetch("abc", max_retries=3, on_progress=progress.append)

    assert len(popen.calls) == 4
    assert progress.count("Retrying...") == 3


def test_zero_retries_means_single_attempt(settings):
    popen = FakePopen(FakeProcess(metadata_line(_filename="v.mp4"), hang=True))

    with pytest.raises(FetchTimeoutException):
        MediaFetcher(settings, popen=popen).fetch("abc", max_retries=0)

    assert len(popen.calls) == 1


def test_stalled_process_is_terminated(settings):
    process = FakeProcess(metadata_line(_filename="v.mp4"), hang=True)

    with pytest.raises(FetchTimeoutException):
        MediaFetcher(settings, popen=FakePopen(process)).fetch("abc", max_retries=0)

    assert process.terminated


def test_retry_after_stall_can_succeed(settings):
    popen = FakePopen(
        FakeProcess(metadata_line(_filename="v.mp4"), hang=True),
        FakeProcess(metadata_line(_filename="v.mp4")),
    )

    result = MediaFetcher(settings, popen=popen).fetch("abc", max_retries=5)

    assert result.filename == "v.mp4"
    assert len(popen.calls) == 2


def test_default_retries_come_from_settings(settings):
    popen = FakePopen(
        *(FakeProcess(metadata_line(_filename="v.mp4"), hang=True) for _ in range(settings.fetch_retries + 1))
    )

    with pytest.raises(FetchTimeoutException):
        MediaFetcher(settings, popen=popen).fetch("abc")

    assert len(popen.calls) == settings.fetch_retries + 1


def test_no_output_line_fails_without_retry(settings):
    popen = FakePopen(FakeProcess(b""))

    with pytest.raises(NoMetadataException):
        MediaFetcher(settings, popen=popen).fetch("abc", max_retries=5)

    assert len(popen.calls) == 1


def test_unparseable_metadata_is_no_metadata(settings):
    process = FakeProcess(b"ERROR: this is not json\n", hang=True)

    with pytest.raises(NoMetadataException):
        MediaFetcher(settings, popen=FakePopen(process)).fetch("abc")

    assert process.terminated


def test_metadata_read_deadline(settings):
    process = FakeProcess(BlockingStream(), hang=True)

    with pytest.raises(NoMetadataException):
        MediaFetcher(settings, popen=FakePopen(process)).fetch("abc", max_retries=3)

    assert process.terminated


def test_non_zero_exit_is_a_failure(settings):
    popen = FakePopen(FakeProcess(metadata_line(_filename="v.mp4"), returncode=1))

    with pytest.raises(FetchFailedException) as exc_info:
        MediaFetcher(settings, popen=popen).fetch("abc", max_retries=5)

    assert exc_info.value.return_code == 1
    assert len(popen.calls) == 1


def test_missing_tool_is_tool_unavailable(settings):
    def popen(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    with pytest.raises(ToolUnavailableException):
        MediaFetcher(settings, popen=popen).fetch("abc")


def test_command_without_credentials(settings):
    cmd = MediaFetcher(settings, popen=FakePopen(FakeProcess())).build_command("-abc")

    assert cmd[:4] == ["yt-dlp", "--print-json", "-f", settings.fetch_format]
    assert "-u" not in cmd
    assert "--mark-watched" not in cmd
    assert cmd[-2:] == ["--", "-abc"]


def test_command_with_credentials_and_download_dir(settings, tmp_path):
    settings = settings.model_copy(update=dict(fetch_user="me", fetch_password="secret", download_dir=tmp_path))

    cmd = MediaFetcher(settings, popen=FakePopen(FakeProcess())).build_command("abc")

    assert cmd[cmd.index("-u") + 1] == "me"
    assert cmd[cmd.index("-p") + 1] == "secret"
    assert "--mark-watched" in cmd
    assert cmd[cmd.index("-o") + 1].startswith(str(tmp_path))
    assert cmd[-2:] == ["--", "abc"]


def test_only_user_without_password_runs_unauthenticated(settings):
    settings = settings.model_copy(update=dict(fetch_user="me"))

    cmd = MediaFetcher(settings, popen=FakePopen(FakeProcess())).build_command("abc")

    assert "-u" not in cmd
