import pytest

from yt_recoder.config.common import JOB_STATUS_ENCODING, JOB_STATUS_FAILED, JOB_STATUS_IDLE
from yt_recoder.domain.job import EncodeStrategy, FetchResult, Job


def test_fetch_result_filename():
    assert FetchResult.from_json_line('{"_filename": "a.mp4"}').filename == "a.mp4"
    assert FetchResult({"filename": "b.mp4"}).filename == "b.mp4"
    assert FetchResult({"_filename": ""}).filename is None
    assert FetchResult({"title": "no file"}).filename is None


def test_fetch_result_rejects_non_object_json():
    with pytest.raises(ValueError):
        FetchResult.from_json_line("[1, 2]")


def test_new_job_defaults():
    job = Job(identifier="abc")

    assert job.status == JOB_STATUS_IDLE
    assert job.strategy == EncodeStrategy.CPU_TWO_PASS
    assert job.elapsed >= 0
    assert not job.is_terminal


def test_job_terminal_status():
    job = Job(identifier="abc")

    job.update_status(JOB_STATUS_ENCODING, encode_pass=2)
    assert job.encode_pass == 2
    assert not job.is_terminal

    job.update_status(JOB_STATUS_FAILED, error="boom")
    assert job.is_terminal
    assert job.encode_pass is None
    assert job.error == "boom"
