import threading

import pytest

from yt_recoder.services.admission_gate import EncoderGate


@pytest.mark.parametrize("capacity", [0, -1])
def test_capacity_must_be_positive(capacity):
    with pytest.raises(ValueError):
        EncoderGate(capacity)


def test_try_acquire_up_to_capacity():
    gate = EncoderGate(2)

    assert gate.try_acquire()
    assert gate.try_acquire()
    assert not gate.try_acquire()
    assert gate.in_use == 2

    gate.release()
    assert gate.in_use == 1
    assert gate.try_acquire()


def test_release_without_acquire_is_an_error():
    gate = EncoderGate(1)

    with pytest.raises(ValueError):
        gate.release()

    assert gate.in_use == 0
    assert gate.try_acquire()


def test_slot_does_not_report_queued_when_free():
    gate = EncoderGate(1)
    queued = []

    with gate.slot(lambda: queued.append(True)):
        assert gate.in_use == 1

    assert queued == []
    assert gate.in_use == 0


def test_slot_released_on_exception():
    gate = EncoderGate(1)

    with pytest.raises(RuntimeError):
        with gate.slot():
            raise RuntimeError("encoder crashed")

    assert gate.in_use == 0


def test_slot_waits_and_reports_queued_when_full():
    gate = EncoderGate(1)
    queued = threading.Event()
    entered = threading.Event()
    gate.acquire()

    def waiter():
        with gate.slot(queued.set):
            entered.set()

    worker = threading.Thread(target=waiter)
    worker.start()

    assert queued.wait(5)
    assert not entered.wait(0.2)

    gate.release()
    worker.join(5)

    assert entered.is_set()
    assert gate.in_use == 0


def test_in_use_never_exceeds_capacity():
    gate = EncoderGate(2)
    lock = threading.Lock()
    peak = []
    active = [0]

    def work():
        with gate.slot():
            with lock:
                active[0] += 1
                peak.append(active[0])
            threading.Event().wait(0.02)
            with lock:
                active[0] -= 1

    workers = [threading.Thread(target=work) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join(5)

    assert max(peak) <= 2
    assert gate.in_use == 0
