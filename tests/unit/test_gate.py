import threading
import time

import pytest

from src.ingestion.gate import ParseGate


def test_gate_rejects_zero_capacity() -> None:
    with pytest.raises(ValueError):
        ParseGate(0)


def test_gate_never_exceeds_capacity() -> None:
    gate = ParseGate(2)
    observed: list[int] = []

    def worker() -> None:
        with gate.slot():
            observed.append(gate.active)
            time.sleep(0.02)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert max(observed) <= 2
    assert gate.peak <= 2
    assert gate.active == 0


def test_slot_is_released_on_error() -> None:
    gate = ParseGate(1)
    with pytest.raises(RuntimeError):
        with gate.slot():
            raise RuntimeError("boom")

    assert gate.active == 0
    with gate.slot():
        assert gate.active == 1


def test_acquire_times_out_when_full() -> None:
    gate = ParseGate(1)
    assert gate.acquire(timeout=0.05)

    assert gate.acquire(timeout=0.05) is False
    assert gate.active == 1

    gate.release()
    assert gate.acquire(timeout=0.05)
    gate.release()
    assert gate.active == 0
