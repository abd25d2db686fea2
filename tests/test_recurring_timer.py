import threading
import time

import pytest

from replay.timer import RecurringTimer


def test_timer_fires_repeatedly_until_disarmed():
    fired = threading.Semaphore(0)
    timer = RecurringTimer(lambda generation: fired.release())
    try:
        timer.arm(0.01)
        assert timer.armed
        for _ in range(3):
            assert fired.acquire(timeout=2.0)
        timer.disarm()
        assert not timer.armed
        # drain a fire that may have been in flight when disarmed
        fired.acquire(timeout=0.05)
        assert not fired.acquire(timeout=0.1)
    finally:
        timer.close()


def test_rearm_with_longer_interval_delays_next_fire():
    calls = []
    timer = RecurringTimer(lambda generation: calls.append(time.monotonic()))
    try:
        timer.arm(5.0)
        time.sleep(0.05)
        assert calls == []
        start = time.monotonic()
        timer.arm(0.02)
        deadline = start + 2.0
        while not calls and time.monotonic() < deadline:
            time.sleep(0.005)
        assert calls and calls[0] - start < 1.0
    finally:
        timer.close()


def test_callback_exception_does_not_kill_timer():
    count = {"n": 0}
    done = threading.Event()

    def flaky(generation):
        count["n"] += 1
        if count["n"] == 1:
            raise RuntimeError("first fire fails")
        done.set()

    timer = RecurringTimer(flaky)
    try:
        timer.arm(0.01)
        assert done.wait(2.0)
    finally:
        timer.close()


def test_invalid_interval_and_closed_timer():
    timer = RecurringTimer(lambda generation: None)
    with pytest.raises(ValueError):
        timer.arm(0)
    timer.close()
    with pytest.raises(RuntimeError):
        timer.arm(1.0)


def test_huge_interval_keeps_worker_alive_and_rearmable():
    fired = threading.Event()
    timer = RecurringTimer(lambda generation: fired.set())
    try:
        timer.arm(1e12)
        time.sleep(0.1)
        assert timer._thread.is_alive()
        assert not fired.is_set()
        timer.arm(0.01)
        assert fired.wait(2.0)
    finally:
        timer.close()


def test_generation_changes_on_every_arm_and_disarm():
    seen = []
    done = threading.Event()

    def record(generation):
        seen.append(generation)
        done.set()

    timer = RecurringTimer(record)
    try:
        g0 = timer.generation
        timer.arm(5.0)
        g1 = timer.generation
        timer.disarm()
        assert g0 < g1 < timer.generation
        assert not timer.is_current(g1)
        timer.arm(0.01)
        assert done.wait(2.0)
        assert timer.is_current(seen[0])
    finally:
        timer.close()
