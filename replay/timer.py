import logging
import threading
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class RecurringTimer:
    """
    Calls `callback(generation)` every `interval` seconds on one background thread.

    arm() (re)starts the cadence with the first call one interval from now, so
    changing the interval takes effect at the next fire. disarm() cancels
    pending fires; fires that were missed while disarmed or while a slow
    callback ran are dropped, never replayed.

    Every arm/disarm bumps `generation`. A fire passes the generation it was
    scheduled under, so a callback that had to wait (e.g. on a lock) can check
    is_current() and drop a fire that belongs to an older arming.
    """

    def __init__(self, callback: Callable[[int], None], name: str = "playback-timer"):
        self._callback = callback
        self._name = name
        self._cond = threading.Condition()
        self._interval: Optional[float] = None
        self._next_due = 0.0
        self._generation = 0
        self._closed = False
        self._thread: Optional[threading.Thread] = None

    @property
    def armed(self) -> bool:
        with self._cond:
            return self._interval is not None

    @property
    def interval(self) -> Optional[float]:
        with self._cond:
            return self._interval

    @property
    def generation(self) -> int:
        with self._cond:
            return self._generation

    def is_current(self, generation: int) -> bool:
        with self._cond:
            return self._interval is not None and generation == self._generation

    def arm(self, interval_sec: float) -> None:
        interval_sec = float(interval_sec)
        if interval_sec <= 0:
            raise ValueError(f"timer interval must be > 0, got {interval_sec}")
        with self._cond:
            if self._closed:
                raise RuntimeError("timer is closed")
            self._interval = interval_sec
            self._next_due = time.monotonic() + interval_sec
            self._generation += 1
            if self._thread is None or not self._thread.is_alive():
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()
            self._cond.notify_all()

    def disarm(self) -> None:
        with self._cond:
            self._interval = None
            self._generation += 1
            self._cond.notify_all()

    def close(self, timeout: float = 2.0) -> None:
        """Stop the worker thread; waits for a running callback unless called from it."""
        with self._cond:
            self._closed = True
            self._interval = None
            self._generation += 1
            self._cond.notify_all()
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    # ---- internal ----
    def _run(self) -> None:
        while True:
            with self._cond:
                while not self._closed:
                    if self._interval is None:
                        self._cond.wait()
                        continue
                    remaining = self._next_due - time.monotonic()
                    if remaining <= 0:
                        break
                    # Condition.wait rejects timeouts above TIMEOUT_MAX
                    self._cond.wait(min(remaining, threading.TIMEOUT_MAX))
                if self._closed:
                    return
                self._next_due = time.monotonic() + self._interval
                generation = self._generation
            try:
                self._callback(generation)
            except Exception:
                logger.exception("Timer callback failed")
