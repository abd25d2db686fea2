"""Playback scheduler: replays a MessageSource into a sink at the configured rate.

Lifecycle:

    UNINITIALIZED --initialize--> STOPPED --start--> RUNNING <--pause/resume--> PAUSED
                                     ^                  |                          |
                                     +------stop--------+----------stop------------+

Every tick pulls up to `throughput` records, stamps the time-override fields,
sends each record and notifies listeners. The cursor only moves forward; stop
does not rewind it, initialize does.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from replay.errors import InitializationError
from replay.settings import EndOfStreamPolicy, PlaybackSettings
from replay.source import MessageSource
from replay.time_fields import rewrite_time_fields, utc_now
from replay.timer import RecurringTimer

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    UNINITIALIZED = "uninitialized"
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"


# (action, current state) -> next state; anything missing is a no-op.
_TRANSITIONS = {
    ("start", PlaybackState.STOPPED): PlaybackState.RUNNING,
    ("pause", PlaybackState.RUNNING): PlaybackState.PAUSED,
    ("resume", PlaybackState.PAUSED): PlaybackState.RUNNING,
    ("stop", PlaybackState.RUNNING): PlaybackState.STOPPED,
    ("stop", PlaybackState.PAUSED): PlaybackState.STOPPED,
}

EVENTS = ("message_ready", "advanced", "end_of_stream", "delivery_error", "state_changed")


class PlaybackScheduler:
    """
    Drives playback of one message source into one sink.

    `sink` is any object with `send(record)`. `timer_factory(callback)` must
    return an object with arm(interval_sec) / disarm() / close() /
    is_current(generation) that calls `callback(generation)` on each fire; tests
    pass a manual timer and call tick() themselves.
    """

    def __init__(
        self,
        sink: Any,
        settings: Optional[PlaybackSettings] = None,
        timer_factory: Callable[[Callable[[int], None]], Any] = RecurringTimer,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.sink = sink
        self.settings = settings or PlaybackSettings()
        self._clock = clock
        self._lock = threading.RLock()
        self._timer = timer_factory(self._on_timer)
        self._listeners: Dict[str, List[Callable]] = {name: [] for name in EVENTS}
        self._state = PlaybackState.UNINITIALIZED
        self._source: Optional[MessageSource] = None
        self._cursor = 0
        self._end_reached = False

    # ---- observers ----
    def add_listener(self, event: str, callback: Callable) -> None:
        if event not in self._listeners:
            raise ValueError(f"unknown event: {event}")
        with self._lock:
            self._listeners[event].append(callback)

    def remove_listener(self, event: str, callback: Callable) -> None:
        with self._lock:
            try:
                self._listeners.get(event, []).remove(callback)
            except ValueError:
                pass

    def _emit(self, event: str, *args) -> None:
        for cb in list(self._listeners[event]):
            try:
                cb(*args)
            except Exception:
                logger.exception(f"Listener for '{event}' failed")

    # ---- read-only state ----
    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def end_reached(self) -> bool:
        return self._end_reached

    @property
    def field_names(self) -> List[str]:
        src = self._source
        return src.field_names if src is not None else []

    @property
    def started(self) -> bool:
        return self._state in (PlaybackState.RUNNING, PlaybackState.PAUSED)

    # ---- lifecycle ----
    def initialize(self, source: MessageSource) -> List[str]:
        """Attach an opened source and rewind; returns its field names."""
        with self._lock:
            if self._source is source:
                self._source = None
            self.reset()
            fields = source.field_names if source is not None else []
            if not fields:
                raise InitializationError("message source is not open or has no fields")
            self._source = source
            self._set_state(PlaybackState.STOPPED)
            logger.info(f"Initialized playback with {len(fields)} fields")
            return list(fields)

    def reset(self) -> None:
        """Drop the current source and return to UNINITIALIZED."""
        with self._lock:
            self._timer.disarm()
            if self._source is not None:
                self._source.close()
            self._source = None
            self._cursor = 0
            self._end_reached = False
            self._set_state(PlaybackState.UNINITIALIZED)

    def start(self) -> bool:
        return self._apply("start")

    def pause(self) -> bool:
        return self._apply("pause")

    def resume(self) -> bool:
        return self._apply("resume")

    def stop(self) -> bool:
        return self._apply("stop")

    def close(self) -> None:
        with self._lock:
            self._timer.disarm()
            if self._state in (PlaybackState.RUNNING, PlaybackState.PAUSED):
                self._set_state(PlaybackState.STOPPED)
            if self._source is not None:
                self._source.close()
        self._timer.close()

    def _apply(self, action: str) -> bool:
        with self._lock:
            new_state = _TRANSITIONS.get((action, self._state))
            if new_state is None:
                logger.debug(f"Ignoring {action} while {self._state.value}")
                return False
            if new_state is PlaybackState.RUNNING:
                self._arm()
            else:
                self._timer.disarm()
            self._set_state(new_state)
            logger.info(f"Playback {action} at index {self._cursor}")
            return True

    def _arm(self) -> None:
        self._timer.arm(self.settings.interval_ms / 1000.0)

    def _set_state(self, new_state: PlaybackState) -> None:
        old = self._state
        self._state = new_state
        if old is not new_state:
            self._emit("state_changed", old, new_state)

    # ---- configuration ----
    def set_frequency(self, count: Any, time_count: Any = 1.0, unit: Any = "seconds") -> float:
        """Change the rate; a running timer is re-armed so the next tick uses it."""
        spec = self.settings.set_frequency(count, time_count, unit)
        with self._lock:
            if self._state is PlaybackState.RUNNING:
                self._arm()
        return spec.interval_ms

    def set_throughput(self, n: Any) -> int:
        return self.settings.set_throughput(n)

    def set_time_override_fields(self, fields: Iterable[str]):
        return self.settings.set_time_override_fields(fields)

    # ---- tick ----
    def _on_timer(self, generation: int) -> int:
        with self._lock:
            # a fire that waited on the lock across pause/resume or a re-arm is stale
            if not self._timer.is_current(generation):
                logger.debug(f"Dropping stale timer fire (generation {generation})")
                return 0
            return self.tick()

    def tick(self) -> int:
        """Deliver up to `throughput` records; returns how many were delivered."""
        with self._lock:
            if self._state is not PlaybackState.RUNNING or self._source is None:
                return 0
            snap = self.settings.snapshot()
            delivered = 0
            exhausted = False
            for _ in range(snap.throughput):
                if self._state is not PlaybackState.RUNNING:
                    break
                record = self._source.next_message()
                if record is None:
                    exhausted = True
                    break
                self._deliver(record)
                delivered += 1
            if exhausted:
                self._handle_end_of_stream(snap.end_of_stream)
            return delivered

    def _deliver(self, record: Dict[str, str]) -> None:
        fields = self.settings.time_override_fields()
        out = rewrite_time_fields(record, fields, now=self._clock())
        try:
            self.sink.send(out)
        except Exception as e:
            logger.warning(f"Failed to send message {self._cursor}: {e}")
            self._emit("delivery_error", out, e)
        self._cursor += 1
        self._emit("message_ready", out)
        self._emit("advanced", self._cursor)

    def _handle_end_of_stream(self, policy: EndOfStreamPolicy) -> None:
        if not self._end_reached:
            self._end_reached = True
            logger.info(f"Reached end of messages after {self._cursor} records")
            self._emit("end_of_stream", self._cursor)
        if policy is EndOfStreamPolicy.STOP and self._state is PlaybackState.RUNNING:
            self._timer.disarm()
            self._set_state(PlaybackState.STOPPED)
