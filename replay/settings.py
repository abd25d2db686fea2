from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Tuple

from replay.errors import ConfigurationError
from replay.rate import DEFAULT_UNIT, RateModel, RateSpec


class EndOfStreamPolicy(str, Enum):
    STOP = "stop"
    IDLE = "idle"

    @classmethod
    def parse(cls, value: Any) -> "EndOfStreamPolicy":
        if isinstance(value, cls):
            return value
        raw = str(value or "").strip().lower()
        for policy in cls:
            if policy.value == raw:
                return policy
        raise ConfigurationError(f"unknown end-of-stream policy: {value!r}")


@dataclass(frozen=True)
class SettingsSnapshot:
    rate: RateSpec
    throughput: int
    time_override_fields: Tuple[str, ...]
    end_of_stream: EndOfStreamPolicy

    @property
    def interval_ms(self) -> float:
        return self.rate.interval_ms


class PlaybackSettings:
    """
    All mutable playback configuration behind one lock.

    Setters may be called from any thread. The playback thread reads a
    consistent copy through snapshot() / time_override_fields(); the lock is
    only held for the copy, never while a record is being sent.
    """

    def __init__(
        self,
        rate: RateSpec = RateSpec(),
        throughput: int = 1,
        time_override_fields: Iterable[str] = (),
        end_of_stream: Any = EndOfStreamPolicy.STOP,
    ):
        self._lock = threading.Lock()
        self._model = RateModel(rate, throughput)
        self._time_fields: Tuple[str, ...] = _clean_fields(time_override_fields)
        self._end_of_stream = EndOfStreamPolicy.parse(end_of_stream)

    def set_frequency(self, count: Any, time_count: Any = 1.0, unit: Any = DEFAULT_UNIT) -> RateSpec:
        spec = RateSpec.create(count, time_count, unit)
        with self._lock:
            self._model.set_frequency(spec.count, spec.time_count, spec.unit)
        return spec

    def set_throughput(self, n: Any) -> int:
        with self._lock:
            return self._model.set_throughput(n)

    def set_time_override_fields(self, fields: Iterable[str]) -> Tuple[str, ...]:
        cleaned = _clean_fields(fields)
        with self._lock:
            self._time_fields = cleaned
        return cleaned

    def set_end_of_stream(self, policy: Any) -> EndOfStreamPolicy:
        parsed = EndOfStreamPolicy.parse(policy)
        with self._lock:
            self._end_of_stream = parsed
        return parsed

    def time_override_fields(self) -> Tuple[str, ...]:
        with self._lock:
            return self._time_fields

    def snapshot(self) -> SettingsSnapshot:
        with self._lock:
            return SettingsSnapshot(
                rate=self._model.rate,
                throughput=self._model.throughput,
                time_override_fields=self._time_fields,
                end_of_stream=self._end_of_stream,
            )

    @property
    def rate(self) -> RateSpec:
        return self.snapshot().rate

    @property
    def interval_ms(self) -> float:
        return self.snapshot().interval_ms

    @property
    def message_frequency(self) -> float:
        return self.snapshot().rate.per_second

    @property
    def throughput(self) -> int:
        return self.snapshot().throughput

    @property
    def end_of_stream(self) -> EndOfStreamPolicy:
        return self.snapshot().end_of_stream


def _clean_fields(fields: Iterable[str]) -> Tuple[str, ...]:
    if fields is None:
        return ()
    if isinstance(fields, str):
        fields = fields.split(",")
    out = []
    for f in fields:
        name = str(f).strip()
        if name and name not in out:
            out.append(name)
    return tuple(out)
