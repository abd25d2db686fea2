"""Broadcast rate model.

A rate is "count broadcasts per time_count units", e.g. 50 per 6 minutes.
It is turned into the timer interval between two ticks:

    interval_ms = time_count * seconds_per_unit(unit) * 1000 / count
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from replay.errors import ConfigurationError

logger = logging.getLogger(__name__)

SECONDS_PER_UNIT = {
    "seconds": 1,
    "minutes": 60,
    "hours": 3600,
    "days": 86400,
    "weeks": 604800,
}
DEFAULT_UNIT = "seconds"


def normalize_unit(unit: Any) -> str:
    """Map a unit name onto SECONDS_PER_UNIT keys; unknown units become seconds."""
    u = str(unit or "").strip().lower()
    if u in SECONDS_PER_UNIT:
        return u
    if u + "s" in SECONDS_PER_UNIT:
        return u + "s"
    if u:
        logger.warning(f"Unknown time unit '{unit}', using {DEFAULT_UNIT}")
    return DEFAULT_UNIT


def seconds_per_unit(unit: Any) -> int:
    return SECONDS_PER_UNIT[normalize_unit(unit)]


def _positive(name: str, value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(v) or v <= 0:
        raise ConfigurationError(f"{name} must be > 0, got {value!r}")
    return v


@dataclass(frozen=True)
class RateSpec:
    count: float = 1.0
    time_count: float = 1.0
    unit: str = DEFAULT_UNIT

    @classmethod
    def create(cls, count: Any, time_count: Any = 1.0, unit: Any = DEFAULT_UNIT) -> "RateSpec":
        """Validate inputs and build a spec; raises ConfigurationError."""
        return cls(
            count=_positive("frequency", count),
            time_count=_positive("time count", time_count),
            unit=normalize_unit(unit),
        )

    @property
    def interval_ms(self) -> float:
        return self.time_count * SECONDS_PER_UNIT[self.unit] * 1000.0 / self.count

    @property
    def per_second(self) -> float:
        """Broadcasts per second."""
        return 1000.0 / self.interval_ms


class RateModel:
    """Holds the last valid rate and throughput. Not thread-safe; see PlaybackSettings."""

    def __init__(self, rate: RateSpec = RateSpec(), throughput: int = 1):
        self._rate = rate
        self._throughput = 1
        self.set_throughput(throughput)

    @property
    def rate(self) -> RateSpec:
        return self._rate

    @property
    def interval_ms(self) -> float:
        return self._rate.interval_ms

    @property
    def message_frequency(self) -> float:
        return self._rate.per_second

    @property
    def throughput(self) -> int:
        return self._throughput

    def set_frequency(self, count: Any, time_count: Any = 1.0, unit: Any = DEFAULT_UNIT) -> RateSpec:
        """set_frequency(10) is 10 per second; set_frequency(50, 6, "minutes") is 50 per 6 minutes."""
        self._rate = RateSpec.create(count, time_count, unit)
        return self._rate

    def set_throughput(self, n: Any) -> int:
        if isinstance(n, bool):
            raise ConfigurationError(f"throughput must be an integer, got {n!r}")
        try:
            value = int(n)
        except (TypeError, ValueError):
            raise ConfigurationError(f"throughput must be an integer, got {n!r}") from None
        if value != n and str(value) != str(n).strip():
            raise ConfigurationError(f"throughput must be an integer, got {n!r}")
        if value < 1:
            raise ConfigurationError(f"throughput must be >= 1, got {n!r}")
        if value > 1:
            # Downstream consumers may reject more than one record per broadcast.
            logger.warning(f"Throughput {value} > 1 is discouraged; receivers may not accept batched broadcasts")
        self._throughput = value
        return value
