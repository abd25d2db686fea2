"""
Centralized configuration helpers.

Settings come from the environment, optionally via a local `.env` file.
Example:
    GEOMSG_PORT=45678
    GEOMSG_FREQUENCY=50
    GEOMSG_TIME_COUNT=6
    GEOMSG_TIME_UNIT=minutes
    GEOMSG_TIME_FIELDS=datetimevalidity
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional
from dotenv import load_dotenv


# Load environment variables from .env if present.
load_dotenv()


def env_str(name: str, default: str = "") -> str:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw)


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return str(raw).strip().lower() in ("1", "true", "yes", "on")


def env_int(name: str, default: int = 0, min_value: Optional[int] = None, max_value: Optional[int] = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        val = int(str(raw).strip())
    except Exception:
        return default
    if min_value is not None:
        val = max(min_value, val)
    if max_value is not None:
        val = min(max_value, val)
    return val


def env_float(name: str, default: float = 0.0, min_value: Optional[float] = None, max_value: Optional[float] = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        val = float(str(raw).strip())
    except Exception:
        return default
    if min_value is not None:
        val = max(min_value, val)
    if max_value is not None:
        val = min(max_value, val)
    return val


def env_list(name: str, default: Optional[List[str]] = None) -> List[str]:
    """Comma separated list; blanks dropped."""
    raw = os.getenv(name)
    if raw is None:
        return list(default or [])
    return [part.strip() for part in str(raw).split(",") if part.strip()]


END_OF_STREAM_CHOICES = ("stop", "idle")


def _or_default(val, default, low=None, high=None):
    """Out-of-range values make the variable unusable; the default applies instead."""
    if low is not None and val < low:
        return default
    if high is not None and val > high:
        return default
    return val


def _or_positive(val: float, default: float) -> float:
    # also rejects nan and inf
    if not (0 < val < float("inf")):
        return default
    return val


def _one_of(val: str, choices, default: str) -> str:
    return val if val in choices else default


@dataclass
class SimulatorConfig:
    port: int = 45678
    host: str = "255.255.255.255"
    frequency: float = 1.0
    time_count: float = 1.0
    time_unit: str = "seconds"
    throughput: int = 1
    verbose: bool = False
    time_override_fields: List[str] = field(default_factory=list)
    end_of_stream: str = "stop"
    push_url: str = ""
    api_host: str = "127.0.0.1"
    api_port: int = 8000


def load_simulator_config() -> SimulatorConfig:
    return SimulatorConfig(
        port=_or_default(env_int("GEOMSG_PORT", 45678), 45678, 1, 65535),
        host=env_str("GEOMSG_HOST", "255.255.255.255").strip() or "255.255.255.255",
        frequency=_or_positive(env_float("GEOMSG_FREQUENCY", 1.0), 1.0),
        time_count=_or_positive(env_float("GEOMSG_TIME_COUNT", 1.0), 1.0),
        time_unit=env_str("GEOMSG_TIME_UNIT", "seconds").strip().lower() or "seconds",
        throughput=_or_default(env_int("GEOMSG_THROUGHPUT", 1), 1, 1),
        verbose=env_bool("GEOMSG_VERBOSE", default=False),
        time_override_fields=env_list("GEOMSG_TIME_FIELDS"),
        end_of_stream=_one_of(env_str("GEOMSG_ON_END", "stop").strip().lower(), END_OF_STREAM_CHOICES, "stop"),
        push_url=env_str("GEOMSG_PUSH_URL", "").strip(),
        api_host=env_str("GEOMSG_API_HOST", "127.0.0.1"),
        api_port=_or_default(env_int("GEOMSG_API_PORT", 8000), 8000, 1, 65535),
    )
