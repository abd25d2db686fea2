from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(now: Optional[datetime] = None) -> str:
    """Format `now` (default: current UTC time) with DATE_FORMAT."""
    return (now or utc_now()).strftime(DATE_FORMAT)


def rewrite_time_fields(
    record: Dict[str, str],
    field_names: Iterable[str],
    now: Optional[datetime] = None,
) -> Dict[str, str]:
    """Return a copy of `record` with each listed field set to the current time.

    Names that are not in the record are ignored; the input is never modified.
    """
    out = dict(record)
    names = [n for n in field_names if n in out]
    if not names:
        return out
    stamp = format_timestamp(now)
    for name in names:
        out[name] = stamp
    return out
