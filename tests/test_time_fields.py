from datetime import datetime, timezone

from replay.time_fields import DATE_FORMAT, format_timestamp, rewrite_time_fields


NOW = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


def test_rewrite_replaces_only_listed_fields():
    record = {"id": "1", "ts": "2020-01-01"}
    out = rewrite_time_fields(record, {"ts"}, now=NOW)
    assert out == {"id": "1", "ts": "2024-05-06 07:08:09"}
    assert out["id"] is record["id"]


def test_rewrite_does_not_mutate_input():
    record = {"id": "1", "ts": "2020-01-01"}
    rewrite_time_fields(record, ["ts"], now=NOW)
    assert record == {"id": "1", "ts": "2020-01-01"}


def test_rewrite_ignores_absent_fields_and_keeps_order():
    record = {"b": "x", "a": "y", "c": "z"}
    out = rewrite_time_fields(record, ["missing", "a"], now=NOW)
    assert list(out) == ["b", "a", "c"]
    assert out["a"] == "2024-05-06 07:08:09"
    assert out is not record


def test_format_timestamp_defaults_to_now():
    stamp = format_timestamp()
    parsed = datetime.strptime(stamp, DATE_FORMAT)
    assert abs(parsed.replace(tzinfo=timezone.utc) - datetime.now(timezone.utc)).total_seconds() < 5
