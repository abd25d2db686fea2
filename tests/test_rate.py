import pytest

from replay.errors import ConfigurationError
from replay.rate import RateModel, RateSpec, normalize_unit, seconds_per_unit
from replay.settings import PlaybackSettings


def test_interval_fifty_per_six_minutes():
    model = RateModel()
    model.set_frequency(50, 6, "minutes")
    assert model.interval_ms == pytest.approx(7200.0)


def test_single_argument_frequency_is_per_second():
    model = RateModel()
    model.set_frequency(10)
    assert model.interval_ms == pytest.approx(100.0)
    assert model.message_frequency == pytest.approx(10.0)


@pytest.mark.parametrize(
    "unit,seconds",
    [("seconds", 1), ("minutes", 60), ("hours", 3600), ("days", 86400), ("weeks", 604800)],
)
def test_interval_formula_for_each_unit(unit, seconds):
    spec = RateSpec.create(4, 2, unit)
    assert spec.interval_ms == pytest.approx(2 * seconds * 1000 / 4)


def test_unit_aliases_and_unknown_unit():
    assert normalize_unit("Minutes") == "minutes"
    assert normalize_unit("hour") == "hours"
    assert normalize_unit("fortnights") == "seconds"
    assert normalize_unit(None) == "seconds"
    assert seconds_per_unit("bogus") == 1


def test_rejected_frequency_keeps_previous_value():
    model = RateModel()
    model.set_frequency(5)
    for bad in (0, -1, "abc", None, float("nan")):
        with pytest.raises(ConfigurationError):
            model.set_frequency(bad)
    with pytest.raises(ConfigurationError):
        model.set_frequency(1, 0, "seconds")
    assert model.interval_ms == pytest.approx(200.0)


def test_set_frequency_is_idempotent():
    model = RateModel()
    first = model.set_frequency(3, 2, "hours").interval_ms
    second = model.set_frequency(3, 2, "hours").interval_ms
    assert first == second == pytest.approx(2400000.0)


def test_throughput_validation():
    model = RateModel()
    assert model.throughput == 1
    assert model.set_throughput(3) == 3
    for bad in (0, -2, 2.5, "x", True):
        with pytest.raises(ConfigurationError):
            model.set_throughput(bad)
    assert model.throughput == 3


def test_throughput_above_one_logs_warning(caplog):
    model = RateModel()
    with caplog.at_level("WARNING"):
        model.set_throughput(2)
    assert "discouraged" in caplog.text


def test_settings_snapshot_is_consistent():
    settings = PlaybackSettings(time_override_fields=["ts", " ts ", "", "when"])
    settings.set_frequency(2)
    settings.set_throughput(4)
    snap = settings.snapshot()
    assert snap.interval_ms == pytest.approx(500.0)
    assert snap.throughput == 4
    assert snap.time_override_fields == ("ts", "when")
    assert snap.end_of_stream.value == "stop"


def test_settings_rejects_unknown_end_policy():
    settings = PlaybackSettings()
    with pytest.raises(ConfigurationError):
        settings.set_end_of_stream("loop")
    assert settings.set_end_of_stream("IDLE").value == "idle"
