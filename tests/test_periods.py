"""Tests for the period table, trigger times and YAML loading."""

from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

import pytest
from hqpeak.models import PeriodDefinition, PeriodType, ScheduleTag, TimeOfDay
from hqpeak.periods import (
    PERIOD_DEFINITIONS,
    PeriodConfigError,
    cron_entries,
    definitions_for,
    extract_trigger_times,
    load_definitions_from_yaml,
    load_table,
    next_trigger,
)

TZ = ZoneInfo("America/New_York")
CONFIG_PATH = Path(__file__).parent.parent / "config" / "periods.yaml"


def test_each_period_has_am_and_pm_window():
    """Every period type has one AM and one PM window."""
    for period_type in PeriodType:
        am, pm = definitions_for(period_type)
        assert am.schedule_tag is ScheduleTag.AM
        assert pm.schedule_tag is ScheduleTag.PM


def test_pre_pre_peak_am_window_ends_at_midnight():
    """The evening lead-in runs from 21:00 to midnight."""
    am, _ = definitions_for(PeriodType.PRE_PRE_PEAK)
    assert am.begin == TimeOfDay(21, 0)
    assert am.end.is_midnight


def test_extract_trigger_times():
    """Shared boundaries (06:00, 10:00, 16:00, 00:00) appear once, sorted."""
    assert extract_trigger_times() == [
        TimeOfDay(0),
        TimeOfDay(6),
        TimeOfDay(7),
        TimeOfDay(9),
        TimeOfDay(10),
        TimeOfDay(16),
        TimeOfDay(20),
        TimeOfDay(21),
    ]


def test_extract_trigger_times_is_idempotent():
    """Repeated extraction gives the same sequence."""
    assert extract_trigger_times() == extract_trigger_times()


def test_extract_trigger_times_keeps_minutes():
    """Minutes are part of the trigger key."""
    window = PeriodDefinition(ScheduleTag.AM, TimeOfDay(5, 30), TimeOfDay(6, 0))
    table = {
        PeriodType.PEAK: (window, PeriodDefinition(ScheduleTag.PM, TimeOfDay(6), TimeOfDay(5, 30))),
        PeriodType.PRE_PEAK: (window, window),
        PeriodType.PRE_PRE_PEAK: (window, window),
    }
    assert extract_trigger_times(table) == [TimeOfDay(5, 30), TimeOfDay(6, 0)]


def test_cron_entries():
    """One crontab schedule per trigger time."""
    assert cron_entries() == [
        "0 0 * * *",
        "0 6 * * *",
        "0 7 * * *",
        "0 9 * * *",
        "0 10 * * *",
        "0 16 * * *",
        "0 20 * * *",
        "0 21 * * *",
    ]


def test_shipped_yaml_matches_builtin_table():
    """config/periods.yaml mirrors the built-in table."""
    assert load_definitions_from_yaml(CONFIG_PATH) == PERIOD_DEFINITIONS


def test_load_table_defaults_to_builtin():
    """No file means the built-in table."""
    assert load_table(None) is PERIOD_DEFINITIONS


def test_yaml_requires_am_and_pm(tmp_path):
    """Two windows with the same tag are rejected."""
    path = tmp_path / "periods.yaml"
    path.write_text(
        """
periods:
  PEAK:
    - {tag: AM, begin: "06:00", end: "09:00"}
    - {tag: AM, begin: "16:00", end: "20:00"}
  PRE_PEAK:
    - {tag: AM, begin: "00:00", end: "06:00"}
    - {tag: PM, begin: "10:00", end: "16:00"}
  PRE_PRE_PEAK:
    - {tag: AM, begin: "21:00", end: "00:00"}
    - {tag: PM, begin: "07:00", end: "10:00"}
"""
    )
    with pytest.raises(PeriodConfigError, match="PEAK needs exactly one AM and one PM"):
        load_definitions_from_yaml(path)


def test_yaml_rejects_invalid_time(tmp_path):
    """Out-of-range times are rejected."""
    path = tmp_path / "periods.yaml"
    path.write_text(
        """
periods:
  PEAK:
    - {tag: AM, begin: "25:00", end: "09:00"}
    - {tag: PM, begin: "16:00", end: "20:00"}
"""
    )
    with pytest.raises(PeriodConfigError, match="invalid window for PEAK"):
        load_definitions_from_yaml(path)


def test_yaml_requires_every_period_type(tmp_path):
    """Each period type must be present."""
    path = tmp_path / "periods.yaml"
    path.write_text(
        """
periods:
  PEAK:
    - {tag: AM, begin: "06:00", end: "09:00"}
    - {tag: PM, begin: "16:00", end: "20:00"}
"""
    )
    with pytest.raises(PeriodConfigError, match="missing windows for PRE_PEAK"):
        load_definitions_from_yaml(path)


def test_yaml_requires_periods_key(tmp_path):
    """The file must have a periods mapping."""
    path = tmp_path / "periods.yaml"
    path.write_text("tariffs: []\n")
    with pytest.raises(PeriodConfigError, match="missing 'periods'"):
        load_definitions_from_yaml(path)


@pytest.mark.parametrize(
    "now, expected",
    [
        (datetime(2025, 1, 22, 5, 0, tzinfo=TZ), datetime(2025, 1, 22, 6, 0, tzinfo=TZ)),
        # strictly after: a trigger at now is skipped
        (datetime(2025, 1, 22, 9, 0, tzinfo=TZ), datetime(2025, 1, 22, 10, 0, tzinfo=TZ)),
        (datetime(2025, 1, 22, 21, 30, tzinfo=TZ), datetime(2025, 1, 23, 0, 0, tzinfo=TZ)),
        # spring forward day
        (datetime(2025, 3, 9, 0, 30, tzinfo=TZ), datetime(2025, 3, 9, 6, 0, tzinfo=TZ)),
    ],
)
def test_next_trigger(now, expected):
    """The next trigger is strictly after now, rolling into tomorrow."""
    assert next_trigger(now, TZ) == expected


def test_time_of_day_validation():
    """TimeOfDay validates ranges and parses HH:MM."""
    with pytest.raises(ValueError):
        TimeOfDay(24, 0)
    with pytest.raises(ValueError):
        TimeOfDay(6, 60)
    assert TimeOfDay.parse("07:05") == TimeOfDay(7, 5)
    assert str(TimeOfDay(7, 5)) == "07:05"


def test_yaml_missing_file(tmp_path):
    """A periods file that does not exist is a configuration error."""
    with pytest.raises(PeriodConfigError, match="cannot read"):
        load_definitions_from_yaml(tmp_path / "nope.yaml")


def test_yaml_unparsable(tmp_path):
    """Broken YAML is a configuration error."""
    path = tmp_path / "periods.yaml"
    path.write_text("periods: [unclosed\n")
    with pytest.raises(PeriodConfigError, match="cannot read"):
        load_definitions_from_yaml(path)


def test_yaml_top_level_must_be_a_mapping(tmp_path):
    """A top-level list is rejected."""
    path = tmp_path / "periods.yaml"
    path.write_text("- a\n- b\n")
    with pytest.raises(PeriodConfigError, match="expected a mapping"):
        load_definitions_from_yaml(path)
