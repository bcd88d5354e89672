"""Period definition table and trigger-time extraction."""

import logging
from datetime import date, datetime, timedelta, tzinfo
from pathlib import Path

import yaml

from .config import HqPeakError
from .models import PeriodDefinition, PeriodType, ScheduleTag, TimeOfDay

logger = logging.getLogger(__name__)

PeriodTable = dict[PeriodType, tuple[PeriodDefinition, PeriodDefinition]]


class PeriodConfigError(HqPeakError):
    """Raised when a period definition file is invalid."""
    pass


def _window(tag: ScheduleTag, begin: str, end: str) -> PeriodDefinition:
    return PeriodDefinition(tag, TimeOfDay.parse(begin), TimeOfDay.parse(end))


PERIOD_DEFINITIONS: PeriodTable = {
    # Peak events: 6-9am and 4-8pm
    PeriodType.PEAK: (
        _window(ScheduleTag.AM, "06:00", "09:00"),
        _window(ScheduleTag.PM, "16:00", "20:00"),
    ),
    # 6 hours leading into each peak
    PeriodType.PRE_PEAK: (
        _window(ScheduleTag.AM, "00:00", "06:00"),
        _window(ScheduleTag.PM, "10:00", "16:00"),
    ),
    # From 9 hours before each peak until pre-peak starts
    PeriodType.PRE_PRE_PEAK: (
        _window(ScheduleTag.AM, "21:00", "00:00"),
        _window(ScheduleTag.PM, "07:00", "10:00"),
    ),
}


def definitions_for(
    period_type: PeriodType, table: PeriodTable | None = None
) -> tuple[PeriodDefinition, PeriodDefinition]:
    """Return the (AM, PM) windows of a period type."""
    return (table or PERIOD_DEFINITIONS)[period_type]


def load_definitions_from_yaml(config_path: Path) -> PeriodTable:
    """Load a period table from a YAML file.

    Expected shape:

        periods:
          PEAK:
            - {tag: AM, begin: "06:00", end: "09:00"}
            - {tag: PM, begin: "16:00", end: "20:00"}
          PRE_PEAK: [...]
          PRE_PRE_PEAK: [...]
    """
    try:
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise PeriodConfigError(f"{config_path}: cannot read period definitions: {e}")

    if not isinstance(data, dict):
        raise PeriodConfigError(f"{config_path}: expected a mapping at the top level")

    periods = data.get("periods")
    if not isinstance(periods, dict):
        raise PeriodConfigError(f"{config_path}: missing 'periods' mapping")

    table: PeriodTable = {}
    for period_type in PeriodType:
        rows = periods.get(period_type.value)
        if not isinstance(rows, list):
            raise PeriodConfigError(f"{config_path}: missing windows for {period_type.value}")

        by_tag = {}
        for r in rows:
            try:
                tag = ScheduleTag(str(r["tag"]).upper())
                by_tag[tag] = _window(tag, str(r["begin"]), str(r["end"]))
            except (KeyError, TypeError, ValueError) as e:
                raise PeriodConfigError(
                    f"{config_path}: invalid window for {period_type.value}: {e}"
                )

        if len(rows) != 2 or set(by_tag) != {ScheduleTag.AM, ScheduleTag.PM}:
            raise PeriodConfigError(
                f"{config_path}: {period_type.value} needs exactly one AM and one PM window"
            )
        table[period_type] = (by_tag[ScheduleTag.AM], by_tag[ScheduleTag.PM])

    logger.debug("Loaded period definitions from %s", config_path)
    return table


def load_table(config_path: Path | None = None) -> PeriodTable:
    """Return the table from config_path, or the built-in one."""
    if config_path is None:
        return PERIOD_DEFINITIONS
    return load_definitions_from_yaml(config_path)


def extract_trigger_times(table: PeriodTable | None = None) -> list[TimeOfDay]:
    """Every distinct begin/end mark of the table, sorted by (hour, minute)."""
    marks = {
        mark
        for definitions in (table or PERIOD_DEFINITIONS).values()
        for definition in definitions
        for mark in (definition.begin, definition.end)
    }
    return sorted(marks)


def cron_entries(table: PeriodTable | None = None) -> list[str]:
    """Crontab schedule fields for each trigger time."""
    entries = [f"{t.minute} {t.hour} * * *" for t in extract_trigger_times(table)]
    logger.info("CRON entries: %s", entries)
    return entries


def next_trigger(now: datetime, tz: tzinfo, table: PeriodTable | None = None) -> datetime:
    """The first trigger instant strictly after now, in the local calendar."""
    local_now = now.astimezone(tz)
    times = extract_trigger_times(table)

    day: date = local_now.date()
    # Two days always suffice: every day has at least one trigger
    for offset in range(2):
        for t in times:
            candidate = datetime(
                day.year, day.month, day.day, t.hour, t.minute, tzinfo=tz
            ) + timedelta(days=offset)
            if candidate > local_now:
                return candidate

    raise ValueError("period table has no trigger times")
