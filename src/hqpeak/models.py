"""Data models for peak events and period definitions."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PeriodType(str, Enum):
    """Demand-response period categories, highest precedence first."""

    PEAK = "PEAK"
    PRE_PEAK = "PRE_PEAK"
    PRE_PRE_PEAK = "PRE_PRE_PEAK"


# Evaluation order; an earlier type always wins over a later one
PRECEDENCE = (PeriodType.PEAK, PeriodType.PRE_PEAK, PeriodType.PRE_PRE_PEAK)


class ScheduleTag(str, Enum):
    """Which daily peak (morning or evening) a window belongs to."""

    AM = "AM"
    PM = "PM"


@dataclass(frozen=True)
class PeakEvent:
    """A utility-announced peak window with timezone-aware bounds."""

    begin: datetime
    end: datetime

    def __post_init__(self):
        if self.begin.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("PeakEvent bounds must be timezone-aware")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """A local wall-clock time, not tied to any date."""

    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour out of range: {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute out of range: {self.minute}")

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """Parse an HH:MM string."""
        parts = value.split(":")
        if len(parts) != 2:
            raise ValueError(f"expected HH:MM, got {value!r}")
        return cls(int(parts[0]), int(parts[1]))

    @property
    def is_midnight(self) -> bool:
        return self.hour == 0 and self.minute == 0

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class PeriodDefinition:
    """One recurring daily window of a period type.

    An end of 00:00 is midnight of the following day.
    """

    schedule_tag: ScheduleTag
    begin: TimeOfDay
    end: TimeOfDay
