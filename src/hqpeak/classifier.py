"""Peak period classification.

Decides whether an instant falls within a PEAK, PRE_PEAK or PRE_PRE_PEAK
period, given the peak events announced by the utility.

Rules:
1. Outside the winter season (Dec 1 - "Apr 31") nothing is in effect.
2. PEAK beats PRE_PEAK beats PRE_PRE_PEAK; at most one type holds.
3. PEAK holds when now is within an event, both ends inclusive.
4. PRE_PEAK / PRE_PRE_PEAK hold when now is within one of the type's daily
   windows on now's local date, and that window leads into a real event.
"""

import logging
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Literal
from zoneinfo import ZoneInfo

from .config import DEFAULT_TIMEZONE
from .models import PRECEDENCE, PeakEvent, PeriodDefinition, PeriodType, TimeOfDay
from .periods import PeriodTable, definitions_for

logger = logging.getLogger(__name__)

LOCAL_TZ = ZoneInfo(DEFAULT_TIMEZONE)

DATE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# A computed lead-in window must sit within this distance of the event it precedes
ANCHOR_WINDOW = timedelta(hours=12)

# Season bounds as (month, day). Day 31 of April overflows into May 1.
SEASON_START = (12, 1)
SEASON_END = (4, 31)

Boundary = Literal["lower", "upper"]


def _calendar_date(year: int, month: int, day: int) -> date:
    """Build a date, letting an out-of-range day roll into the next month."""
    return date(year, month, 1) + timedelta(days=day - 1)


def season_window(now: datetime, tz: tzinfo = LOCAL_TZ) -> tuple[datetime, datetime]:
    """Start and end of the winter season that now's local year belongs to."""
    local_now = now.astimezone(tz)
    winter_year = local_now.year if local_now.month >= SEASON_START[0] else local_now.year - 1

    start = datetime.combine(_calendar_date(winter_year, *SEASON_START), time(0, 0, 0), tzinfo=tz)
    end = datetime.combine(
        _calendar_date(winter_year + 1, *SEASON_END), time(23, 59, 59), tzinfo=tz
    )
    return start, end


def in_season(now: datetime, tz: tzinfo = LOCAL_TZ) -> bool:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    start, end = season_window(now, tz)
    return start <= now <= end


def actualize(
    moment: datetime, time_of_day: TimeOfDay, boundary: Boundary, tz: tzinfo = LOCAL_TZ
) -> datetime:
    """Project a time of day onto moment's local calendar date.

    An upper boundary of 00:00 means midnight at the end of that date.
    """
    day = moment.astimezone(tz).date()
    if boundary == "upper" and time_of_day.is_midnight:
        day += timedelta(days=1)
    return datetime.combine(day, time(time_of_day.hour, time_of_day.minute), tzinfo=tz)


def _is_anchored(lower: datetime, upper: datetime, event: PeakEvent) -> bool:
    """True when [lower, upper] leads into event."""
    return (
        event.begin - ANCHOR_WINDOW <= lower < event.begin
        and event.end - ANCHOR_WINDOW <= upper <= event.end
    )


def _within_peak(now: datetime, events: Iterable[PeakEvent]) -> bool:
    for event in events:
        if event.begin <= now <= event.end:
            logger.debug(
                "Within peak event %s - %s", event.begin.isoformat(), event.end.isoformat()
            )
            return True
    return False


def _within_lead_in(
    now: datetime,
    events: Iterable[PeakEvent],
    definitions: Iterable[PeriodDefinition],
    tz: tzinfo,
) -> bool:
    events = tuple(events)
    for definition in definitions:
        lower = actualize(now, definition.begin, "lower", tz)
        upper = actualize(now, definition.end, "upper", tz)
        if not lower <= now <= upper:
            continue

        for event in events:
            if _is_anchored(lower, upper, event):
                logger.debug(
                    "Within %s window %s - %s leading into event at %s",
                    definition.schedule_tag.value,
                    lower.isoformat(),
                    upper.isoformat(),
                    event.begin.isoformat(),
                )
                return True
    return False


def _matches(
    now: datetime,
    events: tuple[PeakEvent, ...],
    period_type: PeriodType,
    tz: tzinfo,
    table: PeriodTable | None,
) -> bool:
    """Raw window match for one type, without precedence or season gate."""
    if period_type is PeriodType.PEAK:
        return _within_peak(now, events)
    return _within_lead_in(now, events, definitions_for(period_type, table), tz)


def current_period(
    now: datetime,
    events: Iterable[PeakEvent],
    tz: tzinfo = LOCAL_TZ,
    table: PeriodTable | None = None,
) -> PeriodType | None:
    """The single period type in effect at now, or None."""
    if not in_season(now, tz):
        logger.debug("%s is outside the peak season", now.isoformat())
        return None

    events = tuple(events)
    for period_type in PRECEDENCE:
        if _matches(now, events, period_type, tz, table):
            return period_type
    return None


def is_within_period(
    now: datetime,
    events: Iterable[PeakEvent],
    period_type: PeriodType,
    tz: tzinfo = LOCAL_TZ,
    table: PeriodTable | None = None,
) -> bool:
    """Whether now falls within period_type, after precedence and season gating.

    now must be timezone-aware; a naive value raises ValueError.
    """
    result = current_period(now, events, tz, table) is period_type

    logger.info(
        "Currently %s Hydro-Quebec %s period. Basis - now: %s",
        "within" if result else "NOT within",
        period_type.value,
        now.astimezone(tz).strftime(DATE_TIME_FORMAT),
    )
    return result


classify = is_within_period
