"""Evaluate all period types against one snapshot and track transitions."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Callable

from .classifier import LOCAL_TZ, is_within_period
from .collectors.chain import PeakDataProvider
from .models import PRECEDENCE, PeakEvent, PeriodType
from .periods import PeriodTable

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

# Pause between evaluations/updates so period types sharing a boundary never interleave
UPDATE_DELAY_SECONDS = 0.01

# Transitions are applied from the lowest-precedence type up
TRANSITION_ORDER = tuple(reversed(PRECEDENCE))


def system_clock(tz: tzinfo = LOCAL_TZ) -> Clock:
    """A clock returning the current aware time in tz."""
    return lambda: datetime.now(tz)


@dataclass(frozen=True)
class Snapshot:
    """Verdicts for every period type at one instant."""

    now: datetime
    events: tuple[PeakEvent, ...]
    states: dict[PeriodType, bool]

    @property
    def active(self) -> PeriodType | None:
        for period_type in PRECEDENCE:
            if self.states[period_type]:
                return period_type
        return None


@dataclass(frozen=True)
class Transition:
    period_type: PeriodType
    on: bool


class PeakMonitor:
    """Fetches events, classifies them and keeps the last known states."""

    def __init__(
        self,
        provider: PeakDataProvider,
        clock: Clock | None = None,
        tz: tzinfo = LOCAL_TZ,
        table: PeriodTable | None = None,
        delay: float = UPDATE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.provider = provider
        self.tz = tz
        self.clock = clock or system_clock(tz)
        self.table = table
        self.delay = delay
        self.sleep = sleep
        self.states: dict[PeriodType, bool] = {period_type: False for period_type in PRECEDENCE}

    def evaluate(self, now: datetime | None = None) -> Snapshot:
        """Classify every period type against a single fetch and instant."""
        events = tuple(self.provider.retrieve_events())
        now = now or self.clock()

        states = {}
        for period_type in PRECEDENCE:
            self.sleep(self.delay)
            states[period_type] = is_within_period(now, events, period_type, self.tz, self.table)
        return Snapshot(now=now, events=events, states=states)

    def plan_transitions(self, snapshot: Snapshot) -> list[Transition]:
        """Order the state changes: every ON->OFF first, then every OFF->ON."""
        turning_off = [
            Transition(period_type, False)
            for period_type in TRANSITION_ORDER
            if self.states[period_type] and not snapshot.states[period_type]
        ]
        turning_on = [
            Transition(period_type, True)
            for period_type in TRANSITION_ORDER
            if not self.states[period_type] and snapshot.states[period_type]
        ]
        return turning_off + turning_on

    def update(self, now: datetime | None = None) -> list[Transition]:
        """Evaluate and apply transitions to the tracked states."""
        snapshot = self.evaluate(now)
        transitions = self.plan_transitions(snapshot)
        for transition in transitions:
            self.states[transition.period_type] = transition.on
            logger.info(
                "%s switched %s", transition.period_type.value, "ON" if transition.on else "OFF"
            )
            self.sleep(self.delay)
        return transitions
