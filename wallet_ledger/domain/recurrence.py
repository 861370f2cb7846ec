"""
Recurrence -- pure due-occurrence algorithm for scheduled transfers.

Responsibility:
    Computes which occurrences of a recurring transfer are due, without any
    I/O.  The scheduler materializes what this module returns; the forecaster
    simulates it.  Both therefore agree by construction.

Occurrence model:
    Each occurrence is the previous one plus one period: daily +1 day, weekly
    +7 days, monthly +1 calendar month, yearly +1 calendar year.  Month and
    year steps clamp the day to the target month's length and chain from the
    clamped date, so a schedule starting on Jan 31 runs on Feb 29, then
    Mar 29.

Due rule:
    First candidate = start when never executed, otherwise one period after
    ``last_executed_at``.  A candidate is due when ``candidate <= now`` and
    (no end date or ``candidate <= end``).  When the next candidate lies past
    the end date the schedule is exhausted.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterator

from wallet_ledger.domain.calendar import add_months, add_years
from wallet_ledger.exceptions import InvalidRecurrencePatternError


class RecurrencePattern(str, Enum):
    """How often a scheduled transfer repeats."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @classmethod
    def parse(cls, value: "str | RecurrencePattern") -> "RecurrencePattern":
        if isinstance(value, RecurrencePattern):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidRecurrencePatternError(value) from None


class ScheduleStatus(str, Enum):
    """
    Lifecycle status of a scheduled transfer.

    Transitions: ACTIVE <-> PAUSED, ACTIVE -> COMPLETED (terminal).
    """

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


ALLOWED_TRANSITIONS: frozenset[tuple[ScheduleStatus, ScheduleStatus]] = frozenset(
    {
        (ScheduleStatus.ACTIVE, ScheduleStatus.PAUSED),
        (ScheduleStatus.PAUSED, ScheduleStatus.ACTIVE),
        (ScheduleStatus.ACTIVE, ScheduleStatus.COMPLETED),
    }
)


@dataclass(frozen=True)
class RecurrenceRule:
    """Start, pattern and optional end of a recurring transfer."""

    start: datetime
    pattern: RecurrencePattern
    end: datetime | None = None

    def step(self, cursor: datetime) -> datetime:
        """The occurrence one period after ``cursor``."""
        if self.pattern is RecurrencePattern.DAILY:
            return cursor + timedelta(days=1)
        if self.pattern is RecurrencePattern.WEEKLY:
            return cursor + timedelta(days=7)
        if self.pattern is RecurrencePattern.MONTHLY:
            return add_months(cursor, 1)
        return add_years(cursor, 1)

    def first_candidate(self, last_executed_at: datetime | None) -> datetime:
        if last_executed_at is None or last_executed_at < self.start:
            return self.start
        return self.step(last_executed_at)

    def past_end(self, candidate: datetime) -> bool:
        return self.end is not None and candidate > self.end

    def pending(
        self, last_executed_at: datetime | None, up_to: datetime
    ) -> Iterator[datetime]:
        """Yield every due occurrence up to and including ``up_to``."""
        candidate = self.first_candidate(last_executed_at)
        while candidate <= up_to and not self.past_end(candidate):
            yield candidate
            candidate = self.step(candidate)

    def is_exhausted(self, last_executed_at: datetime | None) -> bool:
        """True when no occurrence remains before the end date."""
        return self.past_end(self.first_candidate(last_executed_at))
