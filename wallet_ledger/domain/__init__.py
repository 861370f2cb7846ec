"""Pure domain logic: time, money, calendar and recurrence. Zero I/O."""

from wallet_ledger.domain.calendar import PeriodType
from wallet_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from wallet_ledger.domain.money import format_cents, parse_cents
from wallet_ledger.domain.recurrence import (
    RecurrencePattern,
    RecurrenceRule,
    ScheduleStatus,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "PeriodType",
    "RecurrencePattern",
    "RecurrenceRule",
    "ScheduleStatus",
    "format_cents",
    "parse_cents",
]
