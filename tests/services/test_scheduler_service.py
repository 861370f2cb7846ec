"""
Scheduler tests.

Tests cover:
- Due-occurrence materialization (Jan 1 monthly, now Mar 2 -> three transfers)
- Idempotency: a second run materializes nothing
- Failure isolation: a blocked occurrence halts only its schedule, keeps its
  cursor, and is retried on the next run
- Completion at end_date; paused schedules never run
- Explicit single runs: not due, forced, completed
"""

from datetime import datetime, timezone

import pytest

from wallet_ledger.domain.recurrence import ScheduleStatus
from wallet_ledger.exceptions import (
    ScheduleCompletedError,
    ScheduleNotDueError,
)

UTC = timezone.utc


def d(month, day, year=2024):
    return datetime(year, month, day, tzinfo=UTC)


@pytest.fixture
def salary(ledger, standard_wallets):
    return ledger.create_schedule(
        "salary", "Salary", "Checking", 5000, "monthly", d(1, 1), category="salary"
    )


class TestExecuteDue:
    def test_materializes_every_due_occurrence(self, ledger, salary):
        result = ledger.run_due_schedules()

        assert [m.occurrence for m in result.materialized] == [d(1, 1), d(2, 1), d(3, 1)]
        assert not result.has_failures
        transfers = ledger.list_transfers(wallet="Salary")
        assert [t.timestamp for t in transfers] == [d(1, 1), d(2, 1), d(3, 1)]
        assert all(t.description == "Scheduled: salary" for t in transfers)
        assert all(t.category == "salary" for t in transfers)
        assert ledger.get_schedule("salary").last_executed_at == d(3, 1)
        assert ledger.balance("Checking") == 100000 + 15000

    def test_sequences_follow_occurrence_order(self, ledger, salary):
        result = ledger.run_due_schedules()
        sequences = [m.sequence for m in result.materialized]
        assert sequences == sorted(sequences)

    def test_second_run_is_a_no_op(self, ledger, salary):
        ledger.run_due_schedules()
        before = len(ledger.list_transfers())
        result = ledger.run_due_schedules()
        assert result.transfer_count == 0
        assert len(ledger.list_transfers()) == before

    def test_picks_up_new_occurrences_as_time_passes(self, ledger, salary, deterministic_clock):
        ledger.run_due_schedules()
        deterministic_clock.set_time(d(4, 15))
        result = ledger.run_due_schedules()
        assert [m.occurrence for m in result.materialized] == [d(4, 1)]

    def test_month_end_schedule_steps_from_last_occurrence(self, ledger, standard_wallets, deterministic_clock):
        ledger.create_schedule("rent-eom", "Salary", "Checking", 1000, "monthly", d(1, 31))
        deterministic_clock.set_time(d(4, 1))

        result = ledger.run_due_schedules()

        assert [m.occurrence for m in result.materialized] == [d(1, 31), d(2, 29), d(3, 29)]
        assert ledger.get_schedule("rent-eom").last_executed_at == d(3, 29)

    def test_start_in_future_does_nothing(self, ledger, standard_wallets):
        ledger.create_schedule("later", "Salary", "Checking", 100, "weekly", d(6, 1))
        assert ledger.run_due_schedules().transfer_count == 0

    def test_preview_writes_nothing(self, ledger, salary):
        pending = ledger.preview_due_schedules()
        assert [p.occurrence for p in pending] == [d(1, 1), d(2, 1), d(3, 1)]
        assert ledger.get_schedule("salary").last_executed_at is None
        assert len(ledger.list_transfers()) == 1


class TestCompletionAndPause:
    def test_completes_when_end_date_passed(self, ledger, standard_wallets):
        ledger.create_schedule(
            "gym", "Checking", "Rent", 3000, "monthly", d(1, 1), end_date=d(2, 15)
        )
        result = ledger.run_due_schedules()
        assert [m.occurrence for m in result.materialized] == [d(1, 1), d(2, 1)]
        assert result.completed == ["gym"]
        assert ledger.get_schedule("gym").current_status is ScheduleStatus.COMPLETED

    def test_paused_schedule_does_not_run(self, ledger, salary):
        ledger.pause_schedule("salary")
        assert ledger.run_due_schedules().transfer_count == 0
        ledger.resume_schedule("salary")
        assert ledger.run_due_schedules().transfer_count == 3


class TestFailureIsolation:
    def test_blocked_schedule_does_not_stop_others(self, ledger, salary, captured_logs):
        ledger.create_schedule("transfer-out", "Savings", "Rent", 1000, "monthly", d(1, 1))

        result = ledger.run_due_schedules()

        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.schedule_name == "transfer-out"
        assert failure.occurrence == d(1, 1)
        assert failure.code == "NEGATIVE_BALANCE_NOT_ALLOWED"
        assert ledger.get_schedule("transfer-out").last_executed_at is None
        assert ledger.get_schedule("transfer-out").current_status is ScheduleStatus.ACTIVE
        assert ledger.get_schedule("salary").last_executed_at == d(3, 1)

        warnings = [r for r in captured_logs() if r["message"] == "scheduled_occurrence_failed"]
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["error_code"] == "NEGATIVE_BALANCE_NOT_ALLOWED"

    def test_failure_midway_keeps_earlier_occurrences(self, ledger, standard_wallets):
        ledger.record_transfer("Checking", "Savings", 1500)
        ledger.create_schedule("transfer-out", "Savings", "Rent", 1000, "monthly", d(1, 1))

        result = ledger.run_due_schedules()

        assert [m.occurrence for m in result.materialized] == [d(1, 1)]
        assert [f.occurrence for f in result.failures] == [d(2, 1)]
        assert ledger.get_schedule("transfer-out").last_executed_at == d(1, 1)
        assert ledger.balance("Savings") == 500

    def test_failed_occurrence_retried_next_run(self, ledger, standard_wallets):
        ledger.create_schedule("transfer-out", "Savings", "Rent", 1000, "monthly", d(1, 1))
        assert ledger.run_due_schedules().has_failures

        ledger.record_transfer("Checking", "Savings", 3000)
        result = ledger.run_due_schedules()

        assert not result.has_failures
        assert [m.occurrence for m in result.materialized] == [d(1, 1), d(2, 1), d(3, 1)]
        assert ledger.balance("Savings") == 0

    def test_archived_wallet_after_creation(self, ledger, salary):
        ledger.archive_wallet("Salary")
        result = ledger.run_due_schedules()
        assert result.failures[0].code == "WALLET_ARCHIVED"
        assert result.transfer_count == 0


class TestRunSchedule:
    def test_runs_next_due_occurrence(self, ledger, salary):
        record = ledger.run_schedule("salary")
        assert record.timestamp == d(1, 1)
        assert ledger.get_schedule("salary").last_executed_at == d(1, 1)

    def test_not_due(self, ledger, standard_wallets):
        ledger.create_schedule("later", "Salary", "Checking", 100, "monthly", d(6, 1))
        with pytest.raises(ScheduleNotDueError) as exc_info:
            ledger.run_schedule("later")
        assert exc_info.value.next_due == d(6, 1)

    def test_force_runs_now(self, ledger, standard_wallets, deterministic_clock):
        ledger.create_schedule("later", "Salary", "Checking", 100, "monthly", d(6, 1))
        record = ledger.run_schedule("later", force=True)
        assert record.timestamp == deterministic_clock.now()

    def test_paused_requires_force(self, ledger, salary):
        ledger.pause_schedule("salary")
        with pytest.raises(ScheduleNotDueError):
            ledger.run_schedule("salary")
        ledger.run_schedule("salary", force=True)
        assert ledger.get_schedule("salary").current_status is ScheduleStatus.PAUSED

    def test_explicit_date_never_moves_cursor_back(self, ledger, salary):
        ledger.run_due_schedules()
        ledger.run_schedule("salary", execution_date=d(1, 15))
        assert ledger.get_schedule("salary").last_executed_at == d(3, 1)

    def test_completed_schedule(self, ledger, standard_wallets):
        ledger.create_schedule("once", "Salary", "Checking", 100, "monthly", d(1, 1), end_date=d(1, 1))
        ledger.run_due_schedules()
        with pytest.raises(ScheduleCompletedError):
            ledger.run_schedule("once", force=True)
