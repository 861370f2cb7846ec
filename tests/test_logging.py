"""
Structured logging tests.

Tests cover:
- Payloads of the ledger's own events (transfer_recorded, transfer_reversed,
  scheduled_occurrence_failed)
- Context fields: transfer_id is scoped to its event, schedule_id is bound
  for the duration of one schedule's run, the CLI sets correlation_id and
  command for a whole invocation
- Encoding of datetimes, dates and enums in event payloads
"""

import logging
from datetime import date, datetime, timezone
from io import StringIO

import pytest

from tests.conftest import TEST_NOW
from wallet_ledger.cli import main
from wallet_ledger.domain.clock import DeterministicClock
from wallet_ledger.domain.recurrence import ScheduleStatus
from wallet_ledger.logging_config import (
    LogContext,
    configure_logging,
    get_logger,
    reset_logging,
)

UTC = timezone.utc


def _events(captured_logs, message: str) -> list[dict]:
    return [r for r in captured_logs() if r["message"] == message]


class TestTransferEvents:
    def test_transfer_recorded_payload(self, ledger, standard_wallets, captured_logs):
        record = ledger.record_transfer("Checking", "Groceries", 2500, category="groceries")

        event = _events(captured_logs, "transfer_recorded")[-1]
        assert event["level"] == "INFO"
        assert event["logger"] == "wallet_ledger.services.transfer"
        assert event["transfer_id"] == str(record.id)
        assert event["sequence"] == record.sequence
        assert event["from_wallet"] == "Checking"
        assert event["to_wallet"] == "Groceries"
        assert event["amount_cents"] == 2500
        assert event["category"] == "groceries"
        assert event["reverses_id"] is None

    def test_reversal_points_at_original(self, ledger, standard_wallets, captured_logs):
        original = ledger.record_transfer("Checking", "Groceries", 2500)
        reversal = ledger.reverse_transfer(original.id, amount_cents=1000)

        recorded = _events(captured_logs, "transfer_recorded")[-1]
        assert recorded["transfer_id"] == str(reversal.id)
        assert recorded["reverses_id"] == str(original.id)
        assert recorded["from_wallet"] == "Groceries"
        assert _events(captured_logs, "transfer_reversed")

    def test_transfer_id_does_not_leak_into_later_events(
        self, ledger, standard_wallets, captured_logs
    ):
        ledger.record_transfer("Checking", "Groceries", 2500)
        ledger.create_budget("food", "groceries", "monthly", 60000)

        assert "transfer_id" not in _events(captured_logs, "budget_created")[0]
        assert "transfer_id" not in LogContext.get_all()


class TestSchedulerEvents:
    def test_failed_occurrence_payload(self, ledger, standard_wallets, captured_logs):
        schedule = ledger.create_schedule(
            "transfer-out", "Savings", "Rent", 1000, "monthly", datetime(2024, 1, 1, tzinfo=UTC)
        )

        ledger.run_due_schedules()

        failure = _events(captured_logs, "scheduled_occurrence_failed")[0]
        assert failure["level"] == "WARNING"
        assert failure["schedule_id"] == str(schedule.id)
        assert failure["schedule_name"] == "transfer-out"
        assert failure["occurrence"] == "2024-01-01T00:00:00+00:00"
        assert failure["error_code"] == "NEGATIVE_BALANCE_NOT_ALLOWED"
        assert "Savings" in failure["error"]

    def test_schedule_id_bound_per_schedule(self, ledger, standard_wallets, captured_logs):
        salary = ledger.create_schedule(
            "salary", "Salary", "Checking", 5000, "monthly", datetime(2024, 1, 1, tzinfo=UTC)
        )

        ledger.run_due_schedules()

        materialized = _events(captured_logs, "scheduled_occurrence_materialized")
        assert len(materialized) == 3
        assert {r["schedule_id"] for r in materialized} == {str(salary.id)}

        recorded = [
            r for r in _events(captured_logs, "transfer_recorded") if r.get("schedule_id")
        ]
        assert len(recorded) == 3
        assert all(r["transfer_id"] for r in recorded)

        summary = _events(captured_logs, "scheduler_run_completed")[0]
        assert "schedule_id" not in summary
        assert summary["materialized"] == 3
        assert summary["now"] == TEST_NOW.isoformat()


class TestPayloadEncoding:
    def test_dates_and_enums(self, captured_logs):
        get_logger("tests").info(
            "budget_window",
            extra={"period_start": date(2024, 3, 1), "status": ScheduleStatus.PAUSED},
        )

        event = _events(captured_logs, "budget_window")[0]
        assert event["period_start"] == "2024-03-01"
        assert event["status"] == "paused"


class TestCliContext:
    def test_cli_sets_command_and_correlation_id(self, tmp_path, captured_logs):
        db = str(tmp_path / "cli.db")
        clock = DeterministicClock(TEST_NOW)
        assert main(["--db", db, "init"], out=StringIO(), clock=clock) == 0
        assert main(
            ["--db", db, "wallet", "create", "Checking", "--type", "asset"],
            out=StringIO(),
            clock=clock,
        ) == 0

        created = _events(captured_logs, "wallet_created")[0]
        assert created["command"] == "wallet"
        assert created["correlation_id"]


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_suite_logging(self):
        yield
        reset_logging()
        configure_logging(level=logging.DEBUG)

    def test_idempotent(self):
        reset_logging()
        configure_logging(stream=StringIO())
        configure_logging(stream=StringIO())
        assert len(logging.getLogger("wallet_ledger").handlers) == 1

    def test_level_from_settings_drops_debug(self):
        stream = StringIO()
        reset_logging()
        configure_logging(level=logging.INFO, stream=stream)

        get_logger("services.sequence").debug("sequence_allocated")
        get_logger("services.wallet").info("wallet_created")

        lines = stream.getvalue().strip().split("\n")
        assert len(lines) == 1
        assert '"wallet_created"' in lines[0]
