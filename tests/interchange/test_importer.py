"""
Import tests.

Tests cover:
- CSV transfer import through the orchestrator (validation, row errors)
- Duplicate skipping by external_ref, dry runs, auto-created wallets
- Reversal rows re-pointed at transfers imported earlier in the file
- Snapshot round trip into a fresh ledger preserves every balance
"""

from io import StringIO

import pytest

from tests.conftest import utc
from wallet_ledger.db.engine import create_tables, get_session, init_engine_from_path, reset_engine
from wallet_ledger.domain.clock import DeterministicClock
from wallet_ledger.interchange import (
    Exporter,
    Importer,
    ImportOptions,
    SnapshotFormatError,
)
from wallet_ledger.services.ledger_orchestrator import LedgerOrchestrator

HEADER = "id,timestamp,from_wallet,to_wallet,amount,description,category,tags,reverses,external_ref\n"


def _csv(*rows: str) -> StringIO:
    return StringIO(HEADER + "".join(row + "\n" for row in rows))


class TestCsvImport:
    def test_imports_rows(self, ledger, standard_wallets):
        result = Importer(ledger).import_transfers_csv(
            _csv(
                "a,2024-02-03,Checking,Groceries,12.50,Market,groceries,food;weekly,,",
                "b,2024-02-04T10:00:00+00:00,Checking,Rent,800,,rent,,,bank-9",
            )
        )
        assert result.imported == 2
        assert not result.has_errors

        rows = ledger.list_transfers()
        assert rows[1].amount_cents == 1250
        assert rows[1].tags == ("food", "weekly")
        assert rows[1].timestamp == utc(2024, 2, 3)
        assert rows[2].external_ref == "bank-9"

    def test_amount_cents_column(self, ledger, standard_wallets):
        stream = StringIO("timestamp,from_wallet,to_wallet,amount_cents\n2024-02-03,Checking,Rent,4200\n")
        Importer(ledger).import_transfers_csv(stream)
        assert ledger.balance("Rent") == 4200

    def test_row_errors_collected(self, ledger, standard_wallets):
        result = Importer(ledger).import_transfers_csv(
            _csv(
                "a,2024-02-03,Checking,Groceries,12.50,,,,,",
                "b,not-a-date,Checking,Groceries,1,,,,,",
                "c,2024-02-03,Checking,Nowhere,1,,,,,",
                "d,2024-02-03,Checking,Groceries,abc,,,,,",
                "e,2024-02-03,Savings,Groceries,5,,,,,",
            )
        )
        assert result.imported == 1
        assert [e.line for e in result.errors] == [3, 4, 5, 6]

    def test_missing_columns(self, ledger, standard_wallets):
        result = Importer(ledger).import_transfers_csv(StringIO("date,amount\n2024-01-01,5\n"))
        assert result.imported == 0
        assert result.errors[0].line == 1
        assert "timestamp" in result.errors[0].message

    def test_skip_duplicates(self, ledger, standard_wallets):
        ledger.record_transfer("Checking", "Rent", 100, external_ref="bank-9")
        result = Importer(ledger).import_transfers_csv(
            _csv("b,2024-02-04,Checking,Rent,800,,,,,bank-9"),
            ImportOptions(skip_duplicates=True),
        )
        assert result.skipped == 1
        assert result.imported == 0
        assert ledger.balance("Rent") == 100

    def test_dry_run_writes_nothing(self, ledger, standard_wallets):
        result = Importer(ledger).import_transfers_csv(
            _csv("a,2024-02-03,Checking,Groceries,12.50,,,,,"),
            ImportOptions(dry_run=True),
        )
        assert result.imported == 1
        assert len(ledger.list_transfers()) == 1

    def test_create_missing_wallets(self, ledger, standard_wallets):
        result = Importer(ledger).import_transfers_csv(
            _csv("a,2024-02-03,Checking,Pharmacy,9.99,,,,,"),
            ImportOptions(create_missing_wallets=True),
        )
        assert result.imported == 1
        assert ledger.get_wallet("Pharmacy").type.value == "expense"

    def test_force_skips_balance_check(self, ledger, standard_wallets):
        rows = _csv("a,2024-02-03,Savings,Groceries,5,,,,,")
        result = Importer(ledger).import_transfers_csv(rows, ImportOptions(force=True))
        assert result.imported == 1
        assert ledger.balance("Savings") == -500

    def test_reversal_repointed(self, ledger, standard_wallets):
        result = Importer(ledger).import_transfers_csv(
            _csv(
                "old-1,2024-02-03,Checking,Groceries,20,,groceries,,,",
                "old-2,2024-02-05,Groceries,Checking,5,Refund,,,old-1,",
            )
        )
        assert result.imported == 2
        original, refund = ledger.list_transfers()[1:]
        assert refund.reverses_id == original.id
        assert refund.category == "groceries"
        assert ledger.transfer_info(original.id).total_reversed == 500


class TestSnapshotImport:
    def test_round_trip_preserves_state(self, ledger, standard_wallets, tmp_path):
        groceries = ledger.record_transfer(
            "Checking", "Groceries", 2500, category="groceries", tags=["food"]
        )
        ledger.reverse_transfer(groceries.id, amount_cents=500)
        ledger.record_transfer("Checking", "CreditCard", 3000)
        ledger.create_budget("food", "groceries", "monthly", 60000)
        ledger.create_schedule("salary", "Salary", "Checking", 5000, "monthly", utc(2024, 1, 1))
        ledger.run_due_schedules()
        ledger.pause_schedule("salary")
        ledger.archive_wallet("Savings")

        stream = StringIO()
        Exporter(ledger).export_snapshot_json(stream)
        expected = {row.name: row.balance for row in ledger.wallet_balances(include_archived=True)}
        expected_reversed = ledger.transfer_info(groceries.id).total_reversed

        reset_engine()
        init_engine_from_path(tmp_path / "restored.db")
        create_tables()
        session = get_session()
        try:
            restored = LedgerOrchestrator(
                session, clock=DeterministicClock(utc(2024, 3, 2)), auto_commit=False
            )
            stream.seek(0)
            result = Importer(restored).import_snapshot_json(stream)
            session.commit()

            actual = {row.name: row.balance for row in restored.wallet_balances(include_archived=True)}
            assert actual == expected
            assert restored.assert_integrity().transfer_count == 7
            assert result.imported == 7 + 7 + 1 + 1

            reversal = restored.list_transfers()[2]
            assert restored.transfer_info(reversal.reverses_id).total_reversed == expected_reversed

            schedule = restored.get_schedule("salary")
            assert schedule.status == "paused"
            assert schedule.last_executed_at == utc(2024, 3, 1)
            assert restored.get_wallet("Savings").is_archived
            assert restored.budget_status("food").spent == 2500
        finally:
            session.close()

    def test_invalid_json(self, ledger):
        with pytest.raises(SnapshotFormatError):
            Importer(ledger).import_snapshot_json(StringIO("{not json"))

    def test_not_a_snapshot(self, ledger):
        with pytest.raises(SnapshotFormatError):
            Importer(ledger).import_snapshot_json(StringIO('{"transfers": []}'))
