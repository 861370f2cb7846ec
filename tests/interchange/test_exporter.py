"""CSV and JSON export tests."""

import csv
import json
from io import StringIO

import pytest

from tests.conftest import utc
from wallet_ledger.interchange import Exporter
from wallet_ledger.interchange.exporter import TRANSFER_COLUMNS


@pytest.fixture
def populated(ledger, standard_wallets):
    groceries = ledger.record_transfer(
        "Checking", "Groceries", 2500, category="groceries", tags=["weekly", "food"],
        external_ref="bank-1",
    )
    ledger.reverse_transfer(groceries.id, amount_cents=500)
    ledger.create_budget("food", "groceries", "monthly", 60000)
    ledger.create_schedule("rent", "Checking", "Rent", 80000, "monthly", utc(2024, 4, 1))
    ledger.archive_wallet("Savings")
    return ledger


def _rows(stream: StringIO) -> list[dict]:
    stream.seek(0)
    return list(csv.DictReader(stream))


class TestCsvExports:
    def test_transfers(self, populated):
        stream = StringIO()
        assert Exporter(populated).export_transfers_csv(stream) == 3

        stream.seek(0)
        assert next(csv.reader(stream)) == TRANSFER_COLUMNS
        rows = _rows(stream)
        assert [r["sequence"] for r in rows] == ["1", "2", "3"]
        assert rows[1]["tags"] == "weekly;food"
        assert rows[1]["external_ref"] == "bank-1"
        assert rows[2]["reverses"] == rows[1]["id"]
        assert rows[2]["from_wallet"] == "Groceries"

    def test_balances_include_archived(self, populated):
        stream = StringIO()
        Exporter(populated).export_balances_csv(stream)
        rows = {r["wallet"]: r for r in _rows(stream)}
        assert rows["Checking"]["balance_cents"] == "98000"
        assert rows["Savings"]["archived"] == "yes"
        assert sum(int(r["balance_cents"]) for r in rows.values()) == 0

    def test_budgets(self, populated):
        stream = StringIO()
        Exporter(populated).export_budgets_csv(stream)
        (row,) = _rows(stream)
        assert row["spent_cents"] == "2000"
        assert row["remaining_cents"] == "58000"

    def test_schedules(self, populated):
        stream = StringIO()
        Exporter(populated).export_schedules_csv(stream)
        (row,) = _rows(stream)
        assert row["name"] == "rent"
        assert row["last_executed_at"] == ""
        assert row["status"] == "active"


class TestSnapshot:
    def test_contents(self, populated):
        stream = StringIO()
        snapshot = Exporter(populated).export_snapshot_json(stream)

        assert json.loads(stream.getvalue()) == snapshot
        assert snapshot["format_version"] == 1
        assert len(snapshot["wallets"]) == 7
        assert [t["sequence"] for t in snapshot["transfers"]] == [1, 2, 3]
        assert snapshot["budgets"][0]["period_type"] == "monthly"
        assert snapshot["scheduled_transfers"][0]["pattern"] == "monthly"
        archived = [w["name"] for w in snapshot["wallets"] if w["archived_at"]]
        assert archived == ["Savings"]

    def test_export_does_not_write(self, populated):
        Exporter(populated).export_snapshot_json(StringIO())
        assert populated.check_integrity().transfer_count == 3

    def test_logged(self, populated, captured_logs):
        Exporter(populated).export_snapshot_json(StringIO())
        events = [r for r in captured_logs() if r["message"] == "snapshot_exported"]
        assert events[0]["transfers"] == 3
