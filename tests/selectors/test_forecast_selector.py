"""
Forecast tests.

The forecast simulates active schedules in memory on top of current
balances and must never write to the ledger.
"""

import pytest

from tests.conftest import utc
from wallet_ledger.exceptions import WalletNotFoundError


@pytest.fixture
def scheduled(ledger, standard_wallets):
    ledger.create_schedule("salary", "Salary", "Checking", 300000, "monthly", utc(2024, 3, 15))
    ledger.create_schedule("rent", "Checking", "Rent", 120000, "monthly", utc(2024, 4, 1))
    return ledger


class TestForecast:
    def test_projection(self, scheduled):
        result = scheduled.forecast(3, ["Checking"])
        assert [p.date for p in result.points] == [
            utc(2024, 3, 2), utc(2024, 4, 2), utc(2024, 5, 2), utc(2024, 6, 2),
        ]
        assert [p.balances["Checking"] for p in result.points] == [
            100000, 280000, 460000, 640000,
        ]
        assert result.starting_balances == {"Checking": 100000}
        assert result.final_balances == {"Checking": 640000}
        assert result.end_date == utc(2024, 6, 2)

    def test_events_in_date_order(self, scheduled):
        events = scheduled.forecast(2).events
        assert [(e.date, e.schedule_name) for e in events] == [
            (utc(2024, 3, 15), "salary"),
            (utc(2024, 4, 1), "rent"),
            (utc(2024, 4, 15), "salary"),
            (utc(2024, 5, 1), "rent"),
        ]

    def test_zero_months(self, scheduled):
        result = scheduled.forecast(0)
        assert len(result.points) == 1
        assert result.events == []
        assert result.final_balances["Checking"] == 100000

    def test_does_not_write(self, scheduled):
        scheduled.forecast(6)
        assert len(scheduled.list_transfers()) == 1
        assert scheduled.get_schedule("salary").last_executed_at is None

    def test_end_date_and_paused_honoured(self, ledger, standard_wallets):
        ledger.create_schedule(
            "bonus", "Salary", "Savings", 1000, "monthly", utc(2024, 3, 15),
            end_date=utc(2024, 4, 20),
        )
        ledger.create_schedule("gym", "Checking", "Rent", 500, "weekly", utc(2024, 3, 4))
        ledger.pause_schedule("gym")

        result = ledger.forecast(6)
        assert [e.schedule_name for e in result.events] == ["bonus", "bonus"]
        assert result.final_balances["Savings"] == 2000

    def test_defaults_to_active_wallets(self, scheduled):
        scheduled.archive_wallet("Savings")
        assert "Savings" not in scheduled.forecast(1).starting_balances

    def test_negative_months(self, scheduled):
        with pytest.raises(ValueError):
            scheduled.forecast(-1)

    def test_unknown_wallet(self, scheduled):
        with pytest.raises(WalletNotFoundError):
            scheduled.forecast(1, ["Nope"])

    def test_starts_from_balances_at_now(self, scheduled):
        scheduled.record_transfer("Checking", "Rent", 40000, timestamp=utc(2024, 3, 20))
        result = scheduled.forecast(0, ["Checking"])
        assert result.starting_balances == {"Checking": 100000}
        assert scheduled.balance("Checking") == 60000
