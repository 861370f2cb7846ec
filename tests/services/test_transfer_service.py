"""
Transfer recording tests.

Tests cover:
- Happy path: sequence assignment, derived balances
- Validation order and error codes
- Negative-balance policy on the debit wallet (and the force override)
- Backdated transfers still take the next sequence number
- Archived endpoints rejected
"""

from datetime import datetime, timezone

import pytest

from wallet_ledger.exceptions import (
    ArchivedWalletError,
    CurrencyMismatchError,
    NegativeBalanceNotAllowedError,
    NonPositiveAmountError,
    SameWalletError,
    WalletNotFoundError,
)

UTC = timezone.utc


class TestRecordTransfer:
    def test_records_with_next_sequence(self, ledger, standard_wallets):
        record = ledger.record_transfer("Checking", "Groceries", 4250, category="groceries")
        assert record.sequence == 2
        assert record.from_wallet == "Checking"
        assert record.to_wallet == "Groceries"
        assert record.category == "groceries"
        assert ledger.balance("Checking") == 100000 - 4250
        assert ledger.balance("Groceries") == 4250

    def test_timestamp_defaults_to_now(self, ledger, standard_wallets, deterministic_clock):
        record = ledger.record_transfer("Checking", "Groceries", 100)
        assert record.timestamp == deterministic_clock.now()
        assert record.recorded_at == deterministic_clock.now()

    def test_backdated_transfer_gets_higher_sequence(self, ledger, standard_wallets):
        later = ledger.record_transfer(
            "Checking", "Rent", 1000, timestamp=datetime(2024, 2, 1, tzinfo=UTC)
        )
        backdated = ledger.record_transfer(
            "Checking", "Rent", 1000, timestamp=datetime(2024, 1, 15, tzinfo=UTC)
        )
        assert backdated.sequence == later.sequence + 1
        assert backdated.timestamp < later.timestamp

    def test_tags_normalized(self, ledger, standard_wallets):
        record = ledger.record_transfer(
            "Checking", "Groceries", 500, tags=[" weekly ", "food", "", "food"]
        )
        assert record.tags == ("weekly", "food")

    def test_log_event_carries_transfer_context(self, ledger, standard_wallets, captured_logs):
        record = ledger.record_transfer("Checking", "Groceries", 500)
        events = [r for r in captured_logs() if r["message"] == "transfer_recorded"]
        assert events[-1]["sequence"] == record.sequence
        assert events[-1]["transfer_id"] == str(record.id)


class TestValidation:
    def test_non_positive_amount(self, ledger, standard_wallets):
        for amount in (0, -5):
            with pytest.raises(NonPositiveAmountError):
                ledger.record_transfer("Checking", "Groceries", amount)

    def test_same_wallet(self, ledger, standard_wallets):
        with pytest.raises(SameWalletError) as exc_info:
            ledger.record_transfer("Checking", "Checking", 100)
        assert exc_info.value.code == "SAME_WALLET"

    def test_unknown_wallet(self, ledger, standard_wallets):
        with pytest.raises(WalletNotFoundError):
            ledger.record_transfer("Checking", "Nowhere", 100)

    def test_currency_mismatch(self, ledger, standard_wallets):
        ledger.create_wallet("Dollars", "asset", currency="USD", allow_negative=True)
        with pytest.raises(CurrencyMismatchError):
            ledger.record_transfer("Dollars", "Checking", 100)

    def test_archived_source_and_destination(self, ledger, standard_wallets):
        ledger.archive_wallet("Savings")
        with pytest.raises(ArchivedWalletError):
            ledger.record_transfer("Checking", "Savings", 100)
        with pytest.raises(ArchivedWalletError):
            ledger.record_transfer("Savings", "Checking", 100)

    def test_rejected_transfer_leaves_no_trace(self, ledger, standard_wallets):
        with pytest.raises(SameWalletError):
            ledger.record_transfer("Checking", "Checking", 100)
        assert len(ledger.list_transfers()) == 1
        assert ledger.sequences.current_value() == 1


class TestNegativeBalancePolicy:
    def test_asset_cannot_go_negative(self, ledger, standard_wallets):
        with pytest.raises(NegativeBalanceNotAllowedError) as exc_info:
            ledger.record_transfer("Checking", "Rent", 100001)
        error = exc_info.value
        assert error.wallet_name == "Checking"
        assert error.balance == 100000
        assert error.resulting_balance == -1
        assert ledger.balance("Checking") == 100000

    def test_draining_to_exactly_zero_is_allowed(self, ledger, standard_wallets):
        ledger.record_transfer("Checking", "Rent", 100000)
        assert ledger.balance("Checking") == 0

    def test_toggle_allow_negative(self, ledger, standard_wallets):
        ledger.set_allow_negative("Checking", True)
        ledger.record_transfer("Checking", "Rent", 150000)
        assert ledger.balance("Checking") == -50000

        ledger.set_allow_negative("Checking", False)
        with pytest.raises(NegativeBalanceNotAllowedError):
            ledger.record_transfer("Checking", "Rent", 1)

    def test_force_skips_balance_check(self, ledger, standard_wallets):
        ledger.record_transfer("Savings", "Checking", 500, force=True)
        assert ledger.balance("Savings") == -500

    def test_liability_can_go_negative(self, ledger, standard_wallets):
        ledger.record_transfer("CreditCard", "Groceries", 2500)
        assert ledger.balance("CreditCard") == -2500

    def test_rejection_logged(self, ledger, standard_wallets, captured_logs):
        with pytest.raises(NegativeBalanceNotAllowedError):
            ledger.record_transfer("Savings", "Rent", 1)
        events = [r for r in captured_logs() if r["message"] == "transfer_rejected_negative_balance"]
        assert events and events[0]["level"] == "WARNING"
