"""
WalletService tests.

Tests cover:
- Creation defaults (currency, allow_negative per wallet type)
- Validation: duplicate names, unknown types, malformed currencies
- Archiving (idempotent) and the allow-negative toggle
"""

import pytest

from wallet_ledger.exceptions import (
    DuplicateNameError,
    InvalidCurrencyError,
    InvalidWalletTypeError,
    WalletNotFoundError,
)
from wallet_ledger.models.wallet import WalletType
from wallet_ledger.services.wallet_service import WalletService


@pytest.fixture
def wallet_service(session, deterministic_clock):
    return WalletService(session, deterministic_clock, default_currency="USD")


class TestCreateWallet:
    def test_defaults(self, wallet_service, deterministic_clock):
        wallet = wallet_service.create_wallet("Checking", "asset")
        assert wallet.type is WalletType.ASSET
        assert wallet.currency == "USD"
        assert wallet.allow_negative is False
        assert wallet.created_at == deterministic_clock.now()
        assert not wallet.is_archived

    @pytest.mark.parametrize("wallet_type", ["liability", "income", "expense", "equity"])
    def test_non_asset_wallets_may_go_negative_by_default(self, wallet_service, wallet_type):
        assert wallet_service.create_wallet("W", wallet_type).allow_negative is True

    def test_explicit_allow_negative_wins(self, wallet_service):
        assert wallet_service.create_wallet("Overdraft", "asset", allow_negative=True).allow_negative
        assert not wallet_service.create_wallet("Strict", "expense", allow_negative=False).allow_negative

    def test_currency_normalized(self, wallet_service):
        assert wallet_service.create_wallet("Travel", "asset", currency="gbp").currency == "GBP"

    def test_duplicate_name_rejected(self, wallet_service):
        wallet_service.create_wallet("Checking", "asset")
        with pytest.raises(DuplicateNameError) as exc_info:
            wallet_service.create_wallet("Checking", "expense")
        assert exc_info.value.code == "DUPLICATE_NAME"

    def test_unknown_type_rejected(self, wallet_service):
        with pytest.raises(InvalidWalletTypeError):
            wallet_service.create_wallet("Mystery", "crypto")

    @pytest.mark.parametrize("currency", ["EURO", "E1R", "$$$"])
    def test_malformed_currency_rejected(self, wallet_service, currency):
        with pytest.raises(InvalidCurrencyError):
            wallet_service.create_wallet("Checking", "asset", currency=currency)


class TestLookupsAndMutations:
    def test_get_unknown_wallet(self, wallet_service):
        with pytest.raises(WalletNotFoundError):
            wallet_service.get_wallet("Nope")

    def test_archive_is_idempotent(self, wallet_service, deterministic_clock):
        wallet_service.create_wallet("Old", "asset")
        first = wallet_service.archive_wallet("Old")
        archived_at = first.archived_at
        deterministic_clock.advance(days=3)
        second = wallet_service.archive_wallet("Old")
        assert second.archived_at == archived_at

    def test_list_excludes_archived_by_default(self, wallet_service):
        wallet_service.create_wallet("A", "asset")
        wallet_service.create_wallet("B", "asset")
        wallet_service.archive_wallet("B")
        assert [w.name for w in wallet_service.list_wallets()] == ["A"]
        assert [w.name for w in wallet_service.list_wallets(include_archived=True)] == ["A", "B"]

    def test_set_allow_negative(self, wallet_service, captured_logs):
        wallet_service.create_wallet("Checking", "asset")
        wallet = wallet_service.set_allow_negative("Checking", True)
        assert wallet.allow_negative is True
        events = [r for r in captured_logs() if r["message"] == "wallet_allow_negative_changed"]
        assert events and events[0]["wallet_name"] == "Checking"
