"""
LedgerOrchestrator transaction-boundary tests.

Tests cover:
- auto_commit=True: each operation commits; a failure rolls back only itself
- auto_commit=False: the caller owns the outer transaction
- Failures are logged as operation_rolled_back
"""

import pytest

from wallet_ledger.db.engine import get_session
from wallet_ledger.exceptions import SameWalletError
from wallet_ledger.services.ledger_orchestrator import LedgerOrchestrator


class TestAutoCommit:
    def test_committed_work_visible_to_new_session(self, ledger, standard_wallets):
        ledger.record_transfer("Checking", "Groceries", 1234)

        other = get_session()
        try:
            assert LedgerOrchestrator(other).balance("Groceries") == 1234
        finally:
            other.close()

    def test_failure_does_not_undo_earlier_operations(self, ledger, standard_wallets, captured_logs):
        ledger.record_transfer("Checking", "Groceries", 100)
        with pytest.raises(SameWalletError):
            ledger.record_transfer("Checking", "Checking", 100)
        assert ledger.balance("Groceries") == 100

        events = [r for r in captured_logs() if r["message"] == "operation_rolled_back"]
        assert events[0]["operation"] == "record_transfer"


class TestCallerManagedTransaction:
    def test_rollback_discards_everything(self, session, deterministic_clock):
        atomic = LedgerOrchestrator(session, clock=deterministic_clock, auto_commit=False)
        atomic.create_wallet("Checking", "asset")
        atomic.create_wallet("Opening", "equity")
        atomic.record_transfer("Opening", "Checking", 500)
        session.rollback()

        assert atomic.list_wallets() == []
        assert atomic.list_transfers() == []

    def test_failed_operation_keeps_session_usable(self, session, deterministic_clock):
        atomic = LedgerOrchestrator(session, clock=deterministic_clock, auto_commit=False)
        atomic.create_wallet("Checking", "asset")
        with pytest.raises(SameWalletError):
            atomic.record_transfer("Checking", "Checking", 1)
        atomic.create_wallet("Opening", "equity")
        session.commit()

        assert [w.name for w in atomic.list_wallets()] == ["Checking", "Opening"]

    def test_default_currency_applied(self, session):
        orchestrator = LedgerOrchestrator(session, default_currency="CHF")
        assert orchestrator.create_wallet("Konto", "asset").currency == "CHF"
