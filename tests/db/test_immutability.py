"""
Transfer immutability tests.

Transfers are append-only: ORM updates and deletes are rejected before
any SQL is sent.
"""

import pytest

from wallet_ledger.exceptions import ImmutabilityViolationError, IntegrityError
from wallet_ledger.models.transfer import Transfer


@pytest.fixture
def transfer(ledger, standard_wallets, session):
    record = ledger.record_transfer("Checking", "Groceries", 2500, description="Shop")
    return session.get(Transfer, record.id)


class TestTransferImmutability:
    def test_update_rejected(self, session, transfer):
        transfer.amount_cents = 1
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        assert exc_info.value.code == "IMMUTABILITY_VIOLATION"
        assert isinstance(exc_info.value, IntegrityError)

    def test_metadata_update_rejected(self, session, transfer):
        transfer.description = "Edited"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_rejected(self, session, transfer):
        session.delete(transfer)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_violation_logged(self, session, transfer, captured_logs):
        session.delete(transfer)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        events = [r for r in captured_logs() if r["message"] == "immutability_violation_blocked"]
        assert events[0]["operation"] == "DELETE"
        assert events[0]["level"] == "ERROR"


class TestListenerRegistration:
    def test_unregistered_listeners_allow_updates(self, session, transfer):
        from wallet_ledger.db.immutability import (
            register_immutability_listeners,
            unregister_immutability_listeners,
        )

        unregister_immutability_listeners()
        try:
            transfer.description = "Corrected"
            session.flush()
        finally:
            register_immutability_listeners()

        transfer.description = "Again"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
