"""
ORM-Level Immutability Enforcement for transfers.

Transfers are the ledger.  Once flushed they are never edited or deleted;
corrections are new transfers (reversals).  SQLAlchemy fires mapper events
before UPDATE/DELETE statements reach the database, and the listeners here
raise ImmutabilityViolationError so the offending flush is aborted:

    session.flush()
         |
         v
    [before_update] --> _check_transfer_immutability() --> ImmutabilityViolationError
    [before_delete] --> _check_transfer_delete() --------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

Raw SQL bypasses these listeners; the store is single-user and local, and
tamper-proofing against direct file edits is out of scope.

Usage:

    from wallet_ledger.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event

from wallet_ledger.exceptions import ImmutabilityViolationError
from wallet_ledger.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_transfer_immutability(mapper, connection, target):
    """Prevent any updates to Transfer rows."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Transfer",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Transfer",
        entity_id=str(target.id),
        reason="Transfers are immutable; record a reversal instead",
    )


def _check_transfer_delete(mapper, connection, target):
    """Prevent deletion of Transfer rows."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "Transfer",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="Transfer",
        entity_id=str(target.id),
        reason="Transfers cannot be deleted",
    )


_LISTENERS = (
    ("before_update", _check_transfer_immutability),
    ("before_delete", _check_transfer_delete),
)


def register_immutability_listeners() -> None:
    """Register the transfer immutability listeners (idempotent)."""
    from wallet_ledger.models.transfer import Transfer

    for event_name, listener_fn in _LISTENERS:
        if not event.contains(Transfer, event_name, listener_fn):
            event.listen(Transfer, event_name, listener_fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the immutability listeners.

    WARNING: Only use this in tests that intentionally corrupt the ledger.
    """
    from wallet_ledger.models.transfer import Transfer

    for event_name, listener_fn in _LISTENERS:
        if event.contains(Transfer, event_name, listener_fn):
            event.remove(Transfer, event_name, listener_fn)
