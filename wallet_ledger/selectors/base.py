"""
Module: wallet_ledger.selectors.base
Responsibility: Abstract base class for all read-only selectors.  Selectors
    are the query side of the ledger: balances, budget status, forecasts and
    reports are all derived here from the transfer log.
Architecture position: Selectors.  May import from db/, models/ and domain/.
    MUST NOT call write services (the sequence counter table is read directly).

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit() or session.flush().
    - DTO return convention: selectors return dataclasses or plain values,
      not ORM instances, except for the simple lookups used by services.
"""

from abc import ABC

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries
        and return DTOs or computed results.
    """

    def __init__(self, session: Session):
        self.session = session
