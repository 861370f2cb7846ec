"""
ReversalService -- full and partial reversals of recorded transfers.

Responsibility:
    Validates how much of a transfer may still be reversed and records the
    reversal as a new transfer with swapped endpoints and a ``reverses_id``
    back-reference.

Invariants enforced:
    - The original transfer is never mutated.  Reversal state is derived
      from the reverses_id linkage (no status column).
    - Cumulative reversals never exceed the original amount.
    - Reversals go through TransferService.record(), so they get a sequence
      number and are subject to the archived-wallet and currency rules.  The
      negative-balance policy is not applied: undoing a movement must always
      be possible.

Failure modes:
    - TransferNotFoundError: unknown transfer id.
    - AlreadyFullyReversedError: nothing left to reverse.
    - ReverseAmountExceedsOriginalError: requested amount exceeds what is left.
    - NonPositiveAmountError: requested amount <= 0.
    - ArchivedWalletError: an endpoint was archived after the original.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from wallet_ledger.domain.clock import Clock
from wallet_ledger.exceptions import (
    AlreadyFullyReversedError,
    NonPositiveAmountError,
    ReverseAmountExceedsOriginalError,
)
from wallet_ledger.logging_config import get_logger
from wallet_ledger.selectors.transfer_selector import TransferSelector
from wallet_ledger.services.base import BaseService
from wallet_ledger.services.transfer_service import TransferService

logger = get_logger("services.reversal")


@dataclass(frozen=True)
class ReversalResult:
    """Immutable result of a successful reversal."""

    original_id: UUID
    reversal_id: UUID
    reversal_sequence: int
    amount_cents: int
    is_partial: bool
    total_reversed: int
    remaining: int


class ReversalService(BaseService):
    """
    Records reversals of existing transfers.

    Non-goals:
        - Does NOT call session.commit() -- caller controls boundaries.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        transfer_service: TransferService | None = None,
        transfer_selector: TransferSelector | None = None,
    ):
        super().__init__(session, clock)
        self._transfers = transfer_service or TransferService(session, self.clock)
        self._selector = transfer_selector or TransferSelector(session)

    def reverse(
        self,
        transfer_id: UUID,
        amount_cents: int | None = None,
        timestamp: datetime | None = None,
        description: str | None = None,
        category: str | None = None,
    ) -> ReversalResult:
        """
        Reverse all or part of a transfer.

        Args:
            amount_cents: Amount to reverse; defaults to the full original
                amount.
            timestamp: When the reversal takes effect; defaults to now.
            description: Defaults to "Reversal of: ..." or
                "Partial reversal of: ...".
            category: Defaults to the original's category, so budget spend
                nets the reversal out.

        Raises:
            TransferNotFoundError, AlreadyFullyReversedError,
            ReverseAmountExceedsOriginalError, NonPositiveAmountError,
            ArchivedWalletError.
        """
        original = self._selector.get(transfer_id)
        amount = original.amount_cents if amount_cents is None else amount_cents
        if amount <= 0:
            raise NonPositiveAmountError(amount)

        already_reversed = self._selector.total_reversed(original.id)
        if already_reversed >= original.amount_cents:
            raise AlreadyFullyReversedError(str(original.id), original.amount_cents)
        if already_reversed + amount > original.amount_cents:
            raise ReverseAmountExceedsOriginalError(
                str(original.id),
                original.amount_cents,
                already_reversed,
                amount,
            )

        is_partial = amount != original.amount_cents
        if description is None:
            prefix = "Partial reversal of" if is_partial else "Reversal of"
            description = f"{prefix}: {original.description or '(no description)'}"

        reversal = self._transfers.record(
            original.to_wallet,
            original.from_wallet,
            amount,
            timestamp=timestamp,
            description=description,
            category=category if category is not None else original.category,
            tags=original.tags,
            reverses_id=original.id,
            enforce_balance=False,
        )

        total_reversed = already_reversed + amount
        logger.info(
            "transfer_reversed",
            extra={
                "original_id": str(original.id),
                "original_sequence": original.sequence,
                "reversal_id": str(reversal.id),
                "reversal_sequence": reversal.sequence,
                "amount_cents": amount,
                "is_partial": is_partial,
                "total_reversed": total_reversed,
            },
        )

        return ReversalResult(
            original_id=original.id,
            reversal_id=reversal.id,
            reversal_sequence=reversal.sequence,
            amount_cents=amount,
            is_partial=is_partial,
            total_reversed=total_reversed,
            remaining=original.amount_cents - total_reversed,
        )
