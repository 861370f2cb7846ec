"""
Module: wallet_ledger.selectors.transfer_selector
Responsibility: Read access to the transfer log -- single lookups, filtered
    listings and reversal state.
Architecture position: Selectors.

"How much of this transfer has been reversed" is never stored; it is the sum
of the transfers whose ``reverses_id`` points at it.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from wallet_ledger.exceptions import TransferNotFoundError
from wallet_ledger.models.transfer import Transfer
from wallet_ledger.selectors.base import BaseSelector


@dataclass(frozen=True)
class TransferRecord:
    """Read model of one transfer with wallet names resolved."""

    id: UUID
    sequence: int
    from_wallet_id: UUID
    from_wallet: str
    to_wallet_id: UUID
    to_wallet: str
    amount_cents: int
    timestamp: datetime
    recorded_at: datetime
    description: str | None
    category: str | None
    tags: tuple[str, ...]
    reverses_id: UUID | None
    external_ref: str | None

    @classmethod
    def from_model(cls, transfer: Transfer) -> "TransferRecord":
        return cls(
            id=transfer.id,
            sequence=transfer.sequence,
            from_wallet_id=transfer.from_wallet_id,
            from_wallet=transfer.from_wallet.name,
            to_wallet_id=transfer.to_wallet_id,
            to_wallet=transfer.to_wallet.name,
            amount_cents=transfer.amount_cents,
            timestamp=transfer.timestamp,
            recorded_at=transfer.recorded_at,
            description=transfer.description,
            category=transfer.category,
            tags=tuple(transfer.tags or ()),
            reverses_id=transfer.reverses_id,
            external_ref=transfer.external_ref,
        )

    @property
    def is_reversal(self) -> bool:
        return self.reverses_id is not None


@dataclass(frozen=True)
class TransferInfo:
    """A transfer together with its derived reversal state."""

    transfer: TransferRecord
    total_reversed: int
    reversals: list[TransferRecord]

    @property
    def remaining(self) -> int:
        """Amount that can still be reversed."""
        return self.transfer.amount_cents - self.total_reversed

    @property
    def is_fully_reversed(self) -> bool:
        return self.remaining <= 0


class TransferSelector(BaseSelector):
    """Queries over the transfer log, ordered by sequence."""

    def __init__(self, session: Session):
        super().__init__(session)

    def find(self, transfer_id: UUID) -> Transfer | None:
        return self.session.get(Transfer, transfer_id)

    def get(self, transfer_id: UUID) -> Transfer:
        """
        Load a transfer by id.

        Raises:
            TransferNotFoundError: If no transfer has this id.
        """
        transfer = self.find(transfer_id)
        if transfer is None:
            raise TransferNotFoundError(str(transfer_id))
        return transfer

    def get_record(self, transfer_id: UUID) -> TransferRecord:
        return TransferRecord.from_model(self.get(transfer_id))

    def resolve_id(self, reference: str) -> UUID:
        """
        Resolve a full transfer id or a unique id prefix.

        Raises:
            TransferNotFoundError: If nothing (or more than one transfer)
                matches.
        """
        text = reference.strip().lower()
        try:
            return UUID(text)
        except ValueError:
            pass

        if len(text) < 4:
            raise TransferNotFoundError(reference)
        matches = self.session.execute(
            select(Transfer.id).where(Transfer.id.like(f"{text}%")).limit(2)
        ).scalars().all()
        if len(matches) != 1:
            raise TransferNotFoundError(reference)
        return matches[0]

    def list_transfers(
        self,
        wallet_id: UUID | None = None,
        category: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[TransferRecord]:
        """
        List transfers in sequence order with optional filters.

        from_date is inclusive and to_date exclusive.  When limit is given
        the most recent ``limit`` transfers (by sequence) are returned, still
        in ascending order.
        """
        query = select(Transfer)
        if wallet_id is not None:
            query = query.where(
                or_(Transfer.from_wallet_id == wallet_id, Transfer.to_wallet_id == wallet_id)
            )
        if category is not None:
            query = query.where(Transfer.category == category)
        if from_date is not None:
            query = query.where(Transfer.timestamp >= from_date)
        if to_date is not None:
            query = query.where(Transfer.timestamp < to_date)

        if limit is not None:
            query = query.order_by(Transfer.sequence.desc()).limit(limit)
            rows = list(self.session.execute(query).scalars())
            rows.reverse()
        else:
            rows = list(self.session.execute(query.order_by(Transfer.sequence)).scalars())

        return [TransferRecord.from_model(row) for row in rows]

    def total_reversed(self, transfer_id: UUID) -> int:
        return int(
            self.session.execute(
                select(func.coalesce(func.sum(Transfer.amount_cents), 0)).where(
                    Transfer.reverses_id == transfer_id
                )
            ).scalar_one()
        )

    def reversals_of(self, transfer_id: UUID) -> list[TransferRecord]:
        rows = self.session.execute(
            select(Transfer)
            .where(Transfer.reverses_id == transfer_id)
            .order_by(Transfer.sequence)
        ).scalars()
        return [TransferRecord.from_model(row) for row in rows]

    def transfer_info(self, transfer_id: UUID) -> TransferInfo:
        record = self.get_record(transfer_id)
        return TransferInfo(
            transfer=record,
            total_reversed=self.total_reversed(transfer_id),
            reversals=self.reversals_of(transfer_id),
        )

    def find_by_external_ref(self, external_ref: str) -> TransferRecord | None:
        row = self.session.execute(
            select(Transfer)
            .where(Transfer.external_ref == external_ref)
            .order_by(Transfer.sequence)
            .limit(1)
        ).scalar_one_or_none()
        return TransferRecord.from_model(row) if row is not None else None
