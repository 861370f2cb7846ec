"""
Module: wallet_ledger.models.transfer
Responsibility: ORM persistence for transfers -- the append-only log that is
    the single source of financial truth for the ledger.
Architecture position: Models.  May import from db/base.py only.

Invariants enforced:
    - Sequence safety: sequence is assigned from the locked counter row by
      SequenceService and is UNIQUE.  It is the canonical total order and is
      independent of the user-supplied timestamp.
    - Positive amounts: CHECK (amount_cents > 0).  Direction is expressed by
      from/to, never by sign.
    - Immutability: ORM listeners in db/immutability.py reject UPDATE and
      DELETE on persisted transfers.
    - Zero-sum: each transfer debits from_wallet and credits to_wallet by the
      same amount, so the sum of all balances is always zero.

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE of a flushed transfer.
    - IntegrityError on a duplicate sequence or a non-positive amount.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wallet_ledger.db.base import EntityBase, UUIDString

if TYPE_CHECKING:
    from wallet_ledger.models.wallet import Wallet


class Transfer(EntityBase):
    """
    A single movement of money between two wallets.

    Contract:
        Created once by TransferService and never modified afterwards.  A
        reversal is a new Transfer with swapped endpoints whose ``reverses``
        column points at the original; the original row is untouched.

    Non-goals:
        - Does not store how much of it has been reversed; that total is
          derived from the transfers whose ``reverses`` points here.
    """

    __tablename__ = "transfers"

    __table_args__ = (
        UniqueConstraint("sequence", name="uq_transfer_sequence"),
        CheckConstraint("amount_cents > 0", name="ck_transfer_amount_positive"),
        Index("idx_transfer_from_wallet", "from_wallet_id"),
        Index("idx_transfer_to_wallet", "to_wallet_id"),
        Index("idx_transfer_timestamp", "timestamp"),
        Index("idx_transfer_category", "category"),
        Index("idx_transfer_reverses", "reverses_id"),
        Index("idx_transfer_timestamp_category", "timestamp", "category"),
        Index("idx_transfer_timestamp_amount", "timestamp", "amount_cents"),
    )

    # Position in the global log
    sequence: Mapped[int] = mapped_column(nullable=False)

    from_wallet_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("wallets.id"),
        nullable=False,
    )

    to_wallet_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("wallets.id"),
        nullable=False,
    )

    # Integer minor units
    amount_cents: Mapped[int] = mapped_column(nullable=False)

    # When the money moved (user supplied, may be in the past)
    timestamp: Mapped[datetime] = mapped_column(nullable=False)

    # When the row was written (system clock)
    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    # Non-owning back-reference to the transfer this one reverses
    reverses_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("transfers.id"),
        nullable=True,
    )

    # Identifier from an outside system (bank export, import file)
    external_ref: Mapped[str | None] = mapped_column(String(255), nullable=True)

    from_wallet: Mapped["Wallet"] = relationship(
        foreign_keys=[from_wallet_id],
        lazy="joined",
    )

    to_wallet: Mapped["Wallet"] = relationship(
        foreign_keys=[to_wallet_id],
        lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<Transfer #{self.sequence}: {self.amount_cents}>"

    @property
    def is_reversal(self) -> bool:
        return self.reverses_id is not None
