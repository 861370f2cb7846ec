"""
Module: wallet_ledger.models.scheduled_transfer
Responsibility: ORM persistence for recurring transfer definitions.
Architecture position: Models.  May import from db/base.py and domain/ only.

Invariants enforced:
    - last_executed_at is the cursor of the last materialized occurrence
      (NULL = never materialized).  It only moves forward, and only in the
      same transaction that inserts the materialized transfer.
    - Status transitions follow ALLOWED_TRANSITIONS in domain/recurrence.py;
      COMPLETED is terminal.
    - Paused and completed schedules never auto-materialize.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from wallet_ledger.db.base import EntityBase, UUIDString
from wallet_ledger.domain.recurrence import (
    RecurrencePattern,
    RecurrenceRule,
    ScheduleStatus,
)

if TYPE_CHECKING:
    from wallet_ledger.models.wallet import Wallet


class ScheduledTransfer(EntityBase):
    """Definition of a transfer that repeats on a fixed pattern."""

    __tablename__ = "scheduled_transfers"

    __table_args__ = (
        UniqueConstraint("name", name="uq_scheduled_transfer_name"),
        CheckConstraint("amount_cents > 0", name="ck_scheduled_amount_positive"),
        Index("idx_scheduled_transfer_status", "status"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

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

    amount_cents: Mapped[int] = mapped_column(nullable=False)

    pattern: Mapped[RecurrencePattern] = mapped_column(String(20), nullable=False)

    start_date: Mapped[datetime] = mapped_column(nullable=False)

    end_date: Mapped[datetime | None] = mapped_column(nullable=True)

    last_executed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[ScheduleStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ScheduleStatus.ACTIVE.value,
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    from_wallet: Mapped["Wallet"] = relationship(
        foreign_keys=[from_wallet_id],
        lazy="joined",
    )

    to_wallet: Mapped["Wallet"] = relationship(
        foreign_keys=[to_wallet_id],
        lazy="joined",
    )

    def __repr__(self) -> str:
        return f"<ScheduledTransfer {self.name} ({self.pattern}, {self.status})>"

    @property
    def rule(self) -> RecurrenceRule:
        return RecurrenceRule(
            start=self.start_date,
            pattern=RecurrencePattern(self.pattern),
            end=self.end_date,
        )

    @property
    def current_status(self) -> ScheduleStatus:
        return ScheduleStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.current_status is ScheduleStatus.ACTIVE
