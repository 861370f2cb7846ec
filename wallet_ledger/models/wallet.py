"""
Module: wallet_ledger.models.wallet
Responsibility: ORM persistence for wallets -- the named endpoints of every
    transfer.
Architecture position: Models.  May import from db/base.py and domain/ only.

Invariants enforced:
    - name is unique (uq_wallet_name).
    - Wallets are never hard-deleted; archiving sets archived_at and keeps
      the row resolvable for historical balance queries.
    - No balance column exists.  Balances are derived from transfers.

Failure modes:
    - IntegrityError on duplicate name (WalletService checks first and raises
      DuplicateNameError).
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.db.base import EntityBase
from wallet_ledger.exceptions import InvalidWalletTypeError


class WalletType(str, Enum):
    """Classification of a wallet; drives reports and budget spend."""

    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"
    EQUITY = "equity"

    @classmethod
    def parse(cls, value: "str | WalletType") -> "WalletType":
        if isinstance(value, WalletType):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidWalletTypeError(value) from None

    @property
    def default_allow_negative(self) -> bool:
        # Only asset wallets hold real money that cannot go below zero.
        return self is not WalletType.ASSET


class Wallet(EntityBase):
    """
    A named account that money moves between.

    Contract:
        wallet_type and currency are fixed at creation.  allow_negative may
        be toggled.  archived_at is set once and never cleared.
    """

    __tablename__ = "wallets"

    __table_args__ = (
        UniqueConstraint("name", name="uq_wallet_name"),
        Index("idx_wallet_type", "wallet_type"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    wallet_type: Mapped[WalletType] = mapped_column(String(20), nullable=False)

    # ISO 4217 style code, upper case
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    allow_negative: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    # Soft delete
    archived_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Wallet {self.name} ({self.wallet_type})>"

    @property
    def type(self) -> WalletType:
        """wallet_type as an enum, whether loaded from the DB or freshly set."""
        return WalletType(self.wallet_type)

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None
