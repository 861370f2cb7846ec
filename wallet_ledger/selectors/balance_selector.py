"""
Module: wallet_ledger.selectors.balance_selector
Responsibility: Derived balances and ledger integrity checks.  There are no
    stored balances anywhere in the system; every figure here is computed
    from transfer rows at query time.
Architecture position: Selectors.  Used by TransferService (negative-balance
    policy), the forecaster, reports and the CLI.

Invariants enforced:
    - Derived balances: balance(w) = sum(amount where to = w)
                                   - sum(amount where from = w).
    - Zero-sum: every transfer debits and credits the same amount, so the
      sum of all balances is 0.  check_integrity() reports any deviation.
    - Aggregation runs in SQL with GROUP BY over the indexed wallet columns.

Failure modes:
    - assert_integrity() raises LedgerIntegrityError (fatal) when any issue
      is found.  Nothing is auto-repaired.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session, aliased

from wallet_ledger.exceptions import LedgerIntegrityError
from wallet_ledger.logging_config import get_logger
from wallet_ledger.models.transfer import Transfer
from wallet_ledger.models.wallet import Wallet, WalletType
from wallet_ledger.selectors.base import BaseSelector
from wallet_ledger.services.sequence_service import SequenceCounter, SequenceService

logger = get_logger("selectors.balance")


@dataclass(frozen=True)
class WalletBalance:
    """Balance of one wallet with the fields needed for display."""

    wallet_id: UUID
    name: str
    wallet_type: WalletType
    currency: str
    is_archived: bool
    balance: int


@dataclass
class IntegrityReport:
    """Result of a full ledger integrity check."""

    wallet_count: int
    transfer_count: int
    total_balance: int
    balance_by_type: dict[str, int]
    max_sequence: int
    counter_value: int
    issues: list[str] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return not self.issues


class BalanceSelector(BaseSelector):
    """
    Computes wallet balances from the transfer log.

    Cutoffs:
        as_of_sequence includes transfers with sequence <= cutoff (state as
        recorded); as_of_timestamp includes transfers with timestamp <= cutoff
        (state as of a point in time, backdated entries included).  Both may
        be combined.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    @staticmethod
    def _apply_cutoffs(query, as_of_sequence: int | None, as_of_timestamp: datetime | None):
        if as_of_sequence is not None:
            query = query.where(Transfer.sequence <= as_of_sequence)
        if as_of_timestamp is not None:
            query = query.where(Transfer.timestamp <= as_of_timestamp)
        return query

    def balance(
        self,
        wallet_id: UUID,
        as_of_sequence: int | None = None,
        as_of_timestamp: datetime | None = None,
    ) -> int:
        """Balance of one wallet in cents; 0 when it has no transfers."""
        signed = case(
            (Transfer.to_wallet_id == wallet_id, Transfer.amount_cents),
            else_=-Transfer.amount_cents,
        )
        query = select(func.coalesce(func.sum(signed), 0)).where(
            (Transfer.to_wallet_id == wallet_id) | (Transfer.from_wallet_id == wallet_id)
        )
        query = self._apply_cutoffs(query, as_of_sequence, as_of_timestamp)
        return int(self.session.execute(query).scalar_one())

    def all_balances(
        self,
        as_of_timestamp: datetime | None = None,
        as_of_sequence: int | None = None,
    ) -> dict[UUID, int]:
        """Balance of every wallet (archived included), keyed by wallet id."""
        balances: dict[UUID, int] = {
            wallet_id: 0
            for wallet_id in self.session.execute(select(Wallet.id)).scalars()
        }

        credits = select(
            Transfer.to_wallet_id, func.sum(Transfer.amount_cents)
        ).group_by(Transfer.to_wallet_id)
        credits = self._apply_cutoffs(credits, as_of_sequence, as_of_timestamp)
        for wallet_id, total in self.session.execute(credits):
            balances[wallet_id] = balances.get(wallet_id, 0) + int(total)

        debits = select(
            Transfer.from_wallet_id, func.sum(Transfer.amount_cents)
        ).group_by(Transfer.from_wallet_id)
        debits = self._apply_cutoffs(debits, as_of_sequence, as_of_timestamp)
        for wallet_id, total in self.session.execute(debits):
            balances[wallet_id] = balances.get(wallet_id, 0) - int(total)

        return balances

    def wallet_balances(
        self,
        as_of_timestamp: datetime | None = None,
        include_archived: bool = True,
    ) -> list[WalletBalance]:
        """Balances joined with wallet details, ordered by wallet name."""
        balances = self.all_balances(as_of_timestamp=as_of_timestamp)
        query = select(Wallet).order_by(Wallet.name)
        if not include_archived:
            query = query.where(Wallet.archived_at.is_(None))

        return [
            WalletBalance(
                wallet_id=wallet.id,
                name=wallet.name,
                wallet_type=wallet.type,
                currency=wallet.currency,
                is_archived=wallet.is_archived,
                balance=balances.get(wallet.id, 0),
            )
            for wallet in self.session.execute(query).scalars()
        ]

    def total_balance(self) -> int:
        """Sum of all wallet balances.  Always 0 on a healthy ledger."""
        return sum(self.all_balances().values())

    # =========================================================================
    # Integrity
    # =========================================================================

    def check_integrity(self) -> IntegrityReport:
        """Run every structural check over the ledger and collect issues."""
        balances = self.all_balances()
        issues: list[str] = []

        wallet_types = dict(
            self.session.execute(select(Wallet.id, Wallet.wallet_type)).all()
        )
        balance_by_type = {wallet_type.value: 0 for wallet_type in WalletType}
        for wallet_id, amount in balances.items():
            wallet_type = wallet_types.get(wallet_id)
            if wallet_type is not None:
                balance_by_type[WalletType(wallet_type).value] += amount

        total = sum(balances.values())
        if total != 0:
            issues.append(f"Ledger does not balance: total is {total}, expected 0")

        transfer_count, min_seq, max_seq = self.session.execute(
            select(
                func.count(Transfer.id),
                func.min(Transfer.sequence),
                func.max(Transfer.sequence),
            )
        ).one()
        max_seq = int(max_seq or 0)

        duplicates = self.session.execute(
            select(Transfer.sequence)
            .group_by(Transfer.sequence)
            .having(func.count(Transfer.id) > 1)
        ).scalars().all()
        for seq in duplicates:
            issues.append(f"Duplicate sequence number: {seq}")

        distinct_count = self.session.execute(
            select(func.count(func.distinct(Transfer.sequence)))
        ).scalar_one()
        if transfer_count and (min_seq != 1 or max_seq != distinct_count):
            issues.append(
                f"Sequence gap: {distinct_count} distinct sequences "
                f"span {min_seq}..{max_seq}"
            )

        counter_value = self.session.execute(
            select(SequenceCounter.value).where(
                SequenceCounter.name == SequenceService.TRANSFER_SEQUENCE
            )
        ).scalar_one_or_none()
        if counter_value is None:
            issues.append("Transfer sequence counter is missing")
            counter_value = 0
        elif counter_value < max_seq:
            issues.append(
                f"Sequence counter ({counter_value}) is behind "
                f"the highest transfer sequence ({max_seq})"
            )

        issues.extend(self._dangling_references())

        non_positive = self.session.execute(
            select(func.count(Transfer.id)).where(Transfer.amount_cents <= 0)
        ).scalar_one()
        if non_positive:
            issues.append(f"{non_positive} transfer(s) with a non-positive amount")

        issues.extend(self._over_reversals())

        return IntegrityReport(
            wallet_count=len(wallet_types),
            transfer_count=int(transfer_count),
            total_balance=total,
            balance_by_type=balance_by_type,
            max_sequence=max_seq,
            counter_value=int(counter_value),
            issues=issues,
        )

    def _dangling_references(self) -> list[str]:
        issues = []
        for label, column in (
            ("source", Transfer.from_wallet_id),
            ("destination", Transfer.to_wallet_id),
        ):
            orphans = self.session.execute(
                select(Transfer.sequence)
                .outerjoin(Wallet, column == Wallet.id)
                .where(Wallet.id.is_(None))
            ).scalars().all()
            for seq in orphans:
                issues.append(f"Transfer #{seq} references a missing {label} wallet")

        original = aliased(Transfer)
        orphans = self.session.execute(
            select(Transfer.sequence)
            .outerjoin(original, Transfer.reverses_id == original.id)
            .where(Transfer.reverses_id.is_not(None), original.id.is_(None))
        ).scalars().all()
        for seq in orphans:
            issues.append(f"Transfer #{seq} reverses a missing transfer")
        return issues

    def _over_reversals(self) -> list[str]:
        original = aliased(Transfer)
        rows = self.session.execute(
            select(original.sequence, original.amount_cents, func.sum(Transfer.amount_cents))
            .join(original, Transfer.reverses_id == original.id)
            .group_by(original.id, original.sequence, original.amount_cents)
            .having(func.sum(Transfer.amount_cents) > original.amount_cents)
        ).all()
        return [
            f"Transfer #{seq} reversed by {reversed_total}, more than its amount {amount}"
            for seq, amount, reversed_total in rows
        ]

    def assert_integrity(self) -> IntegrityReport:
        """
        Check integrity and raise when unhealthy.

        Raises:
            LedgerIntegrityError: If any issue was found.
        """
        report = self.check_integrity()
        if not report.is_healthy:
            logger.error(
                "ledger_integrity_violation",
                extra={
                    "issues": report.issues,
                    "total_balance": report.total_balance,
                    "transfer_count": report.transfer_count,
                },
            )
            raise LedgerIntegrityError(report.issues, report.total_balance)
        return report
