"""
TransferService -- the only writer of the transfer log.

Responsibility:
    Validates and records transfers.  Every path that adds money movements
    (manual transfers, reversals, scheduled occurrences, imports) ends in
    ``record()``, so the validation rules and the sequence assignment live
    in exactly one place.

Architecture position:
    Services.  Consumes WalletService (name resolution), BalanceSelector
    (negative-balance policy) and SequenceService (ordering).

Invariants enforced:
    - amount > 0, from != to, both endpoints exist and are not archived,
      both endpoints share a currency.
    - Negative-balance policy: the source wallet's post-transfer balance may
      not go below zero unless it allows negatives (or the caller forces).
    - Sequence increment and transfer insert are flushed together in the
      caller's transaction.

Failure modes:
    - WalletNotFoundError, SameWalletError, NonPositiveAmountError,
      ArchivedWalletError, CurrencyMismatchError,
      NegativeBalanceNotAllowedError.  No state is changed when any of them
      is raised.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from wallet_ledger.domain.calendar import ensure_utc
from wallet_ledger.domain.clock import Clock
from wallet_ledger.exceptions import (
    ArchivedWalletError,
    CurrencyMismatchError,
    NegativeBalanceNotAllowedError,
    NonPositiveAmountError,
    SameWalletError,
)
from wallet_ledger.logging_config import LogContext, get_logger
from wallet_ledger.models.transfer import Transfer
from wallet_ledger.models.wallet import Wallet
from wallet_ledger.selectors.balance_selector import BalanceSelector
from wallet_ledger.services.base import BaseService
from wallet_ledger.services.sequence_service import SequenceService
from wallet_ledger.services.wallet_service import WalletService

logger = get_logger("services.transfer")


def normalize_tags(tags: list[str] | tuple[str, ...] | None) -> list[str] | None:
    """Strip, drop empties and de-duplicate while keeping order."""
    if not tags:
        return None
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned or None


class TransferService(BaseService):
    """
    Records transfers between wallets.

    Contract:
        create_transfer() resolves wallet names; record() takes already
        resolved wallets and is shared with reversals and the scheduler.
        Neither commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        wallet_service: WalletService | None = None,
        balance_selector: BalanceSelector | None = None,
        sequence_service: SequenceService | None = None,
    ):
        super().__init__(session, clock)
        self._wallets = wallet_service or WalletService(session, self.clock)
        self._balances = balance_selector or BalanceSelector(session)
        self._sequences = sequence_service or SequenceService(session)

    def create_transfer(
        self,
        from_wallet: str,
        to_wallet: str,
        amount_cents: int,
        timestamp: datetime | None = None,
        description: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        external_ref: str | None = None,
        force: bool = False,
    ) -> Transfer:
        """
        Record a transfer between two wallets named by the user.

        Args:
            timestamp: When the money moved; defaults to now.  Past dates
                are allowed and still receive the next sequence number.
            force: Skip the negative-balance check.

        Raises:
            NonPositiveAmountError, WalletNotFoundError, SameWalletError,
            ArchivedWalletError, CurrencyMismatchError,
            NegativeBalanceNotAllowedError.
        """
        if amount_cents <= 0:
            raise NonPositiveAmountError(amount_cents)

        source = self._wallets.get_wallet(from_wallet)
        destination = self._wallets.get_wallet(to_wallet)
        return self.record(
            source,
            destination,
            amount_cents,
            timestamp=timestamp,
            description=description,
            category=category,
            tags=tags,
            external_ref=external_ref,
            enforce_balance=not force,
        )

    def record(
        self,
        source: Wallet,
        destination: Wallet,
        amount_cents: int,
        *,
        timestamp: datetime | None = None,
        description: str | None = None,
        category: str | None = None,
        tags: list[str] | None = None,
        external_ref: str | None = None,
        reverses_id: UUID | None = None,
        enforce_balance: bool = True,
    ) -> Transfer:
        """Validate and insert one transfer between resolved wallets."""
        self._validate(source, destination, amount_cents, enforce_balance)

        recorded_at = self.clock.now()
        sequence = self._sequences.next_value(SequenceService.TRANSFER_SEQUENCE)

        transfer = Transfer(
            sequence=sequence,
            from_wallet_id=source.id,
            to_wallet_id=destination.id,
            amount_cents=amount_cents,
            timestamp=ensure_utc(timestamp) if timestamp is not None else recorded_at,
            recorded_at=recorded_at,
            description=description,
            category=category,
            tags=normalize_tags(tags),
            reverses_id=reverses_id,
            external_ref=external_ref,
        )
        self.session.add(transfer)
        self.session.flush()

        with LogContext.bind(transfer_id=str(transfer.id)):
            logger.info(
                "transfer_recorded",
                extra={
                    "sequence": sequence,
                    "from_wallet": source.name,
                    "to_wallet": destination.name,
                    "amount_cents": amount_cents,
                    "category": category,
                    "reverses_id": str(reverses_id) if reverses_id else None,
                },
            )
        return transfer

    def _validate(
        self,
        source: Wallet,
        destination: Wallet,
        amount_cents: int,
        enforce_balance: bool,
    ) -> None:
        if amount_cents <= 0:
            raise NonPositiveAmountError(amount_cents)
        if source.id == destination.id:
            raise SameWalletError(source.name)
        if source.is_archived:
            raise ArchivedWalletError(source.name)
        if destination.is_archived:
            raise ArchivedWalletError(destination.name)
        if source.currency != destination.currency:
            raise CurrencyMismatchError(source.currency, destination.currency)

        if enforce_balance and not source.allow_negative:
            balance = self._balances.balance(source.id)
            if balance - amount_cents < 0:
                logger.warning(
                    "transfer_rejected_negative_balance",
                    extra={
                        "wallet_name": source.name,
                        "balance": balance,
                        "amount_cents": amount_cents,
                    },
                )
                raise NegativeBalanceNotAllowedError(source.name, balance, amount_cents)
