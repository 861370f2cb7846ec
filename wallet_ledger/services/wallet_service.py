"""
WalletService -- creation and lifecycle of wallets.

Responsibility:
    Creates wallets, archives them (soft delete) and toggles their
    negative-balance policy.  Name lookups used by every other service go
    through here so that "unknown wallet" is reported the same way
    everywhere.

Invariants enforced:
    - Wallet names are unique.
    - Wallets are never deleted; archive sets archived_at once.
    - Currency is a 3-letter upper-case code.

Failure modes:
    - DuplicateNameError, InvalidWalletTypeError, InvalidCurrencyError on
      create.
    - WalletNotFoundError on any lookup of an unknown name or id.
"""

import re
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from wallet_ledger.domain.clock import Clock
from wallet_ledger.exceptions import (
    DuplicateNameError,
    InvalidCurrencyError,
    WalletNotFoundError,
)
from wallet_ledger.logging_config import get_logger
from wallet_ledger.models.wallet import Wallet, WalletType
from wallet_ledger.services.base import BaseService

logger = get_logger("services.wallet")

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def normalize_currency(currency: str) -> str:
    """Upper-case and validate a currency code."""
    code = currency.strip().upper()
    if not _CURRENCY_RE.match(code):
        raise InvalidCurrencyError(currency)
    return code


class WalletService(BaseService):
    """Write-side operations on wallets."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        default_currency: str = "EUR",
    ):
        super().__init__(session, clock)
        self.default_currency = default_currency

    # =========================================================================
    # Lookups
    # =========================================================================

    def find_wallet(self, name: str) -> Wallet | None:
        return self.session.execute(
            select(Wallet).where(Wallet.name == name)
        ).scalar_one_or_none()

    def get_wallet(self, name: str) -> Wallet:
        """
        Resolve a wallet by name.

        Raises:
            WalletNotFoundError: If no wallet has this name.
        """
        wallet = self.find_wallet(name)
        if wallet is None:
            raise WalletNotFoundError(name)
        return wallet

    def get_wallet_by_id(self, wallet_id: UUID) -> Wallet:
        wallet = self.session.get(Wallet, wallet_id)
        if wallet is None:
            raise WalletNotFoundError(str(wallet_id))
        return wallet

    def list_wallets(self, include_archived: bool = False) -> list[Wallet]:
        query = select(Wallet).order_by(Wallet.name)
        if not include_archived:
            query = query.where(Wallet.archived_at.is_(None))
        return list(self.session.execute(query).scalars())

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_wallet(
        self,
        name: str,
        wallet_type: str | WalletType,
        currency: str | None = None,
        description: str | None = None,
        allow_negative: bool | None = None,
    ) -> Wallet:
        """
        Create a wallet.

        allow_negative defaults to False for asset wallets and True for every
        other type.

        Raises:
            DuplicateNameError: If the name is taken.
            InvalidWalletTypeError: If the type is unknown.
            InvalidCurrencyError: If the currency code is malformed.
        """
        parsed_type = WalletType.parse(wallet_type)
        code = normalize_currency(currency or self.default_currency)

        if self.find_wallet(name) is not None:
            raise DuplicateNameError("Wallet", name)

        if allow_negative is None:
            allow_negative = parsed_type.default_allow_negative

        wallet = Wallet(
            name=name,
            wallet_type=parsed_type.value,
            currency=code,
            allow_negative=allow_negative,
            description=description,
            created_at=self.clock.now(),
        )
        self.session.add(wallet)
        self.session.flush()

        logger.info(
            "wallet_created",
            extra={
                "wallet_id": str(wallet.id),
                "wallet_name": name,
                "wallet_type": parsed_type.value,
                "currency": code,
                "allow_negative": allow_negative,
            },
        )
        return wallet

    def archive_wallet(self, name: str) -> Wallet:
        """
        Archive a wallet.  Archiving an archived wallet is a no-op.

        The wallet keeps its transfers and stays resolvable for balance
        queries; it can no longer be used as a transfer endpoint.
        """
        wallet = self.get_wallet(name)
        if wallet.is_archived:
            return wallet

        wallet.archived_at = self.clock.now()
        self.session.flush()

        logger.info(
            "wallet_archived",
            extra={"wallet_id": str(wallet.id), "wallet_name": name},
        )
        return wallet

    def set_allow_negative(self, name: str, allow_negative: bool) -> Wallet:
        wallet = self.get_wallet(name)
        wallet.allow_negative = allow_negative
        self.session.flush()

        logger.info(
            "wallet_allow_negative_changed",
            extra={
                "wallet_id": str(wallet.id),
                "wallet_name": name,
                "allow_negative": allow_negative,
            },
        )
        return wallet
