"""
ORM models for the wallet ledger.

Importing this package registers every table on ``Base.metadata``.
"""

from wallet_ledger.models.budget import Budget
from wallet_ledger.models.scheduled_transfer import ScheduledTransfer
from wallet_ledger.models.transfer import Transfer
from wallet_ledger.models.wallet import Wallet, WalletType
from wallet_ledger.services.sequence_service import SequenceCounter

__all__ = [
    "Budget",
    "ScheduledTransfer",
    "SequenceCounter",
    "Transfer",
    "Wallet",
    "WalletType",
]
