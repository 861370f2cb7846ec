"""
Read-only query layer.

Selectors never write: balances, budget status, forecasts and reports are
all computed from the transfer log on demand.
"""

from wallet_ledger.selectors.balance_selector import (
    BalanceSelector,
    IntegrityReport,
    WalletBalance,
)
from wallet_ledger.selectors.budget_selector import BudgetSelector, BudgetStatus
from wallet_ledger.selectors.forecast_selector import (
    ForecastEvent,
    ForecastPoint,
    ForecastResult,
    ForecastSelector,
)
from wallet_ledger.selectors.report_selector import ReportSelector
from wallet_ledger.selectors.transfer_selector import (
    TransferInfo,
    TransferRecord,
    TransferSelector,
)

__all__ = [
    "BalanceSelector",
    "BudgetSelector",
    "BudgetStatus",
    "ForecastEvent",
    "ForecastPoint",
    "ForecastResult",
    "ForecastSelector",
    "IntegrityReport",
    "ReportSelector",
    "TransferInfo",
    "TransferRecord",
    "TransferSelector",
    "WalletBalance",
]
