"""
Module: wallet_ledger.selectors.flows
Responsibility: Category flow aggregation shared by budgets and reports.

Convention:
    expense is counted at the expense-type endpoint: transfers into an
    expense wallet add, transfers out of one (refunds, reversals) subtract.
    income is counted at the income-type endpoint: transfers out of an
    income wallet add, transfers into one subtract.

The category and income-expense reports use the net functions.  Budget
spend is gross: ``spent_into_expense`` only sums transfers whose
destination is an expense wallet.  Windows are half-open ``[start, end)``
on the transfer timestamp.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from wallet_ledger.models.transfer import Transfer
from wallet_ledger.models.wallet import Wallet, WalletType


@dataclass
class CategoryFlow:
    """Net flow of one category; count is the number of adding transfers."""

    total: int = 0
    count: int = 0


def _endpoint_totals(
    session: Session,
    wallet_type: WalletType,
    endpoint,
    start: datetime,
    end: datetime,
    category: str | None,
) -> dict[str | None, tuple[int, int]]:
    query = (
        select(Transfer.category, func.sum(Transfer.amount_cents), func.count(Transfer.id))
        .join(Wallet, endpoint == Wallet.id)
        .where(
            Wallet.wallet_type == wallet_type.value,
            Transfer.timestamp >= start,
            Transfer.timestamp < end,
        )
        .group_by(Transfer.category)
    )
    if category is not None:
        query = query.where(Transfer.category == category)
    return {
        row_category: (int(total), int(count))
        for row_category, total, count in session.execute(query)
    }


def _net_flows(
    session: Session,
    wallet_type: WalletType,
    adding_endpoint,
    subtracting_endpoint,
    start: datetime,
    end: datetime,
    category: str | None,
) -> dict[str | None, CategoryFlow]:
    flows: dict[str | None, CategoryFlow] = {}
    added = _endpoint_totals(session, wallet_type, adding_endpoint, start, end, category)
    for key, (total, count) in added.items():
        flows[key] = CategoryFlow(total=total, count=count)

    subtracted = _endpoint_totals(
        session, wallet_type, subtracting_endpoint, start, end, category
    )
    for key, (total, _) in subtracted.items():
        flows.setdefault(key, CategoryFlow()).total -= total
    return flows


def expense_flows(
    session: Session,
    start: datetime,
    end: datetime,
    category: str | None = None,
) -> dict[str | None, CategoryFlow]:
    """Net expense per category (None key = uncategorized)."""
    return _net_flows(
        session,
        WalletType.EXPENSE,
        Transfer.to_wallet_id,
        Transfer.from_wallet_id,
        start,
        end,
        category,
    )


def income_flows(
    session: Session,
    start: datetime,
    end: datetime,
    category: str | None = None,
) -> dict[str | None, CategoryFlow]:
    """Net income per category (None key = uncategorized)."""
    return _net_flows(
        session,
        WalletType.INCOME,
        Transfer.from_wallet_id,
        Transfer.to_wallet_id,
        start,
        end,
        category,
    )


def total(flows: dict[str | None, CategoryFlow]) -> int:
    return sum(flow.total for flow in flows.values())


def spent_into_expense(
    session: Session, category: str, start: datetime, end: datetime
) -> int:
    """Sum of category transfers whose destination is an expense wallet."""
    totals = _endpoint_totals(
        session, WalletType.EXPENSE, Transfer.to_wallet_id, start, end, category
    )
    return sum(amount for amount, _ in totals.values())
