"""
Module: wallet_ledger.selectors.budget_selector
Responsibility: Derived budget status.  Spend is computed from transfers on
    every call; budgets store no running totals.
"""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from wallet_ledger.domain.calendar import ensure_utc, period_window
from wallet_ledger.models.budget import Budget
from wallet_ledger.selectors.base import BaseSelector
from wallet_ledger.selectors.flows import spent_into_expense


@dataclass(frozen=True)
class BudgetStatus:
    """Spend against a budget for the period containing ``as_of``."""

    name: str
    category: str
    period_type: str
    limit_cents: int
    spent: int
    remaining: int
    period_start: datetime
    period_end: datetime

    @property
    def is_over(self) -> bool:
        return self.remaining < 0

    @property
    def percent_used(self) -> float:
        return self.spent / self.limit_cents * 100.0


class BudgetSelector(BaseSelector):
    """
    Computes budget status.

    spent = sum of transfers with the budget's category whose destination is
    an expense wallet, inside the period window.  Transfers leaving an
    expense wallet are not counted.
    remaining = limit - spent; a negative value means overspend.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def spent(self, category: str, start: datetime, end: datetime) -> int:
        return spent_into_expense(self.session, category, start, end)

    def status(self, budget: Budget, as_of: datetime) -> BudgetStatus:
        start, end = period_window(budget.period, ensure_utc(as_of))
        spent = self.spent(budget.category, start, end)
        return BudgetStatus(
            name=budget.name,
            category=budget.category,
            period_type=budget.period.value,
            limit_cents=budget.limit_cents,
            spent=spent,
            remaining=budget.limit_cents - spent,
            period_start=start,
            period_end=end,
        )

    def all_statuses(self, as_of: datetime) -> list[BudgetStatus]:
        budgets = self.session.execute(select(Budget).order_by(Budget.name)).scalars()
        return [self.status(budget, as_of) for budget in budgets]
