"""
BudgetService -- budget definitions.

A budget stores a category, a period type and a limit.  Spend is derived by
BudgetSelector; nothing here touches transfers.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from wallet_ledger.domain.calendar import PeriodType
from wallet_ledger.domain.clock import Clock
from wallet_ledger.exceptions import (
    BudgetNotFoundError,
    DuplicateNameError,
    NonPositiveAmountError,
)
from wallet_ledger.logging_config import get_logger
from wallet_ledger.models.budget import Budget
from wallet_ledger.services.base import BaseService

logger = get_logger("services.budget")


class BudgetService(BaseService):
    """Create, look up and delete budget definitions."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session, clock)

    def find_budget(self, name: str) -> Budget | None:
        return self.session.execute(
            select(Budget).where(Budget.name == name)
        ).scalar_one_or_none()

    def get_budget(self, name: str) -> Budget:
        budget = self.find_budget(name)
        if budget is None:
            raise BudgetNotFoundError(name)
        return budget

    def list_budgets(self) -> list[Budget]:
        return list(self.session.execute(select(Budget).order_by(Budget.name)).scalars())

    def create_budget(
        self,
        name: str,
        category: str,
        period_type: str | PeriodType,
        limit_cents: int,
    ) -> Budget:
        """
        Create a budget.

        Raises:
            DuplicateNameError: If the name is taken.
            NonPositiveAmountError: If limit_cents <= 0.
            InvalidPeriodTypeError: If the period type is unknown.
        """
        period = PeriodType.parse(period_type)
        if limit_cents <= 0:
            raise NonPositiveAmountError(limit_cents)
        if self.find_budget(name) is not None:
            raise DuplicateNameError("Budget", name)

        budget = Budget(
            name=name,
            category=category,
            period_type=period.value,
            limit_cents=limit_cents,
            created_at=self.clock.now(),
        )
        self.session.add(budget)
        self.session.flush()

        logger.info(
            "budget_created",
            extra={
                "budget_name": name,
                "category": category,
                "period_type": period.value,
                "limit_cents": limit_cents,
            },
        )
        return budget

    def delete_budget(self, name: str) -> None:
        budget = self.get_budget(name)
        self.session.delete(budget)
        self.session.flush()
        logger.info("budget_deleted", extra={"budget_name": name})
