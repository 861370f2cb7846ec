"""
Module: wallet_ledger.models.budget
Responsibility: ORM persistence for budget definitions.
Architecture position: Models.  May import from db/base.py only.

A budget stores only its definition.  Spend is never stored; BudgetSelector
derives it from transfers on every query.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from wallet_ledger.db.base import EntityBase
from wallet_ledger.domain.calendar import PeriodType


class Budget(EntityBase):
    """Spending limit for one category over a recurring period."""

    __tablename__ = "budgets"

    __table_args__ = (
        UniqueConstraint("name", name="uq_budget_name"),
        CheckConstraint("limit_cents > 0", name="ck_budget_limit_positive"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category: Mapped[str] = mapped_column(String(100), nullable=False)

    period_type: Mapped[PeriodType] = mapped_column(String(20), nullable=False)

    limit_cents: Mapped[int] = mapped_column(nullable=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Budget {self.name}: {self.category} {self.period_type}>"

    @property
    def period(self) -> PeriodType:
        return PeriodType(self.period_type)
