"""
Module: wallet_ledger.selectors.report_selector
Responsibility: Read-only reporting over the transfer log: category
    breakdown, income vs expense, cash flow, net worth and period
    comparison.
Architecture position: Selectors.

All ranges are half-open ``[start, end)`` on the transfer timestamp.
Income and expense follow the endpoint convention in selectors/flows.py,
shared with budget spend.
"""

from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session, aliased

from wallet_ledger.domain.calendar import (
    PeriodType,
    ensure_utc,
    iter_windows,
    period_window,
    previous_window,
)
from wallet_ledger.exceptions import InvalidDateRangeError
from wallet_ledger.models.transfer import Transfer
from wallet_ledger.models.wallet import Wallet, WalletType
from wallet_ledger.selectors.balance_selector import BalanceSelector
from wallet_ledger.selectors.base import BaseSelector
from wallet_ledger.selectors.flows import CategoryFlow, expense_flows, income_flows, total

UNCATEGORIZED = "uncategorized"


@dataclass(frozen=True)
class CategoryRow:
    category: str
    total: int
    count: int
    average: int
    percentage: float


@dataclass
class CategoryReport:
    start: datetime
    end: datetime
    rows: list[CategoryRow] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(row.total for row in self.rows)


@dataclass
class IncomeExpenseReport:
    start: datetime
    end: datetime
    total_income: int
    total_expense: int
    income_by_category: dict[str, int]
    expense_by_category: dict[str, int]

    @property
    def net(self) -> int:
        return self.total_income - self.total_expense


@dataclass(frozen=True)
class CashFlowBucket:
    start: datetime
    end: datetime
    inflow: int
    outflow: int

    @property
    def net(self) -> int:
        return self.inflow - self.outflow


@dataclass
class CashFlowReport:
    start: datetime
    end: datetime
    period: PeriodType
    buckets: list[CashFlowBucket] = field(default_factory=list)

    @property
    def total_inflow(self) -> int:
        return sum(bucket.inflow for bucket in self.buckets)

    @property
    def total_outflow(self) -> int:
        return sum(bucket.outflow for bucket in self.buckets)

    @property
    def net(self) -> int:
        return self.total_inflow - self.total_outflow


@dataclass(frozen=True)
class NetWorthRow:
    name: str
    wallet_type: WalletType
    balance: int


@dataclass
class NetWorthReport:
    """
    Net worth as of a point in time.

    total_liabilities is the outstanding debt, i.e. the negated sum of
    liability balances (liabilities carry negative balances when owed).
    """

    as_of: datetime | None
    total_assets: int
    total_liabilities: int
    assets: list[NetWorthRow] = field(default_factory=list)
    liabilities: list[NetWorthRow] = field(default_factory=list)

    @property
    def net_worth(self) -> int:
        return self.total_assets - self.total_liabilities


@dataclass(frozen=True)
class PeriodSummary:
    start: datetime
    end: datetime
    income: int
    expense: int

    @property
    def net(self) -> int:
        return self.income - self.expense


@dataclass(frozen=True)
class PeriodComparison:
    period: PeriodType
    current: PeriodSummary
    previous: PeriodSummary

    @property
    def change(self) -> int:
        return self.current.net - self.previous.net

    @property
    def change_percentage(self) -> float:
        if self.previous.net == 0:
            return 0.0
        return self.change / abs(self.previous.net) * 100.0


def _by_name(flows: dict[str | None, CategoryFlow]) -> dict[str, int]:
    merged: dict[str, int] = {}
    for category, flow in flows.items():
        key = category or UNCATEGORIZED
        merged[key] = merged.get(key, 0) + flow.total
    return dict(sorted(merged.items(), key=lambda item: (-item[1], item[0])))


class ReportSelector(BaseSelector):
    """Aggregated financial reports."""

    def __init__(self, session: Session, balance_selector: BalanceSelector | None = None):
        super().__init__(session)
        self._balances = balance_selector or BalanceSelector(session)

    @staticmethod
    def _range(start: datetime, end: datetime) -> tuple[datetime, datetime]:
        start, end = ensure_utc(start), ensure_utc(end)
        if end < start:
            raise InvalidDateRangeError(start, end)
        return start, end

    def category_report(self, start: datetime, end: datetime) -> CategoryReport:
        """Expense per category, ordered by total descending."""
        start, end = self._range(start, end)
        merged: dict[str, CategoryFlow] = {}
        for category, flow in expense_flows(self.session, start, end).items():
            row = merged.setdefault(category or UNCATEGORIZED, CategoryFlow())
            row.total += flow.total
            row.count += flow.count

        grand_total = sum(flow.total for flow in merged.values())
        rows = [
            CategoryRow(
                category=category,
                total=flow.total,
                count=flow.count,
                average=flow.total // flow.count if flow.count else 0,
                percentage=(flow.total / grand_total * 100.0) if grand_total else 0.0,
            )
            for category, flow in merged.items()
        ]
        rows.sort(key=lambda row: (-row.total, row.category))
        return CategoryReport(start=start, end=end, rows=rows)

    def income_expense_report(self, start: datetime, end: datetime) -> IncomeExpenseReport:
        start, end = self._range(start, end)
        income = income_flows(self.session, start, end)
        expense = expense_flows(self.session, start, end)
        return IncomeExpenseReport(
            start=start,
            end=end,
            total_income=total(income),
            total_expense=total(expense),
            income_by_category=_by_name(income),
            expense_by_category=_by_name(expense),
        )

    def _asset_flow(self, start: datetime, end: datetime, inbound: bool) -> int:
        asset = aliased(Wallet)
        other = aliased(Wallet)
        asset_end, other_end = (
            (Transfer.to_wallet_id, Transfer.from_wallet_id)
            if inbound
            else (Transfer.from_wallet_id, Transfer.to_wallet_id)
        )
        query = (
            select(func.coalesce(func.sum(Transfer.amount_cents), 0))
            .join(asset, asset_end == asset.id)
            .join(other, other_end == other.id)
            .where(
                asset.wallet_type == WalletType.ASSET.value,
                other.wallet_type != WalletType.ASSET.value,
                Transfer.timestamp >= start,
                Transfer.timestamp < end,
            )
        )
        return int(self.session.execute(query).scalar_one())

    def cash_flow_report(
        self,
        start: datetime,
        end: datetime,
        period: str | PeriodType = PeriodType.MONTHLY,
    ) -> CashFlowReport:
        """
        Money entering and leaving asset wallets, bucketed by period.

        Moves between two asset wallets are neutral.
        """
        start, end = self._range(start, end)
        period = PeriodType.parse(period)
        report = CashFlowReport(start=start, end=end, period=period)
        for bucket_start, bucket_end in iter_windows(period, start, end):
            report.buckets.append(
                CashFlowBucket(
                    start=bucket_start,
                    end=bucket_end,
                    inflow=self._asset_flow(bucket_start, bucket_end, inbound=True),
                    outflow=self._asset_flow(bucket_start, bucket_end, inbound=False),
                )
            )
        return report

    def net_worth_report(self, as_of: datetime | None = None) -> NetWorthReport:
        as_of = ensure_utc(as_of) if as_of is not None else None
        assets: list[NetWorthRow] = []
        liabilities: list[NetWorthRow] = []
        for row in self._balances.wallet_balances(as_of_timestamp=as_of):
            if row.wallet_type is WalletType.ASSET:
                assets.append(NetWorthRow(row.name, row.wallet_type, row.balance))
            elif row.wallet_type is WalletType.LIABILITY:
                liabilities.append(NetWorthRow(row.name, row.wallet_type, row.balance))

        return NetWorthReport(
            as_of=as_of,
            total_assets=sum(row.balance for row in assets),
            total_liabilities=-sum(row.balance for row in liabilities),
            assets=assets,
            liabilities=liabilities,
        )

    def _summary(self, start: datetime, end: datetime) -> PeriodSummary:
        return PeriodSummary(
            start=start,
            end=end,
            income=total(income_flows(self.session, start, end)),
            expense=total(expense_flows(self.session, start, end)),
        )

    def period_comparison(
        self,
        period: str | PeriodType,
        as_of: datetime,
    ) -> PeriodComparison:
        """Compare the window containing ``as_of`` with the one before it."""
        period = PeriodType.parse(period)
        current_start, current_end = period_window(period, ensure_utc(as_of))
        previous_start, previous_end = previous_window(period, current_start)
        return PeriodComparison(
            period=period,
            current=self._summary(current_start, current_end),
            previous=self._summary(previous_start, previous_end),
        )
