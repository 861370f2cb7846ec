"""
LedgerOrchestrator -- the single entry point that owns transaction boundaries.

The orchestrator ties together:
- WalletService / TransferService / ReversalService: the write side
- BudgetService / ScheduleService / SchedulerService: definitions and
  materialization
- Balance / Transfer / Budget / Forecast / Report selectors: the read side

Every state-changing operation runs in its own savepoint and, with
``auto_commit=True`` (the default), commits on success and rolls back on
failure.  With ``auto_commit=False`` the caller controls the outer
transaction; a failed operation still rolls back its own savepoint so the
session stays usable.

The scheduler pre-step is explicit: callers (the CLI) invoke
run_due_schedules() before doing anything else.
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator
from uuid import UUID

from sqlalchemy.orm import Session

from wallet_ledger.domain.calendar import PeriodType
from wallet_ledger.domain.clock import Clock, SystemClock
from wallet_ledger.logging_config import get_logger
from wallet_ledger.models.budget import Budget
from wallet_ledger.models.scheduled_transfer import ScheduledTransfer
from wallet_ledger.models.wallet import Wallet, WalletType
from wallet_ledger.selectors.balance_selector import (
    BalanceSelector,
    IntegrityReport,
    WalletBalance,
)
from wallet_ledger.selectors.budget_selector import BudgetSelector, BudgetStatus
from wallet_ledger.selectors.forecast_selector import ForecastResult, ForecastSelector
from wallet_ledger.selectors.report_selector import (
    CashFlowReport,
    CategoryReport,
    IncomeExpenseReport,
    NetWorthReport,
    PeriodComparison,
    ReportSelector,
)
from wallet_ledger.selectors.transfer_selector import (
    TransferInfo,
    TransferRecord,
    TransferSelector,
)
from wallet_ledger.services.budget_service import BudgetService
from wallet_ledger.services.reversal_service import ReversalResult, ReversalService
from wallet_ledger.services.schedule_service import ScheduleService
from wallet_ledger.services.scheduler_service import (
    PendingOccurrence,
    SchedulerRunResult,
    SchedulerService,
)
from wallet_ledger.services.sequence_service import SequenceService
from wallet_ledger.services.transfer_service import TransferService
from wallet_ledger.services.wallet_service import WalletService

logger = get_logger("services.ledger_orchestrator")


class LedgerOrchestrator:
    """
    Facade over every ledger operation.

    Services are wired once with the shared session and clock so that, for
    example, the scheduler and manual transfers share the same
    TransferService and therefore the same validation.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        auto_commit: bool = True,
        default_currency: str = "EUR",
    ):
        """
        Args:
            session: SQLAlchemy session.
            clock: Time source; defaults to SystemClock.
            auto_commit: If True (default), commit on success and roll back
                on failure.  If False, the caller manages the transaction.
            default_currency: Currency for wallets created without one.
        """
        self._session = session
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

        self.balances = BalanceSelector(session)
        self.transfers = TransferSelector(session)
        self.budget_selector = BudgetSelector(session)
        self.forecasts = ForecastSelector(session, self.balances)
        self.reports = ReportSelector(session, self.balances)

        self.sequences = SequenceService(session)
        self.wallets = WalletService(session, self._clock, default_currency)
        self.transfer_service = TransferService(
            session,
            self._clock,
            wallet_service=self.wallets,
            balance_selector=self.balances,
            sequence_service=self.sequences,
        )
        self.reversals = ReversalService(
            session,
            self._clock,
            transfer_service=self.transfer_service,
            transfer_selector=self.transfers,
        )
        self.budgets = BudgetService(session, self._clock)
        self.schedules = ScheduleService(session, self._clock, wallet_service=self.wallets)
        self.scheduler = SchedulerService(
            session,
            self._clock,
            transfer_service=self.transfer_service,
            schedule_service=self.schedules,
        )

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def session(self) -> Session:
        return self._session

    @contextmanager
    def _transaction(self, operation: str) -> Iterator[None]:
        try:
            with self._session.begin_nested():
                yield
        except Exception:
            if self._auto_commit:
                self._session.rollback()
            logger.info("operation_rolled_back", extra={"operation": operation})
            raise
        else:
            if self._auto_commit:
                self._session.commit()

    # =========================================================================
    # Scheduler pre-step
    # =========================================================================

    def run_due_schedules(self, now: datetime | None = None) -> SchedulerRunResult:
        """Materialize every due scheduled occurrence.  Call before any command."""
        with self._transaction("run_due_schedules"):
            return self.scheduler.execute_due(now)

    def preview_due_schedules(self, now: datetime | None = None) -> list[PendingOccurrence]:
        return self.scheduler.preview_due(now)

    def run_schedule(
        self,
        name: str,
        execution_date: datetime | None = None,
        force: bool = False,
    ) -> TransferRecord:
        with self._transaction("run_schedule"):
            transfer = self.scheduler.run_schedule(name, execution_date, force)
            return TransferRecord.from_model(transfer)

    # =========================================================================
    # Wallets
    # =========================================================================

    def create_wallet(
        self,
        name: str,
        wallet_type: str | WalletType,
        currency: str | None = None,
        description: str | None = None,
        allow_negative: bool | None = None,
    ) -> Wallet:
        with self._transaction("create_wallet"):
            return self.wallets.create_wallet(
                name, wallet_type, currency, description, allow_negative
            )

    def archive_wallet(self, name: str) -> Wallet:
        with self._transaction("archive_wallet"):
            return self.wallets.archive_wallet(name)

    def set_allow_negative(self, name: str, allow_negative: bool) -> Wallet:
        with self._transaction("set_allow_negative"):
            return self.wallets.set_allow_negative(name, allow_negative)

    def get_wallet(self, name: str) -> Wallet:
        return self.wallets.get_wallet(name)

    def list_wallets(self, include_archived: bool = False) -> list[Wallet]:
        return self.wallets.list_wallets(include_archived)

    # =========================================================================
    # Transfers
    # =========================================================================

    def record_transfer(
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
    ) -> TransferRecord:
        with self._transaction("record_transfer"):
            transfer = self.transfer_service.create_transfer(
                from_wallet,
                to_wallet,
                amount_cents,
                timestamp=timestamp,
                description=description,
                category=category,
                tags=tags,
                external_ref=external_ref,
                force=force,
            )
            return TransferRecord.from_model(transfer)

    def reverse_transfer(
        self,
        transfer_id: UUID,
        amount_cents: int | None = None,
        timestamp: datetime | None = None,
        description: str | None = None,
        category: str | None = None,
    ) -> ReversalResult:
        with self._transaction("reverse_transfer"):
            return self.reversals.reverse(
                transfer_id,
                amount_cents=amount_cents,
                timestamp=timestamp,
                description=description,
                category=category,
            )

    def get_transfer(self, transfer_id: UUID) -> TransferRecord:
        return self.transfers.get_record(transfer_id)

    def transfer_info(self, transfer_id: UUID) -> TransferInfo:
        return self.transfers.transfer_info(transfer_id)

    def list_transfers(
        self,
        wallet: str | None = None,
        category: str | None = None,
        from_date: datetime | None = None,
        to_date: datetime | None = None,
        limit: int | None = None,
    ) -> list[TransferRecord]:
        wallet_id = self.wallets.get_wallet(wallet).id if wallet else None
        return self.transfers.list_transfers(
            wallet_id=wallet_id,
            category=category,
            from_date=from_date,
            to_date=to_date,
            limit=limit,
        )

    # =========================================================================
    # Balances and integrity
    # =========================================================================

    def balance(
        self,
        wallet: str,
        as_of_sequence: int | None = None,
        as_of_timestamp: datetime | None = None,
    ) -> int:
        wallet_id = self.wallets.get_wallet(wallet).id
        return self.balances.balance(wallet_id, as_of_sequence, as_of_timestamp)

    def wallet_balances(
        self,
        as_of_timestamp: datetime | None = None,
        include_archived: bool = False,
    ) -> list[WalletBalance]:
        return self.balances.wallet_balances(as_of_timestamp, include_archived)

    def check_integrity(self) -> IntegrityReport:
        return self.balances.check_integrity()

    def assert_integrity(self) -> IntegrityReport:
        return self.balances.assert_integrity()

    # =========================================================================
    # Budgets
    # =========================================================================

    def create_budget(
        self,
        name: str,
        category: str,
        period_type: str | PeriodType,
        limit_cents: int,
    ) -> Budget:
        with self._transaction("create_budget"):
            return self.budgets.create_budget(name, category, period_type, limit_cents)

    def delete_budget(self, name: str) -> None:
        with self._transaction("delete_budget"):
            self.budgets.delete_budget(name)

    def list_budgets(self) -> list[Budget]:
        return self.budgets.list_budgets()

    def budget_status(self, name: str, as_of: datetime | None = None) -> BudgetStatus:
        budget = self.budgets.get_budget(name)
        return self.budget_selector.status(budget, as_of or self._clock.now())

    def all_budget_statuses(self, as_of: datetime | None = None) -> list[BudgetStatus]:
        return self.budget_selector.all_statuses(as_of or self._clock.now())

    # =========================================================================
    # Schedules
    # =========================================================================

    def create_schedule(
        self,
        name: str,
        from_wallet: str,
        to_wallet: str,
        amount_cents: int,
        pattern: str,
        start_date: datetime,
        end_date: datetime | None = None,
        description: str | None = None,
        category: str | None = None,
    ) -> ScheduledTransfer:
        with self._transaction("create_schedule"):
            return self.schedules.create_schedule(
                name,
                from_wallet,
                to_wallet,
                amount_cents,
                pattern,
                start_date,
                end_date=end_date,
                description=description,
                category=category,
            )

    def get_schedule(self, name: str) -> ScheduledTransfer:
        return self.schedules.get_schedule(name)

    def list_schedules(self, include_inactive: bool = False) -> list[ScheduledTransfer]:
        return self.schedules.list_schedules(include_inactive)

    def pause_schedule(self, name: str) -> ScheduledTransfer:
        with self._transaction("pause_schedule"):
            return self.schedules.pause_schedule(name)

    def resume_schedule(self, name: str) -> ScheduledTransfer:
        with self._transaction("resume_schedule"):
            return self.schedules.resume_schedule(name)

    def delete_schedule(self, name: str) -> None:
        with self._transaction("delete_schedule"):
            self.schedules.delete_schedule(name)

    # =========================================================================
    # Forecasts and reports
    # =========================================================================

    def forecast(self, months: int, wallet_names: list[str] | None = None) -> ForecastResult:
        return self.forecasts.forecast(months, self._clock.now(), wallet_names)

    def category_report(self, start: datetime, end: datetime) -> CategoryReport:
        return self.reports.category_report(start, end)

    def income_expense_report(self, start: datetime, end: datetime) -> IncomeExpenseReport:
        return self.reports.income_expense_report(start, end)

    def cash_flow_report(
        self,
        start: datetime,
        end: datetime,
        period: str | PeriodType = PeriodType.MONTHLY,
    ) -> CashFlowReport:
        return self.reports.cash_flow_report(start, end, period)

    def net_worth_report(self, as_of: datetime | None = None) -> NetWorthReport:
        return self.reports.net_worth_report(as_of)

    def period_comparison(
        self,
        period: str | PeriodType,
        as_of: datetime | None = None,
    ) -> PeriodComparison:
        return self.reports.period_comparison(period, as_of or self._clock.now())

    def restore_schedule_state(
        self,
        name: str,
        last_executed_at: datetime | None,
        status: str,
    ) -> ScheduledTransfer:
        with self._transaction("restore_schedule_state"):
            return self.schedules.restore_state(name, last_executed_at, status)

    def find_transfer_by_external_ref(self, external_ref: str) -> TransferRecord | None:
        return self.transfers.find_by_external_ref(external_ref)
