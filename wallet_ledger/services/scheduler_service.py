"""
SchedulerService -- materializes due scheduled occurrences into transfers.

Responsibility:
    Turns every due occurrence of every active schedule into a real
    transfer dated at the occurrence, advances the schedule's cursor and
    completes schedules whose end date has passed.

Architecture position:
    Services.  Invoked by LedgerOrchestrator.run_due_schedules() at the
    start of every CLI command (except ``init``) and by ``scheduled
    execute`` / ``scheduled run``.  The due-occurrence math is the pure
    RecurrenceRule in domain/recurrence.py, shared with the forecaster.

Invariants enforced:
    - Idempotency: running execute_due() twice at the same ``now`` creates
      nothing the second time, because the cursor only advances in the same
      savepoint as the transfer it covers.
    - Isolation: each occurrence runs in its own SAVEPOINT.  A validation
      failure rolls back that occurrence only, halts that schedule for this
      run (cursor not advanced past it, status stays active) and is
      reported; other schedules continue.  The failed occurrence is retried
      on the next run.
    - Integrity errors are NOT caught; they abort the whole run.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from wallet_ledger.domain.calendar import ensure_utc
from wallet_ledger.domain.clock import Clock
from wallet_ledger.domain.recurrence import ScheduleStatus
from wallet_ledger.exceptions import (
    ScheduleCompletedError,
    ScheduleNotDueError,
    ValidationError,
)
from wallet_ledger.logging_config import LogContext, get_logger
from wallet_ledger.models.scheduled_transfer import ScheduledTransfer
from wallet_ledger.models.transfer import Transfer
from wallet_ledger.services.base import BaseService
from wallet_ledger.services.schedule_service import ScheduleService
from wallet_ledger.services.transfer_service import TransferService

logger = get_logger("services.scheduler")


@dataclass(frozen=True)
class PendingOccurrence:
    """An occurrence that is due (or was materialized) for a schedule."""

    schedule_name: str
    occurrence: datetime
    from_wallet: str
    to_wallet: str
    amount_cents: int


@dataclass(frozen=True)
class MaterializedOccurrence:
    schedule_name: str
    occurrence: datetime
    transfer_id: UUID
    sequence: int
    amount_cents: int


@dataclass(frozen=True)
class ScheduleFailure:
    """A due occurrence that could not be materialized in this run."""

    schedule_name: str
    occurrence: datetime
    error: ValidationError

    @property
    def code(self) -> str:
        return self.error.code


@dataclass
class SchedulerRunResult:
    """Outcome of one execute_due() run."""

    now: datetime
    materialized: list[MaterializedOccurrence] = field(default_factory=list)
    failures: list[ScheduleFailure] = field(default_factory=list)
    completed: list[str] = field(default_factory=list)

    @property
    def transfer_count(self) -> int:
        return len(self.materialized)

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


class SchedulerService(BaseService):
    """
    Executes scheduled transfers.

    Non-goals:
        - Does NOT commit.  Savepoints are released into the caller's
          transaction; the orchestrator commits the whole run.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        transfer_service: TransferService | None = None,
        schedule_service: ScheduleService | None = None,
    ):
        super().__init__(session, clock)
        self._transfers = transfer_service or TransferService(session, self.clock)
        self._schedules = schedule_service or ScheduleService(session, self.clock)

    def _active_schedules(self) -> list[ScheduledTransfer]:
        return list(
            self.session.execute(
                select(ScheduledTransfer)
                .where(ScheduledTransfer.status == ScheduleStatus.ACTIVE.value)
                .order_by(ScheduledTransfer.name)
            ).scalars()
        )

    # =========================================================================
    # Bulk execution
    # =========================================================================

    def preview_due(self, now: datetime | None = None) -> list[PendingOccurrence]:
        """Pending occurrences execute_due() would materialize.  Writes nothing."""
        now = ensure_utc(now) if now is not None else self.clock.now()
        pending = []
        for schedule in self._active_schedules():
            for occurrence in schedule.rule.pending(schedule.last_executed_at, now):
                pending.append(
                    PendingOccurrence(
                        schedule_name=schedule.name,
                        occurrence=occurrence,
                        from_wallet=schedule.from_wallet.name,
                        to_wallet=schedule.to_wallet.name,
                        amount_cents=schedule.amount_cents,
                    )
                )
        pending.sort(key=lambda item: (item.occurrence, item.schedule_name))
        return pending

    def execute_due(self, now: datetime | None = None) -> SchedulerRunResult:
        """
        Materialize every due occurrence of every active schedule.

        Args:
            now: Evaluation time; defaults to the injected clock.

        Returns:
            SchedulerRunResult with materialized occurrences, failures and
            the names of schedules that completed.
        """
        now = ensure_utc(now) if now is not None else self.clock.now()
        result = SchedulerRunResult(now=now)

        for schedule in self._active_schedules():
            with LogContext.bind(schedule_id=str(schedule.id)):
                self._execute_schedule(schedule, now, result)

        if result.materialized or result.failures or result.completed:
            logger.info(
                "scheduler_run_completed",
                extra={
                    "now": now,
                    "materialized": len(result.materialized),
                    "failures": len(result.failures),
                    "completed": result.completed,
                },
            )
        return result

    def _execute_schedule(
        self,
        schedule: ScheduledTransfer,
        now: datetime,
        result: SchedulerRunResult,
    ) -> None:
        rule = schedule.rule
        for occurrence in rule.pending(schedule.last_executed_at, now):
            try:
                with self.session.begin_nested():
                    transfer = self._materialize(schedule, occurrence, enforce_balance=True)
                    schedule.last_executed_at = occurrence
                    self.session.flush()
            except ValidationError as exc:
                logger.warning(
                    "scheduled_occurrence_failed",
                    extra={
                        "schedule_name": schedule.name,
                        "occurrence": occurrence,
                        "error_code": exc.code,
                        "error": str(exc),
                    },
                )
                result.failures.append(
                    ScheduleFailure(
                        schedule_name=schedule.name,
                        occurrence=occurrence,
                        error=exc,
                    )
                )
                return

            result.materialized.append(
                MaterializedOccurrence(
                    schedule_name=schedule.name,
                    occurrence=occurrence,
                    transfer_id=transfer.id,
                    sequence=transfer.sequence,
                    amount_cents=transfer.amount_cents,
                )
            )

        if rule.is_exhausted(schedule.last_executed_at):
            self._schedules.transition(schedule, ScheduleStatus.COMPLETED)
            result.completed.append(schedule.name)

    def _materialize(
        self,
        schedule: ScheduledTransfer,
        occurrence: datetime,
        enforce_balance: bool,
    ) -> Transfer:
        transfer = self._transfers.record(
            schedule.from_wallet,
            schedule.to_wallet,
            schedule.amount_cents,
            timestamp=occurrence,
            description=schedule.description or f"Scheduled: {schedule.name}",
            category=schedule.category,
            enforce_balance=enforce_balance,
        )
        logger.info(
            "scheduled_occurrence_materialized",
            extra={
                "schedule_name": schedule.name,
                "occurrence": occurrence,
                "sequence": transfer.sequence,
            },
        )
        return transfer

    # =========================================================================
    # Single execution
    # =========================================================================

    def run_schedule(
        self,
        name: str,
        execution_date: datetime | None = None,
        force: bool = False,
    ) -> Transfer:
        """
        Execute one occurrence of one schedule on demand.

        Without ``execution_date`` the next due occurrence is used; with
        ``force`` a schedule that is not due (or paused) runs at now and the
        negative-balance check is skipped.

        Raises:
            ScheduleNotFoundError: Unknown schedule.
            ScheduleCompletedError: The schedule has completed.
            ScheduleNotDueError: Paused, or nothing due, and not forced.
        """
        schedule = self._schedules.get_schedule(name)
        now = self.clock.now()
        rule = schedule.rule
        next_due = rule.first_candidate(schedule.last_executed_at)

        if schedule.current_status is ScheduleStatus.COMPLETED:
            raise ScheduleCompletedError(name)
        if schedule.current_status is ScheduleStatus.PAUSED and not force:
            raise ScheduleNotDueError(name, next_due)

        if execution_date is not None:
            exec_date = ensure_utc(execution_date)
        elif force:
            exec_date = now
        else:
            if next_due > now or rule.past_end(next_due):
                raise ScheduleNotDueError(name, next_due)
            exec_date = next_due

        with LogContext.bind(schedule_id=str(schedule.id)):
            transfer = self._materialize(schedule, exec_date, enforce_balance=not force)

            if schedule.last_executed_at is None or exec_date > schedule.last_executed_at:
                schedule.last_executed_at = exec_date
                self.session.flush()

            if (
                schedule.current_status is ScheduleStatus.ACTIVE
                and rule.is_exhausted(schedule.last_executed_at)
            ):
                self._schedules.transition(schedule, ScheduleStatus.COMPLETED)

        return transfer
