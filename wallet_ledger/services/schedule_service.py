"""
ScheduleService -- scheduled transfer definitions and their state machine.

Responsibility:
    Creates, lists, pauses, resumes and deletes recurring transfer
    definitions.  Materialization is SchedulerService's job.

Invariants enforced:
    - Definitions are validated like transfers at creation (wallets exist,
      differ, are not archived and share a currency; amount > 0) so that a
      schedule cannot be created that could never run.
    - end_date >= start_date.
    - Status transitions follow ALLOWED_TRANSITIONS; anything else raises
      InvalidScheduleTransitionError.
    - Deleting a definition never touches transfers it already produced.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from wallet_ledger.domain.calendar import ensure_utc
from wallet_ledger.domain.clock import Clock
from wallet_ledger.domain.recurrence import (
    ALLOWED_TRANSITIONS,
    RecurrencePattern,
    ScheduleStatus,
)
from wallet_ledger.exceptions import (
    ArchivedWalletError,
    CurrencyMismatchError,
    DuplicateNameError,
    InvalidDateRangeError,
    InvalidScheduleTransitionError,
    NonPositiveAmountError,
    SameWalletError,
    ScheduleNotFoundError,
)
from wallet_ledger.logging_config import get_logger
from wallet_ledger.models.scheduled_transfer import ScheduledTransfer
from wallet_ledger.services.base import BaseService
from wallet_ledger.services.wallet_service import WalletService

logger = get_logger("services.schedule")


class ScheduleService(BaseService):
    """Definition management for scheduled transfers."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        wallet_service: WalletService | None = None,
    ):
        super().__init__(session, clock)
        self._wallets = wallet_service or WalletService(session, self.clock)

    def find_schedule(self, name: str) -> ScheduledTransfer | None:
        return self.session.execute(
            select(ScheduledTransfer).where(ScheduledTransfer.name == name)
        ).scalar_one_or_none()

    def get_schedule(self, name: str) -> ScheduledTransfer:
        schedule = self.find_schedule(name)
        if schedule is None:
            raise ScheduleNotFoundError(name)
        return schedule

    def list_schedules(self, include_inactive: bool = False) -> list[ScheduledTransfer]:
        query = select(ScheduledTransfer).order_by(ScheduledTransfer.name)
        if not include_inactive:
            query = query.where(ScheduledTransfer.status == ScheduleStatus.ACTIVE.value)
        return list(self.session.execute(query).scalars())

    def create_schedule(
        self,
        name: str,
        from_wallet: str,
        to_wallet: str,
        amount_cents: int,
        pattern: str | RecurrencePattern,
        start_date: datetime,
        end_date: datetime | None = None,
        description: str | None = None,
        category: str | None = None,
    ) -> ScheduledTransfer:
        """
        Create an active scheduled transfer.

        Raises:
            DuplicateNameError, WalletNotFoundError, SameWalletError,
            NonPositiveAmountError, ArchivedWalletError,
            CurrencyMismatchError, InvalidRecurrencePatternError,
            InvalidDateRangeError.
        """
        parsed_pattern = RecurrencePattern.parse(pattern)
        if amount_cents <= 0:
            raise NonPositiveAmountError(amount_cents)
        if self.find_schedule(name) is not None:
            raise DuplicateNameError("Scheduled transfer", name)

        source = self._wallets.get_wallet(from_wallet)
        destination = self._wallets.get_wallet(to_wallet)
        if source.id == destination.id:
            raise SameWalletError(source.name)
        for wallet in (source, destination):
            if wallet.is_archived:
                raise ArchivedWalletError(wallet.name)
        if source.currency != destination.currency:
            raise CurrencyMismatchError(source.currency, destination.currency)

        start = ensure_utc(start_date)
        end = ensure_utc(end_date) if end_date is not None else None
        if end is not None and end < start:
            raise InvalidDateRangeError(start, end)

        schedule = ScheduledTransfer(
            name=name,
            from_wallet_id=source.id,
            to_wallet_id=destination.id,
            amount_cents=amount_cents,
            pattern=parsed_pattern.value,
            start_date=start,
            end_date=end,
            last_executed_at=None,
            description=description,
            category=category,
            status=ScheduleStatus.ACTIVE.value,
            created_at=self.clock.now(),
        )
        self.session.add(schedule)
        self.session.flush()

        logger.info(
            "schedule_created",
            extra={
                "schedule_id": str(schedule.id),
                "schedule_name": name,
                "pattern": parsed_pattern.value,
                "amount_cents": amount_cents,
                "start_date": start,
                "end_date": end,
            },
        )
        return schedule

    def transition(
        self, schedule: ScheduledTransfer, target: ScheduleStatus
    ) -> ScheduledTransfer:
        """
        Move a schedule to ``target``.

        Raises:
            InvalidScheduleTransitionError: If the move is not allowed.
        """
        current = schedule.current_status
        if (current, target) not in ALLOWED_TRANSITIONS:
            raise InvalidScheduleTransitionError(schedule.name, current.value, target.value)

        schedule.status = target.value
        self.session.flush()

        logger.info(
            "schedule_status_changed",
            extra={
                "schedule_name": schedule.name,
                "from_status": current.value,
                "to_status": target.value,
            },
        )
        return schedule

    def pause_schedule(self, name: str) -> ScheduledTransfer:
        return self.transition(self.get_schedule(name), ScheduleStatus.PAUSED)

    def resume_schedule(self, name: str) -> ScheduledTransfer:
        return self.transition(self.get_schedule(name), ScheduleStatus.ACTIVE)

    def delete_schedule(self, name: str) -> None:
        """Delete the definition; transfers it produced stay in the ledger."""
        schedule = self.get_schedule(name)
        self.session.delete(schedule)
        self.session.flush()
        logger.info("schedule_deleted", extra={"schedule_name": name})

    def restore_state(
        self,
        name: str,
        last_executed_at: datetime | None,
        status: str | ScheduleStatus,
    ) -> ScheduledTransfer:
        """
        Restore the cursor and status of an imported definition.

        Only moves forward from a freshly created (never executed, active)
        schedule, so the transfers it already produced are not materialized
        again.
        """
        schedule = self.get_schedule(name)
        target = ScheduleStatus(status)
        if last_executed_at is not None:
            cursor = ensure_utc(last_executed_at)
            if schedule.last_executed_at is None or cursor > schedule.last_executed_at:
                schedule.last_executed_at = cursor
        self.session.flush()
        if target is not schedule.current_status:
            self.transition(schedule, target)
        return schedule
