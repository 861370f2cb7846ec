"""
Module: wallet_ledger.selectors.forecast_selector
Responsibility: Projects future wallet balances by simulating active
    schedules on top of the current derived balances.
Architecture position: Selectors.  Read-only: the simulation runs entirely
    in memory and never writes a transfer or moves a schedule cursor.

The simulation uses RecurrenceRule.pending(), the same function the
scheduler uses to materialize occurrences, so a forecast shows exactly the
transfers the scheduler would create if nothing else changed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from wallet_ledger.domain.calendar import add_months, ensure_utc
from wallet_ledger.domain.recurrence import ScheduleStatus
from wallet_ledger.exceptions import WalletNotFoundError
from wallet_ledger.models.scheduled_transfer import ScheduledTransfer
from wallet_ledger.models.wallet import Wallet
from wallet_ledger.selectors.balance_selector import BalanceSelector
from wallet_ledger.selectors.base import BaseSelector


@dataclass(frozen=True)
class ForecastEvent:
    """One simulated occurrence of a schedule."""

    date: datetime
    schedule_name: str
    from_wallet: str
    to_wallet: str
    amount_cents: int


@dataclass(frozen=True)
class ForecastPoint:
    """Projected balances at the end of a monthly bucket."""

    date: datetime
    balances: dict[str, int]


@dataclass
class ForecastResult:
    start_date: datetime
    end_date: datetime
    starting_balances: dict[str, int]
    events: list[ForecastEvent] = field(default_factory=list)
    points: list[ForecastPoint] = field(default_factory=list)

    @property
    def final_balances(self) -> dict[str, int]:
        if not self.points:
            return dict(self.starting_balances)
        return dict(self.points[-1].balances)


class ForecastSelector(BaseSelector):
    """Balance projection over active schedules."""

    def __init__(self, session: Session, balance_selector: BalanceSelector | None = None):
        super().__init__(session)
        self._balances = balance_selector or BalanceSelector(session)

    def forecast(
        self,
        months: int,
        now: datetime,
        wallet_names: list[str] | None = None,
    ) -> ForecastResult:
        """
        Project balances ``months`` months ahead of ``now``.

        Every pending occurrence of every active schedule up to
        ``now + months`` is applied in date order (end dates honoured).
        One point is produced per bucket ``now + i months`` for
        i = 0..months, holding the balances after all events dated on or
        before it.

        Args:
            wallet_names: Restrict the reported balances to these wallets.
                Defaults to every non-archived wallet.

        Raises:
            ValueError: If months is negative.
            WalletNotFoundError: If a requested wallet does not exist.
        """
        if months < 0:
            raise ValueError(f"months must be >= 0, got {months}")

        now = ensure_utc(now)
        end = add_months(now, months)

        wallets = self._select_wallets(wallet_names)
        current = self._balances.all_balances(as_of_timestamp=now)
        ids_by_name: dict[str, UUID] = {wallet.name: wallet.id for wallet in wallets}
        running: dict[UUID, int] = dict(current)

        events = self._simulate(end)

        def snapshot() -> dict[str, int]:
            return {name: running.get(wallet_id, 0) for name, wallet_id in ids_by_name.items()}

        result = ForecastResult(start_date=now, end_date=end, starting_balances=snapshot())

        pending = iter(events)
        upcoming = next(pending, None)
        for i in range(months + 1):
            bucket = add_months(now, i)
            while upcoming is not None and upcoming[0].date <= bucket:
                event, from_id, to_id = upcoming
                running[from_id] = running.get(from_id, 0) - event.amount_cents
                running[to_id] = running.get(to_id, 0) + event.amount_cents
                upcoming = next(pending, None)
            result.points.append(ForecastPoint(date=bucket, balances=snapshot()))

        result.events = [event for event, _, _ in events]
        return result

    def _select_wallets(self, wallet_names: list[str] | None) -> list[Wallet]:
        if not wallet_names:
            return list(
                self.session.execute(
                    select(Wallet).where(Wallet.archived_at.is_(None)).order_by(Wallet.name)
                ).scalars()
            )

        wallets = []
        for name in wallet_names:
            wallet = self.session.execute(
                select(Wallet).where(Wallet.name == name)
            ).scalar_one_or_none()
            if wallet is None:
                raise WalletNotFoundError(name)
            wallets.append(wallet)
        return wallets

    def _simulate(
        self, end: datetime
    ) -> list[tuple[ForecastEvent, UUID, UUID]]:
        schedules = self.session.execute(
            select(ScheduledTransfer).where(
                ScheduledTransfer.status == ScheduleStatus.ACTIVE.value
            )
        ).scalars()

        events = []
        for schedule in schedules:
            for occurrence in schedule.rule.pending(schedule.last_executed_at, end):
                event = ForecastEvent(
                    date=occurrence,
                    schedule_name=schedule.name,
                    from_wallet=schedule.from_wallet.name,
                    to_wallet=schedule.to_wallet.name,
                    amount_cents=schedule.amount_cents,
                )
                events.append((event, schedule.from_wallet_id, schedule.to_wallet_id))

        events.sort(key=lambda item: (item[0].date, item[0].schedule_name))
        return events
