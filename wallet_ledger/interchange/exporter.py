"""
Exporter -- writes ledger data to CSV and JSON.

CSV exports stream rows through csv.writer; the JSON snapshot holds every
wallet, transfer (in sequence order), budget and schedule, and is the input
format of Importer.import_snapshot_json().

Reads go through LedgerOrchestrator so exports see exactly what the CLI
shows.  Nothing here writes to the database.
"""

import csv
import json
from datetime import datetime
from typing import Any, TextIO

from wallet_ledger import __version__
from wallet_ledger.logging_config import get_logger
from wallet_ledger.services.ledger_orchestrator import LedgerOrchestrator

logger = get_logger("interchange.exporter")

SNAPSHOT_FORMAT_VERSION = 1

TRANSFER_COLUMNS = [
    "id",
    "sequence",
    "timestamp",
    "from_wallet",
    "to_wallet",
    "amount_cents",
    "description",
    "category",
    "tags",
    "reverses",
    "external_ref",
]

BALANCE_COLUMNS = ["wallet", "type", "currency", "balance_cents", "archived"]

BUDGET_COLUMNS = ["name", "category", "period", "limit_cents", "spent_cents", "remaining_cents"]

SCHEDULE_COLUMNS = [
    "name",
    "from_wallet",
    "to_wallet",
    "amount_cents",
    "pattern",
    "start_date",
    "end_date",
    "last_executed_at",
    "description",
    "category",
    "status",
]


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class Exporter:
    """Export ledger data through the orchestrator's read operations."""

    def __init__(self, orchestrator: LedgerOrchestrator):
        self._ledger = orchestrator

    def export_transfers_csv(self, stream: TextIO) -> int:
        writer = csv.writer(stream)
        writer.writerow(TRANSFER_COLUMNS)
        count = 0
        for transfer in self._ledger.list_transfers():
            writer.writerow(
                [
                    str(transfer.id),
                    transfer.sequence,
                    transfer.timestamp.isoformat(),
                    transfer.from_wallet,
                    transfer.to_wallet,
                    transfer.amount_cents,
                    transfer.description or "",
                    transfer.category or "",
                    ";".join(transfer.tags),
                    str(transfer.reverses_id) if transfer.reverses_id else "",
                    transfer.external_ref or "",
                ]
            )
            count += 1
        logger.info("transfers_exported", extra={"format": "csv", "count": count})
        return count

    def export_balances_csv(self, stream: TextIO) -> int:
        writer = csv.writer(stream)
        writer.writerow(BALANCE_COLUMNS)
        rows = self._ledger.wallet_balances(include_archived=True)
        for row in rows:
            writer.writerow(
                [
                    row.name,
                    row.wallet_type.value,
                    row.currency,
                    row.balance,
                    "yes" if row.is_archived else "no",
                ]
            )
        logger.info("balances_exported", extra={"format": "csv", "count": len(rows)})
        return len(rows)

    def export_budgets_csv(self, stream: TextIO) -> int:
        writer = csv.writer(stream)
        writer.writerow(BUDGET_COLUMNS)
        statuses = self._ledger.all_budget_statuses()
        for status in statuses:
            writer.writerow(
                [
                    status.name,
                    status.category,
                    status.period_type,
                    status.limit_cents,
                    status.spent,
                    status.remaining,
                ]
            )
        logger.info("budgets_exported", extra={"format": "csv", "count": len(statuses)})
        return len(statuses)

    def export_schedules_csv(self, stream: TextIO) -> int:
        writer = csv.writer(stream)
        writer.writerow(SCHEDULE_COLUMNS)
        schedules = self._ledger.list_schedules(include_inactive=True)
        for schedule in schedules:
            writer.writerow(
                [
                    schedule.name,
                    schedule.from_wallet.name,
                    schedule.to_wallet.name,
                    schedule.amount_cents,
                    schedule.pattern,
                    _iso(schedule.start_date),
                    _iso(schedule.end_date) or "",
                    _iso(schedule.last_executed_at) or "",
                    schedule.description or "",
                    schedule.category or "",
                    schedule.status,
                ]
            )
        logger.info("schedules_exported", extra={"format": "csv", "count": len(schedules)})
        return len(schedules)

    def build_snapshot(self) -> dict[str, Any]:
        """Full ledger contents as a JSON-serializable dict."""
        wallets = [
            {
                "id": str(wallet.id),
                "name": wallet.name,
                "wallet_type": wallet.type.value,
                "currency": wallet.currency,
                "allow_negative": wallet.allow_negative,
                "description": wallet.description,
                "created_at": _iso(wallet.created_at),
                "archived_at": _iso(wallet.archived_at),
            }
            for wallet in self._ledger.list_wallets(include_archived=True)
        ]
        transfers = [
            {
                "id": str(transfer.id),
                "sequence": transfer.sequence,
                "from_wallet": transfer.from_wallet,
                "to_wallet": transfer.to_wallet,
                "amount_cents": transfer.amount_cents,
                "timestamp": _iso(transfer.timestamp),
                "recorded_at": _iso(transfer.recorded_at),
                "description": transfer.description,
                "category": transfer.category,
                "tags": list(transfer.tags),
                "reverses": str(transfer.reverses_id) if transfer.reverses_id else None,
                "external_ref": transfer.external_ref,
            }
            for transfer in self._ledger.list_transfers()
        ]
        budgets = [
            {
                "name": budget.name,
                "category": budget.category,
                "period_type": budget.period.value,
                "limit_cents": budget.limit_cents,
                "created_at": _iso(budget.created_at),
            }
            for budget in self._ledger.list_budgets()
        ]
        schedules = [
            {
                "name": schedule.name,
                "from_wallet": schedule.from_wallet.name,
                "to_wallet": schedule.to_wallet.name,
                "amount_cents": schedule.amount_cents,
                "pattern": schedule.pattern,
                "start_date": _iso(schedule.start_date),
                "end_date": _iso(schedule.end_date),
                "last_executed_at": _iso(schedule.last_executed_at),
                "description": schedule.description,
                "category": schedule.category,
                "status": schedule.status,
            }
            for schedule in self._ledger.list_schedules(include_inactive=True)
        ]
        return {
            "format_version": SNAPSHOT_FORMAT_VERSION,
            "app_version": __version__,
            "exported_at": _iso(self._ledger.clock.now()),
            "wallets": wallets,
            "transfers": transfers,
            "budgets": budgets,
            "scheduled_transfers": schedules,
        }

    def export_snapshot_json(self, stream: TextIO) -> dict[str, Any]:
        snapshot = self.build_snapshot()
        json.dump(snapshot, stream, indent=2)
        stream.write("\n")
        logger.info(
            "snapshot_exported",
            extra={
                "wallets": len(snapshot["wallets"]),
                "transfers": len(snapshot["transfers"]),
                "budgets": len(snapshot["budgets"]),
                "scheduled_transfers": len(snapshot["scheduled_transfers"]),
            },
        )
        return snapshot
