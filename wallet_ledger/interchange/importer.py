"""
Importer -- loads transfers from CSV and a full ledger from a JSON snapshot.

Every row goes through the orchestrator's public operations
(create_wallet, record_transfer, reverse_transfer, create_budget,
create_schedule), so imported data is validated exactly like data entered
through the CLI.  Nothing is written to the tables directly.

Reversal links are re-pointed: when a row names the id of a transfer
imported earlier in the same file as its ``reverses`` target, it is
recorded with reverse_transfer() against the new id.

CSV transfers:
    Rows are read with csv.DictReader (BOM stripped).  Required columns are
    timestamp, from_wallet, to_wallet and either amount_cents (integer) or
    amount (decimal).  Optional: id, description, category, tags
    (``;``-separated), reverses, external_ref.  Row errors are collected and
    the import continues.

JSON snapshot:
    The format written by Exporter.export_snapshot_json().  Transfers are
    replayed in sequence order.  Any error aborts the import; callers run
    it inside one transaction (LedgerOrchestrator with auto_commit=False).
"""

import csv
import json
from dataclasses import dataclass, field
from typing import Any, TextIO
from uuid import UUID

from wallet_ledger.domain.calendar import parse_date
from wallet_ledger.domain.money import parse_cents
from wallet_ledger.exceptions import MoneyFormatError, ValidationError
from wallet_ledger.logging_config import get_logger
from wallet_ledger.models.wallet import WalletType
from wallet_ledger.services.ledger_orchestrator import LedgerOrchestrator

logger = get_logger("interchange.importer")

REQUIRED_TRANSFER_COLUMNS = ("timestamp", "from_wallet", "to_wallet")


class SnapshotFormatError(ValueError):
    """The JSON document is not a ledger snapshot."""


@dataclass(frozen=True)
class ImportRowError:
    line: int
    message: str
    field: str | None = None


@dataclass
class ImportResult:
    imported: int = 0
    skipped: int = 0
    errors: list[ImportRowError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


@dataclass(frozen=True)
class ImportOptions:
    """
    Options for CSV transfer import.

    dry_run: validate and count rows without writing anything.
    skip_duplicates: skip rows whose external_ref already exists.
    create_missing_wallets: create unknown wallets as expense wallets.
    force: skip the negative-balance check.
    """

    dry_run: bool = False
    skip_duplicates: bool = False
    create_missing_wallets: bool = False
    force: bool = False


def _optional(row: dict[str, Any], key: str) -> str | None:
    value = row.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _row_amount(row: dict[str, Any]) -> int:
    raw_cents = _optional(row, "amount_cents")
    if raw_cents is not None:
        try:
            return int(raw_cents)
        except ValueError:
            raise MoneyFormatError(raw_cents) from None
    raw_amount = _optional(row, "amount")
    if raw_amount is None:
        raise MoneyFormatError("")
    return parse_cents(raw_amount)


class Importer:
    """Import ledger data through the orchestrator."""

    def __init__(self, orchestrator: LedgerOrchestrator):
        self._ledger = orchestrator

    # =========================================================================
    # CSV transfers
    # =========================================================================

    def import_transfers_csv(
        self,
        stream: TextIO,
        options: ImportOptions | None = None,
    ) -> ImportResult:
        options = options or ImportOptions()
        result = ImportResult()
        reader = csv.DictReader(stream)

        missing = [col for col in REQUIRED_TRANSFER_COLUMNS if col not in (reader.fieldnames or [])]
        if missing:
            result.errors.append(
                ImportRowError(line=1, message=f"Missing columns: {', '.join(missing)}")
            )
            return result

        id_map: dict[str, UUID] = {}
        for line, row in enumerate(reader, start=2):
            try:
                self._import_row(row, line, options, result, id_map)
            except ValidationError as exc:
                result.errors.append(ImportRowError(line=line, message=str(exc)))
            except ValueError as exc:
                result.errors.append(
                    ImportRowError(line=line, message=str(exc), field="timestamp")
                )

        logger.info(
            "transfers_imported",
            extra={
                "imported": result.imported,
                "skipped": result.skipped,
                "errors": len(result.errors),
                "dry_run": options.dry_run,
            },
        )
        return result

    def _import_row(
        self,
        row: dict[str, Any],
        line: int,
        options: ImportOptions,
        result: ImportResult,
        id_map: dict[str, UUID],
    ) -> None:
        timestamp = parse_date(_optional(row, "timestamp") or "")
        amount = _row_amount(row)
        from_wallet = _optional(row, "from_wallet")
        to_wallet = _optional(row, "to_wallet")
        if from_wallet is None or to_wallet is None:
            result.errors.append(
                ImportRowError(line=line, message="Wallet name is empty", field="from_wallet")
            )
            return

        external_ref = _optional(row, "external_ref")
        if (
            options.skip_duplicates
            and external_ref is not None
            and self._ledger.find_transfer_by_external_ref(external_ref) is not None
        ):
            result.skipped += 1
            return

        if options.dry_run:
            result.imported += 1
            return

        if options.create_missing_wallets:
            for name in (from_wallet, to_wallet):
                if self._ledger.wallets.find_wallet(name) is None:
                    self._ledger.create_wallet(
                        name,
                        WalletType.EXPENSE,
                        description="Auto-created during import",
                    )

        reverses = _optional(row, "reverses")
        if reverses is not None and reverses in id_map:
            reversal = self._ledger.reverse_transfer(
                id_map[reverses],
                amount_cents=amount,
                timestamp=timestamp,
                description=_optional(row, "description"),
                category=_optional(row, "category"),
            )
            new_id = reversal.reversal_id
        else:
            tags = _optional(row, "tags")
            record = self._ledger.record_transfer(
                from_wallet,
                to_wallet,
                amount,
                timestamp=timestamp,
                description=_optional(row, "description"),
                category=_optional(row, "category"),
                tags=tags.split(";") if tags else None,
                external_ref=external_ref,
                force=options.force,
            )
            new_id = record.id

        old_id = _optional(row, "id")
        if old_id is not None:
            id_map[old_id] = new_id
        result.imported += 1

    # =========================================================================
    # JSON snapshot
    # =========================================================================

    def import_snapshot_json(self, stream: TextIO) -> ImportResult:
        """
        Rebuild a ledger from a snapshot.

        Order: wallets, transfers (by sequence, negative-balance policy
        skipped since the snapshot was validated when recorded),
        budgets, schedules (with their cursor and status), then archive flags.

        Raises:
            SnapshotFormatError: If the document is not a snapshot.
            ValidationError: On the first row that fails validation.
        """
        try:
            snapshot = json.load(stream)
        except json.JSONDecodeError as exc:
            raise SnapshotFormatError(f"Invalid JSON: {exc}") from exc
        if not isinstance(snapshot, dict) or "wallets" not in snapshot:
            raise SnapshotFormatError("Document is not a ledger snapshot")

        result = ImportResult()
        ledger = self._ledger

        for wallet in snapshot.get("wallets", []):
            ledger.create_wallet(
                wallet["name"],
                wallet["wallet_type"],
                currency=wallet.get("currency"),
                description=wallet.get("description"),
                allow_negative=wallet.get("allow_negative"),
            )
            result.imported += 1

        id_map: dict[str, UUID] = {}
        for transfer in sorted(snapshot.get("transfers", []), key=lambda t: t["sequence"]):
            timestamp = parse_date(transfer["timestamp"])
            reverses = transfer.get("reverses")
            if reverses:
                if reverses not in id_map:
                    raise SnapshotFormatError(
                        f"Transfer {transfer['id']} reverses unknown transfer {reverses}"
                    )
                reversal = ledger.reverse_transfer(
                    id_map[reverses],
                    amount_cents=transfer["amount_cents"],
                    timestamp=timestamp,
                    description=transfer.get("description"),
                    category=transfer.get("category"),
                )
                id_map[transfer["id"]] = reversal.reversal_id
            else:
                record = ledger.record_transfer(
                    transfer["from_wallet"],
                    transfer["to_wallet"],
                    transfer["amount_cents"],
                    timestamp=timestamp,
                    description=transfer.get("description"),
                    category=transfer.get("category"),
                    tags=transfer.get("tags") or None,
                    external_ref=transfer.get("external_ref"),
                    force=True,
                )
                id_map[transfer["id"]] = record.id
            result.imported += 1

        for budget in snapshot.get("budgets", []):
            ledger.create_budget(
                budget["name"],
                budget["category"],
                budget["period_type"],
                budget["limit_cents"],
            )
            result.imported += 1

        for schedule in snapshot.get("scheduled_transfers", []):
            end_date = schedule.get("end_date")
            last_executed = schedule.get("last_executed_at")
            ledger.create_schedule(
                schedule["name"],
                schedule["from_wallet"],
                schedule["to_wallet"],
                schedule["amount_cents"],
                schedule["pattern"],
                parse_date(schedule["start_date"]),
                end_date=parse_date(end_date) if end_date else None,
                description=schedule.get("description"),
                category=schedule.get("category"),
            )
            ledger.restore_schedule_state(
                schedule["name"],
                parse_date(last_executed) if last_executed else None,
                schedule.get("status", "active"),
            )
            result.imported += 1

        for wallet in snapshot.get("wallets", []):
            if wallet.get("archived_at"):
                ledger.archive_wallet(wallet["name"])

        logger.info(
            "snapshot_imported",
            extra={
                "wallets": len(snapshot.get("wallets", [])),
                "transfers": len(snapshot.get("transfers", [])),
                "budgets": len(snapshot.get("budgets", [])),
                "scheduled_transfers": len(snapshot.get("scheduled_transfers", [])),
            },
        )
        return result
