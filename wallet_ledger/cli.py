"""
Command-line interface for the wallet ledger.

Usage:
    wallet-ledger [--db PATH] [--config FILE] <command> [options]
    python -m wallet_ledger ...

Examples:
    wallet-ledger init
    wallet-ledger wallet create Checking --type asset
    wallet-ledger wallet create Groceries --type expense
    wallet-ledger transfer Checking Groceries 42.50 --category food
    wallet-ledger balance
    wallet-ledger scheduled create rent Checking Rent 950 --pattern monthly --start 2024-01-01
    wallet-ledger report net-worth

Every command except ``init`` (and ``scheduled execute``, which is the
same step made explicit) first materializes due scheduled transfers.

Exit status: 0 on success, 1 on invalid input, 2 on an integrity failure.
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Callable, TextIO
from uuid import uuid4

from wallet_ledger import __version__
from wallet_ledger.config import LedgerSettings, load_settings
from wallet_ledger.db.engine import (
    create_tables,
    get_session,
    init_engine_from_path,
    reset_engine,
)
from wallet_ledger.db.immutability import register_immutability_listeners
from wallet_ledger.domain.calendar import parse_date
from wallet_ledger.domain.clock import Clock
from wallet_ledger.domain.money import format_cents, parse_cents
from wallet_ledger.exceptions import IntegrityError, MoneyFormatError, ValidationError
from wallet_ledger.interchange.exporter import Exporter
from wallet_ledger.interchange.importer import Importer, ImportOptions
from wallet_ledger.logging_config import LogContext, configure_logging, get_logger
from wallet_ledger.models.scheduled_transfer import ScheduledTransfer
from wallet_ledger.selectors.transfer_selector import TransferRecord
from wallet_ledger.services.ledger_orchestrator import LedgerOrchestrator
from wallet_ledger.services.scheduler_service import SchedulerRunResult

logger = get_logger("cli")

W = 72


# =============================================================================
# Formatting
# =============================================================================


def _day(value: datetime | None) -> str:
    return value.date().isoformat() if value is not None else "-"


def _banner(title: str, out: TextIO) -> None:
    print(file=out)
    print("=" * W, file=out)
    print(f"  {title}".center(W), file=out)
    print("=" * W, file=out)


def _print_transfers(transfers: list[TransferRecord], out: TextIO) -> None:
    if not transfers:
        print("\n  No transfers.\n", file=out)
        return
    print(
        f"  {'Seq':>5} {'Date':<10} {'From':<16} {'To':<16} {'Amount':>12} {'Category'}",
        file=out,
    )
    print(f"  {'-'*5} {'-'*10} {'-'*16} {'-'*16} {'-'*12} {'-'*10}", file=out)
    for t in transfers:
        marker = " R" if t.is_reversal else ""
        print(
            f"  {t.sequence:>5} {_day(t.timestamp):<10} {t.from_wallet[:16]:<16} "
            f"{t.to_wallet[:16]:<16} {format_cents(t.amount_cents):>12} "
            f"{t.category or ''}{marker}",
            file=out,
        )
    print(f"\n  Total: {len(transfers)} transfers", file=out)


def _next_due(schedule: ScheduledTransfer) -> datetime | None:
    rule = schedule.rule
    candidate = rule.first_candidate(schedule.last_executed_at)
    return None if rule.past_end(candidate) else candidate


def _report_scheduler_run(result: SchedulerRunResult, err: TextIO) -> None:
    for failure in result.failures:
        print(
            f"warning: scheduled transfer '{failure.schedule_name}' "
            f"({_day(failure.occurrence)}) failed [{failure.code}]: {failure.error}",
            file=err,
        )


# =============================================================================
# Argument types
# =============================================================================


def _date_arg(value: str) -> datetime:
    try:
        return parse_date(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r} (expected YYYY-MM-DD)")


def _cents_arg(value: str) -> int:
    try:
        return parse_cents(value)
    except MoneyFormatError as exc:
        raise argparse.ArgumentTypeError(str(exc))


# =============================================================================
# Command handlers
# =============================================================================


def cmd_init(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    print(f"Initialized ledger at {args.settings.database_path}", file=out)
    return 0


def cmd_wallet_create(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    wallet = ledger.create_wallet(
        args.name,
        args.type,
        currency=args.currency,
        description=args.description,
        allow_negative=args.allow_negative,
    )
    print(
        f"Created {wallet.type.value} wallet '{wallet.name}' ({wallet.currency})",
        file=out,
    )
    return 0


def cmd_wallet_list(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    rows = ledger.wallet_balances(include_archived=args.all)
    if not rows:
        print("\n  No wallets.\n", file=out)
        return 0
    _banner("WALLETS", out)
    print(f"  {'Name':<24} {'Type':<10} {'Cur':<4} {'Balance':>14} {'Status'}", file=out)
    print(f"  {'-'*24} {'-'*10} {'-'*4} {'-'*14} {'-'*8}", file=out)
    for row in rows:
        status = "archived" if row.is_archived else ""
        print(
            f"  {row.name[:24]:<24} {row.wallet_type.value:<10} {row.currency:<4} "
            f"{format_cents(row.balance):>14} {status}",
            file=out,
        )
    print(f"\n  Total: {len(rows)} wallets", file=out)
    return 0


def cmd_wallet_archive(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    wallet = ledger.archive_wallet(args.name)
    print(f"Archived wallet '{wallet.name}'", file=out)
    return 0


def cmd_wallet_show(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    wallet = ledger.get_wallet(args.name)
    balance = ledger.balance(wallet.name)
    _banner(f"WALLET {wallet.name.upper()}", out)
    print(f"  Type:            {wallet.type.value}", file=out)
    print(f"  Currency:        {wallet.currency}", file=out)
    print(f"  Balance:         {format_cents(balance)}", file=out)
    print(f"  Allow negative:  {'yes' if wallet.allow_negative else 'no'}", file=out)
    print(f"  Created:         {_day(wallet.created_at)}", file=out)
    if wallet.is_archived:
        print(f"  Archived:        {_day(wallet.archived_at)}", file=out)
    if wallet.description:
        print(f"  Description:     {wallet.description}", file=out)
    print("\n  --- Recent transfers ---", file=out)
    _print_transfers(ledger.list_transfers(wallet=wallet.name, limit=args.limit), out)
    return 0


def cmd_wallet_allow_negative(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    wallet = ledger.set_allow_negative(args.name, args.setting == "on")
    state = "allowed" if wallet.allow_negative else "not allowed"
    print(f"Negative balance {state} for '{wallet.name}'", file=out)
    return 0


def cmd_transfer(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    record = ledger.record_transfer(
        args.from_wallet,
        args.to_wallet,
        args.amount,
        timestamp=args.date,
        description=args.description,
        category=args.category,
        tags=args.tag,
        external_ref=args.ref,
        force=args.force,
    )
    print(
        f"Recorded transfer #{record.sequence} {record.id}: "
        f"{record.from_wallet} -> {record.to_wallet} {format_cents(record.amount_cents)}",
        file=out,
    )
    return 0


def cmd_transfers(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    transfers = ledger.list_transfers(
        wallet=args.wallet,
        category=args.category,
        from_date=args.from_date,
        to_date=args.to_date,
        limit=args.limit,
    )
    _banner("TRANSFERS", out)
    _print_transfers(transfers, out)
    return 0


def cmd_show_transfer(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    info = ledger.transfer_info(ledger.transfers.resolve_id(args.id))
    t = info.transfer
    _banner(f"TRANSFER #{t.sequence}", out)
    print(f"  Id:           {t.id}", file=out)
    print(f"  Date:         {t.timestamp.isoformat()}", file=out)
    print(f"  Recorded:     {t.recorded_at.isoformat()}", file=out)
    print(f"  From:         {t.from_wallet}", file=out)
    print(f"  To:           {t.to_wallet}", file=out)
    print(f"  Amount:       {format_cents(t.amount_cents)}", file=out)
    print(f"  Description:  {t.description or '-'}", file=out)
    print(f"  Category:     {t.category or '-'}", file=out)
    if t.tags:
        print(f"  Tags:         {', '.join(t.tags)}", file=out)
    if t.external_ref:
        print(f"  External ref: {t.external_ref}", file=out)
    if t.reverses_id:
        print(f"  Reverses:     {t.reverses_id}", file=out)
    if info.reversals:
        print(f"  Reversed:     {format_cents(info.total_reversed)}", file=out)
        print(f"  Remaining:    {format_cents(info.remaining)}", file=out)
        for reversal in info.reversals:
            print(
                f"    #{reversal.sequence} {_day(reversal.timestamp)} "
                f"{format_cents(reversal.amount_cents)}",
                file=out,
            )
    return 0


def cmd_reverse(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    result = ledger.reverse_transfer(
        ledger.transfers.resolve_id(args.id),
        amount_cents=args.amount,
        timestamp=args.date,
        description=args.description,
    )
    kind = "Partially reversed" if result.is_partial else "Reversed"
    print(
        f"{kind} {result.original_id}: {format_cents(result.amount_cents)} "
        f"(transfer #{result.reversal_sequence}, remaining {format_cents(result.remaining)})",
        file=out,
    )
    return 0


def cmd_balance(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    if args.wallet:
        balance = ledger.balance(args.wallet, as_of_timestamp=args.as_of)
        print(f"{args.wallet}: {format_cents(balance)}", file=out)
        return 0
    rows = ledger.wallet_balances(as_of_timestamp=args.as_of, include_archived=args.all)
    _banner("BALANCES" if args.as_of is None else f"BALANCES AS OF {_day(args.as_of)}", out)
    for row in rows:
        print(f"  {row.name[:40]:<40} {format_cents(row.balance):>16}", file=out)
    print(f"\n  Total: {len(rows)} wallets", file=out)
    return 0


def cmd_check(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    report = ledger.check_integrity()
    _banner("LEDGER INTEGRITY", out)
    print(f"  Wallets:         {report.wallet_count}", file=out)
    print(f"  Transfers:       {report.transfer_count}", file=out)
    print(f"  Max sequence:    {report.max_sequence}", file=out)
    print(f"  Counter value:   {report.counter_value}", file=out)
    print(f"  Sum of balances: {format_cents(report.total_balance)}", file=out)
    for wallet_type, total in sorted(report.balance_by_type.items()):
        print(f"    {wallet_type:<12} {format_cents(total):>14}", file=out)
    if report.is_healthy:
        print("\n  OK", file=out)
        return 0
    print("\n  ISSUES:", file=out)
    for issue in report.issues:
        print(f"    - {issue}", file=out)
    ledger.assert_integrity()
    return 2


def cmd_budget_create(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    budget = ledger.create_budget(args.name, args.category, args.period, args.limit)
    print(
        f"Created {budget.period.value} budget '{budget.name}' for '{budget.category}' "
        f"({format_cents(budget.limit_cents)})",
        file=out,
    )
    return 0


def cmd_budget_list(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    budgets = ledger.list_budgets()
    if not budgets:
        print("\n  No budgets.\n", file=out)
        return 0
    _banner("BUDGETS", out)
    print(f"  {'Name':<20} {'Category':<20} {'Period':<8} {'Limit':>12}", file=out)
    print(f"  {'-'*20} {'-'*20} {'-'*8} {'-'*12}", file=out)
    for budget in budgets:
        print(
            f"  {budget.name[:20]:<20} {budget.category[:20]:<20} "
            f"{budget.period.value:<8} {format_cents(budget.limit_cents):>12}",
            file=out,
        )
    return 0


def cmd_budget_status(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    if args.name:
        statuses = [ledger.budget_status(args.name, args.as_of)]
    else:
        statuses = ledger.all_budget_statuses(args.as_of)
    if not statuses:
        print("\n  No budgets.\n", file=out)
        return 0
    _banner("BUDGET STATUS", out)
    print(
        f"  {'Name':<20} {'Window':<23} {'Limit':>11} {'Spent':>11} {'Remaining':>11}",
        file=out,
    )
    print(f"  {'-'*20} {'-'*23} {'-'*11} {'-'*11} {'-'*11}", file=out)
    for s in statuses:
        flag = " OVER" if s.is_over else ""
        window = f"{_day(s.period_start)}..{_day(s.period_end)}"
        print(
            f"  {s.name[:20]:<20} {window:<23} "
            f"{format_cents(s.limit_cents):>11} {format_cents(s.spent):>11} "
            f"{format_cents(s.remaining):>11}{flag}",
            file=out,
        )
    return 0


def cmd_budget_delete(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    ledger.delete_budget(args.name)
    print(f"Deleted budget '{args.name}'", file=out)
    return 0


def cmd_scheduled_create(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    schedule = ledger.create_schedule(
        args.name,
        args.from_wallet,
        args.to_wallet,
        args.amount,
        args.pattern,
        args.start,
        end_date=args.end,
        description=args.description,
        category=args.category,
    )
    print(
        f"Created {schedule.pattern} schedule '{schedule.name}' starting {_day(schedule.start_date)}",
        file=out,
    )
    return 0


def cmd_scheduled_list(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    schedules = ledger.list_schedules(include_inactive=args.all)
    if not schedules:
        print("\n  No scheduled transfers.\n", file=out)
        return 0
    _banner("SCHEDULED TRANSFERS", out)
    print(
        f"  {'Name':<18} {'Pattern':<8} {'Amount':>11} {'Next due':<10} {'Status':<9} Route",
        file=out,
    )
    print(f"  {'-'*18} {'-'*8} {'-'*11} {'-'*10} {'-'*9} {'-'*10}", file=out)
    for s in schedules:
        print(
            f"  {s.name[:18]:<18} {s.pattern:<8} {format_cents(s.amount_cents):>11} "
            f"{_day(_next_due(s)):<10} {s.status:<9} {s.from_wallet.name} -> {s.to_wallet.name}",
            file=out,
        )
    return 0


def cmd_scheduled_show(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    s = ledger.get_schedule(args.name)
    _banner(f"SCHEDULE {s.name.upper()}", out)
    print(f"  Route:          {s.from_wallet.name} -> {s.to_wallet.name}", file=out)
    print(f"  Amount:         {format_cents(s.amount_cents)}", file=out)
    print(f"  Pattern:        {s.pattern}", file=out)
    print(f"  Start:          {_day(s.start_date)}", file=out)
    print(f"  End:            {_day(s.end_date)}", file=out)
    print(f"  Last executed:  {_day(s.last_executed_at)}", file=out)
    print(f"  Next due:       {_day(_next_due(s))}", file=out)
    print(f"  Status:         {s.status}", file=out)
    if s.description:
        print(f"  Description:    {s.description}", file=out)
    if s.category:
        print(f"  Category:       {s.category}", file=out)
    return 0


def cmd_scheduled_pause(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    ledger.pause_schedule(args.name)
    print(f"Paused '{args.name}'", file=out)
    return 0


def cmd_scheduled_resume(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    ledger.resume_schedule(args.name)
    print(f"Resumed '{args.name}'", file=out)
    return 0


def cmd_scheduled_delete(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    ledger.delete_schedule(args.name)
    print(f"Deleted scheduled transfer '{args.name}'", file=out)
    return 0


def cmd_scheduled_execute(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    if args.dry_run:
        pending = ledger.preview_due_schedules()
        if not pending:
            print("No scheduled transfers due.", file=out)
            return 0
        for p in pending:
            print(
                f"  would run {p.schedule_name} {_day(p.occurrence)} "
                f"{p.from_wallet} -> {p.to_wallet} {format_cents(p.amount_cents)}",
                file=out,
            )
        print(f"\n  {len(pending)} occurrences due", file=out)
        return 0

    result = ledger.run_due_schedules()
    for m in result.materialized:
        print(
            f"  {m.schedule_name} {_day(m.occurrence)} -> transfer #{m.sequence} "
            f"{format_cents(m.amount_cents)}",
            file=out,
        )
    for name in result.completed:
        print(f"  {name} completed", file=out)
    print(
        f"\n  Executed {result.transfer_count} transfers, {len(result.failures)} failures",
        file=out,
    )
    _report_scheduler_run(result, sys.stderr)
    return 1 if result.has_failures else 0


def cmd_scheduled_run(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    record = ledger.run_schedule(args.name, execution_date=args.date, force=args.force)
    print(
        f"Executed '{args.name}': transfer #{record.sequence} on {_day(record.timestamp)} "
        f"{format_cents(record.amount_cents)}",
        file=out,
    )
    return 0


def cmd_forecast(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    result = ledger.forecast(args.months, wallet_names=args.wallet)
    names = sorted(result.starting_balances)
    _banner(f"FORECAST {_day(result.start_date)} .. {_day(result.end_date)}", out)
    header = "".join(f" {name[:12]:>12}" for name in names)
    print(f"  {'Date':<10}{header}", file=out)
    for point in result.points:
        cells = "".join(f" {format_cents(point.balances[name]):>12}" for name in names)
        print(f"  {_day(point.date):<10}{cells}", file=out)
    if result.events:
        print(f"\n  {len(result.events)} scheduled transfers in horizon", file=out)
    return 0


def cmd_report_categories(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    report = ledger.category_report(args.from_date, args.to_date)
    _banner(f"SPENDING BY CATEGORY {_day(report.start)} .. {_day(report.end)}", out)
    if not report.rows:
        print("  No expenses in range.", file=out)
        return 0
    print(f"  {'Category':<24} {'Total':>12} {'Count':>6} {'Average':>12} {'Share':>7}", file=out)
    print(f"  {'-'*24} {'-'*12} {'-'*6} {'-'*12} {'-'*7}", file=out)
    for row in report.rows:
        print(
            f"  {row.category[:24]:<24} {format_cents(row.total):>12} {row.count:>6} "
            f"{format_cents(row.average):>12} {row.percentage:>6.1f}%",
            file=out,
        )
    print(f"\n  Total: {format_cents(report.total)}", file=out)
    return 0


def cmd_report_income_expense(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    report = ledger.income_expense_report(args.from_date, args.to_date)
    _banner(f"INCOME VS EXPENSE {_day(report.start)} .. {_day(report.end)}", out)
    print("\n  --- Income ---", file=out)
    for category, amount in sorted(report.income_by_category.items()):
        print(f"    {category[:30]:<30} {format_cents(amount):>14}", file=out)
    print(f"    {'Total income':<30} {format_cents(report.total_income):>14}", file=out)
    print("\n  --- Expense ---", file=out)
    for category, amount in sorted(report.expense_by_category.items()):
        print(f"    {category[:30]:<30} {format_cents(amount):>14}", file=out)
    print(f"    {'Total expense':<30} {format_cents(report.total_expense):>14}", file=out)
    print(f"\n  Net: {format_cents(report.net)}", file=out)
    return 0


def cmd_report_cash_flow(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    report = ledger.cash_flow_report(args.from_date, args.to_date, args.period)
    _banner(f"CASH FLOW ({report.period.value})", out)
    print(f"  {'Period start':<12} {'Inflow':>14} {'Outflow':>14} {'Net':>14}", file=out)
    print(f"  {'-'*12} {'-'*14} {'-'*14} {'-'*14}", file=out)
    for bucket in report.buckets:
        print(
            f"  {_day(bucket.start):<12} {format_cents(bucket.inflow):>14} "
            f"{format_cents(bucket.outflow):>14} {format_cents(bucket.net):>14}",
            file=out,
        )
    print(
        f"  {'Total':<12} {format_cents(report.total_inflow):>14} "
        f"{format_cents(report.total_outflow):>14} {format_cents(report.net):>14}",
        file=out,
    )
    return 0


def cmd_report_net_worth(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    report = ledger.net_worth_report(args.as_of)
    _banner("NET WORTH", out)
    print("\n  --- Assets ---", file=out)
    for row in report.assets:
        print(f"    {row.name[:30]:<30} {format_cents(row.balance):>14}", file=out)
    print(f"    {'Total assets':<30} {format_cents(report.total_assets):>14}", file=out)
    print("\n  --- Liabilities ---", file=out)
    for row in report.liabilities:
        print(f"    {row.name[:30]:<30} {format_cents(-row.balance):>14}", file=out)
    print(f"    {'Total liabilities':<30} {format_cents(report.total_liabilities):>14}", file=out)
    print(f"\n  Net worth: {format_cents(report.net_worth)}", file=out)
    return 0


def cmd_report_compare(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    comparison = ledger.period_comparison(args.period, args.as_of)
    _banner(f"PERIOD COMPARISON ({comparison.period.value})", out)
    previous, current = comparison.previous, comparison.current
    print(f"  {'':<10} {_day(previous.start):>14} {_day(current.start):>14}", file=out)
    for label, prev, cur in (
        ("Income", previous.income, current.income),
        ("Expense", previous.expense, current.expense),
        ("Net", previous.net, current.net),
    ):
        print(f"  {label:<10} {format_cents(prev):>14} {format_cents(cur):>14}", file=out)
    print(
        f"\n  Change: {format_cents(comparison.change)} ({comparison.change_percentage:+.1f}%)",
        file=out,
    )
    return 0


_EXPORTS = {
    "transfers": Exporter.export_transfers_csv,
    "balances": Exporter.export_balances_csv,
    "budgets": Exporter.export_budgets_csv,
    "schedules": Exporter.export_schedules_csv,
    "snapshot": Exporter.export_snapshot_json,
}


def cmd_export(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    export = _EXPORTS[args.what]
    exporter = Exporter(ledger)
    if args.output is None:
        export(exporter, out)
        return 0
    with open(args.output, "w", encoding="utf-8", newline="") as f:
        export(exporter, f)
    print(f"Exported {args.what} to {args.output}", file=sys.stderr)
    return 0


def cmd_import(args, ledger: LedgerOrchestrator, out: TextIO) -> int:
    path = Path(args.file)
    if args.what == "snapshot":
        # One transaction for the whole snapshot.
        atomic = LedgerOrchestrator(
            ledger.session,
            ledger.clock,
            auto_commit=False,
            default_currency=args.settings.default_currency,
        )
        try:
            with open(path, encoding="utf-8") as f:
                result = Importer(atomic).import_snapshot_json(f)
        except Exception:
            ledger.session.rollback()
            raise
        ledger.session.commit()
        print(f"Imported {result.imported} records from {path}", file=out)
        return 0

    options = ImportOptions(
        dry_run=args.dry_run,
        skip_duplicates=args.skip_duplicates,
        create_missing_wallets=args.create_wallets,
        force=args.force,
    )
    with open(path, encoding="utf-8-sig", newline="") as f:
        result = Importer(ledger).import_transfers_csv(f, options)
    verb = "Would import" if args.dry_run else "Imported"
    print(
        f"{verb} {result.imported} transfers, skipped {result.skipped}, "
        f"{len(result.errors)} errors",
        file=out,
    )
    for error in result.errors:
        where = f" ({error.field})" if error.field else ""
        print(f"  line {error.line}{where}: {error.message}", file=sys.stderr)
    return 1 if result.has_errors else 0


# =============================================================================
# Parser
# =============================================================================

Handler = Callable[[argparse.Namespace, LedgerOrchestrator, TextIO], int]


def _add_date_range(parser: argparse.ArgumentParser, required: bool = True) -> None:
    parser.add_argument("--from", dest="from_date", type=_date_arg, required=required,
                        help="Start date, inclusive (YYYY-MM-DD).")
    parser.add_argument("--to", dest="to_date", type=_date_arg, required=required,
                        help="End date, exclusive (YYYY-MM-DD).")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wallet-ledger",
        description="Personal finance ledger: wallets, transfers, schedules, budgets, reports.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", default=None, help="SQLite database file (overrides settings).")
    parser.add_argument("--config", default=None, help="YAML settings file.")
    commands = parser.add_subparsers(dest="command", required=True)

    p = commands.add_parser("init", help="Create the database.")
    p.set_defaults(handler=cmd_init)

    # -- wallets --------------------------------------------------------------
    wallet = commands.add_parser("wallet", help="Manage wallets.")
    wallet_cmds = wallet.add_subparsers(dest="wallet_command", required=True)

    p = wallet_cmds.add_parser("create", help="Create a wallet.")
    p.add_argument("name")
    p.add_argument("--type", required=True,
                   help="asset, liability, income, expense or equity.")
    p.add_argument("--currency", default=None, help="3-letter currency code.")
    p.add_argument("--description", default=None)
    neg = p.add_mutually_exclusive_group()
    neg.add_argument("--allow-negative", dest="allow_negative", action="store_true", default=None)
    neg.add_argument("--no-allow-negative", dest="allow_negative", action="store_false")
    p.set_defaults(handler=cmd_wallet_create)

    p = wallet_cmds.add_parser("list", help="List wallets with balances.")
    p.add_argument("--all", action="store_true", help="Include archived wallets.")
    p.set_defaults(handler=cmd_wallet_list)

    p = wallet_cmds.add_parser("archive", help="Archive a wallet.")
    p.add_argument("name")
    p.set_defaults(handler=cmd_wallet_archive)

    p = wallet_cmds.add_parser("show", help="Show one wallet.")
    p.add_argument("name")
    p.add_argument("--limit", type=int, default=10, help="Recent transfers to show.")
    p.set_defaults(handler=cmd_wallet_show)

    p = wallet_cmds.add_parser("allow-negative", help="Toggle the negative-balance policy.")
    p.add_argument("name")
    p.add_argument("setting", choices=["on", "off"])
    p.set_defaults(handler=cmd_wallet_allow_negative)

    # -- transfers ------------------------------------------------------------
    p = commands.add_parser("transfer", help="Record a transfer.")
    p.add_argument("from_wallet")
    p.add_argument("to_wallet")
    p.add_argument("amount", type=_cents_arg, help="Decimal amount, e.g. 12.50.")
    p.add_argument("--date", type=_date_arg, default=None)
    p.add_argument("--description", default=None)
    p.add_argument("--category", default=None)
    p.add_argument("--tag", action="append", default=None)
    p.add_argument("--ref", default=None, help="External reference.")
    p.add_argument("--force", action="store_true", help="Skip the negative-balance check.")
    p.set_defaults(handler=cmd_transfer)

    p = commands.add_parser("transfers", help="List transfers.")
    p.add_argument("--wallet", default=None)
    p.add_argument("--category", default=None)
    _add_date_range(p, required=False)
    p.add_argument("--limit", type=int, default=None)
    p.set_defaults(handler=cmd_transfers)

    p = commands.add_parser("show-transfer", help="Show a transfer and its reversals.")
    p.add_argument("id", help="Transfer id or unique prefix.")
    p.set_defaults(handler=cmd_show_transfer)

    p = commands.add_parser("reverse", help="Reverse a transfer fully or partially.")
    p.add_argument("id", help="Transfer id or unique prefix.")
    p.add_argument("--amount", type=_cents_arg, default=None)
    p.add_argument("--date", type=_date_arg, default=None)
    p.add_argument("--description", default=None)
    p.set_defaults(handler=cmd_reverse)

    p = commands.add_parser("balance", help="Show balances.")
    p.add_argument("wallet", nargs="?", default=None)
    p.add_argument("--as-of", type=_date_arg, default=None)
    p.add_argument("--all", action="store_true", help="Include archived wallets.")
    p.set_defaults(handler=cmd_balance)

    p = commands.add_parser("check", help="Verify ledger integrity.")
    p.set_defaults(handler=cmd_check)

    # -- budgets --------------------------------------------------------------
    budget = commands.add_parser("budget", help="Manage budgets.")
    budget_cmds = budget.add_subparsers(dest="budget_command", required=True)

    p = budget_cmds.add_parser("create", help="Create a budget.")
    p.add_argument("name")
    p.add_argument("--category", required=True)
    p.add_argument("--period", default="monthly", help="weekly, monthly or yearly.")
    p.add_argument("--limit", type=_cents_arg, required=True)
    p.set_defaults(handler=cmd_budget_create)

    p = budget_cmds.add_parser("list", help="List budgets.")
    p.set_defaults(handler=cmd_budget_list)

    p = budget_cmds.add_parser("status", help="Spending against budgets.")
    p.add_argument("name", nargs="?", default=None)
    p.add_argument("--as-of", type=_date_arg, default=None)
    p.set_defaults(handler=cmd_budget_status)

    p = budget_cmds.add_parser("delete", help="Delete a budget.")
    p.add_argument("name")
    p.set_defaults(handler=cmd_budget_delete)

    # -- scheduled transfers --------------------------------------------------
    scheduled = commands.add_parser("scheduled", help="Manage scheduled transfers.")
    scheduled_cmds = scheduled.add_subparsers(dest="scheduled_command", required=True)

    p = scheduled_cmds.add_parser("create", help="Create a scheduled transfer.")
    p.add_argument("name")
    p.add_argument("from_wallet")
    p.add_argument("to_wallet")
    p.add_argument("amount", type=_cents_arg)
    p.add_argument("--pattern", required=True, help="daily, weekly, monthly or yearly.")
    p.add_argument("--start", type=_date_arg, required=True)
    p.add_argument("--end", type=_date_arg, default=None)
    p.add_argument("--description", default=None)
    p.add_argument("--category", default=None)
    p.set_defaults(handler=cmd_scheduled_create)

    p = scheduled_cmds.add_parser("list", help="List scheduled transfers.")
    p.add_argument("--all", action="store_true", help="Include paused and completed.")
    p.set_defaults(handler=cmd_scheduled_list)

    for name, handler, text in (
        ("show", cmd_scheduled_show, "Show a scheduled transfer."),
        ("pause", cmd_scheduled_pause, "Pause a scheduled transfer."),
        ("resume", cmd_scheduled_resume, "Resume a paused scheduled transfer."),
        ("delete", cmd_scheduled_delete, "Delete a scheduled transfer definition."),
    ):
        p = scheduled_cmds.add_parser(name, help=text)
        p.add_argument("name")
        p.set_defaults(handler=handler)

    p = scheduled_cmds.add_parser("execute", help="Materialize all due occurrences.")
    p.add_argument("--dry-run", action="store_true", help="Only list what is due.")
    p.set_defaults(handler=cmd_scheduled_execute, skip_due_run=True)

    p = scheduled_cmds.add_parser("run", help="Run one schedule now.")
    p.add_argument("name")
    p.add_argument("--date", type=_date_arg, default=None, help="Execution date.")
    p.add_argument("--force", action="store_true", help="Run even if not due or paused.")
    p.set_defaults(handler=cmd_scheduled_run)

    # -- forecast and reports -------------------------------------------------
    p = commands.add_parser("forecast", help="Project balances forward.")
    p.add_argument("--months", type=int, default=3)
    p.add_argument("--wallet", action="append", default=None)
    p.set_defaults(handler=cmd_forecast)

    report = commands.add_parser("report", help="Reports.")
    report_cmds = report.add_subparsers(dest="report_command", required=True)

    p = report_cmds.add_parser("categories", help="Spending by category.")
    _add_date_range(p)
    p.set_defaults(handler=cmd_report_categories)

    p = report_cmds.add_parser("income-expense", help="Income vs expense.")
    _add_date_range(p)
    p.set_defaults(handler=cmd_report_income_expense)

    p = report_cmds.add_parser("cash-flow", help="Asset inflow/outflow per period.")
    _add_date_range(p)
    p.add_argument("--period", default="monthly")
    p.set_defaults(handler=cmd_report_cash_flow)

    p = report_cmds.add_parser("net-worth", help="Assets minus liabilities.")
    p.add_argument("--as-of", type=_date_arg, default=None)
    p.set_defaults(handler=cmd_report_net_worth)

    p = report_cmds.add_parser("compare", help="Current vs previous period.")
    p.add_argument("--period", default="monthly")
    p.add_argument("--as-of", type=_date_arg, default=None)
    p.set_defaults(handler=cmd_report_compare)

    # -- interchange ----------------------------------------------------------
    p = commands.add_parser("export", help="Export data as CSV or a JSON snapshot.")
    p.add_argument("what", choices=sorted(_EXPORTS))
    p.add_argument("--output", "-o", default=None, help="Output file (default: stdout).")
    p.set_defaults(handler=cmd_export)

    p = commands.add_parser("import", help="Import transfers (CSV) or a snapshot (JSON).")
    p.add_argument("what", choices=["transfers", "snapshot"])
    p.add_argument("file")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--skip-duplicates", action="store_true",
                   help="Skip rows whose external_ref already exists.")
    p.add_argument("--create-wallets", action="store_true",
                   help="Create unknown wallets as expense wallets.")
    p.add_argument("--force", action="store_true", help="Skip the negative-balance check.")
    p.set_defaults(handler=cmd_import)

    return parser


# =============================================================================
# Entry point
# =============================================================================


def _resolve_settings(args: argparse.Namespace) -> LedgerSettings:
    settings = load_settings(args.config)
    if args.db:
        settings = replace(settings, database_path=args.db)
    return settings


def main(
    argv: list[str] | None = None,
    out: TextIO | None = None,
    clock: Clock | None = None,
) -> int:
    """Run one command.  Returns the process exit status."""
    out = out or sys.stdout
    args = build_parser().parse_args(argv)

    try:
        settings = _resolve_settings(args)
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    args.settings = settings

    configure_logging(level=settings.log_level_value)
    LogContext.set(correlation_id=str(uuid4()), command=args.command)

    if args.command != "init" and not Path(settings.database_path).exists():
        print(
            f"error: no ledger at {settings.database_path} (run 'wallet-ledger init')",
            file=sys.stderr,
        )
        return 1

    init_engine_from_path(settings.database_path, echo=settings.echo_sql)
    register_immutability_listeners()
    session = None
    try:
        if args.command == "init":
            create_tables()
        session = get_session()
        ledger = LedgerOrchestrator(
            session, clock=clock, default_currency=settings.default_currency
        )

        if args.command != "init" and not getattr(args, "skip_due_run", False):
            _report_scheduler_run(ledger.run_due_schedules(), sys.stderr)

        handler: Handler = args.handler
        return handler(args, ledger, out)
    except IntegrityError as exc:
        logger.error("command_failed_integrity", extra={"code": exc.code}, exc_info=True)
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 2
    except ValidationError as exc:
        logger.info("command_rejected", extra={"code": exc.code})
        print(f"error [{exc.code}]: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if session is not None:
            session.close()
        reset_engine()


if __name__ == "__main__":
    sys.exit(main())
