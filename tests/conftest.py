"""
Pytest fixtures for the wallet ledger test suite.

Provides:
- A fresh SQLite database file per test (tmp_path), tables created and the
  transfer sequence counter seeded
- A DeterministicClock pinned to 2024-03-02 00:00 UTC
- A LedgerOrchestrator wired to both, plus a standard set of wallets
- Structured log capture (``captured_logs``)
"""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from wallet_ledger.db.engine import (
    create_tables,
    get_session,
    init_engine_from_path,
    reset_engine,
)
from wallet_ledger.db.immutability import register_immutability_listeners
from wallet_ledger.domain.clock import DeterministicClock
from wallet_ledger.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from wallet_ledger.services.ledger_orchestrator import LedgerOrchestrator

UTC = timezone.utc
TEST_NOW = datetime(2024, 3, 2, tzinfo=UTC)


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=UTC)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture wallet_ledger logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.create_wallet("Checking", "asset")
            assert any(r["message"] == "wallet_created" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("wallet_ledger")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "ledger.db"


@pytest.fixture
def engine(db_path):
    """Initialize a per-test SQLite database."""
    engine = init_engine_from_path(db_path)
    create_tables()
    register_immutability_listeners()
    yield engine
    reset_engine()


@pytest.fixture
def session(engine):
    session = get_session()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def deterministic_clock():
    return DeterministicClock(TEST_NOW)


@pytest.fixture
def ledger(session, deterministic_clock):
    """LedgerOrchestrator committing each operation."""
    return LedgerOrchestrator(session, clock=deterministic_clock)


@pytest.fixture
def standard_wallets(ledger):
    """
    A small household ledger.

    Checking starts with 1000.00 from the Opening equity wallet, dated
    2024-01-01 so it never shows up as income or expense.
    """
    wallets = {
        name: ledger.create_wallet(name, wallet_type)
        for name, wallet_type in (
            ("Checking", "asset"),
            ("Savings", "asset"),
            ("Salary", "income"),
            ("Groceries", "expense"),
            ("Rent", "expense"),
            ("CreditCard", "liability"),
            ("Opening", "equity"),
        )
    }
    ledger.record_transfer(
        "Opening", "Checking", 100000, timestamp=utc(2024, 1, 1), description="Opening balance"
    )
    return wallets
