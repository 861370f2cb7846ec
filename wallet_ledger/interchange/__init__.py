"""CSV and JSON import/export over the orchestrator's public operations."""

from wallet_ledger.interchange.exporter import Exporter
from wallet_ledger.interchange.importer import (
    ImportOptions,
    ImportResult,
    ImportRowError,
    Importer,
    SnapshotFormatError,
)

__all__ = [
    "Exporter",
    "Importer",
    "ImportOptions",
    "ImportResult",
    "ImportRowError",
    "SnapshotFormatError",
]
