"""
Ledger settings (``wallet_ledger.config``).

Responsibility
--------------
Resolves the runtime settings of one CLI invocation: which SQLite file to
open, the default currency for new wallets, and the log level.

Resolution order (later wins):
    1. Built-in defaults.
    2. YAML file (``path`` argument, else ``$WALLET_LEDGER_CONFIG`` if set).
    3. Environment overrides ``WALLET_LEDGER_DB``, ``WALLET_LEDGER_CURRENCY``,
       ``WALLET_LEDGER_LOG_LEVEL``.
The CLI ``--db`` flag is applied on top by the caller.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or a non-mapping document  -> ``ValueError``.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

CONFIG_ENV_VAR = "WALLET_LEDGER_CONFIG"
DB_ENV_VAR = "WALLET_LEDGER_DB"
CURRENCY_ENV_VAR = "WALLET_LEDGER_CURRENCY"
LOG_LEVEL_ENV_VAR = "WALLET_LEDGER_LOG_LEVEL"

DEFAULT_DATABASE_PATH = "ledger.db"


@dataclass(frozen=True)
class LedgerSettings:
    """Resolved settings for one invocation."""

    database_path: str = DEFAULT_DATABASE_PATH
    default_currency: str = "EUR"
    log_level: str = "WARNING"
    echo_sql: bool = False

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"

    @property
    def log_level_value(self) -> int:
        """Numeric logging level; unknown names fall back to WARNING."""
        value = logging.getLevelName(self.log_level.upper())
        return value if isinstance(value, int) else logging.WARNING


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML settings file and return its contents as a dict.

    An empty file yields an empty dict.
    """
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Settings file {path} must contain a mapping")
    return data


def _apply_mapping(settings: LedgerSettings, data: Mapping[str, Any]) -> LedgerSettings:
    known = {f.name for f in fields(LedgerSettings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")
    values: dict[str, Any] = {}
    for key, val in data.items():
        if key == "echo_sql":
            values[key] = bool(val)
        else:
            values[key] = str(val)
    return replace(settings, **values)


def load_settings(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """
    Resolve settings from defaults, an optional YAML file and the environment.

    Args:
        path: Explicit settings file. Falls back to ``$WALLET_LEDGER_CONFIG``.
        env: Environment mapping (defaults to ``os.environ``).

    Returns:
        A frozen LedgerSettings.
    """
    env = os.environ if env is None else env
    settings = LedgerSettings()

    config_path = path if path is not None else env.get(CONFIG_ENV_VAR)
    if config_path:
        settings = _apply_mapping(settings, load_yaml_file(Path(config_path)))

    overrides: dict[str, Any] = {}
    if env.get(DB_ENV_VAR):
        overrides["database_path"] = env[DB_ENV_VAR]
    if env.get(CURRENCY_ENV_VAR):
        overrides["default_currency"] = env[CURRENCY_ENV_VAR].upper()
    if env.get(LOG_LEVEL_ENV_VAR):
        overrides["log_level"] = env[LOG_LEVEL_ENV_VAR]
    if overrides:
        settings = replace(settings, **overrides)

    return settings
