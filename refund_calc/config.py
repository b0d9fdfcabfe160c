"""
config.py - settings for the refund calculator
----------------------------------------------
Constants, the optional YAML settings file and logging setup.

Settings are resolved in this order (later wins):
  1. defaults below
  2. refund_calc.yaml at the repository root, or the file named by
     REFUND_CALC_CONFIG
  3. environment variables (REFUND_CALC_STORE, REFUND_CALC_HISTORY_LIMIT,
     REFUND_CALC_CURRENCY, REFUND_CALC_LOG_LEVEL, FLASK_SECRET_KEY)
"""
import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

# ═══════════════════════════════════════════════════════════════
# PATHS
# ═══════════════════════════════════════════════════════════════

ROOT_DIR = Path(__file__).parent.parent
DATA_DIR = ROOT_DIR / "data"
CATALOG_CSV = DATA_DIR / "medications.csv"
DEFAULT_CONFIG_FILE = ROOT_DIR / "refund_calc.yaml"
DEFAULT_STORE_FILE = ROOT_DIR / "instance" / "store.json"

# ═══════════════════════════════════════════════════════════════
# PERSISTED KEYS
# ═══════════════════════════════════════════════════════════════

HISTORY_KEY = "calculationHistory"
TEMPLATES_KEY = "templates"
DARK_MODE_KEY = "darkMode"
CURRENCY_KEY = "defaultCurrency"
HISTORY_LIMIT_KEY = "historyLimit"
# form, current result, selected catalog items and undo stack of the open UI session
UI_SESSION_KEY = "uiSession"

# ═══════════════════════════════════════════════════════════════
# DEFAULTS
# ═══════════════════════════════════════════════════════════════

DEFAULT_HISTORY_LIMIT = 10
DEFAULT_CURRENCY = "USD"
# offered in the currency selector
SUPPORTED_CURRENCIES = ["USD", "EUR", "GBP", "CAD", "AUD"]
BACKUP_VERSION = "1.0"
COGS_SHEET = "NEW COGS"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class Settings:
    store_path: Path = DEFAULT_STORE_FILE
    catalog_path: Path = CATALOG_CSV
    history_limit: int = DEFAULT_HISTORY_LIMIT
    default_currency: str = DEFAULT_CURRENCY
    log_level: str = "INFO"
    secret_key: str = "dev-fallback"


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _positive_int(value: Any, name: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if n < 1:
        raise ConfigError(f"{name} must be at least 1, got {n}")
    return n


def load_settings(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings from the YAML file (if present) and the environment."""
    env = os.environ if environ is None else environ
    if path is None:
        path = Path(env["REFUND_CALC_CONFIG"]) if env.get("REFUND_CALC_CONFIG") else DEFAULT_CONFIG_FILE
    path = Path(path)

    raw: Dict[str, Any] = _read_yaml(path) if path.exists() else {}

    # relative paths in the YAML file are relative to the file itself
    base = path.parent
    if env.get("REFUND_CALC_STORE"):
        store_path = Path(env["REFUND_CALC_STORE"])
    elif raw.get("store_path"):
        store_path = base / str(raw["store_path"])
    else:
        store_path = DEFAULT_STORE_FILE
    catalog_path = base / str(raw["catalog_path"]) if raw.get("catalog_path") else CATALOG_CSV
    limit_raw = env.get("REFUND_CALC_HISTORY_LIMIT") or raw.get("history_limit")
    history_limit = DEFAULT_HISTORY_LIMIT if limit_raw is None else _positive_int(limit_raw, "history_limit")
    currency = str(env.get("REFUND_CALC_CURRENCY") or raw.get("default_currency") or DEFAULT_CURRENCY).upper()
    log_level = str(env.get("REFUND_CALC_LOG_LEVEL") or raw.get("log_level") or "INFO").upper()
    secret_key = env.get("FLASK_SECRET_KEY") or raw.get("secret_key") or "dev-fallback"

    return Settings(
        store_path=store_path,
        catalog_path=catalog_path,
        history_limit=history_limit,
        default_currency=currency,
        log_level=log_level,
        secret_key=str(secret_key),
    )


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
