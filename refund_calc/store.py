"""Local persistence for history, templates and preferences.

The layout is a flat set of keys, each holding a JSON string:

    calculationHistory -> [HistoryItem, ...]   most recent first
    templates          -> [Template, ...]      insertion order
    darkMode           -> "true" / "false"
    defaultCurrency    -> "USD"
    historyLimit       -> "10"
    uiSession          -> {form, result, selectedMedications, undo}

``KeyValueStore`` is the raw capability (``MemoryStore`` for tests,
``JsonFileStore`` on disk). ``RecordStore`` adds JSON encoding and the
failure policy: a corrupt blob reads as "no saved data" and a failed write
returns False instead of raising, so callers can keep their previous state.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from refund_calc.config import (
    CURRENCY_KEY,
    DARK_MODE_KEY,
    DEFAULT_HISTORY_LIMIT,
    HISTORY_KEY,
    HISTORY_LIMIT_KEY,
    TEMPLATES_KEY,
    UI_SESSION_KEY,
)
from refund_calc.models import HistoryItem, Template

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class KeyValueStore:
    """String key -> string value storage."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStore(KeyValueStore):
    """All keys in one JSON object on disk, rewritten whole on every change."""

    def __init__(self, path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable store file %s: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring store file %s: top level is not an object", self.path)
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)}

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".store-", suffix=".json")
        except OSError as e:
            raise StoreError(f"Failed to write {self.path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(tmp)
            except OSError:
                logger.warning("Could not remove temporary file %s", tmp)
            raise StoreError(f"Failed to write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


def prepend_history(history: Sequence[HistoryItem], item: HistoryItem, limit: int) -> List[HistoryItem]:
    """New list with ``item`` at the head and the oldest entries beyond ``limit`` dropped."""
    return [item, *history][: max(limit, 0)]


class RecordStore:
    def __init__(self, kv: KeyValueStore):
        self.kv = kv

    # --- generic record lists ---

    def load(self, key: str) -> Optional[list]:
        raw = self.kv.get(key)
        if raw is None:
            return None
        try:
            records = json.loads(raw)
        except ValueError as e:
            logger.warning("Stored value for %r is not valid JSON, ignoring it: %s", key, e)
            return None
        if not isinstance(records, list):
            logger.warning("Stored value for %r is not a list, ignoring it", key)
            return None
        return records

    def save(self, key: str, records: Sequence) -> bool:
        try:
            blob = json.dumps(list(records), ensure_ascii=False)
            self.kv.set(key, blob)
        except (TypeError, ValueError, StoreError) as e:
            logger.error("Failed to save %r: %s", key, e)
            return False
        return True

    def clear(self, key: str) -> bool:
        try:
            self.kv.remove(key)
        except StoreError as e:
            logger.error("Failed to clear %r: %s", key, e)
            return False
        return True

    def snapshot(self, keys: Sequence[str]) -> Dict[str, Optional[str]]:
        """Raw values of ``keys`` as they are now, for ``rollback``."""
        return {key: self.kv.get(key) for key in keys}

    def rollback(self, snapshot: Dict[str, Optional[str]]) -> bool:
        """Put every key back to the raw value it had in ``snapshot``."""
        ok = True
        for key, raw in snapshot.items():
            try:
                if raw is None:
                    self.kv.remove(key)
                else:
                    self.kv.set(key, raw)
            except StoreError as e:
                logger.error("Failed to roll back %r: %s", key, e)
                ok = False
        return ok

    # --- history ---

    def load_history(self) -> List[HistoryItem]:
        records = self.load(HISTORY_KEY)
        if records is None:
            return []
        try:
            return [HistoryItem.from_dict(r) for r in records]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Stored history is malformed, starting empty: %s", e)
            return []

    def save_history(self, items: Sequence[HistoryItem], limit: int = DEFAULT_HISTORY_LIMIT) -> bool:
        return self.save(HISTORY_KEY, [item.to_dict() for item in list(items)[:limit]])

    def clear_history(self) -> bool:
        return self.clear(HISTORY_KEY)

    # --- templates ---

    def load_templates(self) -> List[Template]:
        records = self.load(TEMPLATES_KEY)
        if records is None:
            return []
        try:
            return [Template.from_dict(r) for r in records]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Stored templates are malformed, starting empty: %s", e)
            return []

    def save_templates(self, templates: Sequence[Template]) -> bool:
        return self.save(TEMPLATES_KEY, [t.to_dict() for t in templates])

    def clear_templates(self) -> bool:
        return self.clear(TEMPLATES_KEY)

    # --- preferences ---

    def _set_scalar(self, key: str, value: str) -> bool:
        try:
            self.kv.set(key, value)
        except StoreError as e:
            logger.error("Failed to save preference %r: %s", key, e)
            return False
        return True

    def load_dark_mode(self) -> bool:
        return self.kv.get(DARK_MODE_KEY) == "true"

    def save_dark_mode(self, enabled: bool) -> bool:
        return self._set_scalar(DARK_MODE_KEY, "true" if enabled else "false")

    def load_currency(self, default: str) -> str:
        return self.kv.get(CURRENCY_KEY) or default

    def save_currency(self, currency: str) -> bool:
        return self._set_scalar(CURRENCY_KEY, currency)

    def load_history_limit(self, default: int = DEFAULT_HISTORY_LIMIT) -> int:
        raw = self.kv.get(HISTORY_LIMIT_KEY)
        if raw is None:
            return default
        try:
            n = int(raw)
        except ValueError:
            logger.warning("Ignoring invalid history limit %r", raw)
            return default
        return n if n > 0 else default

    def save_history_limit(self, limit: int) -> bool:
        return self._set_scalar(HISTORY_LIMIT_KEY, str(int(limit)))

    # --- open UI session ---

    def load_session(self) -> dict:
        raw = self.kv.get(UI_SESSION_KEY)
        if raw is None:
            return {}
        try:
            data = json.loads(raw)
        except ValueError as e:
            logger.warning("Stored UI session is not valid JSON, ignoring it: %s", e)
            return {}
        return data if isinstance(data, dict) else {}

    def save_session(self, data: dict) -> bool:
        try:
            self.kv.set(UI_SESSION_KEY, json.dumps(data, ensure_ascii=False))
        except (TypeError, ValueError, StoreError) as e:
            logger.error("Failed to save UI session: %s", e)
            return False
        return True
