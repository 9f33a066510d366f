"""
Durable storage for the session snapshot and the history ledger.

Two independent slots live in a string-keyed store. Loading never fails the
caller: a missing or undecodable payload means "no prior state". Writes raise
``PersistenceFailure`` and never touch in-memory state.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Protocol

from apk_ledger import codec
from apk_ledger.exceptions import PersistenceFailure
from apk_ledger.log import log_event
from apk_ledger.models import HistoryEntry, LastAnalysis

logger = logging.getLogger(__name__)

# Raised by the codec on corrupt slot contents.
_DECODE_ERRORS = (TypeError, ValueError, OverflowError, RecursionError)


class Slot(str, Enum):
    LAST_ANALYSIS = "apk-analyzer-last-analysis"
    HISTORY = "apk-analyzer-history"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-process store for tests and throwaway sessions."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileStore:
    """One ``<key>.json`` file per key. Writes go through a temp file and ``os.replace``."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(value)
            os.replace(tmp, self._path(key))
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class PersistenceAdapter:
    """Typed access to the ``history`` and ``last analysis`` slots."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    # ── raw slot operations ──────────────────────────────────────────────────

    def save(self, slot: Slot, value: Any) -> None:
        try:
            payload = json.dumps(value, ensure_ascii=False)
            self.store.set(slot.value, payload)
        except (OSError, TypeError, ValueError) as exc:
            log_event(logger, logging.ERROR, "persistence_failed", slot=slot.value, op="save", error=str(exc))
            raise PersistenceFailure(f"Could not save '{slot.value}': {exc}") from exc

    def load(self, slot: Slot) -> Optional[Any]:
        try:
            raw = self.store.get(slot.value)
        except (OSError, UnicodeDecodeError) as exc:
            log_event(logger, logging.WARNING, "restore_skipped", slot=slot.value, reason=str(exc))
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (ValueError, RecursionError) as exc:
            log_event(logger, logging.WARNING, "restore_skipped", slot=slot.value, reason=str(exc))
            return None

    def delete(self, slot: Slot) -> None:
        try:
            self.store.delete(slot.value)
        except OSError as exc:
            log_event(logger, logging.ERROR, "persistence_failed", slot=slot.value, op="delete", error=str(exc))
            raise PersistenceFailure(f"Could not delete '{slot.value}': {exc}") from exc

    # ── typed helpers ────────────────────────────────────────────────────────

    def save_history(self, entries: list[HistoryEntry] | tuple[HistoryEntry, ...]) -> None:
        self.save(Slot.HISTORY, codec.history_to_list(entries))

    def load_history(self) -> Optional[list[HistoryEntry]]:
        data = self.load(Slot.HISTORY)
        if data is None:
            return None
        try:
            return codec.history_from_list(data)
        except _DECODE_ERRORS as exc:
            log_event(logger, logging.WARNING, "restore_skipped", slot=Slot.HISTORY.value, reason=str(exc))
            return None

    def save_last(self, last: LastAnalysis) -> None:
        self.save(Slot.LAST_ANALYSIS, codec.last_to_dict(last))

    def load_last(self) -> Optional[LastAnalysis]:
        data = self.load(Slot.LAST_ANALYSIS)
        if data is None:
            return None
        try:
            return codec.last_from_dict(data)
        except _DECODE_ERRORS as exc:
            log_event(
                logger, logging.WARNING, "restore_skipped", slot=Slot.LAST_ANALYSIS.value, reason=str(exc)
            )
            return None

    def delete_last(self) -> None:
        self.delete(Slot.LAST_ANALYSIS)
