"""
Bounded, deduplicated analysis history, newest first.

Entries are kept newest-first. Identity is ``(package_name, version_name)``;
re-analyzing a known identity moves its entry to the front instead of adding
a second one. Once the ledger grows past its capacity the oldest entries are
dropped.

Every mutation is written through to the persistence adapter. A failed write
is logged and remembered in ``last_persistence_error``; the in-memory ledger
is never rolled back.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Iterator, Optional

from apk_ledger.config import DEFAULT_HISTORY_CAPACITY
from apk_ledger.exceptions import PersistenceFailure
from apk_ledger.log import log_event
from apk_ledger.models import AnalysisResult, FileOrigin, HistoryEntry
from apk_ledger.storage import PersistenceAdapter

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryLedger:
    def __init__(
        self,
        persistence: PersistenceAdapter,
        capacity: int = DEFAULT_HISTORY_CAPACITY,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._persistence = persistence
        self._capacity = capacity
        self._id_factory = id_factory
        self._clock = clock
        self._entries: list[HistoryEntry] = []
        self.last_persistence_error: Optional[PersistenceFailure] = None

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(tuple(self._entries))

    def restore(self) -> None:
        """Replace in-memory entries with the persisted ledger, if any."""
        stored = self._persistence.load_history()
        if stored is None:
            self._entries = []
            return
        seen: set[tuple[str, str]] = set()
        entries: list[HistoryEntry] = []
        for entry in stored:
            if entry.identity in seen:
                continue
            seen.add(entry.identity)
            entries.append(entry)
        self._entries = entries[: self._capacity]

    def find(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def upsert(self, result: AnalysisResult, file_origin: Optional[FileOrigin] = None) -> HistoryEntry:
        """
        Record ``result`` as the most recent analysis.

        A known identity keeps its id but is pulled to the front with the new
        result, origin and timestamp.
        """
        key = result.identity
        existing = next((i for i, e in enumerate(self._entries) if e.identity == key), None)
        if existing is not None:
            entry_id = self._entries.pop(existing).id
        else:
            entry_id = self._id_factory()

        entry = HistoryEntry(
            id=entry_id,
            result=result,
            analyzed_at=self._clock(),
            file_origin=file_origin,
        )
        self._entries.insert(0, entry)

        if len(self._entries) > self._capacity:
            evicted = self._entries[self._capacity :]
            del self._entries[self._capacity :]
            log_event(
                logger,
                logging.INFO,
                "history_evicted",
                entries=[f"{e.result.package_name}@{e.result.version_name}" for e in evicted],
            )

        self._persist()
        return entry

    def remove(self, entry_id: str) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.id != entry_id]
        removed = len(self._entries) != before
        self._persist()
        return removed

    def clear(self) -> None:
        self._entries = []
        self._persist()

    def _persist(self) -> None:
        try:
            self._persistence.save_history(self._entries)
        except PersistenceFailure as exc:
            logger.warning("History kept in memory only: %s", exc)
            self.last_persistence_error = exc
        else:
            self.last_persistence_error = None
