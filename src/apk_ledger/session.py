"""
Current-analysis state machine.

    Idle/Ready/Failed --analyze--> Loading --success--> Ready(result)
                                           --failure--> Failed(reason)
    any --clear--> Idle
    any --load_from_history(id)--> Ready(result)

Every request is tagged with a generation number. A reply whose generation
is no longer current (because the user started another analysis, cleared the
session, or loaded something from history meanwhile) is discarded.
"""

from __future__ import annotations

import logging
from typing import Optional

from apk_ledger.exceptions import AnalysisFailure, NotFound, PersistenceFailure
from apk_ledger.gateway import AnalyzerGateway
from apk_ledger.ledger import HistoryLedger
from apk_ledger.log import log_event
from apk_ledger.models import (
    AnalysisResult,
    DisplayPayload,
    FileOrigin,
    LastAnalysis,
    PackageInput,
    PayloadKind,
    Permission,
    PermissionStats,
    SessionState,
    SessionStatus,
)
from apk_ledger.storage import PersistenceAdapter

logger = logging.getLogger(__name__)


class ResultStore:
    def __init__(
        self,
        gateway: AnalyzerGateway,
        ledger: HistoryLedger,
        persistence: PersistenceAdapter,
    ) -> None:
        self._gateway = gateway
        self._ledger = ledger
        self._persistence = persistence
        self._generation = 0
        self._state = SessionState.idle()
        self.last_persistence_error: Optional[PersistenceFailure] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    # ── transitions ──────────────────────────────────────────────────────────

    async def analyze(self, package: PackageInput) -> Optional[AnalysisResult]:
        """
        Run one analysis and make it the current result.

        Returns the result, or ``None`` if a newer action superseded this
        request before the engine replied.

        Raises:
            AnalysisFailure: The engine rejected the package and this request
                is still current. The session is left ``FAILED``.
        """
        generation = self._next_generation()
        self._state = SessionState.loading(generation)
        log_event(logger, logging.INFO, "analysis_started", generation=generation, input=package.display_name)

        try:
            result = await self._gateway.analyze(package)
        except AnalysisFailure as exc:
            if generation != self._generation:
                self._discard_stale(generation, outcome="failure")
                return None
            self._state = SessionState.failed(exc.reason, generation)
            log_event(logger, logging.WARNING, "analysis_failed", generation=generation, reason=exc.reason)
            raise

        if generation != self._generation:
            self._discard_stale(generation, outcome="success")
            return None

        origin = package.origin_for(result)
        self._state = SessionState.ready(result, origin, generation)
        log_event(
            logger,
            logging.INFO,
            "analysis_succeeded",
            generation=generation,
            package=result.package_name,
            version=result.version_name,
        )
        self._ledger.upsert(result, origin)
        self._save_last(result, origin)
        return result

    def load_from_history(self, entry_id: str) -> AnalysisResult:
        """
        Show a past analysis again.

        Raises:
            NotFound: ``entry_id`` is not in the ledger. State is unchanged.
        """
        entry = self._ledger.find(entry_id)
        if entry is None:
            raise NotFound(entry_id)
        origin = entry.file_origin or FileOrigin.synthesize(entry.result)
        self._state = SessionState.ready(entry.result, origin, self._next_generation())
        self._save_last(entry.result, origin)
        return entry.result

    def show(self, payload: DisplayPayload) -> None:
        """Display a result directly, without recording it in history."""
        if payload.kind == PayloadKind.FILE:
            origin = payload.file_origin
        else:
            origin = None
        self._state = SessionState.ready(payload.result, origin, self._next_generation())

    def clear(self) -> None:
        """Back to ``IDLE``; also forgets the persisted last analysis."""
        self._state = SessionState.idle(self._next_generation())
        try:
            self._persistence.delete_last()
        except PersistenceFailure as exc:
            logger.warning("Last analysis could not be removed from disk: %s", exc)
            self.last_persistence_error = exc
        else:
            self.last_persistence_error = None

    def restore(self) -> None:
        """Seed the session from the persisted last analysis, or start ``IDLE``."""
        last = self._persistence.load_last()
        if last is None:
            self._state = SessionState.idle(self._generation)
            return
        self._state = SessionState.ready(last.result, last.file_origin, self._generation)

    def _save_last(self, result: AnalysisResult, origin: Optional[FileOrigin]) -> None:
        try:
            self._persistence.save_last(LastAnalysis(result=result, file_origin=origin))
        except PersistenceFailure as exc:
            logger.warning("Last analysis kept in memory only: %s", exc)
            self.last_persistence_error = exc
        else:
            self.last_persistence_error = None

    def _discard_stale(self, generation: int, outcome: str) -> None:
        log_event(
            logger,
            logging.INFO,
            "stale_response_discarded",
            generation=generation,
            current=self._generation,
            outcome=outcome,
        )

    # ── derived views ────────────────────────────────────────────────────────

    def _ready_result(self) -> Optional[AnalysisResult]:
        if self._state.status != SessionStatus.READY:
            return None
        return self._state.result

    @property
    def has_result(self) -> bool:
        return self._ready_result() is not None

    @property
    def dangerous_permissions(self) -> tuple[Permission, ...]:
        result = self._ready_result()
        return result.dangerous_permissions if result else ()

    @property
    def is_certificate_expired(self) -> bool:
        result = self._ready_result()
        return result.is_certificate_expired if result else False

    @property
    def formatted_version_info(self) -> str:
        result = self._ready_result()
        return result.formatted_version_info if result else ""

    @property
    def formatted_sdk_info(self) -> str:
        result = self._ready_result()
        return result.formatted_sdk_info if result else ""

    @property
    def permission_stats(self) -> PermissionStats:
        result = self._ready_result()
        return result.permission_stats if result else PermissionStats()
