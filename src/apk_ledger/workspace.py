"""
The public surface of apk_ledger.

A ``Workspace`` wires the gateway, ledger, result store and persistence
together. Build one per process with ``open_workspace()`` (or the
constructor, for tests), call ``restore()`` once before the first user
action, and keep it for the lifetime of the process. Nothing here is a
module-level singleton.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from apk_ledger.config import LedgerConfig, load_config
from apk_ledger.exceptions import EngineConfigError, PersistenceFailure
from apk_ledger.gateway import AnalyzerGateway, EngineInvoke, load_engine
from apk_ledger.ledger import HistoryLedger
from apk_ledger.models import (
    AnalysisResult,
    HistoryEntry,
    PackageInput,
    Permission,
    PermissionStats,
    SessionState,
)
from apk_ledger.session import ResultStore
from apk_ledger.storage import JsonFileStore, PersistenceAdapter

logger = logging.getLogger(__name__)


async def _no_engine(command: str, payload: Mapping[str, Any]) -> Any:
    raise EngineConfigError(
        "No analysis engine configured. Pass --engine or set APK_LEDGER_ENGINE."
    )


class Workspace:
    def __init__(
        self,
        gateway: AnalyzerGateway,
        persistence: PersistenceAdapter,
        config: Optional[LedgerConfig] = None,
        ledger: Optional[HistoryLedger] = None,
    ) -> None:
        self.config = config or LedgerConfig()
        self.persistence = persistence
        if ledger is None:
            ledger = HistoryLedger(persistence, capacity=self.config.history_capacity)
        self.ledger = ledger
        self.store = ResultStore(gateway, self.ledger, persistence)

    def restore(self) -> None:
        """Load history and the last analysis from disk."""
        self.ledger.restore()
        self.store.restore()

    # ── operations ───────────────────────────────────────────────────────────

    async def analyze(self, package: PackageInput) -> Optional[AnalysisResult]:
        return await self.store.analyze(package)

    async def analyze_path(self, path: str | Path) -> Optional[AnalysisResult]:
        return await self.store.analyze(PackageInput.from_path(path))

    async def analyze_bytes(self, data: bytes, display_name: str) -> Optional[AnalysisResult]:
        return await self.store.analyze(PackageInput.from_bytes(data, display_name))

    def load_from_history(self, entry_id: str) -> AnalysisResult:
        return self.store.load_from_history(entry_id)

    def remove_from_history(self, entry_id: str) -> bool:
        return self.ledger.remove(entry_id)

    def clear_history(self) -> None:
        self.ledger.clear()

    def clear_current_analysis(self) -> None:
        self.store.clear()

    # ── read views ───────────────────────────────────────────────────────────

    @property
    def state(self) -> SessionState:
        return self.store.state

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return self.ledger.entries

    @property
    def dangerous_permissions(self) -> tuple[Permission, ...]:
        return self.store.dangerous_permissions

    @property
    def is_certificate_expired(self) -> bool:
        return self.store.is_certificate_expired

    @property
    def formatted_version_info(self) -> str:
        return self.store.formatted_version_info

    @property
    def formatted_sdk_info(self) -> str:
        return self.store.formatted_sdk_info

    @property
    def permission_stats(self) -> PermissionStats:
        return self.store.permission_stats

    @property
    def last_persistence_error(self) -> Optional[PersistenceFailure]:
        return self.store.last_persistence_error or self.ledger.last_persistence_error


def open_workspace(
    config: Optional[LedgerConfig] = None,
    engine: Optional[EngineInvoke] = None,
) -> Workspace:
    """
    Build and restore the process-wide workspace.

    ``engine`` wins over ``config.engine``. Without either, history
    operations work but ``analyze`` fails with a configuration message.
    """
    config = config or load_config()
    if engine is None:
        engine = load_engine(config.engine) if config.engine else _no_engine
    persistence = PersistenceAdapter(JsonFileStore(config.data_dir))
    workspace = Workspace(AnalyzerGateway(engine), persistence, config)
    workspace.restore()
    logger.debug("Workspace opened at %s (%d history entries)", config.data_dir, len(workspace.ledger))
    return workspace
