"""
apk_ledger - result cache and history for APK analysis.

Usage:
    import apk_ledger

    workspace = apk_ledger.open_workspace(engine=my_engine)
    result = await workspace.analyze_path("app-release.apk")
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("apk-ledger")
except PackageNotFoundError:
    __version__ = "0.0.0+local"

from apk_ledger.config import LedgerConfig, load_config
from apk_ledger.exceptions import (
    AnalysisFailure,
    ApkLedgerError,
    EngineConfigError,
    NotFound,
    PersistenceFailure,
)
from apk_ledger.gateway import AnalyzerGateway
from apk_ledger.ledger import HistoryLedger
from apk_ledger.models import (
    AnalysisResult,
    DisplayPayload,
    FileOrigin,
    HistoryEntry,
    PackageInput,
    Permission,
    SessionState,
    SessionStatus,
)
from apk_ledger.report import render
from apk_ledger.session import ResultStore
from apk_ledger.storage import JsonFileStore, MemoryStore, PersistenceAdapter
from apk_ledger.workspace import Workspace, open_workspace

__all__ = [
    "__version__",
    "open_workspace",
    "Workspace",
    "LedgerConfig",
    "load_config",
    "AnalyzerGateway",
    "HistoryLedger",
    "ResultStore",
    "PersistenceAdapter",
    "JsonFileStore",
    "MemoryStore",
    "render",
    "AnalysisResult",
    "DisplayPayload",
    "FileOrigin",
    "HistoryEntry",
    "PackageInput",
    "Permission",
    "SessionState",
    "SessionStatus",
    "ApkLedgerError",
    "AnalysisFailure",
    "NotFound",
    "PersistenceFailure",
    "EngineConfigError",
]
