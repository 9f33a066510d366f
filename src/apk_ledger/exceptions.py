"""Custom exceptions for apk_ledger."""

from __future__ import annotations


class ApkLedgerError(Exception):
    """Base class for all apk_ledger errors."""


class AnalysisFailure(ApkLedgerError):
    """Raised when the analysis engine rejects or cannot process a package."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotFound(ApkLedgerError):
    """Raised when a history lookup names an id that is not in the ledger."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"History entry not found: {entry_id}")
        self.entry_id = entry_id


class PersistenceFailure(ApkLedgerError):
    """Raised when a durable slot cannot be written or deleted."""


class EngineConfigError(ApkLedgerError):
    """Raised when the analysis engine reference cannot be resolved."""
