"""
Structured event logging.

Events are ordinary ``logging`` records whose message is a one-line JSON
object with an ``event`` key, so they stay greppable and machine-readable.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from rich.console import Console
from rich.logging import RichHandler


def log_event(logger: logging.Logger, level: int, event: str, **fields: Any) -> None:
    """Emit ``{"event": event, **fields}`` as a single JSON log message."""
    if not logger.isEnabledFor(level):
        return
    payload = {"event": event, **fields}
    logger.log(level, json.dumps(payload, sort_keys=True, default=str))


def configure_logging(level: str | int = "WARNING") -> None:
    """Send the ``apk_ledger`` logger tree to stderr through rich."""
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")
    root = logging.getLogger("apk_ledger")
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
