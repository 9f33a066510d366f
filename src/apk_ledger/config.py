"""
Configuration for apk_ledger.

Sources are merged in priority order (lowest to highest):
    1. Defaults (``LedgerConfig`` field defaults)
    2. Environment variables (``APK_LEDGER_*``)
    3. Explicit overrides (typically CLI flags)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

DEFAULT_HISTORY_CAPACITY = 10

_ENV_VARS = {
    "data_dir": "APK_LEDGER_HOME",
    "history_capacity": "APK_LEDGER_CAPACITY",
    "engine": "APK_LEDGER_ENGINE",
    "log_level": "APK_LEDGER_LOG_LEVEL",
}


def _default_data_dir() -> Path:
    return Path.home() / ".apk-ledger"


@dataclass(frozen=True)
class LedgerConfig:
    data_dir: Path = field(default_factory=_default_data_dir)
    history_capacity: int = DEFAULT_HISTORY_CAPACITY
    engine: Optional[str] = None  # "package.module:callable"
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if not isinstance(self.data_dir, Path):
            object.__setattr__(self, "data_dir", Path(self.data_dir).expanduser())
        if self.history_capacity < 1:
            raise ValueError(f"history_capacity must be >= 1, got {self.history_capacity}")


def _load_env_vars() -> dict[str, Any]:
    values: dict[str, Any] = {}
    for name, env_key in _ENV_VARS.items():
        raw = os.environ.get(env_key)
        if raw is None or raw == "":
            continue
        if name == "history_capacity":
            try:
                values[name] = int(raw)
            except ValueError:
                raise ValueError(f"{env_key} must be an integer, got {raw!r}")
        elif name == "data_dir":
            values[name] = Path(raw).expanduser()
        else:
            values[name] = raw
    return values


def load_config(**overrides: Any) -> LedgerConfig:
    """
    Build a ``LedgerConfig`` from defaults, environment and overrides.

    ``None`` overrides are ignored so argparse defaults do not mask the
    environment.
    """
    known = {f.name for f in fields(LedgerConfig)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown config option(s): {', '.join(sorted(unknown))}")

    merged = _load_env_vars()
    merged.update({k: v for k, v in overrides.items() if v is not None})
    return LedgerConfig(**merged)
