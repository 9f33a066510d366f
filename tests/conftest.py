"""Shared fixtures: engine payloads, fake engines and in-memory workspaces."""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import pytest

from apk_ledger.gateway import AnalyzerGateway
from apk_ledger.ledger import HistoryLedger
from apk_ledger.storage import MemoryStore, PersistenceAdapter
from apk_ledger.workspace import Workspace


def engine_payload(
    package: str = "com.example.app",
    version: str = "1.0",
    permissions: list[tuple[str, bool]] | None = None,
    **extra: Any,
) -> dict[str, Any]:
    if permissions is None:
        permissions = [
            ("android.permission.INTERNET", False),
            ("android.permission.CAMERA", True),
            ("android.permission.READ_CONTACTS", True),
        ]
    perms = [{"name": n, "is_dangerous": d} for n, d in permissions]
    data: dict[str, Any] = {
        "package_name": package,
        "version_name": version,
        "version_code": "1",
        "min_sdk": "21",
        "target_sdk": "34",
        "permissions": perms,
        "dangerous_permissions": [p for p in perms if p["is_dangerous"]],
        "permission_stats": {
            "total": len(perms),
            "dangerous": sum(1 for p in perms if p["is_dangerous"]),
        },
        "is_certificate_expired": False,
        "formatted_version_info": f"{version} (1)",
        "formatted_sdk_info": "Min SDK: 21, Target SDK: 34",
        "file_info": {
            "md5": "d41d8cd98f00b204e9800998ecf8427e",
            "sha1": "da39a3ee5e6b4b0d3255bfef95601890afd80709",
            "sha256": "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855",
            "file_size": 2048,
            "file_type": "application/vnd.android.package-archive",
            "entry_count": 12,
        },
    }
    data.update(extra)
    return data


class FakeEngine:
    """
    Scriptable engine. ``replies`` maps a path (or file name for byte input)
    to a payload dict or an exception instance.
    """

    def __init__(self, replies: Mapping[str, Any] | None = None) -> None:
        self.replies = dict(replies or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def __call__(self, command: str, payload: Mapping[str, Any]) -> Any:
        self.calls.append((command, dict(payload)))
        key = payload.get("path") or payload.get("file_name")
        reply = self.replies.get(key)
        if reply is None:
            raise FileNotFoundError(f"No such file: {key}")
        if isinstance(reply, BaseException):
            raise reply
        return reply


class GatedEngine:
    """Engine whose replies are released explicitly, to interleave requests."""

    def __init__(self) -> None:
        self.gates: dict[str, asyncio.Event] = {}
        self.replies: dict[str, Any] = {}

    def prepare(self, key: str, reply: Any) -> None:
        self.gates[key] = asyncio.Event()
        self.replies[key] = reply

    def release(self, key: str) -> None:
        self.gates[key].set()

    async def __call__(self, command: str, payload: Mapping[str, Any]) -> Any:
        key = payload.get("path") or payload.get("file_name")
        await self.gates[key].wait()
        reply = self.replies[key]
        if isinstance(reply, BaseException):
            raise reply
        return reply


class Ids:
    """Deterministic id factory: e0, e1, e2, ..."""

    def __init__(self) -> None:
        self.n = 0

    def __call__(self) -> str:
        value = f"e{self.n}"
        self.n += 1
        return value


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def persistence(memory_store: MemoryStore) -> PersistenceAdapter:
    return PersistenceAdapter(memory_store)


@pytest.fixture
def ledger(persistence: PersistenceAdapter) -> HistoryLedger:
    return HistoryLedger(persistence, id_factory=Ids())


@pytest.fixture
def engine() -> FakeEngine:
    return FakeEngine(
        {
            "/apks/a.apk": engine_payload("com.a", "1.0"),
            "/apks/b.apk": engine_payload("com.b", "1.0"),
            "/apks/broken.apk": RuntimeError("Invalid manifest: missing package attribute"),
        }
    )


@pytest.fixture
def workspace(engine: FakeEngine, persistence: PersistenceAdapter, ledger: HistoryLedger) -> Workspace:
    return Workspace(AnalyzerGateway(engine), persistence, ledger=ledger)
