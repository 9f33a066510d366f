"""
Unit tests: structured JSON log events.
"""
from __future__ import annotations

import asyncio
import json
import logging

import pytest
from rich.logging import RichHandler

from apk_ledger import codec
from apk_ledger.exceptions import AnalysisFailure
from apk_ledger.gateway import AnalyzerGateway
from apk_ledger.log import configure_logging, log_event
from apk_ledger.workspace import Workspace
from conftest import GatedEngine, engine_payload


def events(caplog) -> list[dict]:
    found = []
    for record in caplog.records:
        try:
            data = json.loads(record.getMessage())
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict) and "event" in data:
            found.append(data)
    return found


def test_log_event_is_json(caplog):
    logger = logging.getLogger("apk_ledger.test")
    with caplog.at_level(logging.INFO, logger="apk_ledger"):
        log_event(logger, logging.INFO, "something_happened", count=3)
    assert events(caplog) == [{"event": "something_happened", "count": 3}]


def test_analysis_events(workspace, caplog):
    with caplog.at_level(logging.INFO, logger="apk_ledger"):
        asyncio.run(workspace.analyze_path("/apks/a.apk"))
        with pytest.raises(AnalysisFailure):
            asyncio.run(workspace.analyze_path("/apks/broken.apk"))
    names = [e["event"] for e in events(caplog)]
    assert names == ["analysis_started", "analysis_succeeded", "analysis_started", "analysis_failed"]
    failed = events(caplog)[-1]
    assert failed["reason"] == "Invalid manifest: missing package attribute"


def test_eviction_event(ledger, caplog):
    with caplog.at_level(logging.INFO, logger="apk_ledger"):
        for i in range(11):
            ledger.upsert(codec.result_from_dict(engine_payload(f"com.p{i}")))
    evicted = [e for e in events(caplog) if e["event"] == "history_evicted"]
    assert evicted == [{"event": "history_evicted", "entries": ["com.p0@1.0"]}]


def test_stale_discard_event(persistence, ledger, caplog):
    engine = GatedEngine()
    workspace = Workspace(AnalyzerGateway(engine), persistence, ledger=ledger)

    async def scenario():
        engine.prepare("/a.apk", engine_payload("com.a"))
        engine.prepare("/b.apk", engine_payload("com.b"))
        first = asyncio.create_task(workspace.analyze_path("/a.apk"))
        await asyncio.sleep(0)
        second = asyncio.create_task(workspace.analyze_path("/b.apk"))
        await asyncio.sleep(0)
        engine.release("/b.apk")
        await second
        engine.release("/a.apk")
        await first

    with caplog.at_level(logging.INFO, logger="apk_ledger"):
        asyncio.run(scenario())
    stale = [e for e in events(caplog) if e["event"] == "stale_response_discarded"]
    assert stale == [{"event": "stale_response_discarded", "generation": 1, "current": 2, "outcome": "success"}]


def test_configure_logging_rejects_unknown_level():
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging("LOUD")


def test_configure_logging_is_idempotent():
    configure_logging("INFO")
    configure_logging("DEBUG")
    handlers = [h for h in logging.getLogger("apk_ledger").handlers if isinstance(h, RichHandler)]
    assert len(handlers) == 1
    configure_logging("WARNING")
