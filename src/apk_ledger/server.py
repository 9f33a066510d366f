"""
HTTP API for apk_ledger.

Exposes the workspace operations to a non-Python front end. All requests
share the single workspace passed to ``create_app``.
"""

from __future__ import annotations

import logging
from typing import Any

import apk_ledger as al
from apk_ledger import codec
from apk_ledger.exceptions import AnalysisFailure, NotFound
from apk_ledger.models import FileOrigin, SessionState, SessionStatus
from apk_ledger.report import render
from apk_ledger.workspace import Workspace

logger = logging.getLogger(__name__)

try:
    from fastapi import FastAPI, HTTPException
    from fastapi.responses import HTMLResponse
    from pydantic import BaseModel
except ImportError:
    FastAPI = None


if FastAPI is not None:

    class AnalyzeRequest(BaseModel):
        path: str


def _session_to_dict(state: SessionState) -> dict[str, Any]:
    data: dict[str, Any] = {
        "status": state.status.value,
        "loading": state.is_loading,
        "error": state.error,
        "apk_info": codec.result_to_dict(state.result) if state.result else None,
        "file_info": codec.origin_to_dict(state.file_origin) if state.file_origin else None,
    }
    return data


def create_app(workspace: Workspace) -> "FastAPI":
    if FastAPI is None:
        raise RuntimeError(
            "FastAPI is not installed. To run the apk-ledger server, "
            "install with `pip install apk-ledger[server]`."
        )

    app = FastAPI(
        title="apk-ledger API",
        description="APK analysis results and history",
        version=al.__version__,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": al.__version__}

    @app.get("/session")
    def session() -> dict[str, Any]:
        return _session_to_dict(workspace.state)

    @app.post("/analyze")
    async def analyze(req: AnalyzeRequest) -> dict[str, Any]:
        try:
            await workspace.analyze_path(req.path)
        except AnalysisFailure as e:
            raise HTTPException(status_code=422, detail=e.reason)
        return _session_to_dict(workspace.state)

    @app.get("/history")
    def history() -> list[dict[str, Any]]:
        return codec.history_to_list(workspace.history)

    @app.post("/history/{entry_id}/load")
    def load_entry(entry_id: str) -> dict[str, Any]:
        try:
            workspace.load_from_history(entry_id)
        except NotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        return _session_to_dict(workspace.state)

    @app.delete("/history/{entry_id}")
    def remove_entry(entry_id: str) -> dict[str, bool]:
        if not workspace.remove_from_history(entry_id):
            raise HTTPException(status_code=404, detail=str(NotFound(entry_id)))
        return {"removed": True}

    @app.delete("/history")
    def clear_history() -> dict[str, int]:
        workspace.clear_history()
        return {"entries": 0}

    @app.delete("/session")
    def clear_session() -> dict[str, Any]:
        workspace.clear_current_analysis()
        return _session_to_dict(workspace.state)

    @app.get("/report", response_class=HTMLResponse)
    def report() -> str:
        state = workspace.state
        if state.status != SessionStatus.READY or state.result is None:
            raise HTTPException(status_code=404, detail="No current analysis")
        return render(state.result, state.file_origin or FileOrigin.synthesize(state.result))

    return app


def run_server(workspace: Workspace, port: int = 8080, host: str = "127.0.0.1") -> None:
    try:
        import uvicorn
    except ImportError:
        raise RuntimeError(
            "uvicorn is not installed. Install with `pip install apk-ledger[server]`."
        )

    app = create_app(workspace)
    logger.info("Serving apk-ledger API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)
