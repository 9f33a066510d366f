"""
Unit tests: server.py
"""
from __future__ import annotations

import pytest

pytest.importorskip("fastapi")

from fastapi.testclient import TestClient  # noqa: E402

import apk_ledger as al  # noqa: E402
from apk_ledger.server import create_app  # noqa: E402


@pytest.fixture
def client(workspace) -> TestClient:
    return TestClient(create_app(workspace))


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": al.__version__}


def test_session_starts_idle(client):
    data = client.get("/session").json()
    assert data["status"] == "idle"
    assert data["loading"] is False
    assert data["apk_info"] is None


def test_analyze_and_history(client):
    response = client.post("/analyze", json={"path": "/apks/a.apk"})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["apk_info"]["package_name"] == "com.a"
    assert data["file_info"]["file_name"] == "a.apk"

    history = client.get("/history").json()
    assert [e["apk_info"]["package_name"] for e in history] == ["com.a"]


def test_analyze_failure_is_422(client):
    response = client.post("/analyze", json={"path": "/apks/broken.apk"})
    assert response.status_code == 422
    assert response.json()["detail"] == "Invalid manifest: missing package attribute"
    assert client.get("/session").json()["status"] == "failed"


def test_load_from_history(client):
    client.post("/analyze", json={"path": "/apks/a.apk"})
    client.post("/analyze", json={"path": "/apks/b.apk"})
    older = client.get("/history").json()[1]["id"]
    data = client.post(f"/history/{older}/load").json()
    assert data["apk_info"]["package_name"] == "com.a"


def test_load_missing_is_404(client):
    assert client.post("/history/nope/load").status_code == 404


def test_remove_and_clear(client):
    client.post("/analyze", json={"path": "/apks/a.apk"})
    client.post("/analyze", json={"path": "/apks/b.apk"})
    first = client.get("/history").json()[0]["id"]
    assert client.delete(f"/history/{first}").json() == {"removed": True}
    assert client.delete(f"/history/{first}").status_code == 404
    assert client.delete("/history").json() == {"entries": 0}
    assert client.get("/history").json() == []


def test_clear_session(client):
    client.post("/analyze", json={"path": "/apks/a.apk"})
    assert client.delete("/session").json()["status"] == "idle"


def test_report(client):
    assert client.get("/report").status_code == 404
    client.post("/analyze", json={"path": "/apks/a.apk"})
    response = client.get("/report")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "com.a" in response.text
