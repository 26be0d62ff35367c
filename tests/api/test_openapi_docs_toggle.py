from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from drc_loyalty import main as app_main

DOC_PATHS = ("/docs", "/redoc", "/openapi.json")


def _client_with_docs(monkeypatch, *, enabled: bool) -> TestClient:
    settings = SimpleNamespace(log_level="WARNING", enable_openapi_docs=enabled)
    monkeypatch.setattr(app_main, "get_settings", lambda: settings)
    return TestClient(app_main.create_app())


@pytest.mark.parametrize("path", DOC_PATHS)
def test_doc_pages_served_when_enabled(monkeypatch, path: str) -> None:
    client = _client_with_docs(monkeypatch, enabled=True)
    assert client.get(path).status_code == 200


@pytest.mark.parametrize("path", DOC_PATHS)
def test_doc_pages_hidden_when_disabled(monkeypatch, path: str) -> None:
    client = _client_with_docs(monkeypatch, enabled=False)
    assert client.get(path).status_code == 404


def test_schema_lists_receipt_and_moderation_routes(monkeypatch) -> None:
    client = _client_with_docs(monkeypatch, enabled=True)

    paths = client.get("/openapi.json").json()["paths"]

    assert "/receipts" in paths
    assert "/internal/receipts/{receipt_id}/approve" in paths
    assert "/health" in paths
