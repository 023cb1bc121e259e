"""Tests for the FastAPI app hosting the streamable HTTP transport."""
from __future__ import annotations

from fastapi.testclient import TestClient

from conftest import StubApi
from core.config import Settings
from mcp_server.app import MCP_PATH, create_app
from mcp_server.server import create_server


def test_health_reports_upstream(settings: Settings, stub_api: StubApi) -> None:
    server = create_server(settings, transport=stub_api.transport())
    app = create_app(server, settings)

    # Without the context manager the lifespan (and session manager) is not started.
    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "server": "alfred-api",
        "base_url": "https://alfred.test/api/v1",
    }
    assert stub_api.requests == []


def test_mcp_route_registered(settings: Settings) -> None:
    app = create_app(create_server(settings), settings)

    paths = {getattr(route, "path", None) for route in app.routes}

    assert MCP_PATH in paths
    assert "/health" in paths
