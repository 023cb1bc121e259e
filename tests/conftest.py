from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from client.alfred_client import AlfredClient
from core.config import Settings
from mcp_server.registry import ToolRegistry
from mcp_server.server import build_registry


BASE_PATH = "/api/v1"

Responder = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class StubApi:
    """In-process stand-in for the Alfred REST API."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self._routes: Dict[Tuple[str, str], Responder] = {}

    def add(
        self,
        method: str,
        path: str,
        json: Optional[Any] = None,
        status: int = 200,
        handler: Optional[Callable[[httpx.Request], httpx.Response]] = None,
    ) -> None:
        self._routes[(method, path)] = handler or httpx.Response(status, json=json)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len(BASE_PATH):]
        route = self._routes.get((request.method, path))
        if route is None:
            return httpx.Response(404, json={"success": False, "error": f"no stub for {path}"})
        if isinstance(route, httpx.Response):
            return route
        return route(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_body(self) -> Any:
        return json.loads(self.last.content)


@pytest.fixture
def settings() -> Settings:
    return Settings(api_key="alf_test_key_123456", base_url="https://alfred.test/api/v1", timeout_ms=5000)


@pytest.fixture
def stub_api() -> StubApi:
    return StubApi()


@pytest.fixture
def client(settings: Settings, stub_api: StubApi) -> AlfredClient:
    return AlfredClient(settings, transport=stub_api.transport())


@pytest.fixture
def registry(client: AlfredClient) -> ToolRegistry:
    return build_registry(client)


def make_skill(skill_id: str = "skill-1", **overrides: Any) -> Dict[str, Any]:
    skill: Dict[str, Any] = {
        "id": skill_id,
        "name": "Daily digest",
        "description": "Summarise the inbox",
        "triggerType": "scheduled",
        "steps": [
            {"id": 1, "prompt": "Read inbox", "guidance": "Only unread", "allowedTools": ["gmail_list"]},
        ],
        "connectionNames": ["gmail"],
        "isSystem": False,
        "isActive": True,
        "runCount": 4,
        "createdAt": "2024-05-01T10:00:00Z",
        "updatedAt": "2024-05-02T10:00:00Z",
    }
    skill.update(overrides)
    return skill
