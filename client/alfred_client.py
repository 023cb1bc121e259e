from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote

import httpx
from loguru import logger

from core.config import Settings
from core.models import ApiResponse


class AlfredClientError(Exception):
    """Base class for failures raised by :class:`AlfredClient`."""


class AlfredAPIError(AlfredClientError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AlfredTimeoutError(AlfredClientError):
    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"Request timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class AlfredNetworkError(AlfredClientError):
    def __init__(self, cause: Exception) -> None:
        super().__init__(f"Network error: {cause}")
        self.cause = cause


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query(params: Optional[Mapping[str, Any]]) -> Dict[str, str]:
    """Drop unset filters and stringify the rest."""
    if not params:
        return {}
    return {key: _query_value(value) for key, value in params.items() if value is not None}


def _segment(identifier: str) -> str:
    return quote(str(identifier), safe="")


class AlfredClient:
    """Async client for the Alfred REST API.

    Holds read-only configuration only; each request opens its own HTTP
    connection so one instance can serve concurrent tool calls.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = settings.base_url.rstrip("/")
        self._timeout_ms = settings.timeout_ms
        self._timeout = settings.timeout_seconds
        self._headers = {
            "X-API-Key": settings.api_key,
            "Accept": "application/json",
        }
        self._transport = transport

    @property
    def base_url(self) -> str:
        return self._base_url

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def request(
        self,
        method: str,
        path: str,
        body: Optional[Any] = None,
        params: Optional[Mapping[str, Any]] = None,
    ) -> ApiResponse:
        url = f"{self._base_url}{path}"
        headers: Dict[str, str] = {}
        content: Optional[bytes] = None
        if body is not None:
            headers["Content-Type"] = "application/json"
            content = json.dumps(body).encode("utf-8")

        started = time.perf_counter()
        try:
            async with self._http() as http:
                resp = await asyncio.wait_for(
                    http.request(
                        method,
                        url,
                        params=build_query(params),
                        headers=headers,
                        content=content,
                    ),
                    timeout=self._timeout,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"{method} {path} timed out after {self._timeout_ms}ms")
            raise AlfredTimeoutError(self._timeout_ms) from None
        except httpx.TransportError as exc:
            logger.warning(f"{method} {path} failed: {exc!r}")
            raise AlfredNetworkError(exc) from exc

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        logger.debug(f"{method} {path} -> {resp.status_code} in {elapsed_ms}ms")
        return self._parse(resp)

    @staticmethod
    def _parse(resp: httpx.Response) -> ApiResponse:
        payload: Any = None
        if resp.content:
            try:
                payload = resp.json()
            except ValueError:
                payload = None

        if not resp.is_success:
            message = None
            if isinstance(payload, dict):
                message = payload.get("error") or payload.get("message")
            raise AlfredAPIError(
                message or f"HTTP {resp.status_code}: {resp.reason_phrase}",
                status_code=resp.status_code,
            )

        if not resp.content:
            return ApiResponse(success=True)
        if not isinstance(payload, dict):
            raise AlfredAPIError(
                f"Invalid JSON response from Alfred API (HTTP {resp.status_code})",
                status_code=resp.status_code,
            )
        return ApiResponse.model_validate(payload)

    # Skills
    async def list_skills(self, **filters: Any) -> ApiResponse:
        return await self.request("GET", "/skills", params=filters)

    async def get_skill(self, skill_id: str) -> ApiResponse:
        return await self.request("GET", f"/skills/{_segment(skill_id)}")

    async def create_skill(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.request("POST", "/skills", body=data)

    async def update_skill(self, skill_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.request("PUT", f"/skills/{_segment(skill_id)}", body=data)

    async def patch_skill(self, skill_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.request("PATCH", f"/skills/{_segment(skill_id)}", body=data)

    async def delete_skill(self, skill_id: str, force: bool = False) -> ApiResponse:
        params = {"force": True} if force else None
        return await self.request("DELETE", f"/skills/{_segment(skill_id)}", params=params)

    # Connections
    async def list_connections(self, **filters: Any) -> ApiResponse:
        return await self.request("GET", "/connections", params=filters)

    async def get_connection(self, connection_id: str) -> ApiResponse:
        return await self.request("GET", f"/connections/{_segment(connection_id)}")

    async def create_connection(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.request("POST", "/connections", body=data)

    async def update_connection(self, connection_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.request("PUT", f"/connections/{_segment(connection_id)}", body=data)

    async def patch_connection(self, connection_id: str, data: Dict[str, Any]) -> ApiResponse:
        return await self.request("PATCH", f"/connections/{_segment(connection_id)}", body=data)

    async def delete_connection(self, connection_id: str) -> ApiResponse:
        return await self.request("DELETE", f"/connections/{_segment(connection_id)}")

    # Executions
    async def list_executions(self, **filters: Any) -> ApiResponse:
        return await self.request("GET", "/executions", params=filters)

    async def get_execution(self, execution_id: str) -> ApiResponse:
        return await self.request("GET", f"/executions/{_segment(execution_id)}")

    async def get_execution_trace(self, execution_id: str) -> ApiResponse:
        return await self.request("GET", f"/executions/{_segment(execution_id)}/trace")

    async def get_execution_stats(self, **filters: Any) -> ApiResponse:
        return await self.request("GET", "/executions/stats", params=filters)

    async def delete_execution(self, execution_id: str) -> ApiResponse:
        return await self.request("DELETE", f"/executions/{_segment(execution_id)}")

    # API keys
    async def create_api_key(self, data: Dict[str, Any]) -> ApiResponse:
        return await self.request("POST", "/auth/keys", body=data)

    async def list_api_keys(self) -> ApiResponse:
        return await self.request("GET", "/auth/keys")

    async def delete_api_key(self, key_id: str) -> ApiResponse:
        return await self.request("DELETE", f"/auth/keys/{_segment(key_id)}")
