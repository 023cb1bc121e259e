"""Shared result-shaping helpers for the Alfred tool categories."""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence, Set

from mcp.types import TextContent
from pydantic import BaseModel

from core.models import ApiResponse


class ToolFailure(Exception):
    """The Alfred API answered with ``success: false``.

    Raised inside a handler and rendered by the registry as a failure payload,
    never propagated to the MCP runtime.
    """

    def __init__(self, error: str, message: Optional[str] = None) -> None:
        super().__init__(error)
        self.error = error
        self.message = message

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": False, "error": self.error}
        if self.message and self.message != self.error:
            payload["message"] = self.message
        return payload


def ensure_success(response: ApiResponse, default_error: str) -> ApiResponse:
    """Raise :class:`ToolFailure` unless the envelope reports success.

    The remote ``error`` wins over ``message``; ``default_error`` is used when
    the service gave neither.
    """
    if not response.success:
        raise ToolFailure(response.failure_reason or default_error, message=response.message)
    return response


def failure_payload(error: str, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"success": False, "error": error}
    payload.update(extra)
    return payload


def text_payload(payload: Dict[str, Any]) -> List[TextContent]:
    return [TextContent(type="text", text=json.dumps(payload))]


def supplied_fields(params: BaseModel, exclude: Optional[Set[str]] = None) -> Dict[str, Any]:
    """Return only the fields the caller actually sent.

    Unset fields are left out entirely so a PATCH never touches them; an
    explicit ``null`` is kept and means "clear".
    """
    return params.model_dump(exclude_unset=True, exclude=exclude or set())


def pagination(response: ApiResponse) -> Optional[Dict[str, Any]]:
    """Pagination exactly as the service reported it; absent keys stay absent."""
    if response.meta is None:
        return None
    return response.meta.model_dump(exclude_unset=True)


def identifying_fields(
    data: Any, fallback_id: str, keys: Sequence[str] = ("id", "name")
) -> Dict[str, Any]:
    """Pick the identifying keys of a deleted entity from the response body.

    The body is not validated: the delete already happened, so an odd field
    must not turn the confirmation into a failure. Falls back to the
    requested id when the service returns no usable body.
    """
    if not isinstance(data, dict):
        return {"id": fallback_id}
    picked = {key: data[key] for key in keys if key in data}
    picked.setdefault("id", fallback_id)
    return picked
