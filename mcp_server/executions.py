"""Execution history tools: listing, details, traces, statistics and deletion."""
from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from pydantic import Field

from client.alfred_client import AlfredClient
from core.logging import audit_log
from core.models import Execution, ExecutionStats, ExecutionStatus, SortOrder
from mcp_server.registry import IsoDatetime, ToolInput, ToolRegistry, Uuid
from mcp_server.utils import ToolFailure, ensure_success, pagination


SUMMARY_FIELDS: Tuple[str, ...] = (
    "id",
    "skillId",
    "status",
    "trigger",
    "startedAt",
    "completedAt",
    "durationMs",
    "error",
)
# Everything an execution carries except its trace, which has its own tool.
DETAIL_FIELDS: Tuple[str, ...] = tuple(name for name in Execution.model_fields if name != "trace")
DELETED_FIELDS: Tuple[str, ...] = ("id", "skillId", "status", "startedAt", "completedAt")


def _project(item: Dict[str, Any], fields: Tuple[str, ...]) -> Dict[str, Any]:
    return {name: item.get(name) for name in fields}


class ListExecutionsInput(ToolInput):
    skillId: Optional[Uuid] = Field(default=None, description="Filter by skill ID (UUID)")
    status: Optional[ExecutionStatus] = Field(default=None, description="Filter by execution status")
    trigger: Optional[str] = Field(default=None, description="Filter by trigger type")
    startDate: Optional[IsoDatetime] = Field(
        default=None, description="Only executions started at or after this ISO 8601 UTC datetime"
    )
    endDate: Optional[IsoDatetime] = Field(
        default=None, description="Only executions started at or before this ISO 8601 UTC datetime"
    )
    limit: int = Field(default=50, ge=1, le=100, description="Maximum number of executions to return (1-100)")
    offset: int = Field(default=0, ge=0, description="Number of executions to skip for pagination")
    sortBy: Optional[str] = Field(default=None, description="Field to sort by (e.g., 'startedAt')")
    sortOrder: Optional[SortOrder] = Field(default=None, description="Sort order: ascending or descending")


class ExecutionIdInput(ToolInput):
    executionId: Uuid = Field(description="The execution ID (UUID)")


class ExecutionStatsInput(ToolInput):
    startDate: Optional[IsoDatetime] = Field(default=None, description="Start of the reporting window")
    endDate: Optional[IsoDatetime] = Field(default=None, description="End of the reporting window")
    skillId: Optional[Uuid] = Field(default=None, description="Restrict statistics to one skill")


def register_executions_tools(registry: ToolRegistry, client: AlfredClient) -> None:
    @registry.tool(
        "alfred_list_executions",
        title="List Executions",
        description="List executions with optional filtering by skill, status, trigger type, and date range",
        input_model=ListExecutionsInput,
        action="list executions",
        read_only=True,
    )
    async def list_executions(params: ListExecutionsInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.list_executions(**params.model_dump()), "Failed to list executions"
        )
        rows = response.data if isinstance(response.data, list) else []
        executions = [_project(item, SUMMARY_FIELDS) for item in rows if isinstance(item, dict)]
        meta = pagination(response) or {}
        return {
            "success": True,
            "count": len(executions),
            "total": meta.get("total", len(executions)),
            "page": meta.get("page", 1),
            "limit": meta.get("limit", params.limit),
            "totalPages": meta.get("totalPages", 0),
            "hasMore": meta.get("hasMore", False),
            "executions": executions,
        }

    @registry.tool(
        "alfred_get_execution",
        title="Get Execution",
        description="Get detailed information about a specific execution",
        input_model=ExecutionIdInput,
        action="get execution",
        read_only=True,
    )
    async def get_execution(params: ExecutionIdInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.get_execution(params.executionId), "Execution not found"
        )
        if not isinstance(response.data, dict):
            raise ToolFailure("Execution not found", message=response.message)
        return {"success": True, "execution": _project(response.data, DETAIL_FIELDS)}

    @registry.tool(
        "alfred_get_execution_trace",
        title="Get Execution Trace",
        description="Get detailed trace/logs for a specific execution",
        input_model=ExecutionIdInput,
        action="get execution trace",
        read_only=True,
    )
    async def get_execution_trace(params: ExecutionIdInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.get_execution_trace(params.executionId), "Execution trace not found"
        )
        return {"success": True, "executionId": params.executionId, "trace": response.data}

    @registry.tool(
        "alfred_get_execution_stats",
        title="Get Execution Stats",
        description="Get execution statistics including success rates, duration averages, and costs",
        input_model=ExecutionStatsInput,
        action="get execution stats",
        read_only=True,
    )
    async def get_execution_stats(params: ExecutionStatsInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.get_execution_stats(**params.model_dump()), "Failed to get execution stats"
        )
        stats = ExecutionStats.model_validate(response.data or {})
        return {"success": True, "stats": stats.model_dump()}

    @registry.tool(
        "alfred_delete_execution",
        title="Delete Execution",
        description="Delete a specific execution record",
        input_model=ExecutionIdInput,
        action="delete execution",
        destructive=True,
    )
    async def delete_execution(params: ExecutionIdInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.delete_execution(params.executionId), "Failed to delete execution"
        )
        audit_log("delete_execution", actor="mcp", details={"id": params.executionId})
        if isinstance(response.data, dict):
            execution = _project(response.data, DELETED_FIELDS)
        else:
            execution = {"id": params.executionId}
        return {
            "success": True,
            "message": f"Execution {params.executionId} deleted successfully",
            "execution": execution,
        }
