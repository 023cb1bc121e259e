"""Connection management tools.

Connections hold the configuration for one external integration. The
``config`` object is opaque here: it is forwarded as given and redacted from
audit logs.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from client.alfred_client import AlfredClient
from core.logging import audit_log
from core.models import SortOrder
from mcp_server.registry import PatchInput, ToolInput, ToolRegistry
from mcp_server.utils import ensure_success, identifying_fields, pagination, supplied_fields


CONNECTION_IDENTITY = ("id", "name", "type")


class ListConnectionsInput(ToolInput):
    isActive: Optional[bool] = Field(default=None, description="Filter by active status")
    type: Optional[str] = Field(default=None, description="Filter by connection type")
    source: Optional[str] = Field(default=None, description="Filter by source")
    authStatus: Optional[str] = Field(default=None, description="Filter by authentication status")
    limit: int = Field(default=50, gt=0, description="Maximum number of connections to return (default: 50)")
    offset: int = Field(
        default=0, ge=0, description="Number of connections to skip for pagination (default: 0)"
    )
    sortBy: Optional[str] = Field(default=None, description="Field to sort by (e.g., 'name', 'createdAt')")
    sortOrder: Optional[SortOrder] = Field(default=None, description="Sort order: ascending or descending")


class ConnectionIdInput(ToolInput):
    connectionId: str = Field(min_length=1, description="The ID of the connection")


class CreateConnectionInput(ToolInput):
    name: str = Field(min_length=1, max_length=255, description="Name of the connection (1-255 characters)")
    type: str = Field(min_length=1, description="Type of connection (e.g., 'slack', 'github', 'composio')")
    config: Dict[str, Any] = Field(
        description="Configuration object for the connection (structure varies by type)"
    )
    isActive: bool = Field(default=True, description="Whether the connection is currently active")

    def payload(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "config": self.config,
            "isActive": self.isActive,
        }


class UpdateConnectionInput(CreateConnectionInput):
    connectionId: str = Field(min_length=1, description="The ID of the connection to update")


class PatchConnectionInput(PatchInput):
    connectionId: str = Field(min_length=1, description="The ID of the connection to patch")
    name: Optional[str] = Field(
        default=None, min_length=1, max_length=255, description="Updated connection name"
    )
    type: Optional[str] = Field(default=None, min_length=1, description="Updated connection type")
    config: Optional[Dict[str, Any]] = Field(default=None, description="Updated configuration object")
    isActive: Optional[bool] = Field(default=None, description="Updated active status")


def register_connections_tools(registry: ToolRegistry, client: AlfredClient) -> None:
    @registry.tool(
        "alfred_list_connections",
        title="List Connections",
        description="List all Alfred connections with optional filtering, sorting, and pagination",
        input_model=ListConnectionsInput,
        action="list connections",
        read_only=True,
    )
    async def list_connections(params: ListConnectionsInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.list_connections(**params.model_dump()), "Failed to list connections"
        )
        return {
            "success": True,
            "connections": response.data or [],
            "pagination": pagination(response),
        }

    @registry.tool(
        "alfred_get_connection",
        title="Get Connection",
        description="Retrieve a specific connection by its ID",
        input_model=ConnectionIdInput,
        action="retrieve connection",
        read_only=True,
    )
    async def get_connection(params: ConnectionIdInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.get_connection(params.connectionId), "Connection not found"
        )
        return {"success": True, "connection": response.data}

    @registry.tool(
        "alfred_create_connection",
        title="Create Connection",
        description="Create a new connection with name, type, and configuration",
        input_model=CreateConnectionInput,
        action="create connection",
    )
    async def create_connection(params: CreateConnectionInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.create_connection(params.payload()), "Failed to create connection"
        )
        audit_log(
            "create_connection",
            actor="mcp",
            details={"name": params.name, "type": params.type, "config": params.config},
        )
        return {
            "success": True,
            "connection": response.data,
            "message": f'Connection "{params.name}" created successfully',
        }

    @registry.tool(
        "alfred_update_connection",
        title="Update Connection",
        description="Update a connection with a complete replacement (all fields should be provided)",
        input_model=UpdateConnectionInput,
        action="update connection",
    )
    async def update_connection(params: UpdateConnectionInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.update_connection(params.connectionId, params.payload()),
            "Failed to update connection",
        )
        audit_log("update_connection", actor="mcp", details={"id": params.connectionId})
        return {
            "success": True,
            "connection": response.data,
            "message": "Connection updated successfully",
        }

    @registry.tool(
        "alfred_patch_connection",
        title="Patch Connection",
        description="Partially update a connection - only provided fields will be modified",
        input_model=PatchConnectionInput,
        action="patch connection",
    )
    async def patch_connection(params: PatchConnectionInput) -> Dict[str, Any]:
        fields = supplied_fields(params, exclude={"connectionId"})
        response = ensure_success(
            await client.patch_connection(params.connectionId, fields),
            "Failed to patch connection",
        )
        audit_log(
            "patch_connection",
            actor="mcp",
            details={"id": params.connectionId, "fields": sorted(fields)},
        )
        return {
            "success": True,
            "connection": response.data,
            "message": "Connection patched successfully",
        }

    @registry.tool(
        "alfred_delete_connection",
        title="Delete Connection",
        description="Delete a connection by ID",
        input_model=ConnectionIdInput,
        action="delete connection",
        destructive=True,
    )
    async def delete_connection(params: ConnectionIdInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.delete_connection(params.connectionId), "Failed to delete connection"
        )
        audit_log("delete_connection", actor="mcp", details={"id": params.connectionId})
        # config is never among the picked keys, so credentials are not echoed back.
        deleted = identifying_fields(response.data, params.connectionId, CONNECTION_IDENTITY)
        return {
            "success": True,
            "message": "Connection deleted successfully",
            "deletedConnection": deleted,
        }
