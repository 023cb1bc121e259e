"""API key tools.

The full key is returned by the service exactly once, in the creation
response. It is rendered there with a one-time warning and is never logged,
cached or shown by any other tool.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import Field

from client.alfred_client import AlfredClient
from core.logging import audit_log
from core.models import ApiKey, CreateApiKeyResponse
from mcp_server.registry import IsoDatetime, ToolInput, ToolRegistry
from mcp_server.utils import ToolFailure, ensure_success, identifying_fields


ONE_TIME_WARNING = (
    "This is the only time the API key will be displayed. Save it securely immediately."
)
KEY_USAGE = "Use this API key in the X-API-Key header when making requests to the Alfred API."
LIST_NOTE = (
    "For security, full API key values are never returned in list operations. "
    "If you need a new key, use alfred_create_api_key."
)


class CreateApiKeyInput(ToolInput):
    name: str = Field(min_length=1, max_length=255, description="Name of the API key")
    description: Optional[str] = Field(
        default=None, description="Optional description of the API key's purpose"
    )
    expiresAt: Optional[IsoDatetime] = Field(
        default=None, description="Optional ISO 8601 datetime when the API key should expire"
    )


class ListApiKeysInput(ToolInput):
    pass


class DeleteApiKeyInput(ToolInput):
    id: str = Field(min_length=1, description="ID of the API key to delete")


def register_auth_tools(registry: ToolRegistry, client: AlfredClient) -> None:
    @registry.tool(
        "alfred_create_api_key",
        title="Create API Key",
        description=(
            "Create a new API key for authenticating with the Alfred API. "
            "The API key will only be shown once - save it securely!"
        ),
        input_model=CreateApiKeyInput,
        action="create API key",
    )
    async def create_api_key(params: CreateApiKeyInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.create_api_key(params.model_dump(exclude_none=True)),
            "Failed to create API key",
        )
        if not response.data:
            raise ToolFailure("Failed to create API key", message=response.message)

        created = CreateApiKeyResponse.model_validate(response.data)
        audit_log(
            "create_api_key",
            actor="mcp",
            details={"id": created.id, "name": created.name, "keyPrefix": created.keyPrefix},
        )
        return {
            "success": True,
            "message": "API key created successfully",
            "warning": ONE_TIME_WARNING,
            "apiKey": {
                "id": created.id,
                "name": created.name,
                "key": created.key,
                "keyPrefix": created.keyPrefix,
                "description": created.description,
                "expiresAt": created.expiresAt or "never",
                "createdAt": created.createdAt,
                "isActive": created.isActive,
            },
            "usage": KEY_USAGE,
        }

    @registry.tool(
        "alfred_list_api_keys",
        title="List API Keys",
        description=(
            "List all API keys associated with your Alfred account. Note: actual key values "
            "are not shown for security - only key IDs and metadata are returned."
        ),
        input_model=ListApiKeysInput,
        action="list API keys",
        read_only=True,
    )
    async def list_api_keys(params: ListApiKeysInput) -> Dict[str, Any]:
        response = ensure_success(await client.list_api_keys(), "Failed to list API keys")
        if response.data is None:
            raise ToolFailure("Failed to list API keys", message=response.message)

        # Validating through ApiKey drops any stray secret field.
        keys = [ApiKey.model_validate(item).model_dump() for item in response.data]
        if not keys:
            return {
                "success": True,
                "count": 0,
                "apiKeys": [],
                "message": "No API keys found. Create one using alfred_create_api_key.",
            }
        return {"success": True, "count": len(keys), "apiKeys": keys, "note": LIST_NOTE}

    @registry.tool(
        "alfred_delete_api_key",
        title="Delete API Key",
        description=(
            "Delete an API key by ID. This action is permanent and cannot be undone. "
            "Any applications using this key will lose access."
        ),
        input_model=DeleteApiKeyInput,
        action="delete API key",
        destructive=True,
    )
    async def delete_api_key(params: DeleteApiKeyInput) -> Dict[str, Any]:
        response = ensure_success(await client.delete_api_key(params.id), "Failed to delete API key")
        audit_log("delete_api_key", actor="mcp", details={"id": params.id})

        deleted = identifying_fields(response.data, params.id, ("id", "name", "keyPrefix"))
        return {
            "success": True,
            "message": (
                "API key deleted successfully. It can no longer be used to authenticate; "
                "any applications or integrations using it will lose access."
            ),
            "deletedKey": deleted,
        }
