"""Skill management tools: list, get, create, update, patch and delete."""
from __future__ import annotations

from typing import Any, ClassVar, Dict, FrozenSet, List, Optional

from pydantic import Field

from client.alfred_client import AlfredClient
from core.logging import audit_log
from core.models import SkillStep, SortOrder, TriggerType
from mcp_server.registry import PatchInput, ToolInput, ToolRegistry
from mcp_server.utils import ensure_success, identifying_fields, pagination, supplied_fields


class ListSkillsInput(ToolInput):
    isActive: Optional[bool] = Field(default=None, description="Filter by active status")
    triggerType: Optional[TriggerType] = Field(default=None, description="Filter by trigger type")
    isSystem: Optional[bool] = Field(
        default=None, description="Filter by system skills (built-in vs user-defined)"
    )
    limit: int = Field(default=50, gt=0, description="Maximum number of skills to return (default: 50)")
    offset: int = Field(default=0, ge=0, description="Number of skills to skip for pagination (default: 0)")
    sortBy: Optional[str] = Field(default=None, description="Field to sort by (e.g., 'name', 'createdAt')")
    sortOrder: Optional[SortOrder] = Field(default=None, description="Sort order: ascending or descending")


class SkillIdInput(ToolInput):
    skillId: str = Field(min_length=1, description="The ID of the skill")


class CreateSkillInput(ToolInput):
    name: str = Field(min_length=1, max_length=255, description="Name of the skill (1-255 characters)")
    description: Optional[str] = Field(default=None, description="Optional description of what the skill does")
    triggerType: TriggerType = Field(description="How the skill is triggered")
    steps: List[SkillStep] = Field(min_length=1, description="Ordered execution steps for the skill")
    connectionNames: Optional[List[str]] = Field(
        default=None, description="Optional list of MCP connection names available to the skill"
    )
    isActive: bool = Field(default=True, description="Whether the skill is currently active")

    def payload(self) -> Dict[str, Any]:
        """Full skill shape; unspecified optional fields collapse to defaults."""
        return {
            "name": self.name,
            "description": self.description,
            "triggerType": self.triggerType,
            "steps": [step.model_dump(exclude_unset=True) for step in self.steps],
            "connectionNames": list(self.connectionNames or []),
            "isActive": self.isActive,
        }


class UpdateSkillInput(CreateSkillInput):
    skillId: str = Field(min_length=1, description="The ID of the skill to update")


class PatchSkillInput(PatchInput):
    nullable_fields: ClassVar[FrozenSet[str]] = frozenset({"description"})

    skillId: str = Field(min_length=1, description="The ID of the skill to patch")
    name: Optional[str] = Field(default=None, min_length=1, max_length=255, description="Updated skill name")
    description: Optional[str] = Field(default=None, description="Updated skill description (null clears it)")
    triggerType: Optional[TriggerType] = Field(default=None, description="Updated trigger type")
    steps: Optional[List[SkillStep]] = Field(default=None, description="Updated skill steps")
    connectionNames: Optional[List[str]] = Field(default=None, description="Updated connection names")
    isActive: Optional[bool] = Field(default=None, description="Updated active status")


class DeleteSkillInput(SkillIdInput):
    force: Optional[bool] = Field(
        default=None, description="Force delete even if skill has recent executions (default: false)"
    )


def register_skills_tools(registry: ToolRegistry, client: AlfredClient) -> None:
    @registry.tool(
        "alfred_list_skills",
        title="List Skills",
        description="List all Alfred skills with optional filtering, sorting, and pagination",
        input_model=ListSkillsInput,
        action="list skills",
        read_only=True,
    )
    async def list_skills(params: ListSkillsInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.list_skills(**params.model_dump()), "Failed to list skills"
        )
        return {
            "success": True,
            "skills": response.data or [],
            "pagination": pagination(response),
        }

    @registry.tool(
        "alfred_get_skill",
        title="Get Skill",
        description="Retrieve a specific skill by its ID",
        input_model=SkillIdInput,
        action="retrieve skill",
        read_only=True,
    )
    async def get_skill(params: SkillIdInput) -> Dict[str, Any]:
        response = ensure_success(await client.get_skill(params.skillId), "Skill not found")
        return {"success": True, "skill": response.data}

    @registry.tool(
        "alfred_create_skill",
        title="Create Skill",
        description="Create a new skill with steps, connections, and trigger configuration",
        input_model=CreateSkillInput,
        action="create skill",
    )
    async def create_skill(params: CreateSkillInput) -> Dict[str, Any]:
        data = params.payload()
        # Let the service apply its own default for an omitted description.
        if params.description is None:
            data.pop("description")
        response = ensure_success(await client.create_skill(data), "Failed to create skill")
        created_id = response.data.get("id") if isinstance(response.data, dict) else None
        audit_log("create_skill", actor="mcp", details={"name": params.name, "id": created_id})
        return {
            "success": True,
            "skill": response.data,
            "message": f'Skill "{params.name}" created successfully',
        }

    @registry.tool(
        "alfred_update_skill",
        title="Update Skill",
        description="Update a skill with a complete replacement (all fields should be provided)",
        input_model=UpdateSkillInput,
        action="update skill",
    )
    async def update_skill(params: UpdateSkillInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.update_skill(params.skillId, params.payload()), "Failed to update skill"
        )
        audit_log("update_skill", actor="mcp", details={"id": params.skillId})
        return {"success": True, "skill": response.data, "message": "Skill updated successfully"}

    @registry.tool(
        "alfred_patch_skill",
        title="Patch Skill",
        description="Partially update a skill - only provided fields will be modified",
        input_model=PatchSkillInput,
        action="patch skill",
    )
    async def patch_skill(params: PatchSkillInput) -> Dict[str, Any]:
        fields = supplied_fields(params, exclude={"skillId"})
        response = ensure_success(
            await client.patch_skill(params.skillId, fields), "Failed to patch skill"
        )
        audit_log(
            "patch_skill",
            actor="mcp",
            details={"id": params.skillId, "fields": sorted(fields)},
        )
        return {"success": True, "skill": response.data, "message": "Skill patched successfully"}

    @registry.tool(
        "alfred_delete_skill",
        title="Delete Skill",
        description="Delete a skill by ID with optional force delete",
        input_model=DeleteSkillInput,
        action="delete skill",
        destructive=True,
    )
    async def delete_skill(params: DeleteSkillInput) -> Dict[str, Any]:
        response = ensure_success(
            await client.delete_skill(params.skillId, force=bool(params.force)),
            "Failed to delete skill",
        )
        audit_log(
            "delete_skill",
            actor="mcp",
            details={"id": params.skillId, "force": bool(params.force)},
        )
        return {
            "success": True,
            "message": "Skill deleted successfully",
            "deletedSkill": identifying_fields(response.data, params.skillId),
        }
