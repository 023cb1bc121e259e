"""Tool registration, input validation and dispatch for the MCP server."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, ClassVar, Dict, FrozenSet, List, Optional, Type

from loguru import logger
from mcp.types import TextContent, Tool, ToolAnnotations
from pydantic import BaseModel, ConfigDict, StringConstraints, ValidationError, model_validator

from client.alfred_client import AlfredClientError
from mcp_server.utils import ToolFailure, failure_payload, text_payload


UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
# ISO 8601 in UTC, e.g. 2024-05-01T12:30:00Z or 2024-05-01T12:30:00.123Z
DATETIME_PATTERN = r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d+)?Z$"

Uuid = Annotated[str, StringConstraints(pattern=UUID_PATTERN)]
IsoDatetime = Annotated[str, StringConstraints(pattern=DATETIME_PATTERN)]


class ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)


class PatchInput(ToolInput):
    """Base for partial updates.

    Every updatable field is optional. Only fields listed in
    ``nullable_fields`` may be sent as an explicit ``null``.
    """

    nullable_fields: ClassVar[FrozenSet[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_nulls(self) -> "PatchInput":
        for name in sorted(self.model_fields_set):
            if getattr(self, name) is None and name not in self.nullable_fields:
                raise ValueError(f"{name} cannot be null")
        return self


class ToolInputError(ValueError):
    """Tool arguments failed validation; no request was sent."""

    def __init__(self, tool: str, errors: List[Dict[str, str]]) -> None:
        summary = "; ".join(f"{err['field']}: {err['message']}" for err in errors)
        super().__init__(f"Invalid input for {tool}: {summary}")
        self.tool = tool
        self.errors = errors

    @classmethod
    def from_validation_error(cls, tool: str, exc: ValidationError) -> "ToolInputError":
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "(root)",
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        return cls(tool, errors)


ToolHandler = Callable[[Any], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class RegisteredTool:
    name: str
    title: str
    description: str
    input_model: Type[ToolInput]
    action: str
    handler: ToolHandler
    annotations: ToolAnnotations

    def definition(self) -> Tool:
        return Tool(
            name=self.name,
            title=self.title,
            description=self.description,
            inputSchema=self.input_model.model_json_schema(),
            annotations=self.annotations,
        )


class ToolRegistry:
    """Collects tool handlers and turns every outcome into a JSON payload."""

    def __init__(self) -> None:
        self._tools: Dict[str, RegisteredTool] = {}

    def tool(
        self,
        name: str,
        *,
        title: str,
        description: str,
        input_model: Type[ToolInput],
        action: str,
        read_only: bool = False,
        destructive: bool = False,
    ) -> Callable[[ToolHandler], ToolHandler]:
        if name in self._tools:
            raise ValueError(f"tool already registered: {name}")

        def decorator(func: ToolHandler) -> ToolHandler:
            self._tools[name] = RegisteredTool(
                name=name,
                title=title,
                description=description,
                input_model=input_model,
                action=action,
                handler=func,
                annotations=ToolAnnotations(
                    title=title,
                    readOnlyHint=read_only,
                    destructiveHint=destructive,
                    openWorldHint=True,
                ),
            )
            return func

        return decorator

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def list_tools(self) -> List[Tool]:
        return [tool.definition() for tool in self._tools.values()]

    def validate(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolInput:
        tool = self._tools[name]
        try:
            return tool.input_model.model_validate(arguments or {})
        except ValidationError as exc:
            raise ToolInputError.from_validation_error(name, exc) from None

    async def call(self, name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        if name not in self:
            raise ValueError(f"Unknown tool: {name}")
        tool = self._tools[name]

        try:
            params = self.validate(name, arguments)
        except ToolInputError as exc:
            logger.info(f"{name} rejected: {exc}")
            return failure_payload(str(exc), details=exc.errors)

        try:
            return await tool.handler(params)
        except ToolFailure as exc:
            logger.info(f"{name} failed remotely: {exc.error}")
            return exc.to_payload()
        except AlfredClientError as exc:
            logger.warning(f"{name} failed: {exc}")
            return failure_payload(f"Failed to {tool.action}: {exc}")
        except ValidationError as exc:
            # Input is validated above, so this is an unexpected response body.
            logger.warning(f"{name} got an unexpected response shape: {exc}")
            return failure_payload(f"Failed to {tool.action}: unexpected response from Alfred API")

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
        return text_payload(await self.call(name, arguments))
