from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr


TriggerType = Literal["manual", "scheduled", "webhook"]
ExecutionStatus = Literal["running", "completed", "failed"]
SortOrder = Literal["asc", "desc"]


class PaginationMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    total: int = 0
    page: int = 1
    limit: int = 50
    totalPages: int = 0
    hasMore: bool = False
    sortBy: Optional[str] = None
    sortOrder: Optional[str] = None


class ApiResponse(BaseModel):
    """Envelope wrapping every Alfred API response.

    ``data`` is only meaningful when ``success`` is true; ``meta`` is only
    present on list endpoints.
    """

    model_config = ConfigDict(extra="allow")

    success: bool
    data: Any = None
    error: Optional[str] = None
    message: Optional[str] = None
    meta: Optional[PaginationMeta] = None

    @property
    def failure_reason(self) -> Optional[str]:
        return self.error or self.message


class SkillStep(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: StrictInt = Field(description="Unique step identifier within the skill")
    prompt: StrictStr = Field(min_length=1, description="The prompt/instruction for this step")
    guidance: StrictStr = Field(description="Guidance text for LLM execution of this step")
    allowedTools: List[StrictStr] = Field(description="List of allowed tool names for this step")
    connectionNames: Optional[List[StrictStr]] = Field(
        default=None, description="Optional list of MCP connection names for this step"
    )


class Execution(BaseModel):
    """Field layout of an execution record.

    Execution rows are projected by these field names, not validated, so one
    odd value cannot fail a whole page.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    skillId: Optional[str] = None
    status: Optional[ExecutionStatus] = None
    trigger: Optional[str] = None
    input: Optional[Any] = None
    output: Optional[Any] = None
    trace: Optional[Any] = None
    error: Optional[str] = None
    startedAt: Optional[str] = None
    completedAt: Optional[str] = None
    durationMs: Optional[int] = None
    tokenCount: Optional[int] = None
    costUsd: Optional[str] = None
    reportedToCore: bool = False


class StatsOverview(BaseModel):
    total: int = 0
    successful: int = 0
    failed: int = 0
    running: int = 0
    successRate: float = 0
    totalCostUsd: str = "0"
    averageDurationMs: Optional[float] = None


class SkillStats(BaseModel):
    skillId: str
    skillName: Optional[str] = None
    count: int = 0
    successCount: int = 0
    avgDurationMs: Optional[float] = None
    totalCostUsd: str = "0"


class DailyStats(BaseModel):
    date: str
    count: int = 0
    successful: int = 0
    failed: int = 0


class ExecutionStats(BaseModel):
    overview: StatsOverview = Field(default_factory=StatsOverview)
    bySkill: List[SkillStats] = Field(default_factory=list)
    byDay: List[DailyStats] = Field(default_factory=list)


class ApiKey(BaseModel):
    # Unknown fields are dropped so a secret can never leak through a listing.
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    keyPrefix: str
    description: Optional[str] = None
    isActive: bool = True
    lastUsedAt: Optional[str] = None
    expiresAt: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


class CreateApiKeyResponse(ApiKey):
    key: str
    message: Optional[str] = None
