from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.models.task import INT_COLUMN_MAX, MODULE_MAX_LENGTH, NAME_MAX_LENGTH, TaskStatus
from app.schemas.metrics import RiskBreakdown

StatusValue = Literal["todo", "in-progress", "done"]


class NormalizedTask(BaseModel):
    """Canonical task shape produced by the import normalizer."""

    name: str = Field(max_length=NAME_MAX_LENGTH)
    module: str = Field(default="", max_length=MODULE_MAX_LENGTH)
    due_date: str = ""  # ISO YYYY-MM-DD or "" when unknown
    velocity: int = Field(default=0, ge=0, le=INT_COLUMN_MAX)
    bugs: int = Field(default=0, ge=0, le=INT_COLUMN_MAX)
    status: StatusValue = "todo"


class TaskCreate(BaseModel):
    """Request body for creating a task."""

    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    module: str = Field(default="", max_length=MODULE_MAX_LENGTH)
    due_date: date | None = None
    velocity: int = Field(default=0, ge=0, le=INT_COLUMN_MAX)
    bugs: int = Field(default=0, ge=0, le=INT_COLUMN_MAX)
    status: TaskStatus = TaskStatus.TODO


class TaskUpdate(BaseModel):
    """Partial update; only the fields that are set are written."""

    name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    module: str | None = Field(default=None, max_length=MODULE_MAX_LENGTH)
    due_date: date | None = None
    velocity: int | None = Field(default=None, ge=0, le=INT_COLUMN_MAX)
    bugs: int | None = Field(default=None, ge=0, le=INT_COLUMN_MAX)
    status: TaskStatus | None = None


class TaskResponse(BaseModel):
    """Task as returned by the API, with its badge risk."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    name: str
    module: str
    due_date: date | None
    velocity: int
    bugs: int
    status: TaskStatus
    risk_score: int = 0
    risk_level: Literal["low", "medium", "high"] = "low"
    high_risk: bool = False
    risk_breakdown: RiskBreakdown | None = None
    created_at: datetime
    updated_at: datetime


class TextImportRequest(BaseModel):
    """Free-text import, one task per line:
    Feature Name, Module, Due Date, Velocity, Bugs, Status
    """

    text: str


class ImportResult(BaseModel):
    """Outcome of a bulk import."""

    imported: int
    tasks: list[TaskResponse] = Field(default_factory=list)
