from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerateSuiteRequest(BaseModel):
    """Request body for generating a test suite."""

    user_story: str = Field(min_length=1)
    acceptance_criteria: list[str] = Field(default_factory=list)
    component_context: str = "General"
    priority: str = "P1"
    target_format: str = "gherkin"
    github_repo: str | None = None
    github_file_path: str | None = None
    github_token: str | None = None


class GeneratedSuiteResponse(BaseModel):
    """The generated suite as returned upstream, plus the history record id."""

    suite: dict[str, Any]
    history_id: str


class SuiteHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    owner_id: str | None
    suite_id: str | None
    user_story: str
    acceptance_criteria: list[Any]
    component: str
    priority: str
    format: str
    total_cases: int
    breakdown: dict[str, Any]
    github_repo: str
    github_file_path: str
    generation_payload: dict[str, Any]
    suite_data: dict[str, Any]
    run_count: int
    last_run: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime


class RunSuiteRequest(BaseModel):
    """Trigger a run of a generated suite in a GitHub repository."""

    repo: str = Field(min_length=1)
    token: str = Field(min_length=1)
    history_id: str | None = None
    github_file_path: str = ""
    poll: bool = True


class RunStatusResponse(BaseModel):
    """Current state of an external run."""

    model_config = ConfigDict(extra="allow")

    run_id: str | None = None
    status: str = "unknown"
    conclusion: str | None = None
    message: str | None = None
    logs: str | None = None
    html_url: str | None = None
    history_id: str | None = None
    run_key: str | None = None
    polling: bool = False


class DeleteHistoryResponse(BaseModel):
    deleted: int
