from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


def _lower(value: Any) -> Any:
    return value.strip().lower() if isinstance(value, str) else value


class DefectTrends(BaseModel):
    """Direction of defects across recent builds."""

    trend: Literal["increasing", "decreasing", "stable"] = "stable"
    summary: str = ""

    @field_validator("trend", mode="before")
    @classmethod
    def fold_trend(cls, v: Any) -> Any:
        return _lower(v)


class Hotspot(BaseModel):
    """A module concentrating defects."""

    module: str
    defect_count: int = Field(default=0, ge=0)
    severity: Literal["low", "medium", "high", "critical"] = "low"

    @field_validator("severity", mode="before")
    @classmethod
    def fold_severity(cls, v: Any) -> Any:
        return _lower(v)


class ReleaseReadiness(BaseModel):
    score: int = Field(ge=0, le=100)
    decision: Literal["RELEASE", "CAUTION", "BLOCK"]
    reasoning: list[str] = Field(default_factory=list)

    @field_validator("score", mode="before")
    @classmethod
    def round_score(cls, v: Any) -> Any:
        # Models sometimes answer 72.5
        return round(v) if isinstance(v, float) else v

    @field_validator("decision", mode="before")
    @classmethod
    def fold_decision(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v


class ProjectInsights(BaseModel):
    """Quality insights returned by the model."""

    defect_trends: DefectTrends
    hotspots: list[Hotspot] = Field(default_factory=list)
    release_readiness: ReleaseReadiness
    recommendation: str = Field(min_length=1)


class InsightSources(BaseModel):
    """How many records of each kind fed the insights."""

    suite_histories: int = 0
    ui_validations: int = 0
    ux_validations: int = 0
    tasks: int = 0


class InsightsResponse(BaseModel):
    project_id: str
    generated_at: datetime
    sources: InsightSources
    insights: ProjectInsights
