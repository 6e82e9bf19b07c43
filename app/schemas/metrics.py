from datetime import date

from pydantic import BaseModel, Field


class StatusCounts(BaseModel):
    """Number of tasks per status."""

    total: int = 0
    todo: int = 0
    in_progress: int = 0
    done: int = 0


class ModuleStats(BaseModel):
    """Aggregates for one module."""

    count: int = 0
    velocity: int = 0
    bugs: int = 0


class RiskBreakdown(BaseModel):
    """Components of the badge risk score."""

    complexity: int
    timeline_risk: int
    total: int


class SprintMetrics(BaseModel):
    """Planning KPIs for a task list."""

    as_of: date
    counts: StatusCounts
    completed_velocity: int
    total_velocity: int
    velocity_percentage: int = Field(ge=0, le=100)
    predicted_delay: float
    predicted_delay_days: int
    high_risk_tasks: int
    average_badge_risk: int
    total_bugs: int
    modules: dict[str, ModuleStats] = Field(default_factory=dict)
