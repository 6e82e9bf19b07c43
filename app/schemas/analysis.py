from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AnalysisResponse(BaseModel):
    """A stored AI sprint analysis."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    user_id: str | None
    analysis: dict[str, Any]
    overall_risk: int | None
    tasks_count: int
    created_at: datetime
