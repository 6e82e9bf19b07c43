"""Sprint analysis history model."""

from datetime import datetime

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.datetime_utils import utc_now
from app.models.base import Base, new_id


class SprintAnalysis(Base):
    """Records each AI sprint-risk analysis of a project."""

    __tablename__ = "sprint_analyses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(String(100), index=True)
    user_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    analysis: Mapped[dict] = mapped_column(JSON, default=dict)
    overall_risk: Mapped[int | None] = mapped_column(Integer, nullable=True)
    tasks_count: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)
