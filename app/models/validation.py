from datetime import datetime

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.datetime_utils import utc_now
from app.models.base import Base, new_id


class UXValidation(Base):
    """AI review of an ordered set of UX screens."""

    __tablename__ = "ux_validations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(String(100), index=True)
    user_id: Mapped[str | None] = mapped_column(String(128), index=True, nullable=True)
    screen_count: Mapped[int] = mapped_column(Integer, default=0)
    images: Mapped[list] = mapped_column(JSON, default=list)  # [{order, filename, ...}]
    validation_results: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)

    def __repr__(self) -> str:
        return f"<UXValidation {self.project_id} screens={self.screen_count}>"


class UIValidation(Base):
    """Visual regression and element comparison of a UI against a reference."""

    __tablename__ = "ui_validations"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(String(100), index=True)
    user_id: Mapped[str | None] = mapped_column(String(128), index=True, nullable=True)
    reference_image: Mapped[dict] = mapped_column(JSON, default=dict)
    comparison_image: Mapped[dict] = mapped_column(JSON, default=dict)
    visual_regression_results: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    ui_comparison_results: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    checks_performed: Mapped[list] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)

    def __repr__(self) -> str:
        return f"<UIValidation {self.project_id} checks={self.checks_performed}>"
