from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class ImageInfo(BaseModel):
    """Metadata of an uploaded screen (the image itself is not stored)."""

    order: int = 0
    filename: str
    content_type: str | None = None
    size: int = 0


class UXValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    user_id: str | None
    screen_count: int
    images: list[dict[str, Any]]
    validation_results: dict[str, Any]
    created_at: datetime


class UIValidationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    project_id: str
    user_id: str | None
    reference_image: dict[str, Any]
    comparison_image: dict[str, Any]
    visual_regression_results: dict[str, Any] | None
    ui_comparison_results: dict[str, Any] | None
    checks_performed: list[str]
    created_at: datetime
