"""Persist and list UX/UI validation records.

Saves propagate errors. Listing is optional history shown next to the
validation forms, so a failing read degrades to an empty list.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidRequestError
from app.core.logging import get_logger
from app.models.validation import UIValidation, UXValidation

logger = get_logger(__name__)

UI_CHECKS = ["visualRegressions", "missingElements"]


async def save_ux_validation(
    db: AsyncSession,
    project_id: str,
    user_id: str | None,
    images: list[dict[str, Any]],
    report: dict[str, Any],
) -> UXValidation:
    """Store a UX validation with its canonical report."""
    if not project_id:
        raise InvalidRequestError("Project ID is required")

    record = UXValidation(
        project_id=project_id,
        user_id=user_id,
        screen_count=len(images),
        images=images,
        validation_results=report,
    )
    db.add(record)
    await db.flush()

    logger.bind(
        validation_id=record.id,
        project_id=project_id,
        screens=record.screen_count,
    ).info("ux_validation_saved")
    return record


async def list_project_ux_validations(db: AsyncSession, project_id: str) -> list[UXValidation]:
    try:
        result = await db.execute(
            select(UXValidation)
            .where(UXValidation.project_id == project_id)
            .order_by(UXValidation.created_at.desc())
        )
        return list(result.scalars().all())
    except Exception as e:
        logger.bind(project_id=project_id, error=str(e)).warning("ux_validation_list_failed")
        return []


async def list_user_ux_validations(db: AsyncSession, user_id: str) -> list[UXValidation]:
    try:
        result = await db.execute(
            select(UXValidation)
            .where(UXValidation.user_id == user_id)
            .order_by(UXValidation.created_at.desc())
        )
        return list(result.scalars().all())
    except Exception as e:
        logger.bind(user_id=user_id, error=str(e)).warning("ux_validation_user_list_failed")
        return []


async def save_ui_validation(
    db: AsyncSession,
    project_id: str,
    user_id: str | None,
    reference_image: dict[str, Any],
    comparison_image: dict[str, Any],
    visual_regression_results: dict[str, Any] | None,
    ui_comparison_results: dict[str, Any] | None,
    checks_performed: list[str] | None = None,
) -> UIValidation:
    """Store a UI validation (both checks are always run)."""
    if not project_id:
        raise InvalidRequestError("Project ID is required")

    record = UIValidation(
        project_id=project_id,
        user_id=user_id,
        reference_image=reference_image,
        comparison_image=comparison_image,
        visual_regression_results=visual_regression_results or None,
        ui_comparison_results=ui_comparison_results or None,
        checks_performed=checks_performed or list(UI_CHECKS),
    )
    db.add(record)
    await db.flush()

    logger.bind(validation_id=record.id, project_id=project_id).info("ui_validation_saved")
    return record


async def list_project_ui_validations(db: AsyncSession, project_id: str) -> list[UIValidation]:
    try:
        result = await db.execute(
            select(UIValidation)
            .where(UIValidation.project_id == project_id)
            .order_by(UIValidation.created_at.desc())
        )
        return list(result.scalars().all())
    except Exception as e:
        logger.bind(project_id=project_id, error=str(e)).warning("ui_validation_list_failed")
        return []
