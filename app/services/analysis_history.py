from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidRequestError, NotFoundError
from app.core.logging import get_logger
from app.models.analysis import SprintAnalysis
from app.planning.analyzer import overall_risk_of

logger = get_logger(__name__)


async def save_analysis(
    db: AsyncSession,
    project_id: str,
    user_id: str | None,
    analysis: dict,
    tasks_count: int,
) -> SprintAnalysis:
    """Store one AI sprint analysis."""
    if not project_id:
        raise InvalidRequestError("Project ID is required")

    record = SprintAnalysis(
        project_id=project_id,
        user_id=user_id,
        analysis=analysis,
        overall_risk=overall_risk_of(analysis),
        tasks_count=tasks_count,
    )
    db.add(record)
    await db.flush()

    logger.bind(
        analysis_id=record.id,
        project_id=project_id,
        overall_risk=record.overall_risk,
        tasks=tasks_count,
    ).info("sprint_analysis_saved")
    return record


async def list_analyses(db: AsyncSession, project_id: str, limit: int = 10) -> list[SprintAnalysis]:
    """Most recent analyses of a project, newest first."""
    result = await db.execute(
        select(SprintAnalysis)
        .where(SprintAnalysis.project_id == project_id)
        .order_by(SprintAnalysis.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_analysis(db: AsyncSession, analysis_id: str) -> SprintAnalysis:
    record = await db.get(SprintAnalysis, analysis_id)
    if record is None:
        raise NotFoundError(f"Analysis {analysis_id} not found")
    return record


async def delete_analysis(db: AsyncSession, analysis_id: str) -> None:
    record = await get_analysis(db, analysis_id)
    await db.delete(record)
    await db.flush()
    logger.bind(analysis_id=analysis_id).info("sprint_analysis_deleted")
