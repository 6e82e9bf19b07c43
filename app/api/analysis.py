from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, status

from app.core.errors import InvalidRequestError
from app.dependencies import Config, CurrentUserId, DBSession
from app.models.task import TaskStatus
from app.planning.analyzer import analyze_sprint
from app.schemas.analysis import AnalysisResponse
from app.services import analysis_history, task_service

router = APIRouter()


SprintAnalyzer = Callable[..., Awaitable[dict[str, Any]]]


def get_sprint_analyzer() -> SprintAnalyzer:
    """Dependency that provides the LLM sprint analyzer."""
    return analyze_sprint


@router.post(
    "/projects/{project_id}/analysis",
    response_model=AnalysisResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_analysis(
    project_id: str,
    db: DBSession,
    config: Config,
    user_id: CurrentUserId,
    analyzer: Annotated[SprintAnalyzer, Depends(get_sprint_analyzer)],
) -> AnalysisResponse:
    """
    Run an AI sprint-risk analysis of the project's tasks.

    Done tasks double as the historical baseline. The result is stored
    in the project's analysis history.
    """
    tasks = await task_service.list_tasks(db, project_id)
    if not tasks:
        raise InvalidRequestError("No tasks to analyze")

    completed = [t for t in tasks if t.status == TaskStatus.DONE]
    analysis = await analyzer(tasks, completed, config=config.analysis)

    record = await analysis_history.save_analysis(db, project_id, user_id, analysis, len(tasks))
    return AnalysisResponse.model_validate(record)


@router.get("/projects/{project_id}/analysis", response_model=list[AnalysisResponse])
async def list_analyses(
    project_id: str,
    db: DBSession,
    config: Config,
    limit: int | None = Query(default=None, ge=1, le=100),
) -> list[AnalysisResponse]:
    """Recent analyses of a project, newest first."""
    records = await analysis_history.list_analyses(
        db, project_id, limit or config.analysis.history_limit
    )
    return [AnalysisResponse.model_validate(r) for r in records]


@router.get("/analysis/{analysis_id}", response_model=AnalysisResponse)
async def get_analysis(analysis_id: str, db: DBSession) -> AnalysisResponse:
    record = await analysis_history.get_analysis(db, analysis_id)
    return AnalysisResponse.model_validate(record)


@router.delete("/analysis/{analysis_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_analysis(analysis_id: str, db: DBSession) -> None:
    await analysis_history.delete_analysis(db, analysis_id)
