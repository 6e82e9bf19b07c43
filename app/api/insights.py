from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import APIRouter, Depends

from app.core.datetime_utils import utc_now
from app.core.errors import InvalidRequestError
from app.dependencies import Config, DBSession
from app.history.reconciler import list_project_history
from app.planning.insights import generate_insights
from app.schemas.insights import InsightSources, InsightsResponse, ProjectInsights
from app.services import task_service, validation_history

router = APIRouter()


InsightsGenerator = Callable[..., Awaitable[ProjectInsights]]


def get_insights_generator() -> InsightsGenerator:
    """Dependency that provides the LLM insights generator."""
    return generate_insights


@router.post("/projects/{project_id}/insights", response_model=InsightsResponse)
async def create_insights(
    project_id: str,
    db: DBSession,
    config: Config,
    generator: Annotated[InsightsGenerator, Depends(get_insights_generator)],
) -> InsightsResponse:
    """
    Generate quality insights from the project's suites, validations and tasks.

    Insights are computed on demand and not stored.
    """
    histories = await list_project_history(db, project_id)
    ui_validations = await validation_history.list_project_ui_validations(db, project_id)
    ux_validations = await validation_history.list_project_ux_validations(db, project_id)
    tasks = await task_service.list_tasks(db, project_id)

    sources = InsightSources(
        suite_histories=len(histories),
        ui_validations=len(ui_validations),
        ux_validations=len(ux_validations),
        tasks=len(tasks),
    )
    if not any(sources.model_dump().values()):
        raise InvalidRequestError("No project data to analyze")

    insights = await generator(
        histories, ui_validations, ux_validations, tasks, config=config.analysis
    )
    return InsightsResponse(
        project_id=project_id,
        generated_at=utc_now(),
        sources=sources,
        insights=insights,
    )
