from datetime import date

from fastapi import APIRouter, File, Query, UploadFile, status

from app.config import AppConfig
from app.dependencies import Config, DBSession
from app.ingest import normalize_rows, parse_manual_text, read_table
from app.models.task import Task, TaskStatus
from app.planning.metrics import (
    badge_level,
    badge_risk_score,
    compute_sprint_metrics,
    is_high_risk,
    risk_breakdown,
)
from app.schemas.metrics import SprintMetrics
from app.schemas.task import (
    ImportResult,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
    TextImportRequest,
)
from app.services import task_service

router = APIRouter()


def to_response(task: Task, config: AppConfig, today: date | None = None) -> TaskResponse:
    """Serialize a task with its badge risk and high-risk flag."""
    planning = config.planning
    score = badge_risk_score(task.velocity, planning)
    return TaskResponse.model_validate(task).model_copy(
        update={
            "risk_score": score,
            "risk_level": badge_level(score, planning),
            "high_risk": is_high_risk(task, today, planning),
            "risk_breakdown": risk_breakdown(task, planning),
        }
    )


@router.get("/projects/{project_id}/tasks", response_model=list[TaskResponse])
async def list_tasks(
    project_id: str,
    db: DBSession,
    config: Config,
    task_status: TaskStatus | None = Query(default=None, alias="status"),
) -> list[TaskResponse]:
    """List a project's tasks, optionally filtered by status."""
    tasks = await task_service.list_tasks(db, project_id, task_status)
    return [to_response(t, config) for t in tasks]


@router.post(
    "/projects/{project_id}/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    project_id: str,
    data: TaskCreate,
    db: DBSession,
    config: Config,
) -> TaskResponse:
    task = await task_service.create_task(db, project_id, data)
    return to_response(task, config)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    db: DBSession,
    config: Config,
) -> TaskResponse:
    """Update one or more fields of a task (inline edits send a single field)."""
    task = await task_service.update_task(db, task_id, data)
    return to_response(task, config)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, db: DBSession) -> None:
    await task_service.delete_task(db, task_id)


@router.post(
    "/projects/{project_id}/tasks/import",
    response_model=ImportResult,
    status_code=status.HTTP_201_CREATED,
)
async def import_tasks_file(
    project_id: str,
    db: DBSession,
    config: Config,
    file: UploadFile = File(...),
) -> ImportResult:
    """
    Import tasks from a CSV or Excel file.

    Recognised headers include "Feature Name", "Module", "Due Date",
    "Velocity", "Bugs" and "Status" (with common aliases).
    """
    content = await file.read()
    rows = read_table(content, file.filename or "")
    normalized = normalize_rows(rows, max_rows=config.importer.max_rows)
    tasks = await task_service.import_tasks(db, project_id, normalized)
    return ImportResult(imported=len(tasks), tasks=[to_response(t, config) for t in tasks])


@router.post(
    "/projects/{project_id}/tasks/import/text",
    response_model=ImportResult,
    status_code=status.HTTP_201_CREATED,
)
async def import_tasks_text(
    project_id: str,
    data: TextImportRequest,
    db: DBSession,
    config: Config,
) -> ImportResult:
    """Import tasks from free text: Feature Name, Module, Due Date, Velocity, Bugs, Status."""
    normalized = parse_manual_text(data.text)[: config.importer.max_rows]
    tasks = await task_service.import_tasks(db, project_id, normalized)
    return ImportResult(imported=len(tasks), tasks=[to_response(t, config) for t in tasks])


@router.get("/projects/{project_id}/metrics", response_model=SprintMetrics)
async def get_metrics(
    project_id: str,
    db: DBSession,
    config: Config,
    today: date | None = Query(default=None),
) -> SprintMetrics:
    """
    Sprint KPIs for a project.

    Computed on every request from the current task list; `today` may be
    overridden to project the sprint as of another day.
    """
    tasks = await task_service.list_tasks(db, project_id)
    return compute_sprint_metrics(tasks, today, config.planning)
