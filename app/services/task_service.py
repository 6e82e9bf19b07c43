"""Task persistence: CRUD, partial edits and bulk import."""

from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.datetime_utils import parse_calendar_date, utc_now
from app.core.errors import InvalidRequestError, NotFoundError
from app.core.logging import get_logger
from app.models.task import Task, TaskStatus
from app.schemas.task import NormalizedTask, TaskCreate, TaskUpdate

logger = get_logger(__name__)


async def list_tasks(
    db: AsyncSession,
    project_id: str,
    status: TaskStatus | None = None,
) -> list[Task]:
    """Tasks of a project, oldest first (the order they were planned in)."""
    query = select(Task).where(Task.project_id == project_id)
    if status is not None:
        query = query.where(Task.status == status)
    result = await db.execute(query.order_by(Task.created_at, Task.id))
    return list(result.scalars().all())


async def get_task(db: AsyncSession, task_id: str) -> Task:
    task = await db.get(Task, task_id)
    if task is None:
        raise NotFoundError(f"Task {task_id} not found")
    return task


async def create_task(db: AsyncSession, project_id: str, data: TaskCreate) -> Task:
    if not project_id:
        raise InvalidRequestError("Project ID is required")

    task = Task(project_id=project_id, **data.model_dump())
    db.add(task)
    await db.flush()

    logger.bind(task_id=task.id, project_id=project_id).info("task_created")
    return task


async def update_task(db: AsyncSession, task_id: str, data: TaskUpdate) -> Task:
    """Apply the fields that were set; a single field is the common inline edit."""
    task = await get_task(db, task_id)

    changes = data.model_dump(exclude_unset=True)
    if "name" in changes and not changes["name"]:
        raise InvalidRequestError("Task name cannot be empty")

    for field, value in changes.items():
        if field in ("velocity", "bugs") and value is None:
            value = 0
        if field == "status" and value is None:
            value = TaskStatus.TODO
        setattr(task, field, value)
    task.updated_at = utc_now()
    await db.flush()

    logger.bind(task_id=task_id, fields=sorted(changes)).info("task_updated")
    return task


async def delete_task(db: AsyncSession, task_id: str) -> None:
    task = await get_task(db, task_id)
    await db.delete(task)
    await db.flush()
    logger.bind(task_id=task_id).info("task_deleted")


async def import_tasks(
    db: AsyncSession,
    project_id: str,
    tasks: list[NormalizedTask],
) -> list[Task]:
    """Persist normalized tasks in their original order."""
    if not project_id:
        raise InvalidRequestError("Project ID is required")

    # Strictly increasing timestamps keep the file order when listing
    base = utc_now()
    created: list[Task] = []
    for i, item in enumerate(tasks):
        task = Task(
            project_id=project_id,
            name=item.name,
            module=item.module,
            due_date=parse_calendar_date(item.due_date),
            velocity=item.velocity,
            bugs=item.bugs,
            status=TaskStatus(item.status),
            created_at=base + timedelta(microseconds=i),
            updated_at=base,
        )
        db.add(task)
        created.append(task)
    await db.flush()

    logger.bind(project_id=project_id, count=len(created)).info("tasks_imported")
    return created
