import enum
from datetime import date, datetime

from sqlalchemy import Date, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.datetime_utils import utc_now
from app.models.base import Base, new_id

# Column bounds shared with the request and import schemas
NAME_MAX_LENGTH = 500
MODULE_MAX_LENGTH = 255
INT_COLUMN_MAX = 2**31 - 1


class TaskStatus(str, enum.Enum):
    """Workflow states of a task."""

    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class Task(Base):
    """A unit of planned work on a project board."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(String(100), index=True)
    name: Mapped[str] = mapped_column(String(NAME_MAX_LENGTH))
    module: Mapped[str] = mapped_column(String(MODULE_MAX_LENGTH), default="")
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True, default=None)
    velocity: Mapped[int] = mapped_column(Integer, default=0)
    bugs: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[TaskStatus] = mapped_column(
        Enum(
            TaskStatus,
            values_callable=lambda e: [x.value for x in e],
            name="taskstatus",
            native_enum=False,
            length=20,
        ),
        default=TaskStatus.TODO,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<Task {self.status.value}: {self.name[:50]}>"
