from app.models.analysis import SprintAnalysis
from app.models.base import Base
from app.models.suite_history import RunSnapshot, SuiteHistory, SuiteRun
from app.models.task import Task, TaskStatus
from app.models.validation import UIValidation, UXValidation

__all__ = [
    "Base",
    "Task",
    "TaskStatus",
    "SuiteHistory",
    "SuiteRun",
    "RunSnapshot",
    "UXValidation",
    "UIValidation",
    "SprintAnalysis",
]
