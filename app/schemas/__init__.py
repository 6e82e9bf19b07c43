from app.schemas.analysis import AnalysisResponse
from app.schemas.history import (
    GeneratedSuiteResponse,
    GenerateSuiteRequest,
    RunStatusResponse,
    RunSuiteRequest,
    SuiteHistoryResponse,
)
from app.schemas.insights import InsightsResponse, ProjectInsights
from app.schemas.metrics import SprintMetrics
from app.schemas.task import (
    ImportResult,
    NormalizedTask,
    TaskCreate,
    TaskResponse,
    TaskUpdate,
    TextImportRequest,
)
from app.schemas.validation import UIValidationResponse, UXValidationResponse

__all__ = [
    "AnalysisResponse",
    "GenerateSuiteRequest",
    "GeneratedSuiteResponse",
    "RunSuiteRequest",
    "RunStatusResponse",
    "SuiteHistoryResponse",
    "InsightsResponse",
    "ProjectInsights",
    "SprintMetrics",
    "NormalizedTask",
    "TaskCreate",
    "TaskUpdate",
    "TaskResponse",
    "TextImportRequest",
    "ImportResult",
    "UXValidationResponse",
    "UIValidationResponse",
]
