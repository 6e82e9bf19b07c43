from fastapi import APIRouter

from app.api.analysis import router as analysis_router
from app.api.insights import router as insights_router
from app.api.suites import router as suites_router
from app.api.tasks import router as tasks_router
from app.api.validations import router as validations_router

api_router = APIRouter()

# API routes at /api/*
api_router.include_router(tasks_router, prefix="/api", tags=["tasks"])
api_router.include_router(suites_router, prefix="/api", tags=["suites"])
api_router.include_router(validations_router, prefix="/api", tags=["validations"])
api_router.include_router(analysis_router, prefix="/api", tags=["analysis"])
api_router.include_router(insights_router, prefix="/api", tags=["insights"])
