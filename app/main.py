from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.router import api_router
from app.config import get_settings
from app.core.errors import SprintPilotError
from app.core.logging import get_logger, setup_logging
from app.history.polling import get_run_poller

logger = get_logger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    # Startup
    setup_logging()
    yield
    # Shutdown
    await get_run_poller().stop_all()


app = FastAPI(
    title="SprintPilot",
    description="Sprint planning, test generation and UI validation API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/api/docs" if settings.debug else None,
    redoc_url="/api/redoc" if settings.debug else None,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.base_url, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SprintPilotError)
async def sprintpilot_error_handler(request: Request, exc: SprintPilotError) -> JSONResponse:
    """Map domain errors to their HTTP status with a `detail` message."""
    log = logger.bind(path=request.url.path, status=exc.status_code, error=exc.message)
    if exc.status_code >= 500:
        log.error("request_failed")
    else:
        log.info("request_rejected")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.bind(path=request.url.path, error=str(exc)).exception("unhandled_error")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint for load balancers."""
    return {"status": "healthy"}
