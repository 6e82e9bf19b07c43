from typing import Any

from fastapi import APIRouter, Header, Query, Response, status

from app.core.errors import HistoryNotFoundError, UpstreamServiceError
from app.core.logging import get_logger
from app.dependencies import CurrentUserId, DBSession, Poller, SessionFactory, TestGen
from app.history.polling import snapshot_writer
from app.history.reconciler import (
    delete_suite_history,
    list_project_history,
    save_generated_suite_history,
    save_run_snapshot,
)
from app.schemas.history import (
    DeleteHistoryResponse,
    GeneratedSuiteResponse,
    GenerateSuiteRequest,
    RunStatusResponse,
    RunSuiteRequest,
    SuiteHistoryResponse,
)
from app.services.testgen_client import export_filename

logger = get_logger(__name__)

router = APIRouter()


def _status_response(data: dict[str, Any], **extra: Any) -> RunStatusResponse:
    payload = {k: v for k, v in data.items() if k not in extra}
    if payload.get("run_id") is not None:
        payload["run_id"] = str(payload["run_id"])
    payload["status"] = payload.get("status") or "unknown"
    return RunStatusResponse(**payload, **extra)


async def _record_run(
    db: DBSession,
    project_id: str,
    suite_id: str,
    run_data: dict[str, Any],
    history_id: str | None,
    owner_id: str | None,
    github_context: dict[str, Any],
) -> tuple[str | None, str | None]:
    """Persist a run state; a suite without history is reported, not fatal."""
    try:
        return await save_run_snapshot(
            db,
            project_id=project_id,
            suite_id=suite_id,
            run_data=run_data,
            history_id=history_id,
            owner_id=owner_id,
            github_context=github_context,
        )
    except HistoryNotFoundError as e:
        logger.bind(suite_id=suite_id, error=e.message).warning("run_tracking_unavailable")
        return None, None


@router.post(
    "/projects/{project_id}/suites/generate",
    response_model=GeneratedSuiteResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_suite(
    project_id: str,
    data: GenerateSuiteRequest,
    db: DBSession,
    testgen: TestGen,
    user_id: CurrentUserId,
) -> GeneratedSuiteResponse:
    """
    Generate a test suite and record it in the project's history.

    The GitHub token is forwarded upstream but never stored.
    """
    payload = data.model_dump()
    payload["acceptance_criteria"] = [c.strip() for c in data.acceptance_criteria if c.strip()]
    payload["project_id"] = project_id

    suite = await testgen.generate(payload)
    history = await save_generated_suite_history(db, project_id, user_id, payload, suite)
    return GeneratedSuiteResponse(suite=suite, history_id=history.id)


@router.get("/projects/{project_id}/suites/history", response_model=list[SuiteHistoryResponse])
async def get_suite_history(project_id: str, db: DBSession) -> list[SuiteHistoryResponse]:
    """Generated suites of a project, most recently updated first."""
    records = await list_project_history(db, project_id)
    return [SuiteHistoryResponse.model_validate(r) for r in records]


@router.delete("/projects/{project_id}/suites/history", response_model=DeleteHistoryResponse)
async def delete_history(
    project_id: str,
    db: DBSession,
    testgen: TestGen,
    suite_id: str | None = Query(default=None),
    history_id: str | None = Query(default=None),
    delete_remote: bool = Query(default=True),
) -> DeleteHistoryResponse:
    """
    Delete a suite's history with all run records.

    When a suite_id is given the suite is also deleted upstream first,
    unless delete_remote is false.
    """
    if suite_id and delete_remote:
        await testgen.delete_suite(suite_id)

    deleted = await delete_suite_history(db, project_id, suite_id=suite_id, history_id=history_id)
    return DeleteHistoryResponse(deleted=deleted)


@router.post("/projects/{project_id}/suites/{suite_id}/runs", response_model=RunStatusResponse)
async def run_suite(
    project_id: str,
    suite_id: str,
    data: RunSuiteRequest,
    db: DBSession,
    testgen: TestGen,
    poller: Poller,
    session_factory: SessionFactory,
    user_id: CurrentUserId,
) -> RunStatusResponse:
    """
    Trigger a run of a suite and track it.

    The initial state is recorded immediately. When the upstream returns a
    run id, its status is polled in the background until it completes.
    A failed trigger is recorded and returned as an `error` run.
    """
    github_context = {"repo": data.repo, "file_path": data.github_file_path}

    try:
        run_data = await testgen.trigger_run(suite_id, data.repo, data.token)
    except UpstreamServiceError as e:
        run_data = {
            "run_id": None,
            "status": "error",
            "conclusion": "failure",
            "logs": e.message,
            "message": e.message,
        }

    history_id, run_key = await _record_run(
        db, project_id, suite_id, run_data, data.history_id, user_id, github_context
    )

    run_id = run_data.get("run_id")
    polling = False
    if run_id and history_id and data.poll:
        run_id = str(run_id)

        async def fetch_status() -> dict[str, Any]:
            return await testgen.run_status(run_id, data.repo, data.token)

        poller.start(
            run_id,
            fetch_status,
            snapshot_writer(
                session_factory,
                project_id=project_id,
                suite_id=suite_id,
                run_id=run_id,
                history_id=history_id,
                owner_id=user_id,
                github_context=github_context,
            ),
        )
        polling = True

    return _status_response(run_data, history_id=history_id, run_key=run_key, polling=polling)


@router.get(
    "/projects/{project_id}/suites/{suite_id}/runs/{run_id}/status",
    response_model=RunStatusResponse,
)
async def get_run_status(
    project_id: str,
    suite_id: str,
    run_id: str,
    db: DBSession,
    testgen: TestGen,
    poller: Poller,
    user_id: CurrentUserId,
    repo: str = Query(...),
    token: str = Header(..., alias="X-GitHub-Token"),
    history_id: str | None = Query(default=None),
    record: bool = Query(default=True),
) -> RunStatusResponse:
    """
    Fetch a run's current status, recording it in the suite history.

    The GitHub token travels in the X-GitHub-Token header so it stays out
    of request urls and access logs.
    """
    run_data = await testgen.run_status(run_id, repo, token)
    run_data = {**run_data, "run_id": run_data.get("run_id") or run_id}

    recorded_history, run_key = None, None
    if record:
        recorded_history, run_key = await _record_run(
            db, project_id, suite_id, run_data, history_id, user_id, {"repo": repo}
        )

    return _status_response(
        run_data,
        history_id=recorded_history,
        run_key=run_key,
        polling=poller.is_polling(run_id),
    )


@router.delete("/runs/{run_id}/poll")
async def stop_run_polling(run_id: str, poller: Poller) -> dict[str, bool]:
    """Stop background polling of a run."""
    return {"stopped": poller.stop(run_id)}


@router.get("/suites/{suite_id}/export/{export_format}")
async def export_suite(suite_id: str, export_format: str, testgen: TestGen) -> Response:
    """Download a suite as json, feature, csv or pytest."""
    content = await testgen.export_suite(suite_id, export_format)
    filename = export_filename(suite_id, export_format)
    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
