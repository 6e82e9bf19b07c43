"""
Suite history reconciliation.

Keeps three levels of records consistent:

    SuiteHistory (one per generated suite)
      └── SuiteRun (one per run key, merged on every status change)
            └── RunSnapshot (append-only, one per observed status)

Writes go through the caller's session and are flushed, not committed;
the request-scoped session (``get_db``) or the poller's own session commits.
Nothing here retries. Every write is keyed by run key, so a caller may
safely repeat a call that failed halfway.
"""

from typing import Any

from sqlalchemy import Select, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.datetime_utils import epoch_millis, utc_now
from app.core.errors import HistoryNotFoundError, InvalidRequestError
from app.core.logging import get_logger
from app.models.suite_history import RunSnapshot, SuiteHistory, SuiteRun

logger = get_logger(__name__)

SECRET_PAYLOAD_KEYS = ("github_token",)


def _strip_none(value: Any) -> Any:
    """Recursively drop None-valued keys from dicts (lists keep their length)."""
    if isinstance(value, dict):
        return {k: _strip_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [_strip_none(v) for v in value]
    return value


def sanitize_generation_payload(payload: dict[str, Any] | None) -> dict[str, Any]:
    """Remove secrets from a generation payload, recording only whether a token was sent."""
    payload = dict(payload or {})
    token_present = bool(payload.get("github_token"))
    for key in SECRET_PAYLOAD_KEYS:
        payload.pop(key, None)
    payload["github_token_present"] = token_present
    return _strip_none(payload)


def make_run_key(run_data: dict[str, Any]) -> str:
    """Stable key of a run: its external id, or a timestamp key when it has none."""
    run_id = run_data.get("run_id")
    if run_id:
        return str(run_id)
    return f"run-{epoch_millis()}"


def build_run_summary(run_data: dict[str, Any], github_context: dict[str, Any] | None) -> dict[str, Any]:
    """Summary fields shared by the run row, its snapshots and the parent's last_run."""
    github_context = github_context or {}
    return {
        "run_id": str(run_data["run_id"]) if run_data.get("run_id") else None,
        "status": run_data.get("status") or "unknown",
        "conclusion": run_data.get("conclusion"),
        "message": run_data.get("message"),
        "logs": run_data.get("logs"),
        "html_url": run_data.get("html_url"),
        "repo": github_context.get("repo") or "",
        "github_file_path": github_context.get("file_path") or github_context.get("filePath") or "",
    }


# =============================================================================
# Generation history
# =============================================================================


async def save_generated_suite_history(
    db: AsyncSession,
    project_id: str | None,
    owner_id: str | None,
    generation_payload: dict[str, Any] | None,
    suite_data: dict[str, Any] | None,
) -> SuiteHistory:
    """
    Record a freshly generated suite.

    Denormalised fields are taken from the suite first and the request
    payload second; they are never re-derived later.

    Raises:
        InvalidRequestError: If project_id or suite_data is missing
    """
    if not project_id:
        raise InvalidRequestError("Project ID is required")
    if not suite_data:
        raise InvalidRequestError("Suite data is required")

    payload = sanitize_generation_payload(generation_payload)
    suite = _strip_none(dict(suite_data))

    history = SuiteHistory(
        project_id=project_id,
        owner_id=owner_id,
        suite_id=str(suite["suite_id"]) if suite.get("suite_id") else None,
        user_story=suite.get("user_story") or payload.get("user_story") or "",
        acceptance_criteria=suite.get("acceptance_criteria") or payload.get("acceptance_criteria") or [],
        component=suite.get("component") or payload.get("component_context") or "General",
        priority=suite.get("priority") or payload.get("priority") or "P1",
        format=suite.get("format") or payload.get("target_format") or "gherkin",
        total_cases=suite.get("total_cases") or len(suite.get("test_cases") or []),
        breakdown=suite.get("breakdown") or {},
        github_repo=payload.get("github_repo") or "",
        github_file_path=payload.get("github_file_path") or "",
        generation_payload=payload,
        suite_data=suite,
        run_count=0,
        last_run=None,
    )
    db.add(history)
    await db.flush()

    logger.bind(
        history_id=history.id,
        project_id=project_id,
        suite_id=history.suite_id,
        total_cases=history.total_cases,
    ).info("suite_history_saved")
    return history


def _scoped(
    query: Select,
    project_id: str | None,
    suite_id: str | None,
    history_id: str | None = None,
) -> Select:
    """Restrict a SuiteHistory query to the given ids, skipping the ones left unset."""
    if history_id:
        query = query.where(SuiteHistory.id == history_id)
    if project_id:
        query = query.where(SuiteHistory.project_id == project_id)
    if suite_id:
        query = query.where(SuiteHistory.suite_id == suite_id)
    return query


async def list_project_history(db: AsyncSession, project_id: str | None) -> list[SuiteHistory]:
    """All suite history records of a project, most recently updated first."""
    if not project_id:
        return []

    result = await db.execute(
        select(SuiteHistory)
        .where(SuiteHistory.project_id == project_id)
        .order_by(SuiteHistory.updated_at.desc(), SuiteHistory.created_at.desc())
    )
    return list(result.scalars().all())


async def resolve_history_id(
    db: AsyncSession,
    project_id: str | None,
    suite_id: str | None,
    history_id: str | None = None,
) -> str | None:
    """
    Find the history record a suite's runs belong to.

    An explicit history_id wins when it belongs to the given project and
    suite; otherwise the most recently updated record for
    (project_id, suite_id). Returns None when nothing matches.
    """
    if history_id:
        query = _scoped(select(SuiteHistory.id), project_id, suite_id, history_id)
        return (await db.execute(query)).scalar_one_or_none()
    if not project_id or not suite_id:
        return None

    result = await db.execute(
        _scoped(select(SuiteHistory.id), project_id, suite_id)
        .order_by(SuiteHistory.updated_at.desc(), SuiteHistory.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


# =============================================================================
# Run tracking
# =============================================================================


async def save_run_snapshot(
    db: AsyncSession,
    project_id: str | None,
    suite_id: str | None,
    run_data: dict[str, Any] | None,
    history_id: str | None = None,
    owner_id: str | None = None,
    github_context: dict[str, Any] | None = None,
) -> tuple[str, str]:
    """
    Record one observed state of a suite run.

    Steps, in order:
    1. Resolve the parent history (never creates one)
    2. Merge-write the run row for the run key
    3. Append an audit snapshot
    4. Point the parent's last_run at this summary, bumping run_count
       only when the run key is new

    Returns:
        (history_id, run_key)

    Raises:
        InvalidRequestError: If project_id, suite_id or run_data is missing
        HistoryNotFoundError: If no history record matches
    """
    if not project_id:
        raise InvalidRequestError("Project ID is required")
    if not suite_id:
        raise InvalidRequestError("Suite ID is required")
    if not run_data:
        raise InvalidRequestError("Run data is required")

    resolved_id = await resolve_history_id(db, project_id, suite_id, history_id)
    history = await db.get(SuiteHistory, resolved_id) if resolved_id else None
    if history is None:
        logger.bind(project_id=project_id, suite_id=suite_id, history_id=history_id).warning(
            "suite_history_not_found"
        )
        raise HistoryNotFoundError(suite_id)

    run_key = make_run_key(run_data)
    summary = build_run_summary(run_data, github_context)
    raw_payload = _strip_none(dict(run_data))
    now = utc_now()

    result = await db.execute(
        select(SuiteRun).where(SuiteRun.history_id == history.id, SuiteRun.run_key == run_key)
    )
    run = result.scalar_one_or_none()
    is_new_run = run is None

    if is_new_run:
        run = SuiteRun(
            history_id=history.id,
            run_key=run_key,
            project_id=project_id,
            owner_id=owner_id,
            suite_id=suite_id,
            raw_payload=raw_payload,
            created_at=now,
            updated_at=now,
            **summary,
        )
        db.add(run)
    else:
        for field, value in summary.items():
            setattr(run, field, value)
        if owner_id:
            run.owner_id = owner_id
        run.raw_payload = raw_payload
        run.updated_at = now
    await db.flush()

    db.add(RunSnapshot(run_pk=run.id, raw_payload=raw_payload, recorded_at=now, **summary))

    last_run = {**summary, "updated_at": now.isoformat()}
    values: dict[str, Any] = {"last_run": last_run, "updated_at": now}
    if is_new_run:
        values["run_count"] = SuiteHistory.run_count + 1
    await db.execute(update(SuiteHistory).where(SuiteHistory.id == history.id).values(**values))
    await db.flush()

    logger.bind(
        history_id=history.id,
        run_key=run_key,
        status=summary["status"],
        new_run=is_new_run,
    ).info("run_snapshot_saved")
    return history.id, run_key


async def delete_suite_history(
    db: AsyncSession,
    project_id: str | None,
    suite_id: str | None = None,
    history_id: str | None = None,
) -> int:
    """
    Delete suite history records with all their runs and snapshots.

    Targets the explicit history_id, or every record of (project_id, suite_id).
    An explicit history_id outside the given project or suite matches nothing.
    Children are deleted before parents so nothing is left orphaned even
    where the database does not enforce foreign keys.

    Returns:
        Number of history records deleted

    Raises:
        InvalidRequestError: If neither project_id nor history_id is given
        HistoryNotFoundError: If nothing matches
    """
    if not project_id and not history_id:
        raise InvalidRequestError("Project ID or history ID is required")

    if history_id or suite_id:
        query = _scoped(select(SuiteHistory.id), project_id, suite_id, history_id)
    else:
        raise HistoryNotFoundError(suite_id)

    target_ids = list((await db.execute(query)).scalars().all())
    if not target_ids:
        raise HistoryNotFoundError(suite_id or history_id)

    run_ids = select(SuiteRun.id).where(SuiteRun.history_id.in_(target_ids))
    snapshots = await db.execute(
        delete(RunSnapshot)
        .where(RunSnapshot.run_pk.in_(run_ids))
        .execution_options(synchronize_session=False)
    )
    runs = await db.execute(
        delete(SuiteRun)
        .where(SuiteRun.history_id.in_(target_ids))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(SuiteHistory)
        .where(SuiteHistory.id.in_(target_ids))
        .execution_options(synchronize_session=False)
    )
    db.expunge_all()

    logger.bind(
        project_id=project_id,
        suite_id=suite_id,
        histories=len(target_ids),
        runs=runs.rowcount,
        snapshots=snapshots.rowcount,
    ).info("suite_history_deleted")
    return len(target_ids)
