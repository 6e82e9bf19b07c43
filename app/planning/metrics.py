"""
Sprint metrics: risk, predicted delay and velocity roll-ups.

Pure functions over an in-memory task list. Nothing is cached; every KPI is
recomputed from the tasks passed in, so callers may run them on every
request.

Risk formula:
    risk = velocity * 0.4 + bugs * 2 + overdue_days * 3      (high risk if > 10)

Delay formula:
    delay = max(0, velocity + bugs * 0.5 - days_left)

Velocity is used as the remaining-work estimate even for in-progress tasks;
tasks carry no partial-completion field.

Tasks may be ORM rows or any object exposing ``velocity``, ``bugs``,
``status`` and ``due_date`` (a date, an ISO string or None).
"""

import math
from datetime import date
from typing import Any

from app.config import PlanningConfig
from app.core.datetime_utils import days_between, parse_calendar_date
from app.core.logging import get_logger
from app.schemas.metrics import ModuleStats, RiskBreakdown, SprintMetrics, StatusCounts

logger = get_logger(__name__)

DEFAULT_PLANNING = PlanningConfig({})


def _status(task: Any) -> str:
    status = getattr(task, "status", "todo")
    return getattr(status, "value", status) or "todo"


def _is_done(task: Any) -> bool:
    return _status(task) == "done"


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def _due_date(task: Any) -> date | None:
    return parse_calendar_date(getattr(task, "due_date", None))


def _today(today: date | None) -> date:
    return today or date.today()


# =============================================================================
# Per-task risk and delay
# =============================================================================


def overdue_days(task: Any, today: date | None = None) -> int:
    """Whole days past the due date (0 when not overdue or no due date)."""
    due = _due_date(task)
    if due is None:
        return 0
    return max(0, days_between(due, _today(today)))


def risk_score(
    task: Any,
    today: date | None = None,
    config: PlanningConfig | None = None,
) -> float:
    """
    Weighted risk of an open task.

    risk = velocity * 0.4 + bugs * 2 + overdue_days * 3

    Done tasks are excluded and score 0.
    """
    if _is_done(task):
        return 0.0

    config = config or DEFAULT_PLANNING
    return (
        _int(task.velocity) * config.velocity_weight
        + _int(task.bugs) * config.bug_weight
        + overdue_days(task, today) * config.overdue_weight
    )


def is_high_risk(
    task: Any,
    today: date | None = None,
    config: PlanningConfig | None = None,
) -> bool:
    """A task is high risk when it is open and its risk score exceeds the threshold."""
    if _is_done(task):
        return False
    config = config or DEFAULT_PLANNING
    return risk_score(task, today, config) > config.high_risk_threshold


def days_left(task: Any, today: date | None = None) -> int:
    """Days until the due date; negative when overdue, 0 when unset."""
    due = _due_date(task)
    if due is None:
        return 0
    return days_between(_today(today), due)


def task_delay(
    task: Any,
    today: date | None = None,
    config: PlanningConfig | None = None,
) -> float:
    """Predicted slip in days for an open task; done tasks contribute nothing."""
    if _is_done(task):
        return 0.0

    config = config or DEFAULT_PLANNING
    remaining_work = _int(task.velocity)
    bug_impact = _int(task.bugs) * config.bug_delay_factor
    return max(0.0, remaining_work + bug_impact - days_left(task, today))


# =============================================================================
# Aggregates
# =============================================================================


def predicted_delay(
    tasks: list[Any],
    today: date | None = None,
    config: PlanningConfig | None = None,
) -> float:
    """Sum of per-task delays over open tasks."""
    total = 0.0
    for task in tasks:
        delay = task_delay(task, today, config)
        if delay > 0:
            logger.bind(
                task=getattr(task, "name", None),
                velocity=_int(task.velocity),
                bugs=_int(task.bugs),
                days_left=days_left(task, today),
                delay=delay,
            ).debug("task_delay_predicted")
        total += delay
    return total


def display_delay(delay: float) -> int:
    """Round a delay to the nearest whole day, halves rounding up."""
    return math.floor(delay + 0.5)


def high_risk_count(
    tasks: list[Any],
    today: date | None = None,
    config: PlanningConfig | None = None,
) -> int:
    """Number of open tasks above the high-risk threshold."""
    count = 0
    for task in tasks:
        if is_high_risk(task, today, config):
            logger.bind(
                task=getattr(task, "name", None),
                risk_score=round(risk_score(task, today, config), 1),
                overdue_days=overdue_days(task, today),
            ).debug("high_risk_task")
            count += 1
    return count


def velocity_rollup(tasks: list[Any]) -> tuple[int, int, int]:
    """
    Completed vs total velocity.

    Returns:
        (completed_velocity, total_velocity, velocity_percentage) where the
        percentage is floored and 0 when there is no velocity at all.
    """
    completed = sum(_int(t.velocity) for t in tasks if _is_done(t))
    total = sum(_int(t.velocity) for t in tasks)
    percentage = math.floor(completed / total * 100) if total > 0 else 0
    return completed, total, percentage


# =============================================================================
# Badge scale (coarser 0-100 score shown next to each task)
# =============================================================================


def badge_risk_score(points: Any, config: PlanningConfig | None = None) -> int:
    """Badge risk on a 0-100 scale: min(floor(points * 10), 100)."""
    config = config or DEFAULT_PLANNING
    try:
        value = float(points or 0)
    except (TypeError, ValueError):
        value = 0.0
    return min(math.floor(value * config.badge_multiplier), config.badge_cap)


def average_badge_risk(tasks: list[Any], config: PlanningConfig | None = None) -> int:
    """Floored mean badge risk across all tasks (0 for an empty list)."""
    if not tasks:
        return 0
    total = sum(badge_risk_score(t.velocity, config) for t in tasks)
    return math.floor(total / len(tasks))


def badge_level(score: int, config: PlanningConfig | None = None) -> str:
    """Colour band of a badge score: high, medium or low."""
    config = config or DEFAULT_PLANNING
    if score > config.badge_high_above:
        return "high"
    if score > config.badge_medium_above:
        return "medium"
    return "low"


def risk_breakdown(task: Any, config: PlanningConfig | None = None) -> RiskBreakdown:
    """Components behind a task's badge score."""
    points = _int(task.velocity)
    return RiskBreakdown(
        complexity=min(points * 10, 40),
        timeline_risk=20 if _due_date(task) else 30,
        total=badge_risk_score(points, config),
    )


# =============================================================================
# Counts and groupings
# =============================================================================


def status_counts(tasks: list[Any]) -> StatusCounts:
    statuses = [_status(t) for t in tasks]
    return StatusCounts(
        total=len(statuses),
        todo=statuses.count("todo"),
        in_progress=statuses.count("in-progress"),
        done=statuses.count("done"),
    )


def module_breakdown(tasks: list[Any]) -> dict[str, ModuleStats]:
    """Per-module task count, velocity and bugs ("Unassigned" for no module)."""
    stats: dict[str, ModuleStats] = {}
    for task in tasks:
        module = getattr(task, "module", "") or "Unassigned"
        entry = stats.setdefault(module, ModuleStats())
        entry.count += 1
        entry.velocity += _int(task.velocity)
        entry.bugs += _int(task.bugs)
    return stats


def compute_sprint_metrics(
    tasks: list[Any],
    today: date | None = None,
    config: PlanningConfig | None = None,
) -> SprintMetrics:
    """Compute every planning KPI for a task list."""
    today = _today(today)
    completed, total, percentage = velocity_rollup(tasks)
    delay = predicted_delay(tasks, today, config)

    return SprintMetrics(
        as_of=today,
        counts=status_counts(tasks),
        completed_velocity=completed,
        total_velocity=total,
        velocity_percentage=percentage,
        predicted_delay=delay,
        predicted_delay_days=display_delay(delay),
        high_risk_tasks=high_risk_count(tasks, today, config),
        average_badge_risk=average_badge_risk(tasks, config),
        total_bugs=sum(_int(t.bugs) for t in tasks),
        modules=module_breakdown(tasks),
    )
