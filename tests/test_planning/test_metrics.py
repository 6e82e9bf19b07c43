"""Tests for sprint metric computation."""

from datetime import date, timedelta

import pytest

from app.config import PlanningConfig
from app.models.task import Task, TaskStatus
from app.planning.metrics import (
    average_badge_risk,
    badge_level,
    badge_risk_score,
    compute_sprint_metrics,
    days_left,
    display_delay,
    high_risk_count,
    is_high_risk,
    module_breakdown,
    overdue_days,
    predicted_delay,
    risk_breakdown,
    risk_score,
    status_counts,
    task_delay,
    velocity_rollup,
)

TODAY = date(2026, 3, 10)


def make_task(
    velocity: int = 0,
    bugs: int = 0,
    status: TaskStatus = TaskStatus.TODO,
    due_date: date | str | None = None,
    module: str = "",
    name: str = "Task",
) -> Task:
    return Task(
        project_id="proj-1",
        name=name,
        module=module,
        velocity=velocity,
        bugs=bugs,
        status=status,
        due_date=due_date,
    )


class TestRiskScore:
    """Tests for the weighted task risk score."""

    def test_overdue_task_risk(self):
        """velocity 8, 3 bugs, 2 days overdue -> 3.2 + 6 + 6."""
        task = make_task(velocity=8, bugs=3, due_date=TODAY - timedelta(days=2))

        assert risk_score(task, TODAY) == pytest.approx(15.2)
        assert is_high_risk(task, TODAY) is True

    def test_future_due_date_adds_no_overdue_risk(self):
        """A task due later contributes no overdue days."""
        task = make_task(velocity=5, bugs=1, due_date=TODAY + timedelta(days=4))

        assert overdue_days(task, TODAY) == 0
        assert risk_score(task, TODAY) == pytest.approx(4.0)
        assert is_high_risk(task, TODAY) is False

    def test_no_due_date(self):
        """Tasks without a due date are never overdue."""
        task = make_task(velocity=10, bugs=0)

        assert overdue_days(task, TODAY) == 0
        assert risk_score(task, TODAY) == pytest.approx(4.0)

    def test_done_task_is_excluded(self):
        """Done tasks score zero and are never high risk."""
        task = make_task(velocity=40, bugs=10, status=TaskStatus.DONE, due_date=TODAY - timedelta(days=9))

        assert risk_score(task, TODAY) == 0.0
        assert is_high_risk(task, TODAY) is False

    def test_threshold_is_exclusive(self):
        """A score of exactly 10 is not high risk."""
        task = make_task(velocity=0, bugs=5)

        assert risk_score(task, TODAY) == pytest.approx(10.0)
        assert is_high_risk(task, TODAY) is False

    def test_iso_string_due_date(self):
        """Due dates given as ISO strings are parsed."""
        task = make_task(velocity=0, bugs=0, due_date="2026-03-07")

        assert overdue_days(task, TODAY) == 3
        assert risk_score(task, TODAY) == pytest.approx(9.0)

    def test_custom_weights(self):
        """Weights come from the planning config."""
        config = PlanningConfig({"bug_weight": 5.0, "high_risk_threshold": 4.0})
        task = make_task(velocity=0, bugs=1)

        assert risk_score(task, TODAY, config) == pytest.approx(5.0)
        assert is_high_risk(task, TODAY, config) is True


class TestDelay:
    """Tests for predicted delay."""

    def test_overdue_in_progress_task_delay(self):
        """velocity 5, 2 bugs, 3 days overdue -> 5 + 1 - (-3) = 9."""
        task = make_task(
            velocity=5, bugs=2, status=TaskStatus.IN_PROGRESS, due_date=TODAY - timedelta(days=3)
        )

        assert days_left(task, TODAY) == -3
        assert task_delay(task, TODAY) == pytest.approx(9.0)

    def test_enough_time_means_no_delay(self):
        """Delay is clamped at zero when the due date is far enough."""
        task = make_task(velocity=3, bugs=2, due_date=TODAY + timedelta(days=10))

        assert task_delay(task, TODAY) == 0.0

    def test_no_due_date_counts_zero_days_left(self):
        task = make_task(velocity=4, bugs=1)

        assert days_left(task, TODAY) == 0
        assert task_delay(task, TODAY) == pytest.approx(4.5)

    def test_done_tasks_never_delay(self):
        tasks = [
            make_task(velocity=8, bugs=4, status=TaskStatus.DONE, due_date=TODAY - timedelta(days=5)),
            make_task(velocity=13, bugs=2, status=TaskStatus.DONE),
        ]

        assert predicted_delay(tasks, TODAY) == 0.0
        assert high_risk_count(tasks, TODAY) == 0

    def test_predicted_delay_sums_tasks(self):
        tasks = [
            make_task(velocity=4, bugs=1),  # 4.5
            make_task(velocity=2, bugs=0, due_date=TODAY + timedelta(days=1)),  # 1
            make_task(velocity=9, bugs=0, status=TaskStatus.DONE),  # excluded
        ]

        assert predicted_delay(tasks, TODAY) == pytest.approx(5.5)

    def test_display_delay_rounds_half_up(self):
        assert display_delay(2.5) == 3
        assert display_delay(2.49) == 2
        assert display_delay(0.0) == 0
        assert display_delay(9.0) == 9


class TestVelocityRollup:
    """Tests for completed vs total velocity."""

    def test_percentage_is_floored(self):
        tasks = [
            make_task(velocity=5, status=TaskStatus.DONE),
            make_task(velocity=3, status=TaskStatus.IN_PROGRESS),
        ]

        assert velocity_rollup(tasks) == (5, 8, 62)

    def test_zero_total_velocity(self):
        """No velocity at all yields 0%, never a division error."""
        assert velocity_rollup([]) == (0, 0, 0)
        assert velocity_rollup([make_task(velocity=0, status=TaskStatus.DONE)]) == (0, 0, 0)

    def test_percentage_within_bounds(self):
        tasks = [make_task(velocity=v, status=TaskStatus.DONE) for v in (1, 2, 3)]

        _, _, percentage = velocity_rollup(tasks)
        assert 0 <= percentage <= 100
        assert percentage == 100


class TestBadgeRisk:
    """Tests for the 0-100 badge scale."""

    def test_badge_score_scales_and_caps(self):
        assert badge_risk_score(0) == 0
        assert badge_risk_score(4) == 40
        assert badge_risk_score(7.5) == 75
        assert badge_risk_score(12) == 100
        assert badge_risk_score(None) == 0

    def test_badge_levels(self):
        assert badge_level(71) == "high"
        assert badge_level(70) == "medium"
        assert badge_level(41) == "medium"
        assert badge_level(40) == "low"
        assert badge_level(0) == "low"

    def test_average_badge_risk(self):
        tasks = [make_task(velocity=3), make_task(velocity=5), make_task(velocity=20)]

        # (30 + 50 + 100) / 3 = 60
        assert average_badge_risk(tasks) == 60
        assert average_badge_risk([]) == 0

    def test_risk_breakdown(self):
        undated = risk_breakdown(make_task(velocity=5))
        dated = risk_breakdown(make_task(velocity=2, due_date=TODAY))

        assert undated.complexity == 40
        assert undated.timeline_risk == 30
        assert undated.total == 50
        assert dated.complexity == 20
        assert dated.timeline_risk == 20
        assert dated.total == 20


class TestGroupings:
    """Tests for status counts and module breakdown."""

    def test_status_counts(self):
        tasks = [
            make_task(status=TaskStatus.TODO),
            make_task(status=TaskStatus.TODO),
            make_task(status=TaskStatus.IN_PROGRESS),
            make_task(status=TaskStatus.DONE),
        ]

        counts = status_counts(tasks)
        assert (counts.total, counts.todo, counts.in_progress, counts.done) == (4, 2, 1, 1)

    def test_module_breakdown_groups_unassigned(self):
        tasks = [
            make_task(module="API", velocity=3, bugs=1),
            make_task(module="API", velocity=5, bugs=2),
            make_task(module="", velocity=2),
        ]

        modules = module_breakdown(tasks)

        assert set(modules) == {"API", "Unassigned"}
        assert modules["API"].count == 2
        assert modules["API"].velocity == 8
        assert modules["API"].bugs == 3
        assert modules["Unassigned"].count == 1


class TestComputeSprintMetrics:
    """Tests for the bundled KPI computation."""

    def test_all_done_sprint(self):
        tasks = [
            make_task(velocity=5, bugs=3, status=TaskStatus.DONE, due_date=TODAY - timedelta(days=10)),
            make_task(velocity=8, bugs=1, status=TaskStatus.DONE),
        ]

        metrics = compute_sprint_metrics(tasks, TODAY)

        assert metrics.predicted_delay == 0.0
        assert metrics.predicted_delay_days == 0
        assert metrics.high_risk_tasks == 0
        assert metrics.velocity_percentage == 100

    def test_mixed_sprint(self):
        tasks = [
            make_task(velocity=8, bugs=3, due_date=TODAY - timedelta(days=2), module="Auth"),
            make_task(velocity=5, status=TaskStatus.DONE, module="Auth"),
            make_task(velocity=2, bugs=1, status=TaskStatus.IN_PROGRESS, due_date=TODAY + timedelta(days=5)),
        ]

        metrics = compute_sprint_metrics(tasks, TODAY)

        assert metrics.as_of == TODAY
        assert metrics.counts.total == 3
        assert metrics.completed_velocity == 5
        assert metrics.total_velocity == 15
        assert metrics.velocity_percentage == 33
        # 8 + 1.5 + 2 = 11.5 for the overdue task; the other has enough time
        assert metrics.predicted_delay == pytest.approx(11.5)
        assert metrics.predicted_delay_days == 12
        assert metrics.high_risk_tasks == 1
        assert metrics.total_bugs == 4
        assert metrics.modules["Auth"].count == 2

    def test_empty_task_list(self):
        metrics = compute_sprint_metrics([], TODAY)

        assert metrics.counts.total == 0
        assert metrics.velocity_percentage == 0
        assert metrics.average_badge_risk == 0
        assert metrics.modules == {}
