"""Initial schema: tasks, suite history, validations, analyses

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Tasks
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("project_id", sa.String(100), nullable=False),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("module", sa.String(255), nullable=False, server_default=""),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("velocity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("bugs", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "status",
            sa.Enum(
                "todo",
                "in-progress",
                "done",
                name="taskstatus",
                native_enum=False,
                length=20,
            ),
            nullable=False,
            server_default="todo",
        ),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])

    # Generated suite history
    op.create_table(
        "suite_histories",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("project_id", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=True),
        sa.Column("suite_id", sa.String(128), nullable=True),
        sa.Column("user_story", sa.Text(), nullable=False),
        sa.Column("acceptance_criteria", sa.JSON(), nullable=False),
        sa.Column("component", sa.String(255), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("format", sa.String(50), nullable=False),
        sa.Column("total_cases", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("breakdown", sa.JSON(), nullable=False),
        sa.Column("github_repo", sa.String(255), nullable=False),
        sa.Column("github_file_path", sa.String(1024), nullable=False),
        sa.Column("generation_payload", sa.JSON(), nullable=False),
        sa.Column("suite_data", sa.JSON(), nullable=False),
        sa.Column("run_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_run", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_suite_histories_project_id", "suite_histories", ["project_id"])
    op.create_index("ix_suite_histories_suite_id", "suite_histories", ["suite_id"])
    op.create_index("ix_suite_histories_updated_at", "suite_histories", ["updated_at"])

    op.create_table(
        "suite_runs",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("history_id", sa.String(36), nullable=False),
        sa.Column("run_key", sa.String(128), nullable=False),
        sa.Column("run_id", sa.String(128), nullable=True),
        sa.Column("project_id", sa.String(100), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=True),
        sa.Column("suite_id", sa.String(128), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("conclusion", sa.String(50), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("logs", sa.Text(), nullable=True),
        sa.Column("html_url", sa.String(2048), nullable=True),
        sa.Column("repo", sa.String(255), nullable=False),
        sa.Column("github_file_path", sa.String(1024), nullable=False),
        sa.Column("raw_payload", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["history_id"], ["suite_histories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("history_id", "run_key", name="uq_suite_runs_history_run_key"),
    )
    op.create_index("ix_suite_runs_history_id", "suite_runs", ["history_id"])

    op.create_table(
        "run_snapshots",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("run_pk", sa.String(36), nullable=False),
        sa.Column("run_id", sa.String(128), nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("conclusion", sa.String(50), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("logs", sa.Text(), nullable=True),
        sa.Column("html_url", sa.String(2048), nullable=True),
        sa.Column("repo", sa.String(255), nullable=False),
        sa.Column("github_file_path", sa.String(1024), nullable=False),
        sa.Column("raw_payload", sa.JSON(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["run_pk"], ["suite_runs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_run_snapshots_run_pk", "run_snapshots", ["run_pk"])
    op.create_index("ix_run_snapshots_recorded_at", "run_snapshots", ["recorded_at"])

    # Validation history
    op.create_table(
        "ux_validations",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("project_id", sa.String(100), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("screen_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("validation_results", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ux_validations_project_id", "ux_validations", ["project_id"])
    op.create_index("ix_ux_validations_user_id", "ux_validations", ["user_id"])
    op.create_index("ix_ux_validations_created_at", "ux_validations", ["created_at"])

    op.create_table(
        "ui_validations",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("project_id", sa.String(100), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("reference_image", sa.JSON(), nullable=False),
        sa.Column("comparison_image", sa.JSON(), nullable=False),
        sa.Column("visual_regression_results", sa.JSON(), nullable=True),
        sa.Column("ui_comparison_results", sa.JSON(), nullable=True),
        sa.Column("checks_performed", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ui_validations_project_id", "ui_validations", ["project_id"])
    op.create_index("ix_ui_validations_user_id", "ui_validations", ["user_id"])
    op.create_index("ix_ui_validations_created_at", "ui_validations", ["created_at"])

    # AI sprint analyses
    op.create_table(
        "sprint_analyses",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("project_id", sa.String(100), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("analysis", sa.JSON(), nullable=False),
        sa.Column("overall_risk", sa.Integer(), nullable=True),
        sa.Column("tasks_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sprint_analyses_project_id", "sprint_analyses", ["project_id"])
    op.create_index("ix_sprint_analyses_created_at", "sprint_analyses", ["created_at"])


def downgrade() -> None:
    op.drop_table("sprint_analyses")
    op.drop_table("ui_validations")
    op.drop_table("ux_validations")
    op.drop_table("run_snapshots")
    op.drop_table("suite_runs")
    op.drop_table("suite_histories")
    op.drop_table("tasks")
