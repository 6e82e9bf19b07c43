"""Generated test suite history with run tracking.

A SuiteHistory row is written once per generated suite. Each external run of
the suite gets one mutable SuiteRun row (merged on every status change) and
one immutable RunSnapshot row per observed status.
"""

from datetime import datetime

from sqlalchemy import JSON, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.datetime_utils import utc_now
from app.models.base import Base, new_id


class SuiteHistory(Base):
    """A generated test suite and its execution history."""

    __tablename__ = "suite_histories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    project_id: Mapped[str] = mapped_column(String(100), index=True)
    owner_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    suite_id: Mapped[str | None] = mapped_column(String(128), index=True, nullable=True)

    # Denormalized copy of the generated suite, never re-derived
    user_story: Mapped[str] = mapped_column(Text, default="")
    acceptance_criteria: Mapped[list] = mapped_column(JSON, default=list)
    component: Mapped[str] = mapped_column(String(255), default="General")
    priority: Mapped[str] = mapped_column(String(20), default="P1")
    format: Mapped[str] = mapped_column(String(50), default="gherkin")
    total_cases: Mapped[int] = mapped_column(Integer, default=0)
    breakdown: Mapped[dict] = mapped_column(JSON, default=dict)
    github_repo: Mapped[str] = mapped_column(String(255), default="")
    github_file_path: Mapped[str] = mapped_column(String(1024), default="")
    generation_payload: Mapped[dict] = mapped_column(JSON, default=dict)
    suite_data: Mapped[dict] = mapped_column(JSON, default=dict)

    run_count: Mapped[int] = mapped_column(Integer, default=0)
    last_run: Mapped[dict | None] = mapped_column(JSON, nullable=True, default=None)

    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)

    runs: Mapped[list["SuiteRun"]] = relationship(
        back_populates="history", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<SuiteHistory {self.suite_id} runs={self.run_count}>"


class SuiteRun(Base):
    """Current state of one external run, keyed by run identifier."""

    __tablename__ = "suite_runs"
    __table_args__ = (UniqueConstraint("history_id", "run_key", name="uq_suite_runs_history_run_key"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    history_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("suite_histories.id", ondelete="CASCADE"), index=True
    )
    run_key: Mapped[str] = mapped_column(String(128))
    run_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    project_id: Mapped[str] = mapped_column(String(100))
    owner_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    suite_id: Mapped[str] = mapped_column(String(128))

    status: Mapped[str] = mapped_column(String(50), default="unknown")
    conclusion: Mapped[str | None] = mapped_column(String(50), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    logs: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    repo: Mapped[str] = mapped_column(String(255), default="")
    github_file_path: Mapped[str] = mapped_column(String(1024), default="")
    raw_payload: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(default=utc_now)

    history: Mapped["SuiteHistory"] = relationship(back_populates="runs")
    snapshots: Mapped[list["RunSnapshot"]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RunSnapshot.recorded_at",
    )

    def __repr__(self) -> str:
        return f"<SuiteRun {self.run_key}: {self.status}>"


class RunSnapshot(Base):
    """Append-only audit entry of a run's state at one point in time."""

    __tablename__ = "run_snapshots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    run_pk: Mapped[str] = mapped_column(
        String(36), ForeignKey("suite_runs.id", ondelete="CASCADE"), index=True
    )
    run_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    status: Mapped[str] = mapped_column(String(50))
    conclusion: Mapped[str | None] = mapped_column(String(50), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    logs: Mapped[str | None] = mapped_column(Text, nullable=True)
    html_url: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    repo: Mapped[str] = mapped_column(String(255), default="")
    github_file_path: Mapped[str] = mapped_column(String(1024), default="")
    raw_payload: Mapped[dict] = mapped_column(JSON, default=dict)
    recorded_at: Mapped[datetime] = mapped_column(default=utc_now, index=True)

    run: Mapped["SuiteRun"] = relationship(back_populates="snapshots")

    def __repr__(self) -> str:
        return f"<RunSnapshot {self.run_pk} {self.status} @ {self.recorded_at}>"
