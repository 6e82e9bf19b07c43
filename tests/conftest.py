"""
Pytest configuration and fixtures for SprintPilot tests.

Provides:
- Async test database with SQLite
- Test client for API testing
- Factory fixtures for creating test data
"""

import asyncio
from collections.abc import AsyncGenerator
from datetime import date, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings, get_settings
from app.core.database import get_db, get_session_factory
from app.core.datetime_utils import utc_now
from app.history.polling import RunPoller, get_run_poller
from app.main import app
from app.models import Base, SuiteHistory, Task, TaskStatus

# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# Override settings for testing
class TestSettings(Settings):
    database_url: str = TEST_DATABASE_URL
    debug: bool = True
    openai_api_key: str = "test-key"
    testgen_backend_url: str = "http://testgen.test"
    validation_backend_url: str = "http://validation.test"
    base_url: str = "http://localhost:8000"


@pytest.fixture(scope="session")
def event_loop():
    """Create event loop for async tests."""
    loop = asyncio.get_event_loop_policy().new_event_loop()
    yield loop
    loop.close()


@pytest_asyncio.fixture
async def db_engine():
    """Create async test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine (for background work)."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def run_poller() -> AsyncGenerator[RunPoller, None]:
    """Poller whose loops never fire during a test."""
    poller = RunPoller(interval_seconds=60, max_polls=1)
    yield poller
    await poller.stop_all()


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    session_factory: async_sessionmaker[AsyncSession],
    run_poller: RunPoller,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client with database override."""

    async def override_get_db():
        yield db_session

    def override_get_settings():
        return TestSettings()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = override_get_settings
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_run_poller] = lambda: run_poller

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# Factory Fixtures
# ============================================================================


@pytest_asyncio.fixture
async def task_factory(db_session: AsyncSession):
    """Factory for creating test tasks."""
    created = 0

    async def _create_task(
        project_id: str = "proj-1",
        name: str | None = None,
        module: str = "Core",
        due_date: date | None = None,
        velocity: int = 3,
        bugs: int = 0,
        status: TaskStatus = TaskStatus.TODO,
    ) -> Task:
        nonlocal created
        created += 1
        now = utc_now()

        task = Task(
            project_id=project_id,
            name=name or f"Task {created}",
            module=module,
            due_date=due_date,
            velocity=velocity,
            bugs=bugs,
            status=status,
            # Keep creation order stable for list assertions
            created_at=now + timedelta(microseconds=created),
            updated_at=now,
        )
        db_session.add(task)
        await db_session.flush()
        return task

    return _create_task


@pytest_asyncio.fixture
async def history_factory(db_session: AsyncSession):
    """Factory for creating suite history records."""

    async def _create_history(
        project_id: str = "proj-1",
        suite_id: str = "suite-1",
        updated_at: datetime | None = None,
        user_story: str = "As a user I can log in",
        total_cases: int = 3,
    ) -> SuiteHistory:
        timestamp = updated_at or utc_now()
        history = SuiteHistory(
            project_id=project_id,
            suite_id=suite_id,
            user_story=user_story,
            acceptance_criteria=["valid credentials log in"],
            total_cases=total_cases,
            breakdown={"positive": 2, "negative": 1},
            generation_payload={"github_token_present": False},
            suite_data={"suite_id": suite_id, "total_cases": total_cases},
            run_count=0,
            last_run=None,
            created_at=timestamp,
            updated_at=timestamp,
        )
        db_session.add(history)
        await db_session.flush()
        return history

    return _create_history
