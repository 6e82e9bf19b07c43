import ssl
from collections.abc import AsyncGenerator
from typing import Any
from urllib.parse import parse_qs, urlencode, urlparse, urlunparse

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings
from app.core.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()


# libpq connection options asyncpg does not understand
LIBPQ_ONLY_PARAMS = ("sslmode", "channel_binding", "options")
LOCAL_HOSTS = {"localhost", "127.0.0.1", "db"}


def _split_connect_args(url: str) -> tuple[str, dict]:
    """
    Split a database URL into an asyncpg-compatible URL and connect_args.

    libpq-only query params are stripped. Hosted Postgres gets SSL with the
    default context unless the URL says sslmode=disable; local hosts and
    SQLite connect without SSL.
    """
    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return url, {}

    params = parse_qs(parsed.query)
    sslmode = (params.get("sslmode") or [""])[0]
    for param in LIBPQ_ONLY_PARAMS:
        params.pop(param, None)
    clean_url = urlunparse(parsed._replace(query=urlencode(params, doseq=True)))

    if (parsed.hostname or "") in LOCAL_HOSTS or sslmode == "disable":
        return clean_url, {}
    return clean_url, {"ssl": ssl.create_default_context()}


def _engine_options(url: str) -> dict[str, Any]:
    """Pool options; SQLite uses a single-connection pool that rejects sizing."""
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
        "pool_recycle": 280,
    }


clean_url, connect_args = _split_connect_args(settings.database_url)


engine = create_async_engine(
    clean_url,
    echo=settings.debug,
    connect_args=connect_args,
    **_engine_options(clean_url),
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.bind(error=str(e)).error("database_transaction_rollback")
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Dependency that provides the session factory for background work."""
    return AsyncSessionLocal
