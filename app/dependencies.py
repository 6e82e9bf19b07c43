from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import AppConfig, Settings, get_config, get_settings
from app.core.database import get_db, get_session_factory
from app.history.polling import RunPoller, get_run_poller
from app.services.testgen_client import TestGenClient, get_testgen_client
from app.services.validation_client import ValidationClient, get_validation_client

# Type aliases for dependency injection
DBSession = Annotated[AsyncSession, Depends(get_db)]
SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Config = Annotated[AppConfig, Depends(get_config)]
Poller = Annotated[RunPoller, Depends(get_run_poller)]
TestGen = Annotated[TestGenClient, Depends(get_testgen_client)]
Validation = Annotated[ValidationClient, Depends(get_validation_client)]


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str | None:
    """Caller identity as forwarded by the frontend (no verification here)."""
    if not x_user_id or not x_user_id.strip():
        return None
    return x_user_id.strip()


CurrentUserId = Annotated[str | None, Depends(get_current_user_id)]
