"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from dtr_engine.clock import BusinessClock
from dtr_engine.config import Settings, get_settings
from dtr_engine.database import async_session_factory


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()


def get_app_settings() -> Settings:
    return get_settings()


def get_clock(settings: Annotated[Settings, Depends(get_app_settings)]) -> BusinessClock:
    """Business clock in the configured timezone."""
    return BusinessClock(settings.business_timezone)


async def get_actor_id(
    x_actor_id: Annotated[str | None, Header()] = None
) -> str | None:
    """Identifier of the administrator performing the request, if sent."""
    if x_actor_id is None:
        return None
    return x_actor_id.strip() or None


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Clock = Annotated[BusinessClock, Depends(get_clock)]
ActorId = Annotated[str | None, Depends(get_actor_id)]
