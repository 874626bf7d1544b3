"""Async engine and session factory for the primary store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from relay_service.core.database import Base
from relay_service.core.settings import get_app_settings, get_db_settings

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

db_settings = get_db_settings()
app_settings = get_app_settings()

engine = create_async_engine(
    db_settings.url,
    **{**db_settings.engine_kwargs(), "echo": db_settings.echo or app_settings.debug},
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


def _import_models() -> None:
    """Register every mapped table on ``Base.metadata``."""
    from relay_service.features.accounts import models as _accounts  # noqa: F401
    from relay_service.infra.events.outbox import models as _outbox  # noqa: F401


async def ensure_schema(bind: AsyncEngine | None = None) -> None:
    """Create missing tables.

    Migrations are not managed by this service; this is the safety net for
    local runs and fresh databases. ``checkfirst`` keeps it idempotent.
    """
    _import_models()
    target = bind or engine
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
    logger.debug("Database schema ensured", extra={"tables": sorted(Base.metadata.tables)})


__all__ = ["AsyncSessionLocal", "engine", "ensure_schema"]
