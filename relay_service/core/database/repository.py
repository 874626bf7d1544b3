"""Minimal generic repository for SQLAlchemy models.

Provides basic CRUD operations with explicit session passing.
For complex queries, use the session directly - this is a convenience, not a cage.

Example:
    class UserRepository(BaseRepository[User]):
        async def find_by_email(self, session: AsyncSession, email: str) -> User | None:
            return await self.get_by(session, User.email, email)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from sqlalchemy import select

from relay_service.core.exceptions import NotFoundException

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute


T = TypeVar("T")


class BaseRepository(Generic[T]):
    """Minimal generic repository for CRUD operations.

    Provides:
        - get(session, id) -> T | None
        - get_or_raise(session, id) -> T (raises NotFoundException)
        - get_by(session, attr, value) -> T | None
        - list(session, limit, offset) -> Sequence[T]
        - add(session, instance) -> T

    Session is always explicit - no hidden state. Repositories never commit;
    the caller owns the transaction boundary.
    """

    __slots__ = ("_logger", "model")

    def __init__(self, model: type[T]) -> None:
        """Initialize repository with model class."""
        self.model = model
        self._logger = logging.getLogger(f"repository.{model.__name__}")

    async def get(self, session: AsyncSession, id: Any) -> T | None:  # noqa: A002
        """Get entity by primary key."""
        instance = await session.get(self.model, id)
        self._logger.debug(
            "db.get",
            extra={"entity": self.model.__name__, "id": str(id), "found": instance is not None},
        )
        return instance

    async def get_or_raise(self, session: AsyncSession, id: Any) -> T:  # noqa: A002
        """Get entity by primary key or raise NotFoundException."""
        instance = await self.get(session, id)
        if instance is None:
            self._logger.info(
                "Entity not found",
                extra={
                    "entity": self.model.__name__,
                    "id": str(id),
                    "operation": "db.get_or_raise",
                },
            )
            raise NotFoundException(
                detail=f"{self.model.__name__} with id {id} not found",
                extra={"entity": self.model.__name__, "id": str(id)},
            )
        return instance

    async def get_by(
        self,
        session: AsyncSession,
        attr: InstrumentedAttribute[Any],
        value: Any,
    ) -> T | None:
        """Get the first entity whose ``attr`` equals ``value``."""
        stmt = select(self.model).where(attr == value).limit(1)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    async def list(
        self,
        session: AsyncSession,
        *,
        limit: int = 100,
        offset: int = 0,
    ) -> Sequence[T]:
        """List entities with pagination."""
        stmt = select(self.model).limit(limit).offset(offset)
        result = await session.execute(stmt)
        return result.scalars().all()

    async def add(self, session: AsyncSession, instance: T) -> T:
        """Stage an entity in the session and flush it.

        Flushing surfaces constraint violations inside the caller's
        transaction instead of at commit time.
        """
        session.add(instance)
        await session.flush()
        self._logger.debug("db.add", extra={"entity": self.model.__name__})
        return instance


__all__ = ["BaseRepository"]
