"""Repository for the accounts feature."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from relay_service.core.database.repository import BaseRepository
from relay_service.features.accounts.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class UserRepository(BaseRepository[User]):
    """Repository for User model."""

    def __init__(self) -> None:
        super().__init__(User)

    async def find_by_email(self, session: AsyncSession, email: str) -> User | None:
        return await self.get_by(session, User.email, email.strip().lower())

    async def exists_by_email(self, session: AsyncSession, email: str) -> bool:
        return await self.find_by_email(session, email) is not None


@lru_cache(maxsize=1)
def get_user_repository() -> UserRepository:
    """Get the shared UserRepository instance."""
    return UserRepository()


__all__ = ["UserRepository", "get_user_repository"]
