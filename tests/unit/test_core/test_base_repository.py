"""Tests for BaseRepository and the shared column mixins."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from relay_service.core.database import BaseRepository
from relay_service.core.exceptions import NotFoundException
from relay_service.features.accounts.models import DEFAULT_ROLES, User


@pytest.fixture
def repository() -> BaseRepository[User]:
    return BaseRepository(User)


async def _add_users(repository: BaseRepository[User], session: AsyncSession, count: int) -> list[User]:
    users = []
    for index in range(count):
        user = User(email=f"user{index}@example.com", name=f"User {index}")
        users.append(await repository.add(session, user))
    return users


class TestMixins:
    async def test_add_assigns_uuid_and_timestamps(
        self,
        repository: BaseRepository[User],
        db_session: AsyncSession,
    ) -> None:
        user = await repository.add(db_session, User(email="ada@example.com", name="Ada"))

        assert uuid.UUID(user.id).version == 4
        assert user.created_at is not None
        assert user.updated_at is not None
        assert user.roles == list(DEFAULT_ROLES)


class TestBaseRepository:
    async def test_get_returns_instance(
        self,
        repository: BaseRepository[User],
        db_session: AsyncSession,
    ) -> None:
        [user] = await _add_users(repository, db_session, 1)

        assert await repository.get(db_session, user.id) is user

    async def test_get_missing_returns_none(
        self,
        repository: BaseRepository[User],
        db_session: AsyncSession,
    ) -> None:
        assert await repository.get(db_session, "missing") is None

    async def test_get_or_raise_missing(
        self,
        repository: BaseRepository[User],
        db_session: AsyncSession,
    ) -> None:
        with pytest.raises(NotFoundException) as exc_info:
            await repository.get_or_raise(db_session, "missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.extra == {"entity": "User", "id": "missing"}

    async def test_get_by_attribute(
        self,
        repository: BaseRepository[User],
        db_session: AsyncSession,
    ) -> None:
        await _add_users(repository, db_session, 3)

        found = await repository.get_by(db_session, User.email, "user1@example.com")

        assert found is not None
        assert found.name == "User 1"
        assert await repository.get_by(db_session, User.email, "nobody@example.com") is None

    async def test_list_paginates(
        self,
        repository: BaseRepository[User],
        db_session: AsyncSession,
    ) -> None:
        await _add_users(repository, db_session, 5)

        assert len(await repository.list(db_session)) == 5
        assert len(await repository.list(db_session, limit=2)) == 2
        assert len(await repository.list(db_session, limit=10, offset=4)) == 1
