"""User aggregate persisted alongside its outbox records."""

from __future__ import annotations

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from relay_service.core.database.base import Base, TimestampMixin, UUIDPKMixin

DEFAULT_ROLES = ("ROLE_USER",)


class User(Base, UUIDPKMixin, TimestampMixin):
    """Registered user account."""

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        comment="Login email, stored lowercased",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    roles: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=lambda: list(DEFAULT_ROLES),
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email={self.email!r})"


__all__ = ["DEFAULT_ROLES", "User"]
