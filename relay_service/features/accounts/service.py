"""Registration: the reference consumer of the transactional outbox write.

The user row and its ``user.created`` outbox record are committed in one
transaction. If anything fails before the commit both are rolled back, so an
event is never recorded for a user that does not exist, and a user is never
created without its event.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from relay_service.core.events import EventPublisher
from relay_service.core.exceptions import ConflictException, ValidationException
from relay_service.features.accounts.events import USER_AGGREGATE, UserCreatedEvent
from relay_service.features.accounts.models import DEFAULT_ROLES, User
from relay_service.features.accounts.repository import UserRepository, get_user_repository
from relay_service.infra.ratelimit.limiter import check_rate_limit

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

    from relay_service.infra.ratelimit.limiter import RateLimiter

logger = logging.getLogger(__name__)


class RegistrationService:
    """Creates users and stages their ``user.created`` event."""

    def __init__(
        self,
        repository: UserRepository | None = None,
        *,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        self._repository = repository or get_user_repository()
        self._rate_limiter = rate_limiter

    async def register(
        self,
        session: AsyncSession,
        *,
        email: str,
        name: str,
        roles: Sequence[str] | None = None,
        client_ip: str | None = None,
        correlation_id: str | None = None,
    ) -> User:
        """Create a user and its outbox record atomically.

        Args:
            session: Session whose transaction this call commits or rolls back.
            email: Login email; compared case-insensitively.
            name: Display name.
            roles: Granted roles. Defaults to ``ROLE_USER``.
            client_ip: When set and a rate limiter is configured, counts
                against the ``register:<ip>`` window.
            correlation_id: Propagated onto the event.

        Raises:
            RateLimitException: Too many registration attempts from ``client_ip``.
            ValidationException: Blank email or name.
            ConflictException: The email is already registered.
        """
        if self._rate_limiter is not None and client_ip:
            await check_rate_limit(self._rate_limiter, f"register:{client_ip}")

        email = email.strip().lower()
        name = name.strip()
        if not email or not name:
            raise ValidationException(detail="Email and name are required")

        try:
            if await self._repository.exists_by_email(session, email):
                logger.warning("Registration attempt with existing email", extra={"email": email})
                raise ConflictException(
                    detail="User with this email already exists",
                    extra={"email": email},
                )

            user = await self._repository.add(
                session,
                User(email=email, name=name, roles=list(roles or DEFAULT_ROLES)),
            )
            event = UserCreatedEvent(
                user_id=user.id,
                email=user.email,
                name=user.name,
                roles=list(user.roles),
            )
            await EventPublisher(session, correlation_id=correlation_id).publish(
                event,
                aggregate_id=user.id,
                aggregate_type=USER_AGGREGATE,
            )
            await session.commit()
        except ConflictException:
            await session.rollback()
            raise
        except Exception as e:
            await session.rollback()
            logger.error("Failed to register user", extra={"email": email, "error": str(e)})
            raise

        logger.info("User registered", extra={"user_id": user.id, "email": email})
        return user


__all__ = ["RegistrationService"]
