"""Accounts feature package."""

from .events import USER_AGGREGATE, UserCreatedEvent
from .models import User
from .repository import UserRepository, get_user_repository
from .service import RegistrationService

__all__ = [
    "USER_AGGREGATE",
    "RegistrationService",
    "User",
    "UserCreatedEvent",
    "UserRepository",
    "get_user_repository",
]
