"""Application error hierarchy.

Every error the relay raises on purpose derives from ``AppException`` and
carries RFC 7807 problem fields, so a collaborator exposing the service over
HTTP can render it without translating. Subclasses only pick their status,
problem type and title; the constructor is shared.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, ClassVar


class AppException(Exception):
    """Base application exception.

    Attributes:
        status_code: HTTP status code for the error.
        detail: Human-readable error message.
        type: Problem type identifier.
        title: Short summary of the problem type.
        instance: URI reference for this occurrence, if any.
        extra: Context merged into the problem details.

    Example:
        raise AppException(
            status_code=404,
            detail="Outbox record not found",
            type="outbox-record-not-found",
            extra={"record_id": "abc123"},
        )
    """

    default_status: ClassVar[int] = 500
    default_type: ClassVar[str] = "about:blank"
    default_title: ClassVar[str | None] = None

    def __init__(
        self,
        detail: str,
        type: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
        title: str | None = None,
    ) -> None:
        self.status_code = status_code or self.default_status
        self.detail = detail
        self.type = type or self.default_type
        self.title = title or self.default_title or _status_phrase(self.status_code)
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    def to_problem_details(self) -> dict[str, Any]:
        """Render the exception as an RFC 7807 problem details mapping."""
        problem: dict[str, Any] = {
            "type": self.type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
        }
        if self.instance:
            problem["instance"] = self.instance
        problem.update(self.extra)
        return problem


def _status_phrase(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


class NotFoundException(AppException):
    """A requested record does not exist.

    Example:
        raise NotFoundException(
            detail="Outbox record abc123 not found",
            extra={"record_id": "abc123"},
        )
    """

    default_status = 404
    default_type = "not-found"


class ValidationException(AppException):
    """Invalid input handed to a service operation."""

    default_status = 422
    default_type = "validation-error"
    default_title = "Validation Error"


class ConflictException(AppException):
    """A write collides with existing state, e.g. a duplicate email."""

    default_status = 409
    default_type = "conflict"


class RateLimitException(AppException):
    """Raised by ``check_rate_limit`` when an attempt is rejected.

    The wait is exposed as ``retry_after`` and also inside ``extra`` so it
    lands in problem details.
    """

    default_status = 429
    default_type = "rate-limit-exceeded"

    def __init__(
        self,
        detail: str = "Rate limit exceeded",
        type: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
        *,
        retry_after: int = 60,
    ) -> None:
        self.retry_after = retry_after
        super().__init__(
            detail,
            type,
            instance,
            {**(extra or {}), "retry_after": retry_after},
        )


class ServiceUnavailableException(AppException):
    """A downstream dependency cannot be used right now."""

    default_status = 503
    default_type = "service-unavailable"


__all__ = [
    "AppException",
    "ConflictException",
    "NotFoundException",
    "RateLimitException",
    "ServiceUnavailableException",
    "ValidationException",
]
