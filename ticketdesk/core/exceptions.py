"""
Domain exceptions for TicketDesk.
Every failure the core can report is one of these; the HTTP adapter in
ticketdesk.api.error_handlers turns them into JSON responses.
"""
from __future__ import annotations

from http import HTTPStatus
from typing import Any


class TicketDeskException(Exception):
    """Base exception for all TicketDesk domain errors."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        self.error_code = error_code or "TICKETDESK_ERROR"
        super().__init__(detail)

    def extra(self) -> dict[str, Any]:
        """Structured fields added to the error payload beside error/detail."""
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error_code, "detail": self.detail, **self.extra()}


class ValidationException(TicketDeskException):
    def __init__(self, field: str, detail: str) -> None:
        self.field = field
        super().__init__(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=detail,
            error_code="VALIDATION_ERROR",
        )

    def extra(self) -> dict[str, Any]:
        return {"field": self.field}


class NotFoundException(TicketDeskException):
    def __init__(self, resource: str, resource_id: str | None = None) -> None:
        self.resource = resource
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            status_code=HTTPStatus.NOT_FOUND,
            detail=detail,
            error_code="NOT_FOUND",
        )


class ForbiddenException(TicketDeskException):
    def __init__(
        self,
        detail: str = "You do not have permission to perform this action",
        rule: str | None = None,
    ) -> None:
        self.rule = rule
        super().__init__(
            status_code=HTTPStatus.FORBIDDEN,
            detail=detail,
            error_code="FORBIDDEN",
        )

    def extra(self) -> dict[str, Any]:
        return {"rule": self.rule} if self.rule else {}


class ConflictException(TicketDeskException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=HTTPStatus.CONFLICT,
            detail=detail,
            error_code="CONFLICT",
        )


class UnavailableException(TicketDeskException):
    """Transient store failure. The caller may retry the whole operation."""

    def __init__(self, detail: str = "Storage is temporarily unavailable") -> None:
        super().__init__(
            status_code=HTTPStatus.SERVICE_UNAVAILABLE,
            detail=detail,
            error_code="UNAVAILABLE",
        )

    def extra(self) -> dict[str, Any]:
        return {"retryable": True}


class UnauthorizedException(TicketDeskException):
    def __init__(self, detail: str = "Authentication required") -> None:
        super().__init__(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail=detail,
            error_code="UNAUTHORIZED",
        )


class InvalidCredentialsException(TicketDeskException):
    def __init__(self, detail: str = "Invalid credentials") -> None:
        super().__init__(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_CREDENTIALS",
        )


class InvalidTokenException(TicketDeskException):
    def __init__(self, detail: str = "Invalid or expired token") -> None:
        super().__init__(
            status_code=HTTPStatus.UNAUTHORIZED,
            detail=detail,
            error_code="INVALID_TOKEN",
        )
