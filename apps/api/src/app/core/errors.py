"""
Service Error Hierarchy

All business-rule failures raised by the service layer derive from
PermitServiceError. Routers translate them into structured HTTP errors:

    {"error": <error_code>, "message": <message>, ...extra}
"""

from typing import Any
from uuid import UUID

from fastapi import HTTPException


class PermitServiceError(Exception):
    """Base exception for permit service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)

    def extra(self) -> dict[str, Any]:
        """Additional fields included in the HTTP error body."""
        return {}


class ValidationError(PermitServiceError):
    """Malformed input or missing required fields."""

    def __init__(
        self,
        message: str,
        details: list[dict[str, str]] | None = None,
        error_code: str = "VALIDATION_ERROR",
    ):
        self.details = details or []
        super().__init__(message=message, error_code=error_code, status_code=422)

    def extra(self) -> dict[str, Any]:
        return {"details": self.details}


class StateConflictError(PermitServiceError):
    """Operation attempted from a disallowed source state."""

    def __init__(
        self,
        message: str,
        current_status: str | None = None,
        error_code: str = "STATE_CONFLICT",
    ):
        self.current_status = current_status
        super().__init__(message=message, error_code=error_code, status_code=409)

    def extra(self) -> dict[str, Any]:
        return {"current_status": self.current_status}


class NotFoundError(PermitServiceError):
    """Unknown application, item or consent."""

    def __init__(self, entity: str, entity_id: UUID | str | None = None):
        self.entity = entity
        message = f"{entity} {entity_id} not found" if entity_id else f"{entity} not found"
        super().__init__(
            message=message,
            error_code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
        )


class AuthorizationError(PermitServiceError):
    """Actor does not own the resource or lacks the required role."""

    def __init__(self, message: str = "You are not allowed to perform this action."):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


class DependencyError(PermitServiceError):
    """A prerequisite record is missing."""

    def __init__(self, message: str, missing: str):
        self.missing = missing
        super().__init__(message=message, error_code="MISSING_PREREQUISITE", status_code=424)

    def extra(self) -> dict[str, Any]:
        return {"missing": self.missing}


class PartialBatchError(Exception):
    """
    Failure of a single record inside a batch job.

    Never raised out of the batch: the job records str(error) and moves on.
    """

    def __init__(self, record_kind: str, record_id: UUID | str, cause: Exception | str):
        self.record_kind = record_kind
        self.record_id = record_id
        self.cause = cause
        super().__init__(f"{record_kind} {record_id}: {cause}")


def http_error(e: PermitServiceError) -> HTTPException:
    """Convert a service error into the structured HTTPException routers raise."""
    detail: dict[str, Any] = {"error": e.error_code, "message": e.message}
    detail.update({key: value for key, value in e.extra().items() if value is not None})
    return HTTPException(status_code=e.status_code, detail=detail)
