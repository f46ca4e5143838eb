"""
HTTP exceptions raised by services and access checks.

Each exception logs itself once at construction, so routers never log
domain failures on their own. The response body is FastAPI's usual
{"detail": "..."}.

    raise NotFoundError("Courier", courier_id)
    raise ForbiddenError("delete orders")
    raise ValidationError("Price must be positive")
"""

from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class AppException(HTTPException):
    """Base for every domain error; logs the detail with its context."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        getattr(logger, log_level, logger.warning)(detail, status_code=status_code, **log_context)
        self.log_context = log_context
        super().__init__(status_code=status_code, detail=detail, headers=headers)


# =============================================================================
# 404
# =============================================================================


class NotFoundError(AppException):
    """NotFoundError("Branch", branch_id, partner_id=partner_id)"""

    def __init__(self, entity: str, entity_id: int | str | None = None, **log_context: Any):
        detail = f"{entity} not found" if entity_id is None else f"{entity} with ID {entity_id} not found"
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            detail,
            entity=entity,
            entity_id=entity_id,
            **log_context,
        )


# =============================================================================
# 403
# =============================================================================


class ForbiddenError(AppException):
    """ForbiddenError("delete orders") -> "Not allowed to delete orders"."""

    def __init__(self, action: str | None = None, **log_context: Any):
        detail = f"Not allowed to {action}" if action else "Access denied"
        super().__init__(status.HTTP_403_FORBIDDEN, detail, action=action, **log_context)


class BranchAccessError(ForbiddenError):
    def __init__(self, branch_id: int | None = None, **log_context: Any):
        super().__init__("access this branch", branch_id=branch_id, **log_context)


class SectionAccessError(ForbiddenError):
    """The staff member's position does not grant the section."""

    def __init__(self, section: str, **log_context: Any):
        super().__init__(f"open section '{section}'", section=section, **log_context)


class OwnerOnlyError(ForbiddenError):
    def __init__(self, **log_context: Any):
        super().__init__("perform this action (owner only)", **log_context)


# =============================================================================
# 400
# =============================================================================


class ValidationError(AppException):
    """ValidationError("Name is required", field="name")"""

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail, **log_context)


class InvalidStateError(ValidationError):
    """Order, shift or staff member is in a state the operation does not accept."""

    def __init__(self, entity: str, current_state: str, expected_states: list[str] | None = None, **log_context: Any):
        if expected_states:
            detail = f"{entity} is '{current_state}', expected: {', '.join(expected_states)}"
        else:
            detail = f"{entity} cannot be '{current_state}' for this operation"
        super().__init__(detail, entity=entity, current_state=current_state, **log_context)


class InvalidTransitionError(ValidationError):
    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        super().__init__(
            f"Invalid transition from '{from_status}' to '{to_status}' for {entity}",
            entity=entity,
            from_status=from_status,
            to_status=to_status,
            **log_context,
        )


class DuplicateEntityError(ValidationError):
    def __init__(self, entity: str, identifier: str | None = None, **log_context: Any):
        detail = f"{entity} '{identifier}' already exists" if identifier else f"{entity} already exists"
        super().__init__(detail, entity=entity, identifier=identifier, **log_context)


# =============================================================================
# 409
# =============================================================================


class ConflictError(AppException):
    """ConflictError("Branch already has an open shift")"""

    def __init__(self, detail: str, **log_context: Any):
        super().__init__(status.HTTP_409_CONFLICT, detail, **log_context)


# =============================================================================
# 5xx
# =============================================================================


class DatabaseError(AppException):
    """Commit failed; the session has been rolled back."""

    def __init__(self, operation: str, **log_context: Any):
        super().__init__(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            f"Database error during {operation}. Please try again.",
            log_level="error",
            operation=operation,
            **log_context,
        )


class ExternalServiceError(AppException):
    """Poster or Telegram failed: 503 when unreachable, 502 on a bad answer."""

    def __init__(self, service: str, is_unavailable: bool = False, reason: str | None = None, **log_context: Any):
        if is_unavailable:
            code, detail = status.HTTP_503_SERVICE_UNAVAILABLE, f"{service} is temporarily unavailable"
        else:
            code, detail = status.HTTP_502_BAD_GATEWAY, f"Error communicating with {service}"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(code, detail, log_level="error", service=service, **log_context)
