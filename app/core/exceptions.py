"""Custom exception classes and error handling."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(
            status_code=status_code,
            detail={
                "success": False,
                "error": {
                    "code": code,
                    "message": message,
                    "details": details or {},
                },
            },
        )


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            code="AUTH_FAILED",
            message=message,
        )


class PermissionDeniedError(AppException):
    """Caller can see the resource but may not change it."""

    def __init__(
        self,
        message: str = "Permission denied",
        required_permission: str | None = None,
    ):
        details = {}
        if required_permission:
            details["required_permission"] = required_permission
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            code="PERMISSION_DENIED",
            message=message,
            details=details,
        )


class ValidationError(AppException):
    """Data validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        details: dict[str, Any] | None = None,
        code: str = "VALIDATION_ERROR",
    ):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            code=code,
            message=message,
            details=details,
        )


class RecurrenceValidationError(ValidationError):
    """A recurrence rule is structurally invalid.

    Subclasses pin the error code and the offending field so that clients
    can attach the message to the right form input.
    """

    code = "INVALID_RECURRENCE_RULE"
    field = "kind"

    def __init__(self, message: str):
        super().__init__(
            message=message,
            details={"field": self.field},
            code=self.code,
        )


class InvalidIntervalError(RecurrenceValidationError):
    code = "INVALID_INTERVAL"
    field = "interval"


class MissingWeekdaysError(RecurrenceValidationError):
    code = "MISSING_WEEKDAYS"
    field = "days_of_week"


class MissingMonthlyAnchorError(RecurrenceValidationError):
    code = "MISSING_MONTHLY_ANCHOR"
    field = "day_of_month"


class AmbiguousMonthlyAnchorError(RecurrenceValidationError):
    code = "AMBIGUOUS_MONTHLY_ANCHOR"
    field = "day_of_month"


class MissingCustomUnitError(RecurrenceValidationError):
    code = "MISSING_CUSTOM_UNIT"
    field = "custom_unit"


class MissingEndDateError(RecurrenceValidationError):
    code = "MISSING_END_DATE"
    field = "end_date"


class InvalidEndCountError(RecurrenceValidationError):
    code = "INVALID_END_COUNT"
    field = "end_count"


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(
        self,
        resource: str = "Resource",
        identifier: str | None = None,
        code: str = "NOT_FOUND",
    ):
        details = {}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            code=code,
            message=f"{resource} not found",
            details=details,
        )


class RecurrenceRuleMissingError(NotFoundError):
    """Task is flagged recurring but has no rule attached."""

    def __init__(self, task_id: str | None = None):
        super().__init__(
            resource="Recurrence rule",
            identifier=task_id,
            code="RECURRENCE_RULE_MISSING",
        )


class ConflictError(AppException):
    """Request conflicts with the current state of the resource."""

    def __init__(
        self,
        message: str = "Conflict",
        code: str = "CONFLICT",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            code=code,
            message=message,
            details=details,
        )


class TaskNotRecurringError(ConflictError):
    """Instances were requested for a task without recurrence."""

    def __init__(self, task_id: str):
        super().__init__(
            message="Task is not recurring",
            code="TASK_NOT_RECURRING",
            details={"identifier": task_id},
        )


class GenerationCancelledError(AppException):
    """Instance generation was aborted before anything was written."""

    def __init__(self, message: str = "Instance generation was cancelled"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="GENERATION_CANCELLED",
            message=message,
        )

