"""
Domain error taxonomy.

Every error carries a stable ``code`` so bulk-import logs and API responses
can report the failure kind without parsing messages.
"""


class LeaveError(Exception):
    """Base class for all leave workflow errors."""

    code = "LeaveError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Validation errors


class LeaveValidationError(LeaveError):
    """Input failed a validation rule."""

    code = "ValidationError"


class InvalidDateRange(LeaveValidationError):
    code = "InvalidDateRange"


class UnknownLeaveType(LeaveValidationError):
    code = "UnknownLeaveType"


class InvalidSession(LeaveValidationError):
    code = "InvalidSession"


class InvalidDate(LeaveValidationError):
    code = "InvalidDate"


class InvalidStatus(LeaveValidationError):
    code = "InvalidStatus"


class MissingField(LeaveValidationError):
    code = "MissingField"


# Not-found errors


class NotFoundError(LeaveError):
    code = "NotFound"


class StaffNotFound(NotFoundError):
    code = "StaffNotFound"


class LeaveNotFound(NotFoundError):
    code = "LeaveNotFound"


# Authorization errors


class IllegalTransition(LeaveError):
    """Raised when the acting role may not perform an action on a request."""

    code = "IllegalTransition"


# Store errors


class StoreError(LeaveError):
    code = "StoreError"


class StoreUnavailable(StoreError):
    """Backend failure or open circuit breaker."""

    code = "StoreUnavailable"


class StaleRecord(StoreError):
    """The record changed since it was read; the update was not applied."""

    code = "StaleRecord"


class BatchAlreadyCommitted(StoreError):
    """A write batch handle was used after commit."""

    code = "BatchAlreadyCommitted"
