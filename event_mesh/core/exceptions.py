"""
Custom Exceptions.

Application-specific exception classes for consistent error handling.
"""


class ApplicationError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, code: str = "SYS_INTERNAL_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class NotFoundError(ApplicationError):
    """Raised when a resource cannot be found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message, code="RES_NOT_FOUND")


class ValidationError(ApplicationError):
    """Raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message, code="VAL_VALIDATION_ERROR")


class ConflictError(ApplicationError):
    """Raised when there is a state conflict, such as a reused event id."""

    def __init__(self, message: str = "Resource conflict") -> None:
        super().__init__(message, code="RES_CONFLICT")


class StoreError(ApplicationError):
    """
    Base for failures of the storage backend itself.

    ``operation`` names the store call that failed (put, get, scan, ...) and
    ``event_id`` the event it concerned, when there was one.
    """

    def __init__(
        self,
        message: str,
        code: str,
        operation: str | None = None,
        event_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.event_id = event_id
        super().__init__(message, code=code)


class DatabaseError(StoreError):
    """Raised when a database operation fails."""

    def __init__(
        self,
        message: str = "Database error",
        operation: str | None = None,
        event_id: str | None = None,
    ) -> None:
        super().__init__(message, "SYS_DATABASE_ERROR", operation, event_id)


class BackendUnavailableError(StoreError):
    """Raised when the durable event store is unreachable or not configured."""

    def __init__(
        self,
        message: str = "Event store backend unavailable",
        operation: str | None = None,
        event_id: str | None = None,
    ) -> None:
        super().__init__(message, "SYS_BACKEND_UNAVAILABLE", operation, event_id)
