"""
Custom exceptions for expense sync.

The engine decides which of these reach the caller: validation errors
are raised, remote and persistence errors are logged and absorbed.
"""


class ExpenseSyncError(Exception):
    """Base exception for all expense sync errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ExpenseSyncError):
    """Raised when an expense draft fails validation."""

    def __init__(self, field: str, reason: str, value: str | None = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = value
        super().__init__(f"Validation failed for {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class ConfigError(ExpenseSyncError):
    """Raised when configuration cannot be loaded or is invalid."""

    def __init__(self, message: str, path: str | None = None):
        details = {}
        if path:
            details["path"] = path
        super().__init__(message, details)
        self.path = path


class PersistenceError(ExpenseSyncError):
    """Raised when the local slot cannot be read or written."""

    def __init__(self, operation: str, path: str | None = None, cause: Exception | None = None):
        details = {"operation": operation}
        if path:
            details["path"] = path
        if cause:
            details["cause"] = str(cause)
        message = f"Persistence error during {operation}"
        if path:
            message += f": {path}"
        super().__init__(message, details)
        self.operation = operation
        self.path = path
        self.cause = cause


class RemoteError(ExpenseSyncError):
    """Base for failures talking to the remote expense service."""

    def __init__(self, message: str, endpoint: str, details: dict | None = None):
        details = {"endpoint": endpoint, **(details or {})}
        super().__init__(message, details)
        self.endpoint = endpoint


class UnreachableError(RemoteError):
    """Raised when there is no network path to the remote service."""

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Remote unreachable: {endpoint}", endpoint, details)
        self.cause = cause


class ServerError(RemoteError):
    """Raised when the remote service answers with a failure."""

    def __init__(self, endpoint: str, status: int | None = None, body: str | None = None):
        details: dict = {}
        if status is not None:
            details["status"] = status
        if body:
            details["body"] = body[:500]
        message = f"Remote server error from {endpoint}"
        if status is not None:
            message += f" (HTTP {status})"
        super().__init__(message, endpoint, details)
        self.status = status
        self.body = body


class RejectedError(RemoteError):
    """Raised when the remote service explicitly refuses a payload."""

    def __init__(self, endpoint: str, status: int, reason: str | None = None):
        details: dict = {"status": status}
        if reason:
            details["reason"] = reason[:500]
        super().__init__(f"Remote rejected request to {endpoint} (HTTP {status})", endpoint, details)
        self.status = status
        self.reason = reason
