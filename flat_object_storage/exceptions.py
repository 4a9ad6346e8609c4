"""
Custom exceptions for flat object storage.

All sessions and stores raise these exceptions so callers can
handle failures consistently regardless of the backing store.
"""


class ObjectStorageError(Exception):
    """Base exception for all flat object storage errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ObjectValidationError(ObjectStorageError, ValueError):
    """Raised when an object id, key path or table name is malformed."""

    def __init__(self, field: str, reason: str, value: object = None):
        details = {"field": field, "reason": reason}
        if value is not None:
            details["value"] = repr(value)
        super().__init__(f"Invalid {field}: {reason}", details)
        self.field = field
        self.reason = reason
        self.value = value


class NoActiveObjectError(ObjectStorageError, RuntimeError):
    """Raised when a session operation needs a loaded object and none is active."""

    def __init__(self, operation: str):
        super().__init__(
            f"No object loaded for {operation}(). Call load() first.",
            {"operation": operation},
        )
        self.operation = operation


class StorageIOError(ObjectStorageError):
    """Raised when a backing store operation fails."""

    def __init__(
        self,
        operation: str,
        object_id: str | None = None,
        cause: Exception | None = None,
    ):
        details = {"operation": operation}
        if object_id:
            details["object_id"] = object_id
        if cause:
            details["cause"] = str(cause)
        message = f"Storage I/O error during {operation}"
        if object_id:
            message += f' of object "{object_id}"'
        if cause:
            message += f": {cause}"
        super().__init__(message, details)
        self.operation = operation
        self.object_id = object_id
        self.cause = cause


class StorageConnectionError(ObjectStorageError):
    """Raised when a backing store cannot be opened or provisioned.

    Note: Named StorageConnectionError to avoid shadowing the builtin ConnectionError.
    """

    def __init__(self, endpoint: str, cause: Exception | None = None):
        details = {"endpoint": endpoint}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Connection failed to {endpoint}", details)
        self.endpoint = endpoint
        self.cause = cause


class ValueDecodeError(ObjectStorageError):
    """Raised by strict decoding when stored text does not match its type tag."""

    def __init__(self, value_type: str, text: str | None, reason: str):
        details = {"value_type": value_type, "reason": reason}
        if text is not None:
            details["text"] = text
        super().__init__(f"Cannot decode {value_type} value: {reason}", details)
        self.value_type = value_type
        self.text = text
        self.reason = reason


class UnsavedChangesWarning(UserWarning):
    """Emitted when load() discards pending changes of the previous object."""
