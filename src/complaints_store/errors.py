"""Error taxonomy for the complaint store."""

from pathlib import Path


class ComplaintStoreError(Exception):
    """Base class for every error raised by complaints_store."""

    pass


class NotFoundError(ComplaintStoreError):
    """Raised when a complaint id is absent from both cache and disk."""

    def __init__(self, complaint_id: str) -> None:
        self.complaint_id = complaint_id
        super().__init__(f"Complaint not found: {complaint_id}")


class StorageIOError(ComplaintStoreError):
    """Raised when a filesystem read, write or listing fails.

    Attributes:
        operation: Short name of the failing operation (e.g. 'save').
        path: The file or directory involved.
    """

    def __init__(self, operation: str, path: Path | str, message: str) -> None:
        self.operation = operation
        self.path = Path(path)
        super().__init__(f"{operation} failed for {path}: {message}")


class ValidationFailedError(ComplaintStoreError):
    """Raised when a value cannot be parsed into a valid domain value."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"Validation failed for {field}: {message}")


class InvalidConfigurationError(ComplaintStoreError):
    """Raised when storage or cache configuration is out of range."""

    pass


class OperationCancelledError(ComplaintStoreError):
    """Raised when an operation is cancelled before its I/O starts."""

    def __init__(self, operation: str, reason: str = "cancelled") -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Operation '{operation}' {reason} before I/O started")
