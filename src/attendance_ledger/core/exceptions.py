class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced subject or record does not exist."""


class StorageError(DomainError):
    """Raised when the database rejects or fails an operation."""


class DuplicateRecordError(StorageError):
    """Raised when an insert collides with a unique key (e.g. client_uuid)."""


class SyncTransportError(DomainError):
    """Raised when a batch cannot be delivered to the sync endpoint."""
