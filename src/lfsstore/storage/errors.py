"""lfsstore content store error types.

Provides the typed exceptions raised across the storage contract. Every
backend translates its native failures into these at the boundary, so the
HTTP layer only ever has to map this small taxonomy to responses.
"""

from __future__ import annotations

from lfsstore.storage.credentials import basic_challenge


class ContentStoreError(Exception):
    """Base exception for content store operations.

    Attributes:
        message: Human-readable error message.
        oid: Object id (SHA-256 hex) associated with the operation, if any.
    """

    def __init__(self, message: str, *, oid: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.oid = oid

    def __str__(self) -> str:
        if self.oid:
            return f"{self.message} oid={self.oid}"
        return self.message


class UnauthorizedError(ContentStoreError):
    """Raised when the presented credential does not match the configured one.

    Carries the realm so the caller can answer with a Basic challenge.
    """

    def __init__(self, realm: str, message: str = "Unauthorized") -> None:
        super().__init__(message)
        self.realm = realm

    @property
    def challenge(self) -> str:
        """Return the WWW-Authenticate value for this realm."""
        return basic_challenge(self.realm)


class ObjectNotFoundError(ContentStoreError):
    """Raised when an object is absent at the moment its stream is opened."""

    def __init__(self, message: str = "Object not found", *, oid: str | None = None) -> None:
        super().__init__(message, oid=oid)


class IncompleteUploadError(ContentStoreError):
    """Raised when an upload stream yields fewer bytes than declared.

    The failed write is never visible to later reads.
    """

    def __init__(
        self,
        *,
        oid: str | None = None,
        expected: int,
        received: int,
    ) -> None:
        super().__init__(
            f"Upload incomplete: expected {expected} bytes, received {received}",
            oid=oid,
        )
        self.expected = expected
        self.received = received


class StorageUnavailableError(ContentStoreError):
    """Raised when the backend cannot complete an operation.

    Connectivity loss, permission problems and disk errors all land here,
    as opposed to logical outcomes like a missing object.
    """

    def __init__(
        self,
        message: str = "Storage backend unavailable",
        *,
        oid: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, oid=oid)
        self.cause = cause


class InvalidObjectIdError(ContentStoreError):
    """Raised when an object id is not a lowercase hex SHA-256 digest."""

    def __init__(
        self,
        message: str = "Invalid object id",
        *,
        oid: str | None = None,
    ) -> None:
        super().__init__(message, oid=oid)
