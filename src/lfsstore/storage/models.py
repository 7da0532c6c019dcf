"""lfsstore content store data models."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass

from lfsstore.storage.errors import InvalidObjectIdError

_OID_PATTERN = re.compile(r"^[0-9a-f]{64}$")


def is_valid_oid(oid: object) -> bool:
    """Return True if oid is a lowercase hex SHA-256 digest."""
    return isinstance(oid, str) and bool(_OID_PATTERN.match(oid))


def validate_oid(oid: str) -> str:
    """Return oid unchanged, raising InvalidObjectIdError if malformed."""
    if not is_valid_oid(oid):
        raise InvalidObjectIdError(
            message="Object id must be 64 lowercase hex characters",
            oid=oid if isinstance(oid, str) else None,
        )
    return oid


def compute_oid(data: bytes) -> str:
    """Compute the object id (SHA-256 hex) of data."""
    return hashlib.sha256(data).hexdigest()


@dataclass(frozen=True)
class ObjectMeta:
    """Externally observable record of one stored object.

    Attributes:
        oid: SHA-256 hex digest of the object's bytes (the content key).
        size: Byte length of the object.
    """

    oid: str
    size: int

    def __post_init__(self) -> None:
        validate_oid(self.oid)
        if isinstance(self.size, bool) or not isinstance(self.size, int):
            raise ValueError(f"size must be an int, got {type(self.size).__name__}")
        if self.size < 0:
            raise ValueError(f"size must be >= 0, got {self.size}")

    def to_dict(self) -> dict[str, str | int]:
        """Convert metadata to dictionary for JSON serialization."""
        return {"oid": self.oid, "size": self.size}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> ObjectMeta:
        """Create metadata from dictionary."""
        size_raw = data.get("size")
        if isinstance(size_raw, str) and size_raw.isdigit():
            size_raw = int(size_raw)
        return cls(oid=str(data["oid"]), size=size_raw)  # type: ignore[arg-type]
