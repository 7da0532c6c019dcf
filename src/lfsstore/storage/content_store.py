"""lfsstore content store interface definition.

Provides the ContentStore base class that all storage backends implement,
the request-scoped accessor capabilities it hands out, and the
ContentManager protocol the HTTP layer depends on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import BinaryIO, Protocol, runtime_checkable

from lfsstore.storage.models import ObjectMeta


class RequestLike(Protocol):
    """Anything exposing request headers (Starlette ``Request`` qualifies)."""

    @property
    def headers(self) -> Mapping[str, str]: ...


class Downloader(ABC):
    """Capability to read one object.

    Created per request after authorization succeeded. Nothing is opened
    until ``open`` is called, so existence is decided by the backend's
    state at that instant rather than by an earlier metadata lookup.
    """

    def __init__(self, oid: str) -> None:
        self._oid = oid

    @property
    def oid(self) -> str:
        """Return the object id this capability is bound to."""
        return self._oid

    @abstractmethod
    def open(self) -> BinaryIO:
        """Open a readable byte stream for the object.

        Raises:
            ObjectNotFoundError: If the object does not exist right now.
            StorageUnavailableError: If the backend cannot serve the read.
        """
        ...

    def open_gzipped(self) -> BinaryIO | None:
        """Open a pre-compressed variant of the object.

        Returns:
            None when the backend keeps no compressed copy. Callers treat
            None as "not available", never as an error.
        """
        return None


class Uploader(ABC):
    """Capability to persist objects, not bound to any particular oid."""

    @abstractmethod
    def upload(self, meta: ObjectMeta, stream: BinaryIO) -> None:
        """Write exactly ``meta.size`` bytes from stream under ``meta.oid``.

        Args:
            meta: Declared object id and size.
            stream: Readable binary stream with the object's bytes.

        Raises:
            IncompleteUploadError: If the stream yields fewer bytes than
                declared. Nothing becomes visible to readers in that case.
            StorageUnavailableError: If the backend cannot complete the write.
        """
        ...


@runtime_checkable
class ContentManager(Protocol):
    """Capability-producing interface consumed by the transfer endpoints.

    Implemented by every ContentStore and by AuthenticatedStore, which
    wraps one.
    """

    def metadata(self, oid: str) -> ObjectMeta | None: ...

    def authorize(self, request: RequestLike) -> None: ...

    def check_download_access(self, request: RequestLike, oid: str) -> Downloader: ...

    def check_upload_access(self, request: RequestLike) -> Uploader: ...


class ContentStore(ABC):
    """Abstract base class for content-addressed storage backends.

    All implementations must provide:
    - Existence/size lookup that reports absence as None, not an error
    - Lazily opened download capabilities bound to one oid
    - All-or-nothing uploads of exactly the declared length
    - Translation of backend failures into StorageUnavailableError

    Implementations:
    - InMemoryContentStore: dict-backed reference backend (dev/test)
    - FilesystemContentStore: local filesystem
    - S3ContentStore: S3-compatible blob storage via boto3
    """

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend identifier for observability.

        Returns:
            Backend name string (e.g., "memory", "filesystem", "s3").
        """
        ...

    @abstractmethod
    def metadata(self, oid: str) -> ObjectMeta | None:
        """Look up an object's size.

        Args:
            oid: Object id (SHA-256 hex).

        Returns:
            ObjectMeta for an existing object, None if it does not exist.

        Raises:
            StorageUnavailableError: If the backend cannot be reached.
        """
        ...

    @abstractmethod
    def open_download(self, oid: str) -> Downloader:
        """Return a download capability bound to oid.

        Args:
            oid: Object id (SHA-256 hex).

        Returns:
            Downloader whose ``open`` reads the object.
        """
        ...

    @abstractmethod
    def open_upload(self) -> Uploader:
        """Return an upload capability.

        Returns:
            Uploader accepting (ObjectMeta, stream) pairs.
        """
        ...

    def authorize(self, request: RequestLike) -> None:
        """Accept every request; unguarded stores have no credential."""

    def check_download_access(self, request: RequestLike, oid: str) -> Downloader:
        """Return a download capability; unguarded stores ignore request."""
        return self.open_download(oid)

    def check_upload_access(self, request: RequestLike) -> Uploader:
        """Return an upload capability; unguarded stores ignore request."""
        return self.open_upload()
