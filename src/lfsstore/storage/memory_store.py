"""InMemoryContentStore: dict-based reference backend for development and testing."""

from __future__ import annotations

import io
import logging
import threading
from typing import TYPE_CHECKING, BinaryIO

from lfsstore.storage.content_store import ContentStore, Downloader, Uploader
from lfsstore.storage.errors import ObjectNotFoundError
from lfsstore.storage.models import ObjectMeta, validate_oid
from lfsstore.storage.spool import read_declared
from lfsstore.storage.tracing import traced_storage_operation

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class InMemoryContentStore(ContentStore):
    """In-memory content store.

    Objects are inserted under the lock only once their full byte string has
    been read, so a concurrent reader sees either nothing or the whole object.
    """

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_preloaded(cls, objects: Mapping[str, bytes]) -> InMemoryContentStore:
        """Build a store from preloaded ``oid -> bytes`` data."""
        store = cls()
        for oid, data in objects.items():
            store._objects[validate_oid(oid)] = bytes(data)
        return store

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "memory"

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)

    def _get(self, oid: str) -> bytes | None:
        with self._lock:
            return self._objects.get(oid)

    def _put(self, oid: str, data: bytes) -> None:
        with self._lock:
            self._objects[oid] = data

    @traced_storage_operation("metadata")
    def metadata(self, oid: str) -> ObjectMeta | None:
        """Return size metadata, or None when absent."""
        validate_oid(oid)
        data = self._get(oid)
        if data is None:
            return None
        return ObjectMeta(oid=oid, size=len(data))

    def open_download(self, oid: str) -> Downloader:
        """Return a download capability bound to oid."""
        return _MemoryDownloader(self, validate_oid(oid))

    def open_upload(self) -> Uploader:
        """Return an upload capability."""
        return _MemoryUploader(self)


class _MemoryDownloader(Downloader):
    def __init__(self, store: InMemoryContentStore, oid: str) -> None:
        super().__init__(oid)
        self._store = store

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @traced_storage_operation("open")
    def open(self) -> BinaryIO:
        data = self._store._get(self.oid)
        if data is None:
            raise ObjectNotFoundError(oid=self.oid)
        return io.BytesIO(data)


class _MemoryUploader(Uploader):
    def __init__(self, store: InMemoryContentStore) -> None:
        self._store = store

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @traced_storage_operation("upload")
    def upload(self, meta: ObjectMeta, stream: BinaryIO) -> None:
        data = read_declared(stream, meta.size, oid=meta.oid)
        self._store._put(meta.oid, data)
        logger.debug("Stored object: oid=%s size=%d", meta.oid, meta.size)
