"""lfsstore filesystem content store backend.

Provides local filesystem storage with:
- Content-addressed layout sharded by oid prefix
- Atomic publish via temp file + rename, so readers never see partial objects
- Object ids validated before they touch a path

Environment Variables:
    LFSSTORE_FILESYSTEM_BASE_DIR: Base directory for storage
        (default: tempfile.gettempdir() / lfsstore_objects)
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import BinaryIO

from lfsstore.storage.content_store import ContentStore, Downloader, Uploader
from lfsstore.storage.errors import (
    InvalidObjectIdError,
    ObjectNotFoundError,
    StorageUnavailableError,
)
from lfsstore.storage.models import ObjectMeta, validate_oid
from lfsstore.storage.spool import spool_declared
from lfsstore.storage.tracing import traced_storage_operation

logger = logging.getLogger(__name__)

LFSSTORE_FILESYSTEM_BASE_DIR_ENV = "LFSSTORE_FILESYSTEM_BASE_DIR"

_TMP_SUFFIX = ".tmp"


class FilesystemContentStore(ContentStore):
    """Filesystem-based content store implementation.

    Objects are stored as:
        {base_dir}/{oid[0:2]}/{oid[2:4]}/{oid}

    In-flight uploads live next to their target as
    ``{oid}.{uuid}.tmp`` until they are renamed into place.
    """

    def __init__(self, base_dir: str | Path | None = None) -> None:
        """Initialize filesystem storage.

        Args:
            base_dir: Base directory for storage. If None, uses
                LFSSTORE_FILESYSTEM_BASE_DIR env var or OS temp directory.
        """
        if base_dir is None:
            base_dir = os.environ.get(LFSSTORE_FILESYSTEM_BASE_DIR_ENV) or None

        if base_dir is None:
            base_dir = Path(tempfile.gettempdir()) / "lfsstore_objects"
        else:
            base_dir = Path(base_dir)

        self._base_dir = base_dir.resolve()
        logger.debug("FilesystemContentStore initialized with base_dir=%s", self._base_dir)

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "filesystem"

    @property
    def base_dir(self) -> Path:
        """Return the base directory path."""
        return self._base_dir

    def object_path(self, oid: str) -> Path:
        """Return the path an object lives at, validating the oid."""
        validate_oid(oid)
        path = self._base_dir / oid[0:2] / oid[2:4] / oid
        try:
            path.resolve().relative_to(self._base_dir)
        except ValueError as e:
            raise InvalidObjectIdError(
                message="Object path resolves outside storage base directory",
                oid=oid,
            ) from e
        return path

    @traced_storage_operation("metadata")
    def metadata(self, oid: str) -> ObjectMeta | None:
        """Return size metadata, or None when absent."""
        path = self.object_path(oid)
        try:
            st = path.stat()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailableError(
                message=f"Failed to stat object: {e}",
                oid=oid,
                cause=e,
            ) from e
        return ObjectMeta(oid=oid, size=st.st_size)

    def open_download(self, oid: str) -> Downloader:
        """Return a download capability bound to oid."""
        return _FilesystemDownloader(self, oid, self.object_path(oid))

    def open_upload(self) -> Uploader:
        """Return an upload capability."""
        return _FilesystemUploader(self)

    def _write_object(self, meta: ObjectMeta, stream: BinaryIO) -> None:
        """Write an object atomically.

        The declared bytes are spooled first, so a short stream fails before
        anything is created on disk.
        """
        path = self.object_path(meta.oid)
        with spool_declared(stream, meta.size, oid=meta.oid) as spool:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise StorageUnavailableError(
                    message=f"Failed to create object directory: {e}",
                    oid=meta.oid,
                    cause=e,
                ) from e

            tmp_file = path.parent / f"{meta.oid}.{uuid.uuid4().hex}{_TMP_SUFFIX}"
            try:
                with tmp_file.open("wb") as out:
                    shutil.copyfileobj(spool, out)
                    out.flush()
                    os.fsync(out.fileno())
                tmp_file.replace(path)
            except OSError as e:
                if tmp_file.exists():
                    tmp_file.unlink(missing_ok=True)
                raise StorageUnavailableError(
                    message=f"Failed to write object: {e}",
                    oid=meta.oid,
                    cause=e,
                ) from e

        logger.debug("Stored object: oid=%s size=%d", meta.oid, meta.size)


class _FilesystemDownloader(Downloader):
    def __init__(self, store: FilesystemContentStore, oid: str, path: Path) -> None:
        super().__init__(oid)
        self._store = store
        self._path = path

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @traced_storage_operation("open")
    def open(self) -> BinaryIO:
        try:
            return self._path.open("rb")
        except FileNotFoundError as e:
            raise ObjectNotFoundError(oid=self.oid) from e
        except OSError as e:
            raise StorageUnavailableError(
                message=f"Failed to open object: {e}",
                oid=self.oid,
                cause=e,
            ) from e


class _FilesystemUploader(Uploader):
    def __init__(self, store: FilesystemContentStore) -> None:
        self._store = store

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @traced_storage_operation("upload")
    def upload(self, meta: ObjectMeta, stream: BinaryIO) -> None:
        self._store._write_object(meta, stream)
