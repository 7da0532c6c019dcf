"""lfsstore content-addressed storage.

Provides the ContentStore contract, its backends and the credential-enforcing
wrapper that gates capability creation.

Backends:
- InMemoryContentStore: dict-backed reference backend (dev/test)
- FilesystemContentStore: local filesystem
- S3ContentStore: S3-compatible blob storage via boto3

Environment Variables:
    LFSSTORE_FILESYSTEM_BASE_DIR: Base directory for the filesystem backend
        (default: OS temp dir / lfsstore_objects)
"""

from lfsstore.storage.authenticated_store import AuthenticatedStore
from lfsstore.storage.content_store import (
    ContentManager,
    ContentStore,
    Downloader,
    Uploader,
)
from lfsstore.storage.credentials import basic_challenge, encode_basic_credential
from lfsstore.storage.errors import (
    ContentStoreError,
    IncompleteUploadError,
    InvalidObjectIdError,
    ObjectNotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
)
from lfsstore.storage.filesystem_store import FilesystemContentStore
from lfsstore.storage.memory_store import InMemoryContentStore
from lfsstore.storage.models import ObjectMeta, compute_oid

__all__ = [
    "AuthenticatedStore",
    "ContentManager",
    "ContentStore",
    "ContentStoreError",
    "Downloader",
    "FilesystemContentStore",
    "IncompleteUploadError",
    "InMemoryContentStore",
    "InvalidObjectIdError",
    "ObjectMeta",
    "ObjectNotFoundError",
    "StorageUnavailableError",
    "UnauthorizedError",
    "Uploader",
    "basic_challenge",
    "compute_oid",
    "encode_basic_credential",
]
