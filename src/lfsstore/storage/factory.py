"""Content store construction from server settings."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lfsstore.storage.authenticated_store import AuthenticatedStore
from lfsstore.storage.filesystem_store import FilesystemContentStore
from lfsstore.storage.memory_store import InMemoryContentStore

if TYPE_CHECKING:
    from lfsstore.config import ServerSettings
    from lfsstore.storage.content_store import ContentStore

logger = logging.getLogger(__name__)

BACKENDS = frozenset({"memory", "filesystem", "s3"})


def create_content_store(settings: ServerSettings) -> ContentStore:
    """Create the backend selected by ``settings.storage_backend``.

    Raises:
        ValueError: If the backend name is unknown.
    """
    backend = settings.storage_backend
    if backend == "memory":
        store: ContentStore = InMemoryContentStore()
    elif backend == "filesystem":
        store = FilesystemContentStore(base_dir=settings.storage_base_dir)
    elif backend == "s3":
        from lfsstore.storage.s3_store import S3ContentStore

        store = S3ContentStore.from_settings(settings)
    else:
        raise ValueError(f"Unknown storage backend: {backend!r}")

    logger.info("Content store backend: %s", store.backend_name)
    return store


def create_authenticated_store(settings: ServerSettings) -> AuthenticatedStore:
    """Create the configured backend wrapped in the credential check."""
    return AuthenticatedStore(
        username=settings.username,
        password=settings.password.get_secret_value(),
        realm=settings.realm,
        inner_store=create_content_store(settings),
    )
