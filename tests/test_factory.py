"""Tests for building the content store stack from settings."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from lfsstore.config import load_settings
from lfsstore.storage.authenticated_store import AuthenticatedStore
from lfsstore.storage.factory import create_authenticated_store, create_content_store
from lfsstore.storage.filesystem_store import FilesystemContentStore
from lfsstore.storage.memory_store import InMemoryContentStore
from lfsstore.storage.s3_store import S3ContentStore

CREDENTIALS = {
    "gitlfs.username": "alice",
    "gitlfs.password": "secret",
    "gitlfs.realm": "repo",
}


def test_memory_backend() -> None:
    """storage.backend=memory builds an InMemoryContentStore."""
    settings = load_settings(dict(CREDENTIALS, **{"storage.backend": "memory"}), environ={})

    assert isinstance(create_content_store(settings), InMemoryContentStore)


def test_filesystem_backend(tmp_path: Path) -> None:
    """storage.backend=filesystem uses storage.base_dir."""
    settings = load_settings(
        dict(CREDENTIALS, **{"storage.backend": "filesystem", "storage.base_dir": str(tmp_path)}),
        environ={},
    )

    store = create_content_store(settings)

    assert isinstance(store, FilesystemContentStore)
    assert store.base_dir == tmp_path.resolve()


def test_s3_backend() -> None:
    """storage.backend=s3 builds an S3ContentStore from the storage keys."""
    settings = load_settings(
        dict(
            CREDENTIALS,
            **{
                "storage.account": "AKID",
                "storage.key": "key",
                "storage.container": "bucket",
                "storage.create_container": "false",
            },
        ),
        environ={},
    )

    with patch("lfsstore.storage.s3_store.boto3.client"):
        store = create_content_store(settings)

    assert isinstance(store, S3ContentStore)
    assert store.bucket == "bucket"


def test_authenticated_store_wraps_backend() -> None:
    """create_authenticated_store wraps the backend with the configured credential."""
    settings = load_settings(dict(CREDENTIALS, **{"storage.backend": "memory"}), environ={})

    store = create_authenticated_store(settings)

    assert isinstance(store, AuthenticatedStore)
    assert store.realm == "repo"
    assert store.backend_name == "authenticated:memory"
