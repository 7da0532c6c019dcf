"""Pytest configuration and fixtures for lfsstore tests.

This module provides common fixtures and configuration for all tests.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from lfsstore.api.main import create_app
from lfsstore.storage.authenticated_store import AuthenticatedStore
from lfsstore.storage.credentials import encode_basic_credential
from lfsstore.storage.memory_store import InMemoryContentStore

TEST_USERNAME = "lfsuser"
TEST_PASSWORD = "s3cret"
TEST_REALM = "Git LFS"

ENV_VARS = (
    "LFSSTORE_OTEL_ENABLED",
    "LFSSTORE_OTEL_TEST_CAPTURE",
    "LFSSTORE_OTEL_EXPORTER",
    "LFSSTORE_OTEL_SERVICE_NAME",
    "LFSSTORE_OTEL_EXPORTER_OTLP_ENDPOINT",
    "LFSSTORE_FILESYSTEM_BASE_DIR",
)


@pytest.fixture(autouse=True)
def clean_lfsstore_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without tracing or storage overrides in the environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def memory_store() -> InMemoryContentStore:
    """Return an empty in-memory content store."""
    return InMemoryContentStore()


@pytest.fixture
def auth_store(memory_store: InMemoryContentStore) -> AuthenticatedStore:
    """Return the in-memory store wrapped in the test credential."""
    return AuthenticatedStore(
        username=TEST_USERNAME,
        password=TEST_PASSWORD,
        realm=TEST_REALM,
        inner_store=memory_store,
    )


@pytest.fixture
def auth_header() -> dict[str, str]:
    """Return an Authorization header carrying the test credential."""
    return {"Authorization": encode_basic_credential(TEST_USERNAME, TEST_PASSWORD)}


@pytest.fixture
def client(auth_store: AuthenticatedStore) -> TestClient:
    """Create a test client for an app served at the root path."""
    return TestClient(create_app(auth_store))
