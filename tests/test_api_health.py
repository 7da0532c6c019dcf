"""Tests for lfsstore API health endpoint."""

from datetime import datetime

import pytest
from fastapi.testclient import TestClient

from lfsstore import __version__
from lfsstore.api.middleware.request_id import resolve_request_id


def test_health_returns_200(client: TestClient) -> None:
    """GET /health returns 200 OK without credentials."""
    response = client.get("/health")
    assert response.status_code == 200


def test_health_contains_required_fields(client: TestClient) -> None:
    """GET /health response contains status, time, and version."""
    data = client.get("/health").json()

    assert data["status"] == "ok"
    assert data["version"] == __version__
    datetime.fromisoformat(data["time"])


def test_health_includes_request_id_header(client: TestClient) -> None:
    """GET /health response includes a generated UUID X-Request-Id header."""
    request_id = client.get("/health").headers["X-Request-Id"]

    assert len(request_id) == 36
    assert request_id.count("-") == 4


def test_health_echoes_provided_request_id(client: TestClient) -> None:
    """GET /health with X-Request-Id header echoes it back."""
    response = client.get("/health", headers={"X-Request-Id": "test-request-id-12345"})

    assert response.headers["X-Request-Id"] == "test-request-id-12345"


def test_health_generates_request_id_for_whitespace_header(client: TestClient) -> None:
    """A whitespace-only X-Request-Id is replaced with a fresh UUID."""
    request_id = client.get("/health", headers={"X-Request-Id": "   "}).headers["X-Request-Id"]

    assert len(request_id) == 36


@pytest.mark.parametrize("incoming", ["a" * 129, "id with spaces", "idé", "x;y"])
def test_unusable_request_id_is_replaced(incoming: str) -> None:
    """Overlong or non-token ids are not reused."""
    request_id = resolve_request_id(incoming)

    assert request_id != incoming
    assert len(request_id) == 36


def test_request_id_repeated_in_rejected_transfer(client: TestClient) -> None:
    """A rejected storage call carries the caller's id in header and body."""
    response = client.get(
        "/info/lfs/storage/" + "0" * 64,
        headers={"X-Request-Id": "push-42.obj-7"},
    )

    assert response.status_code == 401
    assert response.headers["X-Request-Id"] == "push-42.obj-7"
    assert response.json()["request_id"] == "push-42.obj-7"
