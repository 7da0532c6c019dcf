"""Health check endpoint for the lfsstore API."""

from datetime import UTC, datetime

from fastapi import APIRouter
from pydantic import BaseModel

from lfsstore import __version__

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    time: str
    version: str


@router.get("/health", response_model=HealthResponse)
def get_health() -> HealthResponse:
    """Health check endpoint.

    No credentials required. The X-Request-Id header is added by the
    request ID middleware.
    """
    return HealthResponse(
        status="ok",
        time=datetime.now(UTC).isoformat(),
        version=__version__,
    )
