"""FastAPI dependencies shared by the LFS routes."""

from typing import Annotated

from fastapi import Depends, Request

from lfsstore.api.errors import LfsHttpError
from lfsstore.storage.content_store import ContentManager


def get_content_manager(request: Request) -> ContentManager:
    """Return the content manager the app was created with.

    Raises:
        LfsHttpError: 503 if the app has no content manager attached.
    """
    manager: ContentManager | None = getattr(request.app.state, "content_manager", None)
    if manager is None:
        raise LfsHttpError(
            status_code=503,
            code="SERVICE_UNAVAILABLE",
            message="Content store not configured",
        )
    return manager


def get_repo_path(request: Request) -> str:
    """Return the repository path prefix ("" when served at the root)."""
    return str(getattr(request.app.state, "repo_path", ""))


RequireContentManager = Annotated[ContentManager, Depends(get_content_manager)]
RepoPath = Annotated[str, Depends(get_repo_path)]
