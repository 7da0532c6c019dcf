"""lfsstore FastAPI application factory."""

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lfsstore import __version__
from lfsstore.api.errors import (
    LfsHttpError,
    generic_exception_handler,
    http_exception_handler,
    incomplete_upload_handler,
    invalid_object_id_handler,
    lfs_http_error_handler,
    object_not_found_handler,
    request_validation_error_handler,
    storage_unavailable_handler,
    unauthorized_error_handler,
)
from lfsstore.api.middleware.request_id import RequestIdMiddleware
from lfsstore.api.routes.batch import router as batch_router
from lfsstore.api.routes.content import router as content_router
from lfsstore.api.routes.health import router as health_router
from lfsstore.config import normalize_repo_path
from lfsstore.observability.tracing import (
    configure_tracing,
    instrument_fastapi,
    store_resource_attributes,
)
from lfsstore.storage.content_store import ContentManager
from lfsstore.storage.errors import (
    IncompleteUploadError,
    InvalidObjectIdError,
    ObjectNotFoundError,
    StorageUnavailableError,
    UnauthorizedError,
)


def create_app(content_manager: ContentManager, *, repo_path: str = "") -> FastAPI:
    """Create and configure the lfsstore FastAPI application.

    This factory:
    - Attaches the content manager (usually an AuthenticatedStore) to app state
    - Registers the request ID middleware
    - Registers exception handlers for the content store error taxonomy
    - Mounts the health router (no auth required)
    - Mounts the batch and storage routers under {repo_path}/info/lfs

    Args:
        content_manager: Store answering capability requests.
        repo_path: Repository path prefix, e.g. "/foo/bar.git".

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="lfsstore",
        description="Git LFS content store",
        version=__version__,
    )

    prefix = normalize_repo_path(repo_path)
    app.state.content_manager = content_manager
    app.state.repo_path = prefix

    configure_tracing(
        store_resource_attributes(
            getattr(content_manager, "backend_name", None),
            getattr(content_manager, "realm", None),
            prefix,
        )
    )

    app.add_middleware(RequestIdMiddleware)

    instrument_fastapi(app)

    app.add_exception_handler(LfsHttpError, lfs_http_error_handler)
    app.add_exception_handler(UnauthorizedError, unauthorized_error_handler)
    app.add_exception_handler(ObjectNotFoundError, object_not_found_handler)
    app.add_exception_handler(IncompleteUploadError, incomplete_upload_handler)
    app.add_exception_handler(InvalidObjectIdError, invalid_object_id_handler)
    app.add_exception_handler(StorageUnavailableError, storage_unavailable_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    lfs_prefix = f"{prefix}/info/lfs"
    app.include_router(health_router)
    app.include_router(batch_router, prefix=lfs_prefix)
    app.include_router(content_router, prefix=lfs_prefix)

    return app
