"""Git LFS batch endpoint.

POST {repo_path}/info/lfs/objects/batch

Answers with a "basic" transfer for every requested object:
- download: authorized once; present objects get a download action,
  absent ones a per-object 404 error
- upload: authorized once; objects already stored get no actions, so the
  client skips them, the rest get an upload action

Actions point at the storage endpoint and repeat the caller's
Authorization header.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from lfsstore.api.deps import RepoPath, RequireContentManager
from lfsstore.api.error_model import LFS_MEDIA_TYPE
from lfsstore.api.errors import LfsHttpError
from lfsstore.storage.content_store import ContentManager
from lfsstore.storage.models import is_valid_oid

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Batch"])

BASIC_TRANSFER = "basic"
SUPPORTED_HASH_ALGO = "sha256"


class BatchObject(BaseModel):
    """One object in a batch request."""

    oid: str
    size: Annotated[int, Field(ge=0)]


class BatchRequest(BaseModel):
    """Batch request body."""

    model_config = ConfigDict(extra="ignore")

    operation: Literal["download", "upload"]
    transfers: list[str] | None = None
    ref: dict[str, Any] | None = None
    objects: list[BatchObject]
    hash_algo: str | None = None


def storage_href(request: Request, repo_path: str, oid: str) -> str:
    """Return the absolute URL of an object's storage endpoint."""
    base = str(request.base_url).rstrip("/")
    return f"{base}{repo_path}/info/lfs/storage/{oid}"


def _action(request: Request, repo_path: str, oid: str) -> dict[str, Any]:
    action: dict[str, Any] = {"href": storage_href(request, repo_path, oid)}
    authorization = request.headers.get("Authorization")
    if authorization:
        action["header"] = {"Authorization": authorization}
    return action


def _object_error(obj: BatchObject, code: int, message: str) -> dict[str, Any]:
    return {"oid": obj.oid, "size": obj.size, "error": {"code": code, "message": message}}


def _download_objects(
    request: Request,
    manager: ContentManager,
    repo_path: str,
    objects: list[BatchObject],
) -> list[dict[str, Any]]:
    manager.authorize(request)

    results: list[dict[str, Any]] = []
    for obj in objects:
        if not is_valid_oid(obj.oid):
            results.append(_object_error(obj, 422, "Invalid object id"))
            continue

        meta = manager.metadata(obj.oid)
        if meta is None:
            results.append(_object_error(obj, 404, "Object does not exist"))
            continue

        results.append(
            {
                "oid": meta.oid,
                "size": meta.size,
                "authenticated": True,
                "actions": {"download": _action(request, repo_path, meta.oid)},
            }
        )
    return results


def _upload_objects(
    request: Request,
    manager: ContentManager,
    repo_path: str,
    objects: list[BatchObject],
) -> list[dict[str, Any]]:
    manager.check_upload_access(request)

    results: list[dict[str, Any]] = []
    for obj in objects:
        if not is_valid_oid(obj.oid):
            results.append(_object_error(obj, 422, "Invalid object id"))
            continue

        existing = manager.metadata(obj.oid)
        if existing is not None:
            results.append({"oid": existing.oid, "size": existing.size, "authenticated": True})
            continue

        results.append(
            {
                "oid": obj.oid,
                "size": obj.size,
                "authenticated": True,
                "actions": {"upload": _action(request, repo_path, obj.oid)},
            }
        )
    return results


@router.post("/objects/batch")
async def post_batch(
    body: BatchRequest,
    request: Request,
    manager: RequireContentManager,
    repo_path: RepoPath,
) -> JSONResponse:
    """Handle a Git LFS batch request.

    Raises:
        LfsHttpError: 422 if the client offers no basic transfer,
            409 if it asks for a hash algorithm other than sha256.
        UnauthorizedError: If the credential check fails.
    """
    if body.transfers is not None and BASIC_TRANSFER not in body.transfers:
        raise LfsHttpError(
            status_code=422,
            code="UNSUPPORTED_TRANSFER",
            message="Only the basic transfer adapter is supported",
            details={"transfers": body.transfers},
        )
    if body.hash_algo is not None and body.hash_algo != SUPPORTED_HASH_ALGO:
        raise LfsHttpError(
            status_code=409,
            code="UNSUPPORTED_HASH_ALGO",
            message=f"Unsupported hash algorithm: {body.hash_algo}",
        )

    if body.operation == "download":
        objects = await asyncio.to_thread(
            _download_objects, request, manager, repo_path, body.objects
        )
    else:
        objects = await asyncio.to_thread(
            _upload_objects, request, manager, repo_path, body.objects
        )

    logger.debug("Batch %s: %d objects", body.operation, len(objects))
    return JSONResponse(
        content={"transfer": BASIC_TRANSFER, "objects": objects, "hash_algo": SUPPORTED_HASH_ALGO},
        media_type=LFS_MEDIA_TYPE,
    )
