"""Git LFS object content endpoints.

GET {repo_path}/info/lfs/storage/{oid}   stream an object
PUT {repo_path}/info/lfs/storage/{oid}   store an object

Uploads are verified here before they reach the store: the request body is
spooled while hashed, the declared Content-Length is checked against what
arrived, and the digest against the oid in the URL.
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
import tempfile
from collections.abc import Iterator
from typing import IO, BinaryIO

from fastapi import APIRouter, Request, Response
from fastapi.responses import StreamingResponse

from lfsstore.api.deps import RequireContentManager
from lfsstore.api.errors import LfsHttpError
from lfsstore.storage.errors import InvalidObjectIdError
from lfsstore.storage.models import ObjectMeta, is_valid_oid
from lfsstore.storage.spool import CHUNK_SIZE, SPOOL_MAX_MEMORY

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Content"])

OCTET_STREAM = "application/octet-stream"


def _iter_stream(stream: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """Yield chunks from stream and close it when exhausted or abandoned."""
    try:
        while True:
            chunk = stream.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        stream.close()


async def _spool_request_body(request: Request) -> tuple[IO[bytes], int, str]:
    """Copy the request body into a spooled file.

    Returns:
        (rewound spool, bytes received, sha256 hex digest)
    """
    spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY)  # noqa: SIM115
    hasher = hashlib.sha256()
    received = 0
    try:
        async for chunk in request.stream():
            if not chunk:
                continue
            spool.write(chunk)
            hasher.update(chunk)
            received += len(chunk)
    except BaseException:
        spool.close()
        raise
    spool.seek(0)
    return spool, received, hasher.hexdigest()


def _declared_length(request: Request) -> int:
    """Read the declared object size from Content-Length.

    Raises:
        LfsHttpError: 411 if missing, 400 if not a non-negative integer.
    """
    raw = request.headers.get("Content-Length")
    if raw is None:
        raise LfsHttpError(
            status_code=411,
            code="LENGTH_REQUIRED",
            message="Content-Length header is required",
        )
    try:
        size = int(raw)
    except ValueError:
        size = -1
    if size < 0:
        raise LfsHttpError(
            status_code=400,
            code="BAD_REQUEST",
            message="Content-Length must be a non-negative integer",
        )
    return size


@router.get("/storage/{oid}")
async def get_object(oid: str, request: Request, manager: RequireContentManager) -> Response:
    """Stream an object's bytes.

    Raises:
        UnauthorizedError: If the credential check fails.
        ObjectNotFoundError: If the object does not exist.
    """
    downloader = manager.check_download_access(request, oid)
    stream = await asyncio.to_thread(downloader.open)
    return StreamingResponse(_iter_stream(stream), media_type=OCTET_STREAM)


@router.put("/storage/{oid}")
async def put_object(oid: str, request: Request, manager: RequireContentManager) -> Response:
    """Store an object.

    An object that already exists is acknowledged without a write.

    Raises:
        UnauthorizedError: If the credential check fails.
        LfsHttpError: 411/400 for a bad Content-Length, 400 SIZE_MISMATCH
            when more bytes arrive than declared, 422 HASH_MISMATCH when the
            digest differs from the oid.
        IncompleteUploadError: When fewer bytes arrive than declared.
    """
    uploader = manager.check_upload_access(request)
    if not is_valid_oid(oid):
        raise InvalidObjectIdError(message="Object id must be 64 lowercase hex characters", oid=oid)
    declared = _declared_length(request)

    existing = await asyncio.to_thread(manager.metadata, oid)
    spool, received, digest = await _spool_request_body(request)
    try:
        if existing is not None:
            logger.debug("Object already stored, skipping write: oid=%s", oid)
            return Response(status_code=200)

        if received > declared:
            raise LfsHttpError(
                status_code=400,
                code="SIZE_MISMATCH",
                message="Request body is larger than the declared Content-Length",
                details={"expected": declared, "received": received},
            )
        if received == declared and digest != oid:
            raise LfsHttpError(
                status_code=422,
                code="HASH_MISMATCH",
                message="Content digest does not match object id",
                details={"oid": oid, "actual": digest},
            )

        await asyncio.to_thread(uploader.upload, ObjectMeta(oid=oid, size=declared), spool)
    finally:
        spool.close()

    logger.info("Object stored: oid=%s size=%d", oid, declared)
    return Response(status_code=200)
