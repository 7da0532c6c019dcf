"""Declared-length spooling shared by the content store backends.

An upload is all-or-nothing: the declared number of bytes is copied into a
spooled temporary file first, and only a complete spool is ever handed to the
backend write.
"""

from __future__ import annotations

import tempfile
from typing import IO, BinaryIO

from lfsstore.storage.errors import IncompleteUploadError

CHUNK_SIZE = 64 * 1024
SPOOL_MAX_MEMORY = 8 * 1024 * 1024


def spool_declared(
    stream: BinaryIO,
    size: int,
    *,
    oid: str | None = None,
    chunk_size: int = CHUNK_SIZE,
) -> IO[bytes]:
    """Copy exactly size bytes from stream into a rewound spooled file.

    Bytes past size are left unread in the source stream.

    Args:
        stream: Readable binary stream.
        size: Declared object size.
        oid: Object id, for error reporting.
        chunk_size: Read size per iteration.

    Returns:
        A seekable file positioned at offset 0. The caller closes it.

    Raises:
        IncompleteUploadError: If the stream ends before size bytes.
    """
    spool = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_MEMORY)  # noqa: SIM115
    remaining = size
    try:
        while remaining > 0:
            chunk = stream.read(min(chunk_size, remaining))
            if not chunk:
                break
            spool.write(chunk)
            remaining -= len(chunk)
    except BaseException:
        spool.close()
        raise

    if remaining > 0:
        spool.close()
        raise IncompleteUploadError(oid=oid, expected=size, received=size - remaining)

    spool.seek(0)
    return spool


def read_declared(stream: BinaryIO, size: int, *, oid: str | None = None) -> bytes:
    """Read exactly size bytes from stream into memory.

    Raises:
        IncompleteUploadError: If the stream ends before size bytes.
    """
    with spool_declared(stream, size, oid=oid) as spool:
        return spool.read()
