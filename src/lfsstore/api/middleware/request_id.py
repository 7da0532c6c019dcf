"""Request correlation ids for LFS transfers.

A git-lfs client issues one batch call and then many storage GET/PUT calls
for a single push or fetch. Each response carries X-Request-Id and every
error envelope repeats it, so a failing object transfer reported by the
client can be matched to the server log line that rejected it.
"""

import re
import uuid
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REQUEST_ID_HEADER = "X-Request-Id"

# Proxies and clients may supply their own id; only short printable tokens are reused
_ACCEPTED_ID = re.compile(r"[A-Za-z0-9._:\-]{1,128}")


def resolve_request_id(incoming: str | None) -> str:
    """Return the caller's id when it is a usable token, otherwise a new uuid4."""
    candidate = (incoming or "").strip()
    if _ACCEPTED_ID.fullmatch(candidate):
        return candidate
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Stores the request id on request.state and echoes it on the response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
