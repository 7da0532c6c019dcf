"""Credential-enforcing content store wrapper for lfsstore.

Wraps any ContentManager so that capability creation is gated behind one
statically configured Basic credential. Metadata lookups pass through
ungated so the transfer endpoints can check for existing objects before
asking for upload access.

A rejected request never reaches the wrapped store.
"""

from __future__ import annotations

import hmac
import logging
from typing import TYPE_CHECKING

from lfsstore.storage.credentials import basic_challenge, encode_basic_credential
from lfsstore.storage.errors import UnauthorizedError

if TYPE_CHECKING:
    from lfsstore.storage.content_store import (
        ContentManager,
        Downloader,
        RequestLike,
        Uploader,
    )
    from lfsstore.storage.models import ObjectMeta

logger = logging.getLogger(__name__)

AUTHORIZATION_HEADER = "Authorization"


def _authorization_header(request: RequestLike) -> str | None:
    """Return the Authorization header value, matching the name case-insensitively."""
    headers = request.headers
    value = headers.get(AUTHORIZATION_HEADER)
    if value is not None:
        return value
    wanted = AUTHORIZATION_HEADER.lower()
    for name, candidate in headers.items():
        if name.lower() == wanted:
            return candidate
    return None


class AuthenticatedStore:
    """Content manager wrapper enforcing a single Basic credential.

    The expected header value is encoded once at construction. Every
    capability request compares the presented Authorization header with it,
    ignoring case, using a constant-time comparison. Configuration is
    immutable, so one instance is shared by all concurrent requests.
    """

    def __init__(
        self,
        username: str,
        password: str,
        realm: str,
        inner_store: ContentManager,
    ) -> None:
        """Initialize the authenticated store.

        Args:
            username: Expected user name.
            password: Expected password.
            realm: Authentication realm returned on rejection.
            inner_store: The wrapped content manager.
        """
        self._inner = inner_store
        self._realm = realm
        self._expected = encode_basic_credential(username, password).lower().encode("ascii")

    @property
    def backend_name(self) -> str:
        """Return the backend identifier with an auth prefix."""
        return f"authenticated:{getattr(self._inner, 'backend_name', 'unknown')}"

    @property
    def realm(self) -> str:
        """Return the configured realm."""
        return self._realm

    @property
    def challenge(self) -> str:
        """Return the WWW-Authenticate challenge for the configured realm."""
        return basic_challenge(self._realm)

    def _check_authorization(self, request: RequestLike) -> None:
        """Raise UnauthorizedError unless the request carries the expected credential."""
        presented = _authorization_header(request)
        if presented is None:
            logger.warning("Rejected request without credentials: realm=%s", self._realm)
            raise UnauthorizedError(self._realm)

        # The expected value is ASCII; non-ASCII headers never match
        if not presented.isascii() or not hmac.compare_digest(
            presented.lower().encode("ascii"), self._expected
        ):
            logger.warning("Rejected request with invalid credentials: realm=%s", self._realm)
            raise UnauthorizedError(self._realm)

    def authorize(self, request: RequestLike) -> None:
        """Check the credential without creating a capability.

        Raises:
            UnauthorizedError: If the credential does not match.
        """
        self._check_authorization(request)

    def check_download_access(self, request: RequestLike, oid: str) -> Downloader:
        """Authorize the request, then return the inner download capability.

        Raises:
            UnauthorizedError: If the credential does not match.
        """
        self._check_authorization(request)
        return self._inner.check_download_access(request, oid)

    def check_upload_access(self, request: RequestLike) -> Uploader:
        """Authorize the request, then return the inner upload capability.

        Raises:
            UnauthorizedError: If the credential does not match.
        """
        self._check_authorization(request)
        return self._inner.check_upload_access(request)

    def metadata(self, oid: str) -> ObjectMeta | None:
        """Look up object metadata without authorization."""
        return self._inner.metadata(oid)
