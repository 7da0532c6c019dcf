"""Basic credential encoding for the access decorator.

The expected credential is encoded once at configuration time; verification
is a comparison against the incoming Authorization header, so the incoming
header never needs decoding.
"""

from __future__ import annotations

import base64

BASIC_SCHEME = "Basic"


def encode_basic_credential(username: str, password: str) -> str:
    """Encode a username/password pair as a Basic Authorization header value.

    Args:
        username: Expected user name.
        password: Expected password.

    Returns:
        ``"Basic <base64(username:password)>"`` using UTF-8 bytes.
    """
    raw = f"{username}:{password}".encode()
    return f"{BASIC_SCHEME} {base64.b64encode(raw).decode('ascii')}"


def basic_challenge(realm: str) -> str:
    """Return the WWW-Authenticate challenge for realm."""
    return f'{BASIC_SCHEME} realm="{realm}"'
