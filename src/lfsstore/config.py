"""lfsstore server configuration.

Settings come from a flat key/value mapping, normally a Java-style
``.properties`` file, with environment overrides on top:

    gitlfs.username        Expected user name (required)
    gitlfs.password        Expected password (required)
    gitlfs.realm           Authentication realm (required)
    gitlfs.path            Repository path prefix, e.g. "/foo/bar.git"
    gitlfs.host            Bind address (default: 0.0.0.0)
    gitlfs.port            Listen port (default: 8080)
    storage.backend        "s3" | "filesystem" | "memory" (default: s3)
    storage.account        Access key id (required for s3)
    storage.key            Secret access key (required for s3)
    storage.container      Bucket name (required for s3)
    storage.endpoint       Endpoint URL for S3-compatible services
    storage.region         Region name
    storage.prefix         Key prefix inside the bucket
    storage.create_container  Create the bucket on startup (default: true)
    storage.base_dir       Base directory for the filesystem backend

Environment override for key ``a.b`` is ``LFSSTORE_A_B``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, model_validator

logger = logging.getLogger(__name__)

ENV_PREFIX = "LFSSTORE_"

SETTING_KEYS: tuple[str, ...] = (
    "gitlfs.username",
    "gitlfs.password",
    "gitlfs.realm",
    "gitlfs.path",
    "gitlfs.host",
    "gitlfs.port",
    "storage.backend",
    "storage.account",
    "storage.key",
    "storage.container",
    "storage.endpoint",
    "storage.region",
    "storage.prefix",
    "storage.create_container",
    "storage.base_dir",
)


class ConfigError(Exception):
    """Raised when configuration is missing or invalid.

    Attributes:
        keys: Flat keys that were missing or invalid.
    """

    def __init__(self, message: str, keys: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.keys = keys or []


def env_key(key: str) -> str:
    """Return the environment variable overriding a flat key."""
    return ENV_PREFIX + key.upper().replace(".", "_")


def _unescape(value: str) -> str:
    """Resolve the backslash escapes allowed in properties values."""
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append({"t": "\t", "n": "\n", "r": "\r", "f": "\f"}.get(nxt, nxt))
    return "".join(out)


def _split_property(line: str) -> tuple[str, str]:
    """Split one logical properties line into key and value."""
    idx = 0
    length = len(line)
    while idx < length:
        ch = line[idx]
        if ch == "\\":
            idx += 2
            continue
        if ch in "=: \t":
            break
        idx += 1

    key = line[:idx]
    rest = line[idx:].lstrip(" \t")
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(" \t")
    return _unescape(key), _unescape(rest)


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java-style properties text.

    Supports ``key=value``, ``key: value`` and ``key value`` forms, ``#`` and
    ``!`` comment lines, and backslash line continuation.
    """
    result: dict[str, str] = {}
    pending = ""
    for raw in text.splitlines():
        line = raw.lstrip() if not pending else raw.lstrip(" \t")
        if not pending and (not line or line[0] in "#!"):
            continue

        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue

        logical = pending + line
        pending = ""
        key, value = _split_property(logical)
        if key:
            result[key] = value

    if pending:
        key, value = _split_property(pending)
        if key:
            result[key] = value
    return result


def load_properties(path: str | Path) -> dict[str, str]:
    """Read a properties file.

    Raises:
        ConfigError: If the file cannot be read.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read properties file {path}: {e}") from e
    return parse_properties(text)


def normalize_repo_path(path: str) -> str:
    """Normalize a repository path to "" or "/a/b" form."""
    stripped = (path or "").strip().strip("/")
    return f"/{stripped}" if stripped else ""


class ServerSettings(BaseModel):
    """Validated, immutable server configuration."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    username: str = Field(alias="gitlfs.username", min_length=1)
    password: SecretStr = Field(alias="gitlfs.password")
    realm: str = Field(alias="gitlfs.realm", min_length=1)
    path: str = Field(default="", alias="gitlfs.path")
    host: str = Field(default="0.0.0.0", alias="gitlfs.host")
    port: int = Field(default=8080, alias="gitlfs.port", ge=0, le=65535)

    storage_backend: str = Field(default="s3", alias="storage.backend")
    storage_account: str | None = Field(default=None, alias="storage.account")
    storage_key: str | None = Field(default=None, alias="storage.key")
    storage_container: str | None = Field(default=None, alias="storage.container")
    storage_endpoint: str | None = Field(default=None, alias="storage.endpoint")
    storage_region: str | None = Field(default=None, alias="storage.region")
    storage_prefix: str = Field(default="", alias="storage.prefix")
    storage_create_container: bool = Field(default=True, alias="storage.create_container")
    storage_base_dir: str | None = Field(default=None, alias="storage.base_dir")

    @model_validator(mode="after")
    def _check_backend(self) -> ServerSettings:
        from lfsstore.storage.factory import BACKENDS

        if self.storage_backend not in BACKENDS:
            raise ValueError(
                f"storage.backend must be one of {sorted(BACKENDS)}, got {self.storage_backend!r}"
            )
        if self.storage_backend == "s3":
            missing = [
                key
                for key, value in (
                    ("storage.account", self.storage_account),
                    ("storage.key", self.storage_key),
                    ("storage.container", self.storage_container),
                )
                if not value
            ]
            if missing:
                raise ValueError(f"missing required keys for s3 backend: {', '.join(missing)}")
        return self

    @property
    def repo_path(self) -> str:
        """Return the repository path normalized to "" or "/a/b" form."""
        return normalize_repo_path(self.path)

    def redacted(self) -> dict[str, Any]:
        """Return the settings as flat keys with secrets removed."""
        data = self.model_dump(by_alias=True, exclude={"password", "storage_key"})
        data["gitlfs.password"] = "***"
        if self.storage_key:
            data["storage.key"] = "***"
        return data


def _missing_keys(exc: ValidationError) -> list[str]:
    keys: list[str] = []
    for error in exc.errors():
        loc = error.get("loc", ())
        if loc:
            keys.append(str(loc[0]))
    return keys


def load_settings(
    mapping: Mapping[str, str],
    *,
    environ: Mapping[str, str] | None = None,
) -> ServerSettings:
    """Build settings from a flat mapping plus environment overrides.

    Args:
        mapping: Flat key/value pairs (e.g. from load_properties).
        environ: Environment to read overrides from (default: os.environ).

    Returns:
        Validated ServerSettings.

    Raises:
        ConfigError: If required keys are missing or values are invalid.
    """
    if environ is None:
        environ = os.environ

    merged: dict[str, str] = {key: value for key, value in mapping.items() if value != ""}
    for key in SETTING_KEYS:
        override = environ.get(env_key(key))
        if override is not None and override != "":
            merged[key] = override

    try:
        settings = ServerSettings.model_validate(merged)
    except ValidationError as e:
        keys = _missing_keys(e)
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'settings'}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {details}", keys=keys) from e

    logger.info(
        "Configuration loaded: backend=%s path=%r realm=%s",
        settings.storage_backend,
        settings.repo_path,
        settings.realm,
    )
    return settings
