"""S3-compatible content store backend.

Issues exactly three primitive calls against the bucket:
- head_object: existence and size
- get_object: open for read
- put_object with ContentLength: write with the declared length

Every botocore failure is translated into StorageUnavailableError at this
boundary, except "not found" answers which map to None / ObjectNotFoundError.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, BinaryIO, cast

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from lfsstore.storage.content_store import ContentStore, Downloader, Uploader
from lfsstore.storage.errors import ObjectNotFoundError, StorageUnavailableError
from lfsstore.storage.models import ObjectMeta, validate_oid
from lfsstore.storage.spool import spool_declared
from lfsstore.storage.tracing import traced_storage_operation

if TYPE_CHECKING:
    from lfsstore.config import ServerSettings

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchObject"})
_OCTET_STREAM = "application/octet-stream"
_DEFAULT_REGION = "us-east-1"


def _error_code(exc: ClientError) -> str:
    """Extract the error code from a botocore ClientError."""
    return str(exc.response.get("Error", {}).get("Code", ""))


def _is_not_found(exc: Exception) -> bool:
    return isinstance(exc, ClientError) and _error_code(exc) in _NOT_FOUND_CODES


class S3ContentStore(ContentStore):
    """Content store backed by an S3-compatible bucket.

    Objects are stored under ``{prefix}{oid}``.
    """

    def __init__(
        self, client: Any, bucket: str, prefix: str = "", region: str | None = None
    ) -> None:
        """Initialize with a boto3 S3 client.

        Args:
            client: boto3 S3 client (or anything exposing the same calls).
            bucket: Bucket name.
            prefix: Optional key prefix; a trailing "/" is added if missing.
            region: Region new buckets are created in; None for the default.
        """
        bucket = (bucket or "").strip()
        if not bucket:
            raise ValueError("bucket is required for the S3 content store")

        prefix = (prefix or "").strip().lstrip("/")
        if prefix and not prefix.endswith("/"):
            prefix = prefix + "/"

        self._client = client
        self._bucket = bucket
        self._prefix = prefix
        self._region = (region or "").strip() or None

    @classmethod
    def from_settings(cls, settings: ServerSettings) -> S3ContentStore:
        """Build a store and its boto3 client from server settings."""
        cfg = Config(
            retries={"max_attempts": 5, "mode": "standard"},
            region_name=settings.storage_region or None,
        )
        client = boto3.client(
            "s3",
            aws_access_key_id=settings.storage_account,
            aws_secret_access_key=settings.storage_key,
            endpoint_url=settings.storage_endpoint or None,
            config=cfg,
        )
        store = cls(
            client,
            bucket=settings.storage_container or "",
            prefix=settings.storage_prefix,
            region=settings.storage_region or None,
        )
        if settings.storage_create_container:
            store.ensure_bucket()
        return store

    @property
    def backend_name(self) -> str:
        """Return the backend identifier."""
        return "s3"

    @property
    def bucket(self) -> str:
        """Return the bucket name."""
        return self._bucket

    @property
    def prefix(self) -> str:
        """Return the key prefix."""
        return self._prefix

    def object_key(self, oid: str) -> str:
        """Return the bucket key for an object, validating the oid."""
        return f"{self._prefix}{validate_oid(oid)}"

    def ensure_bucket(self) -> None:
        """Create the bucket if it does not exist yet."""
        try:
            self._client.head_bucket(Bucket=self._bucket)
            return
        except ClientError as e:
            if not _is_not_found(e) and _error_code(e) != "NoSuchBucket":
                raise StorageUnavailableError(
                    message=f"Bucket check failed (bucket={self._bucket}): {e}",
                    cause=e,
                ) from e
        except BotoCoreError as e:
            raise StorageUnavailableError(
                message=f"Bucket check failed (bucket={self._bucket}): {e}",
                cause=e,
            ) from e

        kwargs: dict[str, Any] = {"Bucket": self._bucket}
        # us-east-1 rejects an explicit location constraint
        if self._region and self._region != _DEFAULT_REGION:
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self._region}

        try:
            self._client.create_bucket(**kwargs)
        except (ClientError, BotoCoreError) as e:
            raise StorageUnavailableError(
                message=f"Bucket creation failed (bucket={self._bucket}): {e}",
                cause=e,
            ) from e
        logger.info("Created bucket %s (region=%s)", self._bucket, self._region or _DEFAULT_REGION)

    @traced_storage_operation("metadata")
    def metadata(self, oid: str) -> ObjectMeta | None:
        """Return size metadata, or None when absent."""
        key = self.object_key(oid)
        try:
            resp = self._client.head_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise StorageUnavailableError(
                message=f"head_object failed: {e}",
                oid=oid,
                cause=e,
            ) from e
        except BotoCoreError as e:
            raise StorageUnavailableError(
                message=f"head_object failed: {e}",
                oid=oid,
                cause=e,
            ) from e
        return ObjectMeta(oid=oid, size=int(resp.get("ContentLength", 0)))

    def open_download(self, oid: str) -> Downloader:
        """Return a download capability bound to oid."""
        return _S3Downloader(self, oid, self.object_key(oid))

    def open_upload(self) -> Uploader:
        """Return an upload capability."""
        return _S3Uploader(self)

    def _get(self, oid: str, key: str) -> BinaryIO:
        try:
            resp = self._client.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(oid=oid) from e
            raise StorageUnavailableError(
                message=f"get_object failed: {e}",
                oid=oid,
                cause=e,
            ) from e
        except BotoCoreError as e:
            raise StorageUnavailableError(
                message=f"get_object failed: {e}",
                oid=oid,
                cause=e,
            ) from e
        return cast(BinaryIO, resp["Body"])

    def _put(self, meta: ObjectMeta, stream: BinaryIO) -> None:
        key = self.object_key(meta.oid)
        with spool_declared(stream, meta.size, oid=meta.oid) as spool:
            try:
                self._client.put_object(
                    Bucket=self._bucket,
                    Key=key,
                    Body=spool,
                    ContentLength=meta.size,
                    ContentType=_OCTET_STREAM,
                )
            except (ClientError, BotoCoreError) as e:
                raise StorageUnavailableError(
                    message=f"put_object failed: {e}",
                    oid=meta.oid,
                    cause=e,
                ) from e
        logger.debug("Stored object: bucket=%s oid=%s size=%d", self._bucket, meta.oid, meta.size)


class _S3Downloader(Downloader):
    def __init__(self, store: S3ContentStore, oid: str, key: str) -> None:
        super().__init__(oid)
        self._store = store
        self._key = key

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @traced_storage_operation("open")
    def open(self) -> BinaryIO:
        return self._store._get(self.oid, self._key)


class _S3Uploader(Uploader):
    def __init__(self, store: S3ContentStore) -> None:
        self._store = store

    @property
    def backend_name(self) -> str:
        return self._store.backend_name

    @traced_storage_operation("upload")
    def upload(self, meta: ObjectMeta, stream: BinaryIO) -> None:
        self._store._put(meta, stream)
