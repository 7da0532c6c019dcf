"""Tests for the filesystem content store.

- Roundtrip: upload then download returns identical bytes
- Layout: objects are sharded by oid prefix under the base directory
- Atomicity: short uploads leave no object and no temp files behind
- Errors: OS failures surface as StorageUnavailableError
- OTel spans: With tracing enabled, spans are captured with safe attributes
"""

from __future__ import annotations

import io
import os
import tempfile
from pathlib import Path
from typing import Any

import pytest

from lfsstore.storage.errors import (
    IncompleteUploadError,
    ObjectNotFoundError,
    StorageUnavailableError,
)
from lfsstore.storage.filesystem_store import FilesystemContentStore
from lfsstore.storage.models import ObjectMeta, compute_oid


@pytest.fixture
def temp_storage_dir() -> Any:
    """Create a temporary directory for storage tests."""
    with tempfile.TemporaryDirectory(prefix="lfsstore_test_storage_") as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_storage_dir: Path) -> FilesystemContentStore:
    """Create a FilesystemContentStore with a temp directory."""
    return FilesystemContentStore(base_dir=temp_storage_dir)


def _upload(store: FilesystemContentStore, data: bytes) -> str:
    oid = compute_oid(data)
    store.open_upload().upload(ObjectMeta(oid=oid, size=len(data)), io.BytesIO(data))
    return oid


class TestRoundtrip:
    """Tests for basic upload/download roundtrip functionality."""

    def test_upload_then_download_returns_identical_bytes(
        self, store: FilesystemContentStore
    ) -> None:
        """Upload then download should return identical bytes."""
        data = b"Hello, World! This is test content."
        oid = _upload(store, data)

        with store.open_download(oid).open() as stream:
            assert stream.read() == data

    def test_metadata_reports_size(self, store: FilesystemContentStore) -> None:
        """metadata reports the stored byte length."""
        oid = _upload(store, b"hello")

        assert store.metadata(oid) == ObjectMeta(oid=oid, size=5)

    def test_empty_content(self, store: FilesystemContentStore) -> None:
        """Should handle empty content correctly."""
        oid = _upload(store, b"")

        assert store.metadata(oid) == ObjectMeta(oid=oid, size=0)
        with store.open_download(oid).open() as stream:
            assert stream.read() == b""

    def test_large_content(self, store: FilesystemContentStore) -> None:
        """Content larger than one copy chunk survives the roundtrip."""
        data = os.urandom(256 * 1024)
        oid = _upload(store, data)

        with store.open_download(oid).open() as stream:
            assert stream.read() == data

    def test_reupload_overwrites_with_same_bytes(self, store: FilesystemContentStore) -> None:
        """A second upload of the same object is accepted."""
        oid = _upload(store, b"twice")
        _upload(store, b"twice")

        assert store.metadata(oid) == ObjectMeta(oid=oid, size=5)


class TestLayout:
    """Tests for on-disk layout."""

    def test_object_path_is_sharded(
        self, store: FilesystemContentStore, temp_storage_dir: Path
    ) -> None:
        """Objects live at base/oid[0:2]/oid[2:4]/oid."""
        oid = _upload(store, b"layout")

        expected = temp_storage_dir.resolve() / oid[0:2] / oid[2:4] / oid
        assert store.object_path(oid) == expected
        assert expected.read_bytes() == b"layout"

    def test_no_temp_files_after_upload(
        self, store: FilesystemContentStore, temp_storage_dir: Path
    ) -> None:
        """Temp files are renamed into place, none remain."""
        _upload(store, b"clean")

        assert list(temp_storage_dir.rglob("*.tmp")) == []


class TestAbsenceAndErrors:
    """Tests for missing objects and failure translation."""

    def test_metadata_absent(self, store: FilesystemContentStore) -> None:
        """metadata returns None for unknown objects."""
        assert store.metadata(compute_oid(b"missing")) is None

    def test_open_absent_raises_not_found(self, store: FilesystemContentStore) -> None:
        """Opening an unknown object raises ObjectNotFoundError."""
        with pytest.raises(ObjectNotFoundError):
            store.open_download(compute_oid(b"missing")).open()

    def test_short_upload_leaves_nothing(
        self, store: FilesystemContentStore, temp_storage_dir: Path
    ) -> None:
        """Declared 10 bytes with 5 delivered: no object, no temp file."""
        oid = compute_oid(b"0123456789")

        with pytest.raises(IncompleteUploadError):
            store.open_upload().upload(ObjectMeta(oid=oid, size=10), io.BytesIO(b"01234"))

        assert store.metadata(oid) is None
        assert [p for p in temp_storage_dir.rglob("*") if p.is_file()] == []

    def test_stat_failure_is_storage_unavailable(
        self, store: FilesystemContentStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """OS errors other than not-found surface as StorageUnavailableError."""
        oid = compute_oid(b"perm")

        def denied(self: Path, *args: Any, **kwargs: Any) -> Any:
            raise PermissionError("denied")

        monkeypatch.setattr(Path, "stat", denied)

        with pytest.raises(StorageUnavailableError) as exc_info:
            store.metadata(oid)

        assert isinstance(exc_info.value.cause, PermissionError)

    def test_write_failure_is_storage_unavailable(
        self, store: FilesystemContentStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A failing rename surfaces as StorageUnavailableError and leaves no object."""
        data = b"rename fails"
        oid = compute_oid(data)

        def broken_replace(self: Path, target: Any) -> Any:
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", broken_replace)

        with pytest.raises(StorageUnavailableError):
            store.open_upload().upload(ObjectMeta(oid=oid, size=len(data)), io.BytesIO(data))

        assert store.metadata(oid) is None
        assert list(store.base_dir.rglob("*.tmp")) == []


class TestBaseDir:
    """Tests for base directory selection."""

    def test_env_var_base_dir(
        self, temp_storage_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """LFSSTORE_FILESYSTEM_BASE_DIR is used when no base_dir is given."""
        monkeypatch.setenv("LFSSTORE_FILESYSTEM_BASE_DIR", str(temp_storage_dir))

        store = FilesystemContentStore()

        assert store.base_dir == temp_storage_dir.resolve()

    def test_default_base_dir_under_tempdir(self) -> None:
        """Without configuration objects go under the OS temp directory."""
        store = FilesystemContentStore()

        assert store.base_dir == (Path(tempfile.gettempdir()) / "lfsstore_objects").resolve()

    def test_backend_name(self, store: FilesystemContentStore) -> None:
        """backend_name identifies the filesystem backend."""
        assert store.backend_name == "filesystem"


class TestOtelSpans:
    """Tests for OpenTelemetry span emission."""

    @pytest.fixture(autouse=True)
    def tracing_env(self, monkeypatch: pytest.MonkeyPatch) -> Any:
        """Enable in-memory span capture for each test."""
        from lfsstore.observability.tracing import configure_tracing, reset_tracing

        monkeypatch.setenv("LFSSTORE_OTEL_ENABLED", "1")
        monkeypatch.setenv("LFSSTORE_OTEL_TEST_CAPTURE", "1")
        reset_tracing()
        configure_tracing()

        yield

        reset_tracing()

    def test_upload_emits_span_with_safe_attributes(self, store: FilesystemContentStore) -> None:
        """Upload emits a span carrying oid and size but no filesystem paths."""
        from lfsstore.observability.tracing import clear_test_spans, get_test_spans

        clear_test_spans()
        oid = _upload(store, b"otel upload")

        spans = [s for s in get_test_spans() if s.name == "lfsstore.content_store.upload"]
        assert len(spans) >= 1, f"Expected upload span. All spans: {get_test_spans()}"

        attrs = dict(spans[0].attributes or {})
        assert attrs["storage.backend"] == "filesystem"
        assert attrs["lfsstore.object_oid"] == oid
        assert attrs["lfsstore.object_size"] == len(b"otel upload")
        for value in attrs.values():
            assert str(store.base_dir) not in str(value)

    def test_metadata_emits_span_with_existence(self, store: FilesystemContentStore) -> None:
        """metadata spans record whether the object exists."""
        from lfsstore.observability.tracing import clear_test_spans, get_test_spans

        clear_test_spans()
        store.metadata(compute_oid(b"absent"))

        spans = [s for s in get_test_spans() if s.name == "lfsstore.content_store.metadata"]
        assert len(spans) >= 1
        assert dict(spans[0].attributes or {})["lfsstore.object_exists"] is False

    def test_failed_open_marks_span_error(self, store: FilesystemContentStore) -> None:
        """A failing open records the error type on its span."""
        from lfsstore.observability.tracing import clear_test_spans, get_test_spans

        clear_test_spans()
        with pytest.raises(ObjectNotFoundError):
            store.open_download(compute_oid(b"absent")).open()

        spans = [s for s in get_test_spans() if s.name == "lfsstore.content_store.open"]
        assert len(spans) >= 1
        attrs = dict(spans[0].attributes or {})
        assert attrs["error"] is True
        assert attrs["error.type"] == "ObjectNotFoundError"
