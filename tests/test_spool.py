"""Tests for declared-length spooling."""

from __future__ import annotations

import io

import pytest

from lfsstore.storage.errors import IncompleteUploadError
from lfsstore.storage.spool import read_declared, spool_declared


class TestSpoolDeclared:
    """Tests for spool_declared."""

    def test_exact_length(self) -> None:
        """A stream with exactly the declared bytes is spooled and rewound."""
        with spool_declared(io.BytesIO(b"abcdef"), 6) as spool:
            assert spool.tell() == 0
            assert spool.read() == b"abcdef"

    def test_small_chunks(self) -> None:
        """Chunk size does not change the result."""
        with spool_declared(io.BytesIO(b"abcdefghij"), 10, chunk_size=3) as spool:
            assert spool.read() == b"abcdefghij"

    def test_stops_at_declared_size(self) -> None:
        """Bytes past the declared size stay in the source stream."""
        source = io.BytesIO(b"abcXYZ")

        with spool_declared(source, 3) as spool:
            assert spool.read() == b"abc"

        assert source.read() == b"XYZ"

    def test_short_stream_raises(self) -> None:
        """Fewer bytes than declared raises IncompleteUploadError."""
        with pytest.raises(IncompleteUploadError) as exc_info:
            spool_declared(io.BytesIO(b"abc"), 10, oid="f" * 64)

        assert exc_info.value.expected == 10
        assert exc_info.value.received == 3
        assert exc_info.value.oid == "f" * 64

    def test_zero_size(self) -> None:
        """A zero declared size reads nothing."""
        source = io.BytesIO(b"data")

        with spool_declared(source, 0) as spool:
            assert spool.read() == b""

        assert source.tell() == 0


class TestReadDeclared:
    """Tests for read_declared."""

    def test_returns_bytes(self) -> None:
        """read_declared returns exactly the declared bytes."""
        assert read_declared(io.BytesIO(b"hello world"), 5) == b"hello"

    def test_short_stream_raises(self) -> None:
        """read_declared raises on a short stream."""
        with pytest.raises(IncompleteUploadError):
            read_declared(io.BytesIO(b"hi"), 5)
