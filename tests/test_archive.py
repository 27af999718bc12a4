"""Unit tests for pkgvault.artifacts.archive — ArchiveBuilder."""

import gc
import io
import warnings
import zipfile

import pytest

from pkgvault.artifacts.archive import ArchiveBuilder
from pkgvault.artifacts.models import Artifact
from pkgvault.engine.config import ArchiveConfig
from pkgvault.engine.errors import InvalidInputError, StorageFailureError


def _artifacts(*pairs):
    return [
        Artifact(id=i, name=name, created_by=1, package_id=1, payload=payload)
        for i, (name, payload) in enumerate(pairs, start=1)
    ]


class _WriteOnly(io.RawIOBase):
    """A sink with no seek/tell, like a socket."""

    def __init__(self):
        super().__init__()
        self.buffer = bytearray()

    def writable(self):
        return True

    def write(self, b):
        self.buffer.extend(b)
        return len(b)


class _FailingSink(io.RawIOBase):

    def __init__(self):
        super().__init__()
        self.attempts = 0

    def writable(self):
        return True

    def write(self, b):
        self.attempts += 1
        raise OSError("disk full")


class TestBuildArchive:

    def test_entries_in_input_order(self, builder):
        buf = io.BytesIO()
        builder.build_archive("pkg", _artifacts(("a.txt", b"hello"), ("b.txt", b"world")), buf)
        with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as zf:
            assert zf.namelist() == ["a.txt", "b.txt"]
            assert zf.read("a.txt") == b"hello"
            assert zf.read("b.txt") == b"world"
            assert all(i.compress_type == zipfile.ZIP_DEFLATED for i in zf.infolist())
            assert zf.testzip() is None

    def test_empty_archive_is_valid(self, builder):
        buf = io.BytesIO()
        builder.build_archive("pkg", [], buf)
        with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as zf:
            assert zf.namelist() == []

    def test_non_seekable_sink(self, builder):
        sink = _WriteOnly()
        payload = bytes(range(256)) * 1000
        builder.build_archive("pkg", _artifacts(("blob.bin", payload)), sink)
        with zipfile.ZipFile(io.BytesIO(bytes(sink.buffer))) as zf:
            assert zf.read("blob.bin") == payload

    def test_payload_larger_than_chunk(self):
        builder = ArchiveBuilder(ArchiveConfig(chunk_size=7))
        buf = io.BytesIO()
        builder.build_archive("pkg", _artifacts(("a.txt", b"0123456789" * 5)), buf)
        with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as zf:
            assert zf.read("a.txt") == b"0123456789" * 5

    def test_duplicate_names_kept(self, builder):
        buf = io.BytesIO()
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            builder.build_archive("pkg", _artifacts(("same.txt", b"one"), ("same.txt", b"two")), buf)
            with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as zf:
                infos = zf.infolist()
                assert [i.filename for i in infos] == ["same.txt", "same.txt"]
                assert [zf.read(i) for i in infos] == [b"one", b"two"]

    def test_empty_payload_rejected_before_writing(self, builder):
        buf = io.BytesIO()
        with pytest.raises(InvalidInputError) as exc_info:
            builder.build_archive("pkg", _artifacts(("a.txt", b"x"), ("empty.txt", b"")), buf)
        assert exc_info.value.validation_errors[0]["name"] == "empty.txt"
        assert buf.getvalue() == b""

    def test_sink_failure(self, builder):
        with pytest.raises(StorageFailureError) as exc_info:
            builder.build_archive("pkg", _artifacts(("a.txt", b"hello")), _FailingSink())
        assert exc_info.value.operation == "build_archive"
        assert isinstance(exc_info.value.__cause__, OSError)

    def test_failed_sink_gets_no_trailer(self, builder):
        sink = _FailingSink()
        with pytest.raises(StorageFailureError):
            builder.build_archive("pkg", _artifacts(("a.txt", b"hello")), sink)
        gc.collect()
        assert sink.attempts == 1

    def test_compression_level_applied(self):
        payload = b"pkgvault " * 20000
        sizes = {}
        for level in (0, 9):
            buf = io.BytesIO()
            ArchiveBuilder(ArchiveConfig(compression_level=level)).build_archive(
                "pkg", _artifacts(("a.txt", payload)), buf,
            )
            with zipfile.ZipFile(io.BytesIO(buf.getvalue())) as zf:
                sizes[level] = zf.getinfo("a.txt").compress_size
                assert zf.read("a.txt") == payload
        assert sizes[9] < sizes[0]


class TestStreamArchive:

    def test_stream_produces_same_entries(self, builder):
        artifacts = _artifacts(("a.txt", b"hello"), ("b.txt", b"world"))
        data = b"".join(builder.stream_archive("pkg", artifacts))
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["a.txt", "b.txt"]
            assert zf.read("b.txt") == b"world"

    def test_stream_yields_multiple_chunks(self):
        builder = ArchiveBuilder(ArchiveConfig(chunk_size=1024, compression_level=0))
        payload = bytes(range(256)) * 64
        chunks = list(builder.stream_archive("pkg", _artifacts(("blob.bin", payload))))
        assert len(chunks) > 2
        with zipfile.ZipFile(io.BytesIO(b"".join(chunks))) as zf:
            assert zf.read("blob.bin") == payload

    def test_stream_validates_eagerly(self, builder):
        with pytest.raises(InvalidInputError):
            builder.stream_archive("pkg", _artifacts(("empty.txt", b"")))

    def test_stream_empty(self, builder):
        data = b"".join(builder.stream_archive("pkg", []))
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == []


class TestArchiveFilename:

    def test_filename(self):
        assert ArchiveBuilder.archive_filename("release-1.0") == "release-1.0.zip"

    def test_default_level(self, builder):
        assert builder.compression_level == 9
