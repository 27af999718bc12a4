"""
pkgvault Archive Builder — Bundle a package's artifacts into one zip stream.

The archive is written straight to a caller-supplied sink, which may be
non-seekable (a socket, a response body). Entries use data descriptors, so
nothing has to be rewound and the whole archive never sits in memory.

Policy:
- One entry per artifact, named after its display name, in input order
- Duplicate names are written as-is
- ZIP_DEFLATED at the configured level (9 unless overridden)
- No per-entry recovery; the first failure aborts the build
"""

from __future__ import annotations

import io
import logging
import time
import zipfile
from typing import BinaryIO, Iterator, List, Optional, Sequence

from pkgvault.artifacts.models import Artifact
from pkgvault.engine.config import ArchiveConfig
from pkgvault.engine.errors import InvalidInputError, StorageFailureError
from pkgvault.engine.logging import log, log_archive_built

logger = logging.getLogger("pkgvault.artifacts.archive")

# Above this an entry needs zip64 headers up front, since sizes are
# not known to the writer in advance.
ZIP64_LIMIT = (1 << 31) - 1


class _ChunkSink(io.RawIOBase):
    """Write-only, non-seekable buffer drained by stream_archive()."""

    def __init__(self):
        super().__init__()
        self._chunks: List[bytes] = []

    def writable(self) -> bool:
        return True

    def write(self, b) -> int:
        data = bytes(b)
        if data:
            self._chunks.append(data)
        return len(data)

    def drain(self) -> bytes:
        data = b"".join(self._chunks)
        self._chunks = []
        return data


class ArchiveBuilder:
    """
    Stateless zip writer. Each call owns its own ZipFile bound to one sink,
    so concurrent builds for different packages never interact.
    """

    def __init__(self, config: Optional[ArchiveConfig] = None):
        self._config = config or ArchiveConfig()

    @property
    def compression_level(self) -> int:
        return self._config.compression_level

    @staticmethod
    def archive_filename(package_name: str) -> str:
        return f"{package_name}.zip"

    def build_archive(
        self,
        package_name: str,
        artifacts: Sequence[Artifact],
        sink: BinaryIO,
    ) -> None:
        """
        Write a complete zip archive of artifacts to sink.

        Raises:
            InvalidInputError: an artifact has an empty payload. Raised before
                anything is written.
            StorageFailureError: writing to sink failed. The sink holds a
                partial archive and must not be reused.
        """
        self._validate(package_name, artifacts)
        start = time.monotonic()
        total = sum(len(a.payload) for a in artifacts)
        zf: Optional[zipfile.ZipFile] = None
        try:
            zf = self._open(sink)
            for artifact in artifacts:
                for _ in self._write_entry(zf, artifact):
                    pass
            zf.close()
        except OSError as e:
            if zf is not None:
                # Detach the broken sink; close() then writes no trailer
                zf.fp = None
            self._log_result(package_name, artifacts, total, start, error=str(e))
            raise StorageFailureError(
                f"Archive write failed for package '{package_name}'",
                object_ref=f"archives.{package_name}",
                operation="build_archive",
            ) from e

        self._log_result(package_name, artifacts, total, start)

    def stream_archive(
        self,
        package_name: str,
        artifacts: Sequence[Artifact],
    ) -> Iterator[bytes]:
        """
        Produce the same archive as build_archive() as a chunk iterator.

        Validation happens immediately, before the iterator is returned, so a
        bad input fails before any byte is sent.
        """
        self._validate(package_name, artifacts)
        return self._iter_chunks(package_name, list(artifacts))

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------

    def _iter_chunks(self, package_name: str, artifacts: List[Artifact]) -> Iterator[bytes]:
        start = time.monotonic()
        total = sum(len(a.payload) for a in artifacts)
        sink = _ChunkSink()
        zf = self._open(sink)
        for artifact in artifacts:
            for _ in self._write_entry(zf, artifact):
                chunk = sink.drain()
                if chunk:
                    yield chunk
            tail = sink.drain()
            if tail:
                yield tail
        zf.close()
        trailer = sink.drain()
        if trailer:
            yield trailer
        self._log_result(package_name, artifacts, total, start)

    def _open(self, sink: BinaryIO) -> zipfile.ZipFile:
        return zipfile.ZipFile(
            sink,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=self._config.compression_level,
        )

    def _write_entry(self, zf: zipfile.ZipFile, artifact: Artifact) -> Iterator[int]:
        """Write one entry, pausing after each chunk so the caller can drain the sink."""
        payload = artifact.payload
        size = self._config.chunk_size
        with zf.open(artifact.name, mode="w", force_zip64=len(payload) > ZIP64_LIMIT) as dest:
            for offset in range(0, len(payload), size):
                dest.write(payload[offset:offset + size])
                yield min(offset + size, len(payload))

    @staticmethod
    def _validate(package_name: str, artifacts: Sequence[Artifact]) -> None:
        empty = [a.name for a in artifacts if not a.payload]
        if empty:
            raise InvalidInputError(
                f"Cannot archive empty payloads: {empty}",
                object_ref=f"archives.{package_name}",
                validation_errors=[{"field": "payload", "name": n, "error": "empty"} for n in empty],
            )

    @staticmethod
    def _log_result(
        package_name: str,
        artifacts: Sequence[Artifact],
        total: int,
        start: float,
        error: Optional[str] = None,
    ) -> None:
        duration_ms = round((time.monotonic() - start) * 1000, 2)
        if error:
            logger.error(f"Archive '{package_name}' failed after {duration_ms}ms: {error}")
        else:
            logger.info(
                f"Archive '{package_name}': {len(artifacts)} entries, "
                f"{total} payload bytes in {duration_ms}ms"
            )
        log(log_archive_built(
            package_name=package_name,
            entry_count=len(artifacts),
            payload_bytes=total,
            duration_ms=duration_ms,
            success=error is None,
            error=error,
        ))
