"""
pkgvault Logging System — Structured JSON file-based event logs with async queue.

Implements:
- FileLogger: Per-object-type, per-category log files (daily rotation)
- AsyncLogQueue: In-memory queue with background flush (100ms / 50 entries)
- Log entry builders for artifact, archive, record and request events

Payload bytes never reach a log entry; only sizes are recorded.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

logger = logging.getLogger("pkgvault.engine.logging")

# Valid object types and their permitted categories
OBJECT_TYPE_CATEGORIES = {
    "artifacts": ["execution", "performance"],
    "packages": ["execution"],
    "records": ["execution"],
    "web_apis": ["execution", "performance"],
    "system": ["execution"],
}


def _json_default(value: Any) -> Any:
    # Binary values are reduced to their size; payloads never reach a log file
    if isinstance(value, (bytes, bytearray, memoryview)):
        return f"<{len(value)} bytes>"
    return str(value)


class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=_json_default, separators=(",", ":"))


class FileLogger:
    """
    Writes structured JSON log entries to per-object-type, per-category files.
    Files rotate daily: logs/{object_type}/{category}/{YYYY-MM-DD}.jsonl

    Thread-safe — uses a lock per file path.
    """

    def __init__(self, log_dir: str = "logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / obj_type / cat).mkdir(parents=True, exist_ok=True)

    def write(self, entry: LogEntry) -> None:
        """Write a single log entry to the appropriate file."""
        self.write_batch([entry])

    def write_batch(self, entries: List[LogEntry]) -> None:
        """
        Write a batch of log entries, grouping by file path.
        """
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            file_path = str(self._resolve_path(entry.object_type, entry.category))
            grouped[file_path].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def _resolve_path(self, object_type: str, category: str) -> Path:
        """Resolve the log file path for today's date."""
        today = date.today().isoformat()
        return self._log_dir / object_type / category / f"{today}.jsonl"

class AsyncLogQueue:
    """
    In-memory queue with a background flush thread.

    Entries are pushed non-blocking. A background thread flushes to FileLogger
    every flush_interval_ms OR when flush_batch_size entries accumulate,
    whichever comes first.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        """Start the background flush thread."""
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="pkgvault-log-flush",
            daemon=True,
        )
        self._flush_thread.start()
        logger.info("Async log queue started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and drain remaining entries."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        logger.info(f"Async log queue stopped (dropped: {self._dropped_count})")

    def push(self, entry: LogEntry) -> bool:
        """
        Push a log entry to the queue. Non-blocking.

        Returns:
            True if queued, False if dropped (queue full).
        """
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error(f"Log flush error: {e}")
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval

        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                entry = self._queue.get(timeout=min(remaining, 0.01))
                batch.append(entry)
            except Empty:
                if batch:
                    break
                continue

        return batch

    def _drain(self) -> None:
        batch: List[LogEntry] = []
        while not self._queue.empty():
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error(f"Log drain error: {e}")


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    object_ref: str,
    user_id: Optional[Any] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a base log entry with common fields."""
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
        "object_ref": object_ref,
    }
    if user_id is not None:
        entry["user_id"] = user_id
    entry.update(extra)
    return entry


def log_artifact_stored(
    artifact_id: int,
    package_id: int,
    name: str,
    user_id: Any,
    size_bytes: int,
    sha256: Optional[str] = None,
) -> LogEntry:
    """Build an artifact upload log entry."""
    data = _base_entry(
        event="artifact_stored",
        level="INFO",
        object_ref=f"packages.{package_id}.artifacts.{artifact_id}",
        user_id=user_id,
        artifact_id=artifact_id,
        package_id=package_id,
        name=name,
        size_bytes=size_bytes,
    )
    if sha256:
        data["sha256"] = sha256
    return LogEntry("artifacts", "execution", data)


def log_artifact_downloaded(
    artifact_id: int,
    package_id: int,
    size_bytes: int,
) -> LogEntry:
    """Build a single-file download log entry."""
    data = _base_entry(
        event="artifact_downloaded",
        level="INFO",
        object_ref=f"packages.{package_id}.artifacts.{artifact_id}",
        artifact_id=artifact_id,
        package_id=package_id,
        size_bytes=size_bytes,
    )
    return LogEntry("artifacts", "execution", data)


def log_archive_built(
    package_name: str,
    entry_count: int,
    payload_bytes: int,
    duration_ms: float,
    success: bool,
    error: Optional[str] = None,
) -> LogEntry:
    """Build an archive performance log entry."""
    data = _base_entry(
        event="archive_built",
        level="INFO" if success else "ERROR",
        object_ref=f"archives.{package_name}",
        entry_count=entry_count,
        payload_bytes=payload_bytes,
        duration_ms=duration_ms,
        success=success,
    )
    if error:
        data["error"] = error
    return LogEntry("artifacts", "performance", data)


def log_record_operation(
    operation: str,
    record_type: str,
    record_id: Optional[Any] = None,
    user_id: Optional[Any] = None,
    fields_changed: Optional[List[str]] = None,
    cascaded: Optional[Dict[str, int]] = None,
) -> LogEntry:
    """Build a record CRUD log entry."""
    data = _base_entry(
        event=f"record_{operation}",
        level="INFO",
        object_ref=f"records.{record_type}",
        user_id=user_id,
        operation=operation,
        record_type=record_type,
    )
    if record_id is not None:
        data["record_id"] = record_id
    if fields_changed:
        data["fields_changed"] = fields_changed
    if cascaded:
        data["cascaded"] = cascaded
    object_type = "packages" if record_type == "package" else "records"
    return LogEntry(object_type, "execution", data)


def log_web_api_request(
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    client_ip: Optional[str] = None,
    response_size_bytes: Optional[int] = None,
) -> LogEntry:
    """Build a web API request log entry."""
    data = _base_entry(
        event="web_api_request",
        level="INFO" if status_code < 400 else "ERROR",
        object_ref=f"{method} {path}",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
    )
    if client_ip:
        data["client_ip"] = client_ip
    if response_size_bytes is not None:
        data["response_size_bytes"] = response_size_bytes
    return LogEntry("web_apis", "execution", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a system event log entry (startup, shutdown, storage failures)."""
    data = _base_entry(
        event=event,
        level=level,
        object_ref="system",
    )
    if details:
        data["details"] = details
    return LogEntry("system", "execution", data)


# ---------------------------------------------------------------------------
# Process-wide Log Queue
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = "logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
    level: str = "INFO",
) -> AsyncLogQueue:
    """Initialize the async log queue and the stdlib root level."""
    global _global_queue
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if _global_queue is not None:
        return _global_queue
    file_logger = FileLogger(log_dir=log_dir)
    _global_queue = AsyncLogQueue(
        file_logger=file_logger,
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    """Get the process log queue."""
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push a log entry to the queue. Non-blocking; no-op before init_logging()."""
    if _global_queue is None:
        logger.debug("Log queue not initialized — %s entry dropped", entry.data.get("event"))
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    """Flush and stop the log queue."""
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
