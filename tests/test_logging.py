"""Unit tests for pkgvault.engine.logging — FileLogger, AsyncLogQueue, builders."""

import json
from datetime import date

import pkgvault.engine.logging as log_mod
from pkgvault.engine.logging import (
    OBJECT_TYPE_CATEGORIES,
    AsyncLogQueue,
    FileLogger,
    LogEntry,
    log_archive_built,
    log_artifact_downloaded,
    log_artifact_stored,
    log_record_operation,
    log_system_event,
    log_web_api_request,
)


def _read_entries(log_dir, object_type, category):
    path = log_dir / object_type / category / f"{date.today().isoformat()}.jsonl"
    if not path.exists():
        return []
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


class TestLogEntry:

    def test_to_json(self):
        entry = LogEntry("system", "execution", {"event": "startup", "n": 1})
        assert json.loads(entry.to_json()) == {"event": "startup", "n": 1}

    def test_bytes_reduced_to_size(self):
        entry = LogEntry("artifacts", "execution", {"payload": b"secret-bytes", "raw": bytearray(3)})
        raw = entry.to_json()
        assert "secret" not in raw
        assert json.loads(raw) == {"payload": "<12 bytes>", "raw": "<3 bytes>"}


class TestFileLogger:

    def test_creates_category_dirs(self, tmp_path):
        FileLogger(log_dir=str(tmp_path))
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                assert (tmp_path / obj_type / cat).is_dir()

    def test_write_groups_by_file(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        fl.write(LogEntry("system", "execution", {"event": "a"}))
        fl.write_batch([
            LogEntry("system", "execution", {"event": "b"}),
            LogEntry("web_apis", "execution", {"event": "c"}),
        ])
        assert [e["event"] for e in _read_entries(tmp_path, "system", "execution")] == ["a", "b"]
        assert [e["event"] for e in _read_entries(tmp_path, "web_apis", "execution")] == ["c"]


class TestAsyncLogQueue:

    def test_stop_drains(self, tmp_path):
        fl = FileLogger(log_dir=str(tmp_path))
        queue = AsyncLogQueue(fl, flush_interval_ms=10)
        queue.start()
        for i in range(5):
            assert queue.push(LogEntry("system", "execution", {"i": i}))
        queue.stop()
        assert [e["i"] for e in _read_entries(tmp_path, "system", "execution")] == [0, 1, 2, 3, 4]

    def test_full_queue_drops(self, tmp_path):
        queue = AsyncLogQueue(FileLogger(log_dir=str(tmp_path)), max_queue_size=1)
        assert queue.push(LogEntry("system", "execution", {}))
        assert not queue.push(LogEntry("system", "execution", {}))


class TestBuilders:

    def test_artifact_stored_has_no_payload(self):
        entry = log_artifact_stored(3, 1, "a.txt", user_id=9, size_bytes=5, sha256="ab" * 32)
        assert (entry.object_type, entry.category) == ("artifacts", "execution")
        assert entry.data["object_ref"] == "packages.1.artifacts.3"
        assert entry.data["size_bytes"] == 5
        assert "payload" not in entry.data

    def test_artifact_downloaded(self):
        entry = log_artifact_downloaded(3, 1, 5)
        assert entry.data["event"] == "artifact_downloaded"

    def test_archive_built_failure_level(self):
        entry = log_archive_built("pkg", 2, 10, 1.5, success=False, error="disk full")
        assert entry.category == "performance"
        assert entry.data["level"] == "ERROR"
        assert entry.data["error"] == "disk full"

    def test_record_operation_routing(self):
        assert log_record_operation("create", "package", record_id=1).object_type == "packages"
        entry = log_record_operation("delete", "user", record_id=2, cascaded={"posts": 3})
        assert entry.object_type == "records"
        assert entry.data["cascaded"] == {"posts": 3}

    def test_web_api_error_level(self):
        ok = log_web_api_request("GET", "/health", 200, 1.0)
        bad = log_web_api_request("GET", "/packages/9", 404, 1.0)
        assert ok.data["level"] == "INFO"
        assert bad.data["level"] == "ERROR"

    def test_system_event_details(self):
        entry = log_system_event("startup", details={"environment": "dev"})
        assert entry.data["details"] == {"environment": "dev"}


class TestProcessQueue:

    def test_log_before_init_is_noop(self):
        assert log_mod.get_log_queue() is None
        assert log_mod.log(log_system_event("noop")) is False

    def test_init_and_shutdown(self, tmp_path):
        queue = log_mod.init_logging(log_dir=str(tmp_path), flush_interval_ms=10)
        assert log_mod.get_log_queue() is queue
        assert log_mod.init_logging(log_dir=str(tmp_path)) is queue
        assert log_mod.log(log_system_event("startup"))
        log_mod.shutdown_logging()
        assert log_mod.get_log_queue() is None
        events = _read_entries(tmp_path, "system", "execution")
        assert [e["event"] for e in events] == ["startup"]
