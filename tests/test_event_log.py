"""Tests for the audit log, proves staging and tamper detection."""

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path

import pytest

from savingbank.persistence.event_log import EventKind, EventLog, EventRecord


def _ts() -> datetime:
    return datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestAppend:
    def test_sequential_ids(self) -> None:
        log = EventLog()
        first = log.emit(EventKind.PAUSED, "pauser", {}, _ts())
        second = log.emit(EventKind.UNPAUSED, "pauser", {}, _ts())
        assert first.event_id == "EVT-00000001"
        assert second.event_id == "EVT-00000002"
        assert log.count == 2
        assert log.last_event == second

    def test_duplicate_rejected(self) -> None:
        log = EventLog()
        event = log.emit(EventKind.PAUSED, "pauser", {}, _ts())
        with pytest.raises(ValueError, match="Duplicate event ID"):
            log.append(event)

    def test_filter_by_kind(self) -> None:
        log = EventLog()
        log.emit(EventKind.PAUSED, "pauser", {}, _ts())
        log.emit(EventKind.UNPAUSED, "pauser", {}, _ts())
        assert [e.event_kind for e in log.events(EventKind.UNPAUSED)] == [EventKind.UNPAUSED]

    def test_events_since(self) -> None:
        log = EventLog()
        log.emit(EventKind.PAUSED, "pauser", {}, datetime(2026, 1, 1, tzinfo=timezone.utc))
        log.emit(EventKind.UNPAUSED, "pauser", {}, datetime(2026, 3, 1, tzinfo=timezone.utc))
        assert len(log.events_since("2026-02-01T00:00:00Z")) == 1

    def test_hash_covers_payload(self) -> None:
        a = EventRecord.create("EVT-1", EventKind.PAUSED, "p", {"x": 1}, _ts())
        b = EventRecord.create("EVT-1", EventKind.PAUSED, "p", {"x": 2}, _ts())
        assert a.event_hash.startswith("sha256:")
        assert a.event_hash != b.event_hash


class TestStaging:
    def test_commit_on_clean_exit(self) -> None:
        log = EventLog()
        with log.staged():
            log.emit(EventKind.PAUSED, "pauser", {}, _ts())
            assert log.count == 0
        assert log.count == 1

    def test_discard_on_error(self) -> None:
        log = EventLog()
        with pytest.raises(RuntimeError):
            with log.staged():
                log.emit(EventKind.PAUSED, "pauser", {}, _ts())
                raise RuntimeError("abort")
        assert log.count == 0

    def test_inner_failure_keeps_outer_events(self) -> None:
        log = EventLog()
        with log.staged():
            log.emit(EventKind.PAUSED, "pauser", {}, _ts())
            with pytest.raises(RuntimeError):
                with log.staged():
                    log.emit(EventKind.UNPAUSED, "pauser", {}, _ts())
                    raise RuntimeError("inner")
        assert [e.event_kind for e in log.events()] == [EventKind.PAUSED]

    def test_ids_continue_after_discard(self) -> None:
        log = EventLog()
        with pytest.raises(RuntimeError):
            with log.staged():
                log.emit(EventKind.PAUSED, "pauser", {}, _ts())
                raise RuntimeError("abort")
        assert log.emit(EventKind.PAUSED, "pauser", {}, _ts()).event_id == "EVT-00000001"


class TestPersistence:
    def test_reload_from_jsonl(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.emit(EventKind.DEPOSIT_CREATED, "alice", {"deposit_id": 1}, _ts())
        log.emit(EventKind.DEPOSIT_WITHDRAWN, "alice", {"deposit_id": 1}, _ts())

        recovered = EventLog(storage_path=path)
        assert recovered.count == 2
        assert recovered.events()[0].payload == {"deposit_id": 1}
        assert recovered.last_event.event_hash == log.last_event.event_hash

    def test_staged_events_not_written_until_commit(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        with pytest.raises(RuntimeError):
            with log.staged():
                log.emit(EventKind.PAUSED, "pauser", {}, _ts())
                raise RuntimeError("abort")
        assert not path.exists()

    def test_tampered_record_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        log.emit(EventKind.DEPOSIT_CREATED, "alice", {"amount": 100}, _ts())

        record = json.loads(path.read_text(encoding="utf-8"))
        record["payload"]["amount"] = 1_000_000
        path.write_text(json.dumps(record) + "\n", encoding="utf-8")

        with pytest.raises(ValueError, match="Integrity check failed"):
            EventLog(storage_path=path)

    def test_replayed_record_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        EventLog(storage_path=path).emit(EventKind.PAUSED, "pauser", {}, _ts())
        line = path.read_text(encoding="utf-8")
        path.write_text(line + line, encoding="utf-8")

        with pytest.raises(ValueError, match="Duplicate event ID on recovery"):
            EventLog(storage_path=path)

    def test_failed_write_records_nothing(self, tmp_path: Path) -> None:
        path = tmp_path / "logs" / "events.jsonl"
        path.parent.mkdir()
        log = EventLog(storage_path=path)
        log.emit(EventKind.PAUSED, "pauser", {}, _ts())
        shutil.rmtree(path.parent)

        with pytest.raises(FileNotFoundError):
            with log.staged():
                log.emit(EventKind.UNPAUSED, "pauser", {}, _ts())
                log.emit(EventKind.PAUSED, "pauser", {}, _ts())
        assert log.count == 1
        assert log.last_event.event_kind == EventKind.PAUSED

        path.parent.mkdir()
        assert log.emit(EventKind.UNPAUSED, "pauser", {}, _ts()).event_id == "EVT-00000002"

    def test_staged_batch_written_together(self, tmp_path: Path) -> None:
        path = tmp_path / "events.jsonl"
        log = EventLog(storage_path=path)
        with log.staged():
            log.emit(EventKind.PAUSED, "pauser", {}, _ts())
            log.emit(EventKind.UNPAUSED, "pauser", {}, _ts())
        assert len(path.read_text(encoding="utf-8").splitlines()) == 2
        assert EventLog(storage_path=path).count == 2
