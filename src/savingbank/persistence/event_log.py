"""Append-only event log: the audit trail of every state change.

Every mutation in the savings engine produces an event record that is
appended to the log. Events are immutable once written and never retracted.

Events emitted inside an atomic operation are staged first and only
committed when the whole operation succeeds, so a rolled-back operation
leaves no trace in the log.
"""

from __future__ import annotations

import enum
import hashlib
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Optional

logger = logging.getLogger(__name__)


class EventKind(str, enum.Enum):
    """Classification of audit events."""
    # Deposit lifecycle
    DEPOSIT_CREATED = "deposit_created"
    DEPOSIT_WITHDRAWN = "deposit_withdrawn"
    DEPOSIT_RENEWED = "deposit_renewed"
    # Plan registry
    SAVING_PLAN_CREATED = "saving_plan_created"
    SAVING_PLAN_UPDATED = "saving_plan_updated"
    SAVING_PLAN_ACTIVATED = "saving_plan_activated"
    SAVING_PLAN_DEACTIVATED = "saving_plan_deactivated"
    PENALTY_RECEIVER_UPDATED = "penalty_receiver_updated"
    # Vault
    LIQUIDITY_DEPOSITED = "liquidity_deposited"
    LIQUIDITY_WITHDRAWN = "liquidity_withdrawn"
    ADMIN_WITHDRAWN = "admin_withdrawn"
    # Certificates
    CERTIFICATE_MINTED = "certificate_minted"
    CERTIFICATE_TRANSFERRED = "certificate_transferred"
    # Supervisor
    ROLE_GRANTED = "role_granted"
    ROLE_REVOKED = "role_revoked"
    PAUSED = "paused"
    UNPAUSED = "unpaused"


def _canonical_hash(
    event_id: str,
    event_kind: str,
    timestamp_utc: str,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "event_kind": event_kind,
            "timestamp_utc": timestamp_utc,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class EventRecord:
    """A single immutable event in the audit log.

    The event_hash is computed at creation time over the canonical JSON
    of every other field.
    """
    event_id: str
    event_kind: EventKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    event_hash: str  # SHA-256 of canonical JSON

    @staticmethod
    def create(
        event_id: str,
        event_kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create a new event record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return EventRecord(
            event_id=event_id,
            event_kind=event_kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            event_hash=_canonical_hash(
                event_id, event_kind.value, ts_str, actor_id, payload
            ),
        )


class EventLog:
    """Append-only event log with optional file persistence.

    Events can only be appended, never modified or deleted.
    The log can be persisted to a JSONL file (one JSON object per line)
    and loaded back for recovery.

    Usage:
        log = EventLog()
        with log.staged():
            log.emit(EventKind.PAUSED, "pauser", {})
        # committed here; discarded if the block raised
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._events: list[EventRecord] = []
        self._storage_path = storage_path
        self._event_ids: set[str] = set()
        self._staged: list[EventRecord] = []
        self._stage_depth = 0

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def append(self, event: EventRecord) -> None:
        """Append an event to the log (or to the open stage).

        Raises ValueError if event_id is a duplicate (replay protection).
        """
        if event.event_id in self._event_ids or any(
            e.event_id == event.event_id for e in self._staged
        ):
            raise ValueError(f"Duplicate event ID: {event.event_id}")

        if self._stage_depth > 0:
            self._staged.append(event)
            return
        self._commit([event])

    def emit(
        self,
        kind: EventKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> EventRecord:
        """Create an event with the next sequential ID and append it."""
        event = EventRecord.create(
            event_id=self._next_event_id(),
            event_kind=kind,
            actor_id=actor_id,
            payload=payload,
            timestamp_utc=timestamp_utc,
        )
        self.append(event)
        return event

    @contextmanager
    def staged(self) -> Iterator[None]:
        """Hold appended events until the outermost block exits cleanly.

        Nested blocks share one stage. An exception discards only the
        events staged inside the failing block and re-raises.
        """
        mark = len(self._staged)
        self._stage_depth += 1
        try:
            yield
        except BaseException:
            del self._staged[mark:]
            raise
        finally:
            self._stage_depth -= 1

        if self._stage_depth == 0:
            pending, self._staged = self._staged, []
            self._commit(pending)

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def events(self, kind: Optional[EventKind] = None) -> list[EventRecord]:
        """Return committed events, optionally filtered by kind."""
        if kind is None:
            return list(self._events)
        return [e for e in self._events if e.event_kind == kind]

    def events_since(
        self,
        since_utc: str,
        kind: Optional[EventKind] = None,
    ) -> list[EventRecord]:
        """Return events after a timestamp, optionally filtered by kind."""
        result = [e for e in self._events if e.timestamp_utc >= since_utc]
        if kind is not None:
            result = [e for e in result if e.event_kind == kind]
        return result

    @property
    def storage_path(self) -> Optional[Path]:
        return self._storage_path

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def last_event(self) -> Optional[EventRecord]:
        return self._events[-1] if self._events else None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_event_id(self) -> str:
        """Monotonic ID covering committed and staged events."""
        return f"EVT-{len(self._events) + len(self._staged) + 1:08d}"

    def _commit(self, events: list[EventRecord]) -> None:
        """Persist a batch, then publish it in memory.

        A failed file write raises before any event of the batch becomes
        visible.
        """
        if not events:
            return
        if self._storage_path:
            self._append_to_file(events)
        for event in events:
            self._events.append(event)
            self._event_ids.add(event.event_id)
            logger.debug("event %s %s", event.event_id, event.event_kind.value)

    def _append_to_file(self, events: list[EventRecord]) -> None:
        """Append a batch of events to the JSONL file in one write."""
        lines = []
        for event in events:
            record = {
                "event_id": event.event_id,
                "event_kind": event.event_kind.value,
                "timestamp_utc": event.timestamp_utc,
                "actor_id": event.actor_id,
                "payload": event.payload,
                "event_hash": event.event_hash,
            }
            lines.append(json.dumps(record, sort_keys=True, ensure_ascii=False) + "\n")
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write("".join(lines))

    def _load_from_file(self, path: Path) -> None:
        """Load events from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate event IDs (replay protection on recovery).
        """
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)

                event_id = data["event_id"]
                if event_id in self._event_ids:
                    raise ValueError(
                        f"Duplicate event ID on recovery (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_hash(
                    data["event_id"],
                    data["event_kind"],
                    data["timestamp_utc"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["event_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): event {event_id} "
                        f"stored hash {data['event_hash']} != computed {expected_hash}"
                    )

                event = EventRecord(
                    event_id=data["event_id"],
                    event_kind=EventKind(data["event_kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    event_hash=data["event_hash"],
                )
                self._events.append(event)
                self._event_ids.add(event.event_id)
        logger.info("Recovered %d events from %s", len(self._events), path)
