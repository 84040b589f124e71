"""Append-only audit log: the record of every authorization decision.

Each access check and each guarded mutation produces an audit record
appended here. Records are immutable once written and carry a SHA-256
hash of their canonical JSON form, so a persisted log can be checked
for tampering when it is loaded back.

Appends are serialised with a lock: one log may be shared by every
request thread.
"""

from __future__ import annotations

import enum
import hashlib
import json
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional


class AuditKind(str, enum.Enum):
    """Classification of authorization events."""
    ACCESS_GRANTED = "access_granted"
    ACCESS_DENIED = "access_denied"
    MUTATION_APPROVED = "mutation_approved"
    MUTATION_REJECTED = "mutation_rejected"


def _canonical_hash(
    event_id: str,
    kind: str,
    timestamp_utc: str,
    actor_id: str,
    payload: dict[str, Any],
) -> str:
    canonical = json.dumps(
        {
            "event_id": event_id,
            "kind": kind,
            "timestamp_utc": timestamp_utc,
            "actor_id": actor_id,
            "payload": payload,
        },
        sort_keys=True,
        ensure_ascii=False,
    ).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class AuditRecord:
    """A single immutable authorization event.

    record_hash is computed at creation time from the canonical JSON of
    every other field.
    """
    event_id: str
    kind: AuditKind
    timestamp_utc: str
    actor_id: str
    payload: dict[str, Any]
    record_hash: str

    @staticmethod
    def create(
        event_id: str,
        kind: AuditKind,
        actor_id: str,
        payload: dict[str, Any],
        timestamp_utc: Optional[datetime] = None,
    ) -> AuditRecord:
        """Create a new audit record with computed hash."""
        ts = timestamp_utc or datetime.now(timezone.utc)
        ts_str = ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return AuditRecord(
            event_id=event_id,
            kind=kind,
            timestamp_utc=ts_str,
            actor_id=actor_id,
            payload=payload,
            record_hash=_canonical_hash(event_id, kind.value, ts_str, actor_id, payload),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "kind": self.kind.value,
            "timestamp_utc": self.timestamp_utc,
            "actor_id": self.actor_id,
            "payload": self.payload,
            "record_hash": self.record_hash,
        }


class AuditLog:
    """Append-only audit log with optional file persistence.

    Records can only be appended, never modified or deleted. With a
    storage path the log is mirrored to a JSONL file (one JSON object per
    line) and loaded back, with integrity checks, on construction.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._records: list[AuditRecord] = []
        self._event_ids: set[str] = set()
        self._storage_path = storage_path
        self._lock = threading.Lock()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)
        self._counter = len(self._records)

    def next_event_id(self) -> str:
        """Generate a monotonically increasing unique event ID."""
        with self._lock:
            self._counter += 1
            return f"AUD-{self._counter:08d}"

    def append(self, record: AuditRecord) -> None:
        """Append a record to the log.

        Raises ValueError if event_id is a duplicate (replay protection).
        File errors propagate as OSError; the record is then not kept.
        """
        with self._lock:
            if record.event_id in self._event_ids:
                raise ValueError(f"Duplicate audit event ID: {record.event_id}")
            if self._storage_path:
                self._append_to_file(record)
            self._records.append(record)
            self._event_ids.add(record.event_id)

    def records(self, kind: Optional[AuditKind] = None) -> list[AuditRecord]:
        """Return records, optionally filtered by kind."""
        with self._lock:
            if kind is None:
                return list(self._records)
            return [r for r in self._records if r.kind == kind]

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._records)

    @property
    def last_record(self) -> Optional[AuditRecord]:
        with self._lock:
            return self._records[-1] if self._records else None

    def _append_to_file(self, record: AuditRecord) -> None:
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        """Load records from a JSONL file with integrity verification.

        Fail-closed: rejects tampered records (hash mismatch) and
        duplicate event IDs.
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
                        f"Duplicate audit event ID on recovery (line {line_num}): {event_id}"
                    )

                expected_hash = _canonical_hash(
                    event_id,
                    data["kind"],
                    data["timestamp_utc"],
                    data["actor_id"],
                    data["payload"],
                )
                if data["record_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): record {event_id} "
                        f"stored hash {data['record_hash']} != computed {expected_hash}"
                    )

                self._records.append(AuditRecord(
                    event_id=event_id,
                    kind=AuditKind(data["kind"]),
                    timestamp_utc=data["timestamp_utc"],
                    actor_id=data["actor_id"],
                    payload=data["payload"],
                    record_hash=data["record_hash"],
                ))
                self._event_ids.add(event_id)
