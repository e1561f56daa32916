"""
Tamper-Aware Audit Trail
========================

Append-only audit log of file store operations with hash chaining.

Each line is a JSON object whose ``event_hash`` covers its own fields and
the previous event's hash, so editing, dropping or reordering lines
breaks verification.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Final, List, Optional

GENESIS_HASH: Final[str] = "genesis"

_log = logging.getLogger("verbiforge.audit")


class AuditSeverity(Enum):
    """Audit event severity levels."""
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AuditEventType(Enum):
    """Types of auditable events."""
    STORE_STARTED = "STORE_STARTED"
    FILE_STORED = "FILE_STORED"
    FILE_RETRIEVED = "FILE_RETRIEVED"
    FILE_DELETED = "FILE_DELETED"
    FILE_ROTATED = "FILE_ROTATED"
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    DECRYPTION_FAILED = "DECRYPTION_FAILED"


@dataclass
class AuditEvent:
    """An auditable store event. Never carries plaintext or key material."""
    event_type: AuditEventType
    severity: AuditSeverity
    timestamp: datetime
    actor: Optional[str] = None
    collection: Optional[str] = None
    handle: Optional[str] = None
    description: str = ""
    details: Dict = field(default_factory=dict)

    event_id: str = field(default="")
    previous_hash: str = field(default="")
    event_hash: str = field(default="")

    def __post_init__(self):
        if not self.event_id:
            self.event_id = hashlib.sha256(
                f"{self.timestamp.isoformat()}{self.event_type.value}{os.urandom(8).hex()}".encode()
            ).hexdigest()[:16]

    def _hashable(self) -> Dict:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "timestamp": self.timestamp.isoformat(),
            "actor": self.actor,
            "collection": self.collection,
            "handle": self.handle,
            "description": self.description,
            "details": self.details,
            "previous_hash": self.previous_hash,
        }

    def compute_hash(self, previous_hash: str) -> str:
        """Chain this event onto ``previous_hash`` and return its hash."""
        self.previous_hash = previous_hash
        self.event_hash = _hash_record(self._hashable())
        return self.event_hash

    def to_dict(self) -> Dict:
        data = self._hashable()
        data["event_hash"] = self.event_hash
        return data


def _hash_record(data: Dict) -> str:
    return hashlib.sha256(json.dumps(data, sort_keys=True).encode()).hexdigest()


class TamperAwareAuditLog:
    """
    Append-only audit log with tamper detection.

    Features:
    - Chained hashes for integrity
    - Append-only (no deletion)
    - JSON Lines format
    - Thread-safe appends (store operations run in worker threads)
    """

    def __init__(self, log_path: Path):
        self._log_path = Path(log_path)
        self._lock = threading.Lock()
        self._last_hash = GENESIS_HASH
        self._event_count = 0

        self._log_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        self._load_chain()

    @property
    def path(self) -> Path:
        return self._log_path

    @property
    def event_count(self) -> int:
        return self._event_count

    def _load_chain(self):
        """Resume the chain from the last event on disk."""
        if not self._log_path.exists():
            return

        with open(self._log_path, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    _log.warning("Audit log %s contains an unreadable line", self._log_path)
                    continue
                self._last_hash = event.get("event_hash", self._last_hash)
                self._event_count += 1

    def log(
        self,
        event_type: AuditEventType,
        description: str,
        severity: AuditSeverity = AuditSeverity.INFO,
        actor: Optional[str] = None,
        collection: Optional[str] = None,
        handle: Optional[str] = None,
        details: Optional[Dict] = None,
    ) -> str:
        """
        Append an audit event.

        Returns:
            Event ID
        """
        event = AuditEvent(
            event_type=event_type,
            severity=severity,
            timestamp=datetime.now(timezone.utc),
            actor=actor,
            collection=collection,
            handle=handle,
            description=description,
            details=details or {},
        )

        with self._lock:
            event.compute_hash(self._last_hash)

            with open(self._log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(event.to_dict(), sort_keys=True) + "\n")
                f.flush()
                os.fsync(f.fileno())

            self._last_hash = event.event_hash
            self._event_count += 1

        return event.event_id

    def verify_integrity(self) -> tuple[bool, int]:
        """
        Verify the chain: every hash recomputes and links to its predecessor.

        Returns:
            Tuple of (is_valid, number of events verified)
        """
        if not self._log_path.exists():
            return True, 0

        previous_hash = GENESIS_HASH
        count = 0

        with open(self._log_path, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue

                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    return False, count

                stored_hash = event.pop("event_hash", "")
                if event.get("previous_hash") != previous_hash:
                    return False, count
                if _hash_record(event) != stored_hash:
                    return False, count

                previous_hash = stored_hash
                count += 1

        return True, count

    def get_events(
        self,
        event_type: Optional[AuditEventType] = None,
        handle: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict]:
        """Get filtered events (read-only)."""
        events: List[Dict] = []

        if not self._log_path.exists():
            return events

        with open(self._log_path, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue

                try:
                    event = json.loads(line)
                except json.JSONDecodeError:
                    continue

                if event_type and event.get("event_type") != event_type.value:
                    continue
                if handle and event.get("handle") != handle:
                    continue

                events.append(event)
                if len(events) >= limit:
                    break

        return events
