"""Append-only audit trail for distribution events."""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class AuditEventType(Enum):
    """Kinds of audited events."""
    CREATED = "created"
    EDITED = "edited"
    DELETED = "deleted"
    REDISTRIBUTED = "redistributed"
    REORDERED = "reordered"
    CHECKIN = "checkin"
    CHECKOUT = "checkout"
    DISTRIBUTED = "distributed"
    HELD = "held"


@dataclass(frozen=True)
class AuditEntry:
    """A single audited event. Never mutated after creation."""

    id: str
    type: AuditEventType
    actor: str
    timestamp: datetime
    queue_id: Optional[str] = None
    lead_id: Optional[str] = None
    member_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "actor": self.actor,
            "timestamp": self.timestamp.isoformat(),
            "queueId": self.queue_id,
            "leadId": self.lead_id,
            "memberId": self.member_id,
            "details": dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        return cls(
            id=data["id"],
            type=AuditEventType(data["type"]),
            actor=data.get("actor", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            queue_id=data.get("queueId"),
            lead_id=data.get("leadId"),
            member_id=data.get("memberId"),
            details=data.get("details") or {},
        )


class AuditLog:
    """Ordered, append-only audit stream with subscribers."""

    def __init__(self, entries: Optional[List[AuditEntry]] = None):
        self._entries: List[AuditEntry] = list(entries or [])
        self._listeners: List[Callable[[AuditEntry], None]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def subscribe(self, listener: Callable[[AuditEntry], None]):
        """Receive every entry recorded from now on."""
        self._listeners.append(listener)

    def record(
        self,
        event_type: AuditEventType,
        actor: str,
        queue_id: Optional[str] = None,
        lead_id: Optional[str] = None,
        member_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None
    ) -> AuditEntry:
        """Append an entry and notify subscribers."""
        entry = AuditEntry(
            id=f"audit-{uuid.uuid4().hex[:12]}",
            type=event_type,
            actor=actor,
            timestamp=timestamp or datetime.now(),
            queue_id=queue_id,
            lead_id=lead_id,
            member_id=member_id,
            details=dict(details or {}),
        )
        with self._lock:
            self._entries.append(entry)

        for listener in list(self._listeners):
            try:
                listener(entry)
            except Exception:
                logger.exception(f"Audit listener failed on entry {entry.id}")

        return entry

    def entries(self) -> List[AuditEntry]:
        """All entries, oldest first."""
        with self._lock:
            return list(self._entries)

    def query(
        self,
        event_type: Optional[AuditEventType] = None,
        actor: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        queue_id: Optional[str] = None,
        page: int = 1,
        per_page: int = 10
    ) -> Tuple[List[AuditEntry], int]:
        """Filter newest first and return ``(page_items, total)``."""
        with self._lock:
            filtered = list(reversed(self._entries))

        if event_type:
            filtered = [e for e in filtered if e.type == event_type]
        if actor:
            needle = actor.lower()
            filtered = [e for e in filtered if needle in e.actor.lower()]
        if start:
            filtered = [e for e in filtered if e.timestamp >= start]
        if end:
            filtered = [e for e in filtered if e.timestamp <= end]
        if queue_id:
            filtered = [e for e in filtered if e.queue_id == queue_id]

        page = max(1, page)
        per_page = max(1, per_page)
        offset = (page - 1) * per_page
        return filtered[offset:offset + per_page], len(filtered)
