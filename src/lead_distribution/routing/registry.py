"""Queue configuration operations with audit emission."""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Iterable

from ..audit.log import AuditLog, AuditEventType
from ..core.models import HeldLead, Lead, Member, Queue
from ..exceptions import LeadDistributionError, UnknownMemberError, UnknownQueueError
from .coordinator import DistributionCoordinator, DistributionResult
from .held import HeldLeadPool

logger = logging.getLogger(__name__)

EDITABLE_QUEUE_FIELDS = {
    "name", "priority", "enabled", "rules", "checkin_window", "advanced_config"
}
SYSTEM_ACTOR = "system"


class QueueRegistry:
    """Holds the queue snapshot of a running process.

    Configuration changes go through here so each one leaves an audit entry.
    Rotation state is left to the coordinator.
    """

    def __init__(
        self,
        queues: Optional[Iterable[Queue]] = None,
        coordinator: Optional[DistributionCoordinator] = None,
        audit_log: Optional[AuditLog] = None,
        held_pool: Optional[HeldLeadPool] = None
    ):
        self._queues: Dict[str, Queue] = {}
        for queue in queues or []:
            self._queues[queue.id] = queue
        self.coordinator = coordinator or DistributionCoordinator()
        self.audit_log = audit_log if audit_log is not None else AuditLog()
        self.held_pool = held_pool if held_pool is not None else HeldLeadPool()
        self._lock = threading.Lock()

    @property
    def queues(self) -> List[Queue]:
        """Queues in priority order."""
        with self._lock:
            snapshot = list(self._queues.values())
        return sorted(snapshot, key=lambda q: q.priority)

    def get(self, queue_id: str) -> Queue:
        queue = self._queues.get(queue_id)
        if queue is None:
            raise UnknownQueueError(queue_id)
        return queue

    def _member(self, queue: Queue, member_id: str) -> Member:
        member = queue.get_member(member_id)
        if member is None:
            raise UnknownMemberError(queue.id, member_id)
        return member

    def _check_order_free(self, queue: Queue, rotation_order: int, member_id: str):
        for other in queue.members:
            if other.id != member_id and other.rotation_order == rotation_order:
                raise LeadDistributionError(
                    f"Rotation order {rotation_order} already taken by {other.id} in queue {queue.id}"
                )

    # Queues

    def add_queue(self, queue: Queue, actor: str) -> Queue:
        with self._lock:
            if queue.id in self._queues:
                raise LeadDistributionError(f"Queue already exists: {queue.id}")
            self._queues[queue.id] = queue
        self.audit_log.record(
            AuditEventType.CREATED, actor, queue_id=queue.id,
            details={"name": queue.name, "priority": queue.priority}
        )
        return queue

    def update_queue(self, queue_id: str, actor: str, **changes) -> Queue:
        unknown = set(changes) - EDITABLE_QUEUE_FIELDS
        if unknown:
            raise LeadDistributionError(f"Fields not editable: {sorted(unknown)}")

        queue = self.get(queue_id)
        for name, value in changes.items():
            setattr(queue, name, value)

        self.audit_log.record(
            AuditEventType.EDITED, actor, queue_id=queue_id,
            details={"fields": sorted(changes)}
        )
        return queue

    def remove_queue(self, queue_id: str, actor: str) -> Queue:
        with self._lock:
            queue = self._queues.pop(queue_id, None)
        if queue is None:
            raise UnknownQueueError(queue_id)
        self.audit_log.record(
            AuditEventType.DELETED, actor, queue_id=queue_id, details={"name": queue.name}
        )
        return queue

    def reorder_queues(self, queue_ids: List[str], actor: str) -> List[Queue]:
        """Assign priorities 1..n in the given order."""
        for queue_id in queue_ids:
            self.get(queue_id)

        for position, queue_id in enumerate(queue_ids, start=1):
            self._queues[queue_id].priority = position

        self.audit_log.record(
            AuditEventType.REORDERED, actor, details={"order": list(queue_ids)}
        )
        return self.queues

    # Members

    def add_member(self, queue_id: str, member: Member, actor: str) -> Member:
        queue = self.get(queue_id)
        if queue.get_member(member.id) is not None:
            raise LeadDistributionError(f"Member {member.id} already in queue {queue_id}")

        if member.rotation_order <= 0:
            member.rotation_order = max((m.rotation_order for m in queue.members), default=0) + 1
        else:
            self._check_order_free(queue, member.rotation_order, member.id)
        queue.members.append(member)

        self.audit_log.record(
            AuditEventType.EDITED, actor, queue_id=queue_id, member_id=member.id,
            details={"action": "member_added", "rotationOrder": member.rotation_order}
        )
        return member

    def remove_member(self, queue_id: str, member_id: str, actor: str) -> Member:
        queue = self.get(queue_id)
        member = self._member(queue, member_id)
        queue.members.remove(member)
        self.coordinator.clear_pointer(queue, member_id)

        self.audit_log.record(
            AuditEventType.EDITED, actor, queue_id=queue_id, member_id=member_id,
            details={"action": "member_removed"}
        )
        return member

    def update_member(
        self,
        queue_id: str,
        member_id: str,
        actor: str,
        active: Optional[bool] = None,
        rotation_order: Optional[int] = None,
        open_lead_limit: Optional[int] = None,
        name: Optional[str] = None
    ) -> Member:
        queue = self.get(queue_id)
        member = self._member(queue, member_id)
        changed = {}

        if rotation_order is not None:
            self._check_order_free(queue, rotation_order, member_id)

        if active is not None:
            member.active = active
            changed["active"] = active
            if not active:
                self.coordinator.clear_pointer(queue, member_id)
        if rotation_order is not None:
            member.rotation_order = rotation_order
            changed["rotationOrder"] = rotation_order
        if open_lead_limit is not None:
            member.open_lead_limit = open_lead_limit
            changed["openLeadLimit"] = open_lead_limit
        if name is not None:
            member.name = name
            changed["name"] = name

        self.audit_log.record(
            AuditEventType.EDITED, actor, queue_id=queue_id, member_id=member_id,
            details={"action": "member_updated", "changes": changed}
        )
        return member

    def _set_presence(self, member_id: str, present: bool, actor: Optional[str], now: datetime):
        touched = []
        for queue in self.queues:
            member = queue.get_member(member_id)
            if member is None:
                continue
            member.available_now = present
            if present:
                member.last_check_in = now
            touched.append(queue.id)

        if not touched:
            raise UnknownMemberError("any queue", member_id)

        event_type = AuditEventType.CHECKIN if present else AuditEventType.CHECKOUT
        self.audit_log.record(
            event_type, actor or member_id, member_id=member_id,
            details={"queues": touched}, timestamp=now
        )
        return touched

    def check_in(self, member_id: str, actor: Optional[str] = None, now: Optional[datetime] = None) -> List[str]:
        """Mark a member present in every queue they belong to."""
        return self._set_presence(member_id, True, actor, now or datetime.now())

    def check_out(self, member_id: str, actor: Optional[str] = None, now: Optional[datetime] = None) -> List[str]:
        """Mark a member absent in every queue they belong to."""
        return self._set_presence(member_id, False, actor, now or datetime.now())

    # Distribution

    def distribute(self, lead: Lead, now: Optional[datetime] = None, actor: str = SYSTEM_ACTOR) -> DistributionResult:
        """Route a lead, hold it when nobody can take it, and audit the outcome."""
        now = now or datetime.now()
        result = self.coordinator.distribute(lead, self.queues, now)
        lead_id = str(lead.get("id", ""))
        queue_id = result.queue.id if result.queue else None

        if result.member is not None:
            self.audit_log.record(
                AuditEventType.DISTRIBUTED, actor, queue_id=queue_id,
                lead_id=lead_id, member_id=result.member.id, timestamp=now
            )
            return result

        self.held_pool.add(HeldLead(lead=lead, reason=result.reason, matched_queue_id=queue_id, held_at=now))
        self.audit_log.record(
            AuditEventType.HELD, actor, queue_id=queue_id, lead_id=lead_id,
            details={"reason": result.reason}, timestamp=now
        )
        return result
