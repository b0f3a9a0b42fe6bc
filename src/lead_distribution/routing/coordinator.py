"""Lead distribution: queue matching plus rotation, serialized per queue."""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional

from ..core.models import Lead, Member, Queue, EscalationTarget
from ..scheduling.availability import within_business_hours
from .matcher import QueueMatcher
from .rotation import RotationScheduler, rerank_members

logger = logging.getLogger(__name__)

NO_MATCHING_QUEUE = "no matching queue"
NO_AVAILABLE_MEMBER = "no available member"
ESCALATION_DISABLED = "escalation disabled"
OUTSIDE_BUSINESS_HOURS = "outside business hours"
ROULETTE = "roulette"


@dataclass
class DistributionResult:
    """Outcome of routing one lead."""

    queue: Optional[Queue] = None
    member: Optional[Member] = None
    held: bool = False
    reason: Optional[str] = None

    @property
    def assigned(self) -> bool:
        return self.member is not None


class DistributionCoordinator:
    """Route leads to queues and members.

    The coordinator is the only writer of a queue's rotation pointer,
    ``received_count`` and member ``rotation_order``. Those writes happen
    under a per-queue lock, so concurrent arrivals on the same queue never
    pick the same member twice in a row. Matching runs outside the lock.
    """

    def __init__(
        self,
        matcher: Optional[QueueMatcher] = None,
        scheduler: Optional[RotationScheduler] = None
    ):
        self.matcher = matcher or QueueMatcher()
        self.scheduler = scheduler or RotationScheduler()
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _queue_lock(self, queue_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(queue_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[queue_id] = lock
            return lock

    def distribute(
        self,
        lead: Lead,
        queues: Iterable[Queue],
        now: Optional[datetime] = None
    ) -> DistributionResult:
        """Match a queue, pick the next member and advance the rotation."""
        now = now or datetime.now()
        lead_id = lead.get("id", "")

        queue = self.matcher.match(lead, queues)
        if queue is None:
            logger.info(f"Lead {lead_id}: {NO_MATCHING_QUEUE}")
            return DistributionResult(reason=NO_MATCHING_QUEUE)

        with self._queue_lock(queue.id):
            member = self.scheduler.select_next(queue, now)
            if member is None:
                logger.info(f"Lead {lead_id} held in queue {queue.id}: {NO_AVAILABLE_MEMBER}")
                return DistributionResult(queue=queue, held=True, reason=NO_AVAILABLE_MEMBER)
            self._record_assignment(queue, member, now)

        logger.info(f"Assigned lead {lead_id} to {member.id} via queue {queue.id}")
        return DistributionResult(queue=queue, member=member)

    def _record_assignment(self, queue: Queue, member: Member, now: datetime):
        """Advance the pointer and, unless positions are preserved, re-rank."""
        queue.next_member_id = member.id
        queue.received_count += 1

        if queue.advanced_config.preserve_position_when_unavailable:
            return

        demoted = [m.id for m in self.scheduler.unavailable_active(queue, now)]
        ordering = rerank_members(queue.members, demoted)
        for m in queue.members:
            m.rotation_order = ordering[m.id]
        if demoted:
            logger.debug(f"Queue {queue.id}: moved {demoted} to the back of the rotation")

    def escalate(
        self,
        lead: Lead,
        queue: Queue,
        timed_out_member_id: str,
        now: Optional[datetime] = None
    ) -> DistributionResult:
        """Apply the queue's escalation target after an attendance timeout."""
        now = now or datetime.now()
        config = queue.advanced_config
        lead_id = lead.get("id", "")

        if config.escalation_target == EscalationTarget.NONE:
            return DistributionResult(queue=queue, reason=ESCALATION_DISABLED)

        if not within_business_hours(config, now):
            return DistributionResult(queue=queue, held=True, reason=OUTSIDE_BUSINESS_HOURS)

        if config.escalation_target == EscalationTarget.ROULETTE:
            logger.info(f"Lead {lead_id} released to roulette from queue {queue.id}")
            return DistributionResult(queue=queue, held=True, reason=ROULETTE)

        with self._queue_lock(queue.id):
            member = self.scheduler.select_after(
                queue, timed_out_member_id, now, skip_ids={timed_out_member_id}
            )
            if member is None:
                return DistributionResult(queue=queue, held=True, reason=NO_AVAILABLE_MEMBER)
            self._record_assignment(queue, member, now)

        logger.info(f"Escalated lead {lead_id} from {timed_out_member_id} to {member.id}")
        return DistributionResult(queue=queue, member=member)

    def escalation_due_at(self, queue: Queue, assigned_at: datetime) -> Optional[datetime]:
        """When an unattended assignment should escalate, if ever."""
        config = queue.advanced_config
        if config.escalation_target == EscalationTarget.NONE or not config.attendance_timeout_minutes:
            return None
        minutes = config.attendance_timeout_minutes
        if config.escalation_target == EscalationTarget.NEXT_QUEUE:
            minutes += config.rotation_pause_minutes or 0
        return assigned_at + timedelta(minutes=minutes)

    def clear_pointer(self, queue: Queue, member_id: Optional[str] = None):
        """Clear the rotation pointer, or only if it references ``member_id``."""
        with self._queue_lock(queue.id):
            if member_id is None or queue.next_member_id == member_id:
                queue.next_member_id = None
