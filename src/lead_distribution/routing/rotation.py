"""Round-robin rotation among available queue members."""

from datetime import datetime
from typing import Collection, Dict, List, Optional, Sequence

from ..core.models import Member, Queue
from ..scheduling.availability import AvailabilityCalculator


def by_rotation(members: Sequence[Member]) -> List[Member]:
    """Sort by rotation order. Duplicate orders keep list order."""
    return sorted(members, key=lambda m: m.rotation_order)


def rerank_members(members: Sequence[Member], demoted_ids: Collection[str]) -> Dict[str, int]:
    """Compute a dense rotation ordering with demoted members at the back.

    Active members keep their relative order and are numbered from 1, demoted
    ones follow in their original relative order. Inactive members are
    numbered after every active member so orders stay unique in the queue.
    Returns ``{member_id: rotation_order}``; members are not modified.
    """
    active = by_rotation([m for m in members if m.active])
    inactive = by_rotation([m for m in members if not m.active])

    staying = [m for m in active if m.id not in demoted_ids]
    demoted = [m for m in active if m.id in demoted_ids]

    ordering = {}
    for position, member in enumerate(staying + demoted + inactive, start=1):
        ordering[member.id] = position
    return ordering


class RotationScheduler:
    """Select the next member of a queue's rotation."""

    def __init__(self, calculator: Optional[AvailabilityCalculator] = None):
        self.calculator = calculator or AvailabilityCalculator()

    def eligible(self, queue: Queue, now: Optional[datetime] = None) -> List[Member]:
        """Active, available members in rotation order."""
        now = now or datetime.now()
        return by_rotation([
            m for m in queue.members
            if m.active and self.calculator.is_available(m, queue.checkin_window, now)
        ])

    def select_after(
        self,
        queue: Queue,
        member_id: Optional[str],
        now: Optional[datetime] = None,
        skip_ids: Collection[str] = ()
    ) -> Optional[Member]:
        """First eligible member after ``member_id``, wrapping around.

        Falls back to the start of the rotation when ``member_id`` is unset or
        no longer eligible. Members in ``skip_ids`` are never returned.
        """
        eligible = self.eligible(queue, now)
        if not eligible:
            return None

        start = 0
        if member_id:
            for index, member in enumerate(eligible):
                if member.id == member_id:
                    start = index + 1
                    break

        count = len(eligible)
        for offset in range(count):
            candidate = eligible[(start + offset) % count]
            if candidate.id not in skip_ids:
                return candidate
        return None

    def select_next(self, queue: Queue, now: Optional[datetime] = None) -> Optional[Member]:
        """Next member after the queue's rotation pointer."""
        return self.select_after(queue, queue.next_member_id, now)

    def unavailable_active(self, queue: Queue, now: Optional[datetime] = None) -> List[Member]:
        """Active members that cannot currently receive leads."""
        now = now or datetime.now()
        return [
            m for m in queue.members
            if m.active and not self.calculator.is_available(m, queue.checkin_window, now)
        ]
