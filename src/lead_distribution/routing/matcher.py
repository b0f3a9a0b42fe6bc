"""Queue matching by priority and rule set."""

from typing import Iterable, Optional, List

from ..core.models import Lead, Queue
from ..rules.evaluator import matches_all


class QueueMatcher:
    """Find the highest-priority enabled queue whose rules all match."""

    def candidates(self, queues: Iterable[Queue]) -> List[Queue]:
        """Enabled queues, lowest priority number first. Ties keep input order."""
        return sorted(
            [q for q in queues if q.enabled],
            key=lambda q: q.priority
        )

    def match(self, lead: Lead, queues: Iterable[Queue]) -> Optional[Queue]:
        for queue in self.candidates(queues):
            if matches_all(lead, queue.rules):
                return queue
        return None
