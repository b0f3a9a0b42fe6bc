"""Pool of leads waiting for a destination."""

import logging
import threading
from typing import Dict, List, Optional

from ..core.models import HeldLead

logger = logging.getLogger(__name__)


class HeldLeadPool:
    """Held leads keyed by lead id, kept in insertion order.

    Inserting a lead that is already held replaces the entry in place and
    bumps its attempt count.
    """

    def __init__(self, held: Optional[List[HeldLead]] = None):
        self._lock = threading.Lock()
        self._leads: Dict[str, HeldLead] = {}
        for entry in held or []:
            self._leads[entry.lead_id] = entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._leads)

    def __contains__(self, lead_id: str) -> bool:
        with self._lock:
            return lead_id in self._leads

    def add(self, entry: HeldLead) -> HeldLead:
        with self._lock:
            previous = self._leads.get(entry.lead_id)
            if previous is not None:
                entry.attempts = previous.attempts + 1
            self._leads[entry.lead_id] = entry
        logger.info(f"Lead {entry.lead_id} held: {entry.reason}")
        return entry

    def get(self, lead_id: str) -> Optional[HeldLead]:
        with self._lock:
            return self._leads.get(lead_id)

    def remove(self, lead_id: str) -> Optional[HeldLead]:
        with self._lock:
            return self._leads.pop(lead_id, None)

    def remove_many(self, lead_ids) -> List[HeldLead]:
        removed = []
        with self._lock:
            for lead_id in lead_ids:
                entry = self._leads.pop(lead_id, None)
                if entry is not None:
                    removed.append(entry)
        return removed

    def snapshot(self) -> List[HeldLead]:
        """Copy of the held entries in insertion order."""
        with self._lock:
            return list(self._leads.values())
