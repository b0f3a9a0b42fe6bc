"""Wires the engine components over a state store."""

import logging
from pathlib import Path
from typing import Optional, Set, Union

from .audit.log import AuditLog
from .routing.coordinator import DistributionCoordinator
from .routing.held import HeldLeadPool
from .routing.registry import QueueRegistry
from .redistribution.worker import RedistributionWorker
from .storage.json_store import JsonStateStore

logger = logging.getLogger(__name__)


class DistributionEngine:
    """Registry, worker and audit log sharing one held pool and coordinator."""

    def __init__(self, store: Optional[JsonStateStore] = None):
        self.store = store or JsonStateStore()
        self.audit_log = AuditLog(self.store.load_audit())
        self.held_pool = HeldLeadPool(self.store.load_held())
        self.coordinator = DistributionCoordinator()
        self.registry = QueueRegistry(
            self.store.load_queues(), self.coordinator, self.audit_log, self.held_pool
        )
        self.worker = RedistributionWorker(
            archive=self.store.load_archive(),
            held_pool=self.held_pool,
            audit_log=self.audit_log,
            coordinator=self.coordinator,
            known_destinations=self.destination_ids,
        )
        logger.debug(
            f"Engine loaded from {self.store.data_dir}: {len(self.registry.queues)} queues, "
            f"{len(self.held_pool)} held, {len(self.worker.archive)} archived"
        )

    @classmethod
    def open(cls, data_dir: Optional[Union[str, Path]] = None) -> "DistributionEngine":
        return cls(JsonStateStore(data_dir))

    def destination_ids(self) -> Set[str]:
        """Queue ids and member ids a redistribution may target."""
        ids = set()
        for queue in self.registry.queues:
            ids.add(queue.id)
            ids.update(m.id for m in queue.members)
        return ids

    def save(self):
        self.store.save_queues(self.registry.queues)
        self.store.save_archive(self.worker.archive)
        self.store.save_held(self.held_pool.snapshot())
        self.store.save_audit(self.audit_log.entries())
