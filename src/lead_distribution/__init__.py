"""Lead distribution engine.

Routes incoming leads to queues by rule, picks the next available member
in round-robin rotation, holds leads nobody can take and redistributes
held or archived leads in bulk.
"""

__version__ = "1.0.0"

from .core.models import (
    AdvancedConfig,
    CheckinWindow,
    EscalationTarget,
    HeldLead,
    Lead,
    Member,
    Queue,
)
from .routing import DistributionCoordinator, DistributionResult, QueueRegistry
from .redistribution import RedistributionWorker
from .audit import AuditLog, AuditEntry, AuditEventType

__all__ = [
    "AdvancedConfig",
    "CheckinWindow",
    "EscalationTarget",
    "HeldLead",
    "Lead",
    "Member",
    "Queue",
    "DistributionCoordinator",
    "DistributionResult",
    "QueueRegistry",
    "RedistributionWorker",
    "AuditLog",
    "AuditEntry",
    "AuditEventType",
]
