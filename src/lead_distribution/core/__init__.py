"""Core domain models."""

from .models import (
    Lead,
    Member,
    CheckinWindow,
    AdvancedConfig,
    EscalationTarget,
    Queue,
    HeldLead,
)

__all__ = [
    "Lead",
    "Member",
    "CheckinWindow",
    "AdvancedConfig",
    "EscalationTarget",
    "Queue",
    "HeldLead",
]
