"""Domain models for queues, members and held leads."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict, Any

from ..rules.evaluator import Rule

# Open attribute bag produced by the ingestion layer; always carries "id".
Lead = Dict[str, Any]


class EscalationTarget(Enum):
    """Where a lead goes when the assigned agent does not attend it."""
    ROULETTE = "roulette"
    NEXT_QUEUE = "nextQueue"
    NONE = "none"


@dataclass
class Member:
    """Agent assigned to a queue."""

    id: str
    name: str = ""
    active: bool = True
    available_now: bool = False  # explicit check-in state
    rotation_order: int = 0
    last_check_in: Optional[datetime] = None
    open_lead_limit: Optional[int] = None


@dataclass
class CheckinWindow:
    """Time window and check-in requirements gating availability."""

    enabled: bool = False
    days_of_week: List[Any] = field(default_factory=list)
    start_time: str = "00:00"
    end_time: str = "23:59"
    require_checkin: bool = False
    qr_enabled: bool = False


@dataclass
class AdvancedConfig:
    """Redistribution and escalation behaviour of a queue."""

    redistribution_active: bool = False
    preserve_position_when_unavailable: bool = True
    escalation_target: EscalationTarget = EscalationTarget.NONE
    attendance_timeout_minutes: Optional[int] = None
    rotation_pause_minutes: Optional[int] = None
    business_hours_start: Optional[str] = None
    business_hours_end: Optional[str] = None


@dataclass
class Queue:
    """Routing bucket with rules, members and rotation state.

    ``next_member_id`` points at the member who received the last lead. Only
    the DistributionCoordinator writes it.
    """

    id: str
    name: str
    priority: int = 1  # 1 = highest
    rules: List[Rule] = field(default_factory=list)
    members: List[Member] = field(default_factory=list)
    next_member_id: Optional[str] = None
    enabled: bool = True
    checkin_window: CheckinWindow = field(default_factory=CheckinWindow)
    advanced_config: AdvancedConfig = field(default_factory=AdvancedConfig)
    received_count: int = 0

    def get_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    @property
    def active_members(self) -> List[Member]:
        return [m for m in self.members if m.active]


@dataclass
class HeldLead:
    """A lead nobody could claim ("represado")."""

    lead: Lead
    reason: str
    matched_queue_id: Optional[str] = None
    held_at: datetime = field(default_factory=datetime.now)
    attempts: int = 0

    @property
    def lead_id(self) -> str:
        return str(self.lead.get("id", ""))
