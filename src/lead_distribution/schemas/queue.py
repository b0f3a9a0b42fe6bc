"""Pydantic models for queue configuration snapshots.

Snapshots use camelCase keys, matching what the admin surface sends.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ..core.models import (
    AdvancedConfig,
    CheckinWindow,
    EscalationTarget,
    Lead,
    Member,
    Queue,
)
from ..exceptions import ConfigurationError
from ..rules.evaluator import parse_rule, rule_to_dict


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RuleConfig(BaseModel):
    """Raw rule mapping. Values are not typed here so a bad rule fails closed."""

    model_config = ConfigDict(populate_by_name=True)

    field: Any = Field(default="", validation_alias=AliasChoices("field", "campo"))
    operator: Any = Field(default=None, validation_alias=AliasChoices("operator", "operador"))
    value: Any = Field(default=None, validation_alias=AliasChoices("value", "valor"))

    def to_domain(self):
        # Bad rules still load; they come back as InvalidRule and never match.
        return parse_rule({"field": self.field, "operator": self.operator, "value": self.value})


class MemberConfig(CamelModel):
    id: str
    name: str = ""
    active: bool = True
    available_now: bool = False
    rotation_order: int = 0
    last_check_in: Optional[datetime] = None
    open_lead_limit: Optional[int] = None

    def to_domain(self) -> Member:
        return Member(**self.model_dump())

    @classmethod
    def from_domain(cls, member: Member) -> "MemberConfig":
        return cls(
            id=member.id,
            name=member.name,
            active=member.active,
            available_now=member.available_now,
            rotation_order=member.rotation_order,
            last_check_in=member.last_check_in,
            open_lead_limit=member.open_lead_limit,
        )


class CheckinWindowConfig(CamelModel):
    enabled: bool = False
    days_of_week: List[Union[int, str]] = Field(default_factory=list)
    start_time: str = "00:00"
    end_time: str = "23:59"
    require_checkin: bool = False
    qr_enabled: bool = False

    def to_domain(self) -> CheckinWindow:
        return CheckinWindow(**self.model_dump())

    @classmethod
    def from_domain(cls, window: CheckinWindow) -> "CheckinWindowConfig":
        return cls(
            enabled=window.enabled,
            days_of_week=list(window.days_of_week),
            start_time=window.start_time,
            end_time=window.end_time,
            require_checkin=window.require_checkin,
            qr_enabled=window.qr_enabled,
        )


class AdvancedConfigConfig(CamelModel):
    redistribution_active: bool = False
    preserve_position_when_unavailable: bool = True
    escalation_target: EscalationTarget = EscalationTarget.NONE
    attendance_timeout_minutes: Optional[int] = None
    rotation_pause_minutes: Optional[int] = None
    business_hours_start: Optional[str] = None
    business_hours_end: Optional[str] = None

    def to_domain(self) -> AdvancedConfig:
        return AdvancedConfig(**self.model_dump())

    @classmethod
    def from_domain(cls, config: AdvancedConfig) -> "AdvancedConfigConfig":
        return cls(
            redistribution_active=config.redistribution_active,
            preserve_position_when_unavailable=config.preserve_position_when_unavailable,
            escalation_target=config.escalation_target,
            attendance_timeout_minutes=config.attendance_timeout_minutes,
            rotation_pause_minutes=config.rotation_pause_minutes,
            business_hours_start=config.business_hours_start,
            business_hours_end=config.business_hours_end,
        )


class QueueConfig(CamelModel):
    id: str
    name: str
    priority: int = 1
    rules: List[RuleConfig] = Field(default_factory=list)
    members: List[MemberConfig] = Field(default_factory=list)
    next_member_id: Optional[str] = None
    enabled: bool = True
    checkin_window: CheckinWindowConfig = Field(default_factory=CheckinWindowConfig)
    advanced_config: AdvancedConfigConfig = Field(default_factory=AdvancedConfigConfig)
    received_count: int = 0

    def to_domain(self) -> Queue:
        return Queue(
            id=self.id,
            name=self.name,
            priority=self.priority,
            rules=[r.to_domain() for r in self.rules],
            members=[m.to_domain() for m in self.members],
            next_member_id=self.next_member_id,
            enabled=self.enabled,
            checkin_window=self.checkin_window.to_domain(),
            advanced_config=self.advanced_config.to_domain(),
            received_count=self.received_count,
        )

    @classmethod
    def from_domain(cls, queue: Queue) -> "QueueConfig":
        return cls(
            id=queue.id,
            name=queue.name,
            priority=queue.priority,
            rules=[RuleConfig(**rule_to_dict(r)) for r in queue.rules],
            members=[MemberConfig.from_domain(m) for m in queue.members],
            next_member_id=queue.next_member_id,
            enabled=queue.enabled,
            checkin_window=CheckinWindowConfig.from_domain(queue.checkin_window),
            advanced_config=AdvancedConfigConfig.from_domain(queue.advanced_config),
            received_count=queue.received_count,
        )


class LeadPayload(BaseModel):
    """Incoming lead: an id plus any attributes."""

    model_config = ConfigDict(extra="allow")

    id: Union[str, int]

    def to_domain(self) -> Lead:
        data = self.model_dump()
        data["id"] = str(self.id)
        return data


def load_queues(data: List[Dict[str, Any]]) -> List[Queue]:
    """Validate a queue snapshot. Raises ConfigurationError."""
    try:
        return [QueueConfig.model_validate(item).to_domain() for item in data]
    except ValidationError as e:
        raise ConfigurationError(f"Invalid queue configuration: {e}")


def dump_queues(queues: List[Queue]) -> List[Dict[str, Any]]:
    return [QueueConfig.from_domain(q).model_dump(mode="json", by_alias=True) for q in queues]


def parse_lead(data: Dict[str, Any]) -> Lead:
    try:
        return LeadPayload.model_validate(data).to_domain()
    except ValidationError as e:
        raise ConfigurationError(f"Invalid lead: {e}")
