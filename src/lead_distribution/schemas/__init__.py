"""Pydantic request and snapshot models."""

from .queue import (
    AdvancedConfigConfig,
    CheckinWindowConfig,
    LeadPayload,
    MemberConfig,
    QueueConfig,
    RuleConfig,
    dump_queues,
    load_queues,
    parse_lead,
)
from .redistribution import (
    DestinationPayload,
    FiltersPayload,
    ImportBatchRequest,
    SelectionPayload,
    parse_destination,
    parse_selection,
)

__all__ = [
    "AdvancedConfigConfig",
    "CheckinWindowConfig",
    "LeadPayload",
    "MemberConfig",
    "QueueConfig",
    "RuleConfig",
    "dump_queues",
    "load_queues",
    "parse_lead",
    "DestinationPayload",
    "FiltersPayload",
    "ImportBatchRequest",
    "SelectionPayload",
    "parse_destination",
    "parse_selection",
]
