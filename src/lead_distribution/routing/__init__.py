"""Lead routing: queue matching, rotation and distribution."""

from .matcher import QueueMatcher
from .rotation import RotationScheduler, rerank_members
from .coordinator import (
    DistributionCoordinator,
    DistributionResult,
    NO_MATCHING_QUEUE,
    NO_AVAILABLE_MEMBER,
)
from .held import HeldLeadPool
from .registry import QueueRegistry

__all__ = [
    "QueueMatcher",
    "RotationScheduler",
    "rerank_members",
    "DistributionCoordinator",
    "DistributionResult",
    "NO_MATCHING_QUEUE",
    "NO_AVAILABLE_MEMBER",
    "HeldLeadPool",
    "QueueRegistry",
]
