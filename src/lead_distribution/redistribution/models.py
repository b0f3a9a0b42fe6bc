"""Data models for bulk redistribution."""

import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Dict, List, Optional

from ..audit.log import AuditEntry
from ..core.models import HeldLead
from ..routing.coordinator import DistributionResult

HELD_STATUS = "held"


class DestinationStrategy(Enum):
    """Kind of redistribution target."""
    QUEUE = "queue"
    USER = "user"


class DestinationPriority(Enum):
    """How the destination spreads received leads."""
    BALANCED = "balanced"
    DESTINATION = "destination"


class JobStatus(Enum):
    """Lifecycle of a redistribution job, tracked by the job runner."""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


def normalize_text(value: Optional[str]) -> str:
    """Lowercase and strip accents for search."""
    if not value:
        return ""
    decomposed = unicodedata.normalize("NFD", value.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


@dataclass
class ArchivedLead:
    """A lead sitting in the archive, eligible for redistribution."""

    id: str
    name: str = ""
    email: str = ""
    reason: str = ""
    owner: str = ""
    origin: str = ""
    channel: str = ""
    previous_queue: str = ""
    archived_at: datetime = field(default_factory=datetime.now)
    tags: List[str] = field(default_factory=list)
    score: int = 0
    status: str = "archived"
    attributes: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_held(cls, held: HeldLead) -> "ArchivedLead":
        """View a held lead as an archive entry."""
        lead = held.lead
        tags = lead.get("tags") or []
        return cls(
            id=held.lead_id,
            name=str(lead.get("name", "")),
            email=str(lead.get("email", "")),
            reason=held.reason or "",
            owner=str(lead.get("owner", "")),
            origin=str(lead.get("source", lead.get("origin", ""))),
            previous_queue=held.matched_queue_id or "",
            archived_at=held.held_at,
            tags=list(tags) if isinstance(tags, (list, tuple)) else [str(tags)],
            status=HELD_STATUS,
            attributes=dict(lead),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "reason": self.reason,
            "owner": self.owner,
            "origin": self.origin,
            "channel": self.channel,
            "previousQueue": self.previous_queue,
            "archivedAt": self.archived_at.isoformat(),
            "tags": list(self.tags),
            "score": self.score,
            "status": self.status,
            "attributes": dict(self.attributes),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ArchivedLead":
        archived_at = data.get("archivedAt")
        return cls(
            id=str(data["id"]),
            name=data.get("name", ""),
            email=data.get("email", ""),
            reason=data.get("reason", ""),
            owner=data.get("owner", ""),
            origin=data.get("origin", ""),
            channel=data.get("channel", ""),
            previous_queue=data.get("previousQueue", ""),
            archived_at=datetime.fromisoformat(archived_at) if archived_at else datetime.now(),
            tags=list(data.get("tags") or []),
            score=int(data.get("score") or 0),
            status=data.get("status", "archived"),
            attributes=dict(data.get("attributes") or {}),
        )


@dataclass
class LeadFilters:
    """Archive filters. Every provided filter must hold."""

    reason: Optional[str] = None
    owner: Optional[str] = None
    previous_queue: Optional[str] = None
    tag: Optional[str] = None
    status: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    search: Optional[str] = None

    def matches(self, lead: ArchivedLead) -> bool:
        if self.reason and lead.reason != self.reason:
            return False
        if self.owner and lead.owner != self.owner:
            return False
        if self.previous_queue and lead.previous_queue != self.previous_queue:
            return False
        if self.tag and self.tag not in lead.tags:
            return False
        if self.status and lead.status != self.status:
            return False
        if self.start_date and lead.archived_at < datetime.combine(self.start_date, time.min):
            return False
        if self.end_date and lead.archived_at > datetime.combine(self.end_date, time.max):
            return False
        if self.search:
            term = normalize_text(self.search)
            fields = [lead.name, lead.email, lead.origin, lead.owner, lead.reason]
            if not any(term in normalize_text(f) for f in fields):
                return False
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "reason": self.reason,
            "owner": self.owner,
            "previousQueue": self.previous_queue,
            "tag": self.tag,
            "status": self.status,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "search": self.search,
        }
        return {k: v for k, v in data.items() if v}


@dataclass
class Selection:
    """Either an explicit id list or a filter with exclusions."""

    ids: Optional[List[str]] = None
    filters: LeadFilters = field(default_factory=LeadFilters)
    excluded_ids: List[str] = field(default_factory=list)

    @classmethod
    def by_ids(cls, ids: List[str]) -> "Selection":
        return cls(ids=list(ids))

    @classmethod
    def matching(cls, filters: LeadFilters, excluded_ids: Optional[List[str]] = None) -> "Selection":
        return cls(filters=filters, excluded_ids=list(excluded_ids or []))

    @property
    def mode(self) -> str:
        return "ids" if self.ids is not None else "all"


@dataclass
class Destination:
    """Where redistributed leads go."""

    target_id: str
    target_name: str = ""
    strategy: DestinationStrategy = DestinationStrategy.QUEUE
    priority: DestinationPriority = DestinationPriority.BALANCED
    preserve_ownership: bool = False
    notify_owners: bool = True
    notes: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "targetId": self.target_id,
            "targetName": self.target_name,
            "priority": self.priority.value,
            "preserveOwnership": self.preserve_ownership,
            "notifyOwners": self.notify_owners,
            "notes": self.notes,
        }


@dataclass
class Preview:
    """Read-only estimate of a redistribution."""

    total_selected: int
    distribution_by_destination: List[Dict[str, Any]]
    estimated_duration_minutes: int
    estimated_completion_at: datetime
    reason_breakdown: List[Dict[str, Any]]
    destination: Destination


@dataclass
class Job:
    """A queued redistribution. Completion is tracked by the job runner."""

    id: str
    status: JobStatus
    total_leads: int
    destination: Destination
    created_at: datetime
    requested_by: str = ""
    filters_used: Dict[str, Any] = field(default_factory=dict)
    lead_ids: List[str] = field(default_factory=list)


@dataclass
class ExecutionResult:
    """Outcome of ``execute``. ``job`` is None when nothing was selected."""

    job: Optional[Job] = None
    audit_entry: Optional[AuditEntry] = None
    reason: Optional[str] = None

    @property
    def total_leads(self) -> int:
        return self.job.total_leads if self.job else 0


@dataclass
class ImportBatchPayload:
    """Request to add a batch of leads to the archive."""

    destination: Destination
    quantity: int = 20
    name: str = ""
    source: str = "Import"
    reason: str = "New batch"
    csv_text: Optional[str] = None


@dataclass
class ImportBatchResult:
    batch_id: str
    created: int
    leads: List[ArchivedLead]


@dataclass
class SearchResult:
    """A page of archive leads plus pool-wide metadata."""

    items: List[ArchivedLead]
    total: int
    reasons: List[Dict[str, Any]]
    owners: List[str]
    queues: List[str]
    tags: List[str]


@dataclass
class RetryReport:
    """Outcome of retrying the held pool."""

    distributed: List[DistributionResult] = field(default_factory=list)
    distributed_leads: List[HeldLead] = field(default_factory=list)
    still_held: List[HeldLead] = field(default_factory=list)
