"""Bulk reprocessing of held and archived leads."""

import logging
import math
import threading
import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Iterable, List, Optional, Union

from ..audit.log import AuditLog, AuditEventType
from ..config import settings
from ..core.models import HeldLead, Queue
from ..exceptions import ImportFormatError, InvalidDestinationError
from ..routing.coordinator import DistributionCoordinator
from ..routing.held import HeldLeadPool
from .csv_format import parse_import_csv, split_tags
from .models import (
    ArchivedLead,
    Destination,
    DestinationStrategy,
    ExecutionResult,
    ImportBatchPayload,
    ImportBatchResult,
    Job,
    JobStatus,
    LeadFilters,
    Preview,
    RetryReport,
    SearchResult,
    Selection,
)

logger = logging.getLogger(__name__)

SELECTION_CONSUMED = "selection already consumed"
IMPORT_OWNER = "Import process"
IMPORT_TAG = "imported"
SYSTEM_ACTOR = "system"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class RedistributionWorker:
    """Preview, execute and import over the held/archived lead pool.

    The pool is the archive plus every lead in the held pool. Leads are
    removed by id, so inserts made while a batch is being resolved never
    shift what the batch removes.
    """

    def __init__(
        self,
        archive: Optional[List[ArchivedLead]] = None,
        held_pool: Optional[HeldLeadPool] = None,
        audit_log: Optional[AuditLog] = None,
        coordinator: Optional[DistributionCoordinator] = None,
        known_destinations: Optional[Union[Iterable[str], Callable[[], Iterable[str]]]] = None,
        max_import_batch: Optional[int] = None,
        minutes_per_lead: Optional[float] = None,
        min_job_minutes: Optional[int] = None
    ):
        self._archive: List[ArchivedLead] = list(archive or [])
        self.held_pool = held_pool if held_pool is not None else HeldLeadPool()
        self.audit_log = audit_log if audit_log is not None else AuditLog()
        self.coordinator = coordinator or DistributionCoordinator()
        if known_destinations is not None and not callable(known_destinations):
            known_destinations = set(known_destinations)
        self.known_destinations = known_destinations
        self.max_import_batch = max_import_batch or settings.max_import_batch
        self.minutes_per_lead = minutes_per_lead if minutes_per_lead is not None else settings.minutes_per_lead
        self.min_job_minutes = min_job_minutes if min_job_minutes is not None else settings.min_job_minutes
        self.jobs: List[Job] = []
        self._lock = threading.RLock()

    @property
    def archive(self) -> List[ArchivedLead]:
        with self._lock:
            return list(self._archive)

    def _pool(self) -> List[ArchivedLead]:
        archived_ids = {lead.id for lead in self._archive}
        held = [
            ArchivedLead.from_held(entry) for entry in self.held_pool.snapshot()
            if entry.lead_id not in archived_ids
        ]
        return list(self._archive) + held

    def resolve(self, selection: Selection) -> List[ArchivedLead]:
        """Leads a selection refers to. Shared by preview and execute."""
        with self._lock:
            pool = self._pool()

        if selection.ids is not None:
            wanted = set(selection.ids)
            return [lead for lead in pool if lead.id in wanted]

        excluded = set(selection.excluded_ids)
        return [
            lead for lead in pool
            if selection.filters.matches(lead) and lead.id not in excluded
        ]

    def search(self, filters: Optional[LeadFilters] = None, page: int = 1, per_page: int = 10) -> SearchResult:
        """Filtered page of the pool plus pool-wide metadata."""
        filters = filters or LeadFilters()
        with self._lock:
            pool = self._pool()

        filtered = [lead for lead in pool if filters.matches(lead)]
        page = max(1, page)
        per_page = max(1, per_page)
        start = (page - 1) * per_page

        reason_counts = Counter(lead.reason for lead in pool)
        return SearchResult(
            items=filtered[start:start + per_page],
            total=len(filtered),
            reasons=[{"reason": r, "count": c} for r, c in reason_counts.items()],
            owners=list(dict.fromkeys(lead.owner for lead in pool if lead.owner)),
            queues=list(dict.fromkeys(lead.previous_queue for lead in pool if lead.previous_queue)),
            tags=list(dict.fromkeys(tag for lead in pool for tag in lead.tags)),
        )

    def _validate_destination(self, destination: Optional[Destination]):
        if destination is None or not str(destination.target_id or "").strip():
            raise InvalidDestinationError("Destination target is required")
        if not isinstance(destination.strategy, DestinationStrategy):
            raise InvalidDestinationError(f"Unknown destination strategy: {destination.strategy!r}")
        known = self.known_destinations
        if callable(known):
            known = set(known())
        if known is not None and destination.target_id not in known:
            raise InvalidDestinationError(f"Unknown destination: {destination.target_id}")

    def _build_preview(self, leads: List[ArchivedLead], destination: Destination, now: datetime) -> Preview:
        total = len(leads)
        duration = max(self.min_job_minutes, round_half_up(total * self.minutes_per_lead))
        reasons = Counter(lead.reason for lead in leads)
        return Preview(
            total_selected=total,
            distribution_by_destination=[{
                "targetId": destination.target_id,
                "targetName": destination.target_name,
                "leads": total,
            }],
            estimated_duration_minutes=duration,
            estimated_completion_at=now + timedelta(minutes=duration),
            reason_breakdown=[{"reason": r, "count": c} for r, c in reasons.items()],
            destination=destination,
        )

    def preview(self, selection: Selection, destination: Destination, now: Optional[datetime] = None) -> Preview:
        """Estimate a redistribution without touching the pool."""
        leads = self.resolve(selection)
        return self._build_preview(leads, destination, now or datetime.now())

    def execute(
        self,
        selection: Selection,
        destination: Destination,
        requested_by: str,
        filters_used: Optional[dict] = None,
        now: Optional[datetime] = None
    ) -> ExecutionResult:
        """Remove the selected leads from the pool and queue a job.

        Raises InvalidDestinationError before any change is made. A selection
        that no longer resolves to any lead is a no-op.
        """
        now = now or datetime.now()
        self._validate_destination(destination)

        with self._lock:
            leads = self.resolve(selection)
            if not leads:
                logger.info(f"Redistribution by {requested_by}: {SELECTION_CONSUMED}")
                return ExecutionResult(reason=SELECTION_CONSUMED)

            ids = {lead.id for lead in leads}
            self._archive = [lead for lead in self._archive if lead.id not in ids]
            self.held_pool.remove_many(ids)

            job = Job(
                id=f"job-{uuid.uuid4().hex[:12]}",
                status=JobStatus.QUEUED,
                total_leads=len(leads),
                destination=destination,
                created_at=now,
                requested_by=requested_by,
                filters_used=dict(filters_used or {}),
                lead_ids=[lead.id for lead in leads],
            )
            self.jobs.insert(0, job)

        audit_entry = self.audit_log.record(
            AuditEventType.REDISTRIBUTED,
            requested_by,
            details={
                "jobId": job.id,
                "totalLeads": job.total_leads,
                "destination": destination.to_dict(),
                "filters": job.filters_used,
                "message": f"Redistribution started to {destination.target_name or destination.target_id}",
            },
            timestamp=now,
        )
        logger.info(f"Queued job {job.id}: {job.total_leads} leads to {destination.target_id}")
        return ExecutionResult(job=job, audit_entry=audit_entry)

    def import_batch(self, payload: ImportBatchPayload, now: Optional[datetime] = None) -> ImportBatchResult:
        """Add synthetic or CSV-sourced leads to the front of the archive."""
        now = now or datetime.now()
        self._validate_destination(payload.destination)
        batch_id = f"batch-{uuid.uuid4().hex[:12]}"

        if payload.csv_text is not None:
            rows = parse_import_csv(payload.csv_text, self.max_import_batch)
        else:
            quantity = max(1, min(self.max_import_batch, round_half_up(payload.quantity)))
            prefix = payload.name or "Batch"
            rows = [{"name": f"{prefix} #{i + 1}"} for i in range(quantity)]

        created = []
        for i, row in enumerate(rows):
            lead_id = row.get("id") or f"import-{uuid.uuid4().hex[:8]}-{i}"
            tags = split_tags(row.get("tags"))
            if IMPORT_TAG not in tags:
                tags.append(IMPORT_TAG)
            created.append(ArchivedLead(
                id=lead_id,
                name=row["name"],
                email=row.get("email") or f"new-{lead_id}@example.com",
                reason=row.get("reason") or payload.reason,
                owner=IMPORT_OWNER,
                origin=row.get("origin") or payload.source,
                channel="Imported",
                previous_queue=payload.destination.target_name or payload.destination.target_id,
                archived_at=now,
                tags=tags,
                score=50 + (i % 25),
            ))

        with self._lock:
            taken = {lead.id for lead in self._pool()}
            seen = set()
            for lead in created:
                if lead.id in taken or lead.id in seen:
                    raise ImportFormatError(f"Duplicate lead id: {lead.id}")
                seen.add(lead.id)
            for lead in created:
                self._archive.insert(0, lead)

        logger.info(f"Imported batch {batch_id}: {len(created)} leads")
        return ImportBatchResult(batch_id=batch_id, created=len(created), leads=created)

    def retry_held(
        self,
        queues: Iterable[Queue],
        now: Optional[datetime] = None,
        actor: str = SYSTEM_ACTOR
    ) -> RetryReport:
        """Run every held lead through distribution again."""
        now = now or datetime.now()
        queues = list(queues)
        report = RetryReport()

        for entry in self.held_pool.snapshot():
            with self._lock:
                # execute may have taken the lead since the snapshot
                if entry.lead_id not in self.held_pool:
                    continue
                result = self.coordinator.distribute(entry.lead, queues, now)
                if result.member is not None:
                    self.held_pool.remove(entry.lead_id)
                else:
                    updated = self.held_pool.add(HeldLead(
                        lead=entry.lead,
                        reason=result.reason,
                        matched_queue_id=result.queue.id if result.queue else None,
                        held_at=entry.held_at,
                    ))

            if result.member is not None:
                self.audit_log.record(
                    AuditEventType.DISTRIBUTED, actor,
                    queue_id=result.queue.id, lead_id=entry.lead_id, member_id=result.member.id,
                    details={"retry": True, "previousReason": entry.reason},
                    timestamp=now,
                )
                report.distributed.append(result)
                report.distributed_leads.append(entry)
            else:
                report.still_held.append(updated)

        logger.info(
            f"Held retry: {len(report.distributed)} distributed, {len(report.still_held)} still held"
        )
        return report
