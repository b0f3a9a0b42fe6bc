"""Bulk redistribution of held and archived leads."""

from .models import (
    ArchivedLead,
    Destination,
    DestinationPriority,
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
from .csv_format import parse_import_csv, write_leads_csv
from .worker import RedistributionWorker, SELECTION_CONSUMED

__all__ = [
    "ArchivedLead",
    "Destination",
    "DestinationPriority",
    "DestinationStrategy",
    "ExecutionResult",
    "ImportBatchPayload",
    "ImportBatchResult",
    "Job",
    "JobStatus",
    "LeadFilters",
    "Preview",
    "RetryReport",
    "SearchResult",
    "Selection",
    "parse_import_csv",
    "write_leads_csv",
    "RedistributionWorker",
    "SELECTION_CONSUMED",
]
