"""Error taxonomy for the distribution engine.

Expected outcomes ("no matching queue", "no available member", an already
consumed selection) are returned as results, never raised. Only operations
that mutate a pool or load configuration raise these.
"""


class LeadDistributionError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(LeadDistributionError):
    """Invalid settings value or configuration snapshot."""


class UnknownQueueError(LeadDistributionError):
    """A queue id that is not registered."""

    def __init__(self, queue_id: str):
        super().__init__(f"Queue not found: {queue_id}")
        self.queue_id = queue_id


class UnknownMemberError(LeadDistributionError):
    """A member id that is not part of the queue."""

    def __init__(self, queue_id: str, member_id: str):
        super().__init__(f"Member {member_id} not found in queue {queue_id}")
        self.queue_id = queue_id
        self.member_id = member_id


class RedistributionError(LeadDistributionError):
    """A bulk pool mutation was rejected. The pool is left unchanged."""


class InvalidDestinationError(RedistributionError):
    """Destination missing or not one of the known targets."""


class ImportFormatError(RedistributionError):
    """Bulk import CSV could not be parsed."""
