"""Shared fixtures."""

import tempfile
from datetime import datetime
from pathlib import Path

import pytest

from lead_distribution.config import reset_settings
from lead_distribution.core.models import Member, Queue
from lead_distribution.rules import parse_rule

# 2024-01-01 is a Monday
NOW = datetime(2024, 1, 1, 10, 0)


def make_queue(queue_id="q1", priority=1, member_ids=("m1", "m2", "m3"), rules=None, **kwargs):
    """Queue with members at rotation orders 1..n."""
    members = [Member(id=mid, name=mid.upper(), rotation_order=i) for i, mid in enumerate(member_ids, start=1)]
    return Queue(
        id=queue_id,
        name=kwargs.pop("name", queue_id.upper()),
        priority=priority,
        rules=[parse_rule(r) for r in rules or []],
        members=members,
        **kwargs
    )


@pytest.fixture
def temp_data_dir():
    """Create temporary data directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Keep settings from leaking between tests."""
    for name in ("LEAD_DIST_MAX_IMPORT_BATCH", "LEAD_DIST_MINUTES_PER_LEAD",
                 "LEAD_DIST_MIN_JOB_MINUTES", "LEAD_DIST_AUDIT_RETENTION"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()
