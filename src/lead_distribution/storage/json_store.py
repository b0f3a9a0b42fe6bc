"""JSON file persistence for queues, the archive, held leads and audit."""

import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..audit.log import AuditEntry
from ..config import settings
from ..core.models import HeldLead, Queue
from ..redistribution.models import ArchivedLead
from ..schemas.queue import dump_queues, load_queues

logger = logging.getLogger(__name__)

QUEUES_FILE = "queues.json"
ARCHIVE_FILE = "archive.json"
HELD_FILE = "held.json"
AUDIT_FILE = "audit.json"


def held_to_dict(entry: HeldLead) -> Dict[str, Any]:
    return {
        "lead": entry.lead,
        "reason": entry.reason,
        "matchedQueueId": entry.matched_queue_id,
        "heldAt": entry.held_at.isoformat(),
        "attempts": entry.attempts,
    }


def held_from_dict(data: Dict[str, Any]) -> HeldLead:
    return HeldLead(
        lead=dict(data["lead"]),
        reason=data.get("reason", ""),
        matched_queue_id=data.get("matchedQueueId"),
        held_at=datetime.fromisoformat(data["heldAt"]) if data.get("heldAt") else datetime.now(),
        attempts=int(data.get("attempts") or 0),
    )


class JsonStateStore:
    """One JSON file per collection under ``data_dir``.

    Missing files load as empty collections. A file that cannot be read is
    logged and treated as empty so the engine can still start.
    """

    def __init__(self, data_dir: Optional[Union[str, Path]] = None, audit_retention: Optional[int] = None):
        self.data_dir = Path(data_dir) if data_dir else Path(settings.data_dir)
        self.audit_retention = audit_retention or settings.audit_retention

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _load_data(self, name: str) -> List[Dict[str, Any]]:
        path = self._path(name)
        if not path.exists():
            return []
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error loading {path}: {e}")
            return []
        if not isinstance(data, list):
            logger.error(f"Error loading {path}: expected a list")
            return []
        return data

    def _save_data(self, name: str, data: List[Dict[str, Any]]):
        os.makedirs(self.data_dir, exist_ok=True)
        path = self._path(name)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    def load_queues(self) -> List[Queue]:
        """Raises ConfigurationError when the snapshot is invalid."""
        return load_queues(self._load_data(QUEUES_FILE))

    def save_queues(self, queues: List[Queue]):
        self._save_data(QUEUES_FILE, dump_queues(queues))

    def load_archive(self) -> List[ArchivedLead]:
        return [ArchivedLead.from_dict(item) for item in self._load_data(ARCHIVE_FILE)]

    def save_archive(self, archive: List[ArchivedLead]):
        self._save_data(ARCHIVE_FILE, [lead.to_dict() for lead in archive])

    def load_held(self) -> List[HeldLead]:
        return [held_from_dict(item) for item in self._load_data(HELD_FILE)]

    def save_held(self, held: List[HeldLead]):
        self._save_data(HELD_FILE, [held_to_dict(entry) for entry in held])

    def load_audit(self) -> List[AuditEntry]:
        return [AuditEntry.from_dict(item) for item in self._load_data(AUDIT_FILE)]

    def save_audit(self, entries: List[AuditEntry]):
        """Keep only the newest ``audit_retention`` entries on disk."""
        kept = entries[-self.audit_retention:] if self.audit_retention > 0 else entries
        self._save_data(AUDIT_FILE, [entry.to_dict() for entry in kept])
