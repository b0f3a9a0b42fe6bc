"""Bulk lead CSV format.

First row is the header of field names. Values holding a comma, a double
quote or a newline are quoted, with inner quotes doubled. Empty values are
allowed. Tags are joined with ``;`` inside their cell.
"""

import csv
import io
import logging
from typing import Dict, List, Optional, Iterable

from ..exceptions import ImportFormatError
from .models import ArchivedLead

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = [
    "id", "name", "email", "origin", "reason", "owner",
    "previousQueue", "tags", "score", "status", "archivedAt"
]
REQUIRED_COLUMNS = {"name"}
TAG_SEPARATOR = ";"


def split_tags(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [t.strip() for t in value.split(TAG_SEPARATOR) if t.strip()]


def write_leads_csv(leads: Iterable[ArchivedLead], output_path: Optional[str] = None) -> str:
    """Write leads in the bulk format.

    Returns the path when ``output_path`` is given, otherwise the CSV text.
    """
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
    writer.writeheader()

    count = 0
    for lead in leads:
        writer.writerow({
            "id": lead.id,
            "name": lead.name,
            "email": lead.email,
            "origin": lead.origin,
            "reason": lead.reason,
            "owner": lead.owner,
            "previousQueue": lead.previous_queue,
            "tags": TAG_SEPARATOR.join(lead.tags),
            "score": lead.score,
            "status": lead.status,
            "archivedAt": lead.archived_at.isoformat(),
        })
        count += 1

    csv_content = output.getvalue()

    if output_path:
        with open(output_path, 'w', newline='', encoding='utf-8') as f:
            f.write(csv_content)
        logger.info(f"Exported {count} leads to {output_path}")
        return output_path
    return csv_content


def parse_import_csv(text: str, max_rows: int) -> List[Dict[str, str]]:
    """Parse bulk import rows. Raises ImportFormatError on malformed input.

    Rows past ``max_rows`` are ignored.
    """
    if not text or not text.strip():
        raise ImportFormatError("CSV is empty")

    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    try:
        header = reader.fieldnames
        if not header:
            raise ImportFormatError("CSV has no header row")
        columns = {h.strip() for h in header if h}
        missing = REQUIRED_COLUMNS - columns
        if missing:
            raise ImportFormatError(f"CSV missing required columns: {sorted(missing)}")

        rows = []
        for row_num, row in enumerate(reader, start=2):  # header is row 1
            if None in row:
                raise ImportFormatError(f"Row {row_num} has more values than the header")
            cleaned = {k.strip(): (v or "").strip() for k, v in row.items() if k}
            if not any(cleaned.values()):
                continue
            if not cleaned.get("name"):
                raise ImportFormatError(f"Row {row_num} is missing a name")
            rows.append(cleaned)
            if len(rows) >= max_rows:
                logger.warning(f"CSV import capped at {max_rows} rows")
                break
    except csv.Error as e:
        raise ImportFormatError(f"Malformed CSV: {e}")

    if not rows:
        raise ImportFormatError("CSV has no data rows")
    return rows
