"""Tests for the bulk lead CSV format."""

import csv
import io

import pytest

from lead_distribution.exceptions import ImportFormatError
from lead_distribution.redistribution import ArchivedLead, parse_import_csv, write_leads_csv
from lead_distribution.redistribution.csv_format import EXPORT_COLUMNS

from conftest import NOW


class TestWriteLeadsCsv:
    """Tests for CSV export."""

    def test_header_and_quoting(self):
        lead = ArchivedLead(
            id="A1", name='Silva, "Zé"', reason="Line\nbreak", tags=["vip", "hot"], archived_at=NOW
        )
        text = write_leads_csv([lead])
        assert text.splitlines()[0] == ",".join(EXPORT_COLUMNS)
        assert '"Silva, ""Zé"""' in text

        rows = list(csv.DictReader(io.StringIO(text)))
        assert rows[0]["name"] == 'Silva, "Zé"'
        assert rows[0]["reason"] == "Line\nbreak"
        assert rows[0]["tags"] == "vip;hot"
        assert rows[0]["archivedAt"] == NOW.isoformat()

    def test_write_to_file(self, temp_data_dir):
        path = str(temp_data_dir / "leads.csv")
        assert write_leads_csv([ArchivedLead(id="A1", archived_at=NOW)], path) == path
        with open(path, encoding="utf-8") as f:
            assert f.readline().startswith("id,name")


class TestParseImportCsv:
    """Tests for CSV import parsing."""

    def test_parses_rows(self):
        rows = parse_import_csv("name,email\nAna,ana@example.com\n\nBruno,\n", max_rows=10)
        assert rows == [{"name": "Ana", "email": "ana@example.com"}, {"name": "Bruno", "email": ""}]

    def test_strips_byte_order_mark(self):
        rows = parse_import_csv("\ufeffname\nAna\n", max_rows=10)
        assert rows == [{"name": "Ana"}]

    def test_caps_rows(self):
        text = "name\n" + "\n".join(f"L{i}" for i in range(10))
        assert len(parse_import_csv(text, max_rows=3)) == 3

    @pytest.mark.parametrize("text", [
        "",
        "email\nana@example.com\n",
        "name\n",
        "name,email\n,ana@example.com\n",
        "name\nAna,extra\n",
    ])
    def test_rejects_malformed(self, text):
        with pytest.raises(ImportFormatError):
            parse_import_csv(text, max_rows=10)
