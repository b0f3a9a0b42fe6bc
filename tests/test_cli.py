"""Tests for the leaddist command line."""

import json

import pytest
from click.testing import CliRunner

from lead_distribution.cli import cli
from lead_distribution.storage import JsonStateStore

from conftest import make_queue


@pytest.fixture
def data_dir(temp_data_dir):
    queue = make_queue("q1", rules=[{"field": "precoMaiorQue", "operator": "greaterThan", "value": 400000}])
    JsonStateStore(temp_data_dir).save_queues([queue])
    return temp_data_dir


@pytest.fixture
def run(data_dir):
    runner = CliRunner()

    def invoke(*args):
        return runner.invoke(cli, ["--data-dir", str(data_dir), *args])

    return invoke


def read_json(data_dir, name):
    return json.loads((data_dir / name).read_text(encoding="utf-8"))


class TestRoutingCommands:
    """Tests for routing commands."""

    def test_queues(self, run):
        result = run("queues")
        assert result.exit_code == 0
        assert "Queues (1)" in result.output

    def test_distribute_advances_rotation(self, run, data_dir):
        first = run("distribute", '{"id": "L1", "preco": 500000}')
        assert first.exit_code == 0
        assert "assigned to m1" in first.output

        second = run("distribute", '{"id": "L2", "preco": 500000}')
        assert "assigned to m2" in second.output
        assert read_json(data_dir, "queues.json")[0]["nextMemberId"] == "m2"

    def test_unmatched_lead_is_held(self, run, data_dir):
        result = run("distribute", '{"id": "L1", "preco": 10}')
        assert result.exit_code == 0
        assert "held: no matching queue" in result.output
        assert read_json(data_dir, "held.json")[0]["lead"]["id"] == "L1"

    def test_distribute_from_file(self, run, data_dir):
        path = data_dir / "lead.json"
        path.write_text('{"id": "L9", "preco": 900000}', encoding="utf-8")
        result = run("distribute", f"@{path}")
        assert "assigned to m1" in result.output

    def test_distribute_without_id_fails(self, run):
        result = run("distribute", '{"preco": 1}')
        assert result.exit_code == 1
        assert "Invalid lead" in result.output

    def test_check_in_and_out(self, run, data_dir):
        assert run("check-in", "m2").exit_code == 0
        queue = read_json(data_dir, "queues.json")[0]
        assert queue["members"][1]["availableNow"] is True

        assert run("check-out", "m2").exit_code == 0
        queue = read_json(data_dir, "queues.json")[0]
        assert queue["members"][1]["availableNow"] is False

    def test_check_in_unknown_member(self, run):
        result = run("check-in", "ghost")
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_retry_held(self, run, data_dir):
        run("distribute", '{"id": "L1", "preco": 10}')
        result = run("retry-held")
        assert result.exit_code == 0
        assert "still held 1" in result.output.replace("\n", " ")


class TestRedistributionCommands:
    """Tests for archive and redistribution commands."""

    def test_import_preview_execute(self, run, data_dir):
        imported = run("import-batch", "--target", "q1", "--quantity", "3", "--name", "Fair")
        assert imported.exit_code == 0
        assert "Imported 3 leads" in imported.output
        assert len(read_json(data_dir, "archive.json")) == 3

        preview = run("preview", "--target", "q1")
        assert preview.exit_code == 0
        assert "Selected: 3 leads" in preview.output

        executed = run("execute", "--target", "q1", "--by", "ana")
        assert executed.exit_code == 0
        assert "3 leads" in executed.output
        assert read_json(data_dir, "archive.json") == []

        audit = read_json(data_dir, "audit.json")
        assert audit[-1]["type"] == "redistributed"
        assert audit[-1]["actor"] == "ana"

        again = run("execute", "--target", "q1")
        assert "selection already consumed" in again.output

    def test_execute_unknown_destination(self, run):
        run("import-batch", "--target", "q1", "--quantity", "1")
        result = run("execute", "--target", "nowhere")
        assert result.exit_code == 1
        assert "Unknown destination" in result.output

    def test_import_csv(self, run, data_dir):
        path = data_dir / "leads.csv"
        path.write_text("name,email\nAna,ana@example.com\n", encoding="utf-8")
        result = run("import-batch", "--target", "q1", "--csv", str(path))
        assert result.exit_code == 0
        assert read_json(data_dir, "archive.json")[0]["name"] == "Ana"

    def test_import_bad_csv(self, run, data_dir):
        path = data_dir / "leads.csv"
        path.write_text("email\nana@example.com\n", encoding="utf-8")
        result = run("import-batch", "--target", "q1", "--csv", str(path))
        assert result.exit_code == 1

    def test_search_and_export(self, run):
        run("import-batch", "--target", "q1", "--quantity", "2")
        search = run("search", "--tag", "imported")
        assert search.exit_code == 0
        assert "2 total" in search.output

        export = run("export")
        assert export.exit_code == 0
        assert "id,name,email" in export.output

    def test_audit(self, run):
        run("check-in", "m1")
        result = run("audit", "--type", "checkin")
        assert result.exit_code == 0
        assert "1 total" in result.output
