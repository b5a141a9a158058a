from datetime import datetime, timezone
from pathlib import Path

from things_bridge.export import export_database

NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)

TASK_ROWS = [
    ["P1", "Launch", "", "1", "0", "0", "1700000000", "", "132659072", "", "", "A1", "", "0", "0"],
    ["T1", "Copy", "Draft", "0", "0", "0", "1700000000", "", "", "", "", "", "P1", "2", "1"],
    ["H1", "Phase", "", "2", "0", "0", "1700000000", "", "", "", "", "", "P1", "0", "0"],
]


class _FakeRunner:
    def __init__(self):
        self.queries = []

    def query(self, sql):
        self.queries.append(sql)
        if "FROM TMArea" in sql:
            return [["A1", "Work", "1"]]
        if "FROM TMTag" in sql:
            return [["G1", "urgent", ""]]
        if "FROM TMTaskTag" in sql:
            return [["T1", "G1"]]
        if "FROM TMChecklistItem" in sql:
            return [["C1", "Outline", "3", "1700000000", "T1"]]
        if "FROM TMTask" in sql:
            return TASK_ROWS
        return []


def test_export_collects_tables_and_statistics():
    runner = _FakeRunner()

    data = export_database(runner, Path("/db/main.sqlite"), NOW)

    assert data["export_info"]["database_path"] == "/db/main.sqlite"
    assert data["export_info"]["exported_at"] == NOW.isoformat()
    assert data["areas"] == [{"id": "A1", "title": "Work", "visible": True}]
    assert data["task_tags"] == [{"task_id": "T1", "tag_id": "G1"}]
    task = data["tasks"][1]
    assert task["notes"] == "Draft"
    assert task["project_id"] == "P1"
    assert task["checklist_items_total"] == 2
    assert data["tasks"][0]["start_date"] == "2024-03-15"
    assert data["checklist_items"][0]["status"] == "completed"
    assert data["summary"] == {
        "total_areas": 1,
        "total_tags": 1,
        "total_items": 3,
        "total_tasks": 1,
        "total_projects": 1,
        "total_headings": 1,
        "open_items": 3,
        "completed_items": 0,
        "trashed_items": 0,
        "total_checklist_items": 1,
        "total_task_tag_relationships": 1,
    }


def test_export_filters_follow_status_predicate():
    runner = _FakeRunner()

    export_database(runner, None, NOW, include_completed=True)

    task_query = next(sql for sql in runner.queries if "FROM TMTask WHERE" in sql)
    assert "WHERE trashed = 0" in task_query
    checklist_query = next(sql for sql in runner.queries if "TMChecklistItem" in sql)
    assert "WHERE trashed = 0" in checklist_query


def test_minimal_export_skips_details_and_checklist():
    runner = _FakeRunner()

    data = export_database(runner, None, NOW, minimal=True)

    assert "checklist_items" not in data
    assert "notes" not in data["tasks"][0]
    assert data["areas"] == [{"id": "A1", "title": "Work"}]
    assert not any("TMChecklistItem" in sql for sql in runner.queries)
    assert data["export_info"]["database_path"] is None
