from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from things_bridge import mcp
from things_bridge.errors import McpError

NOW = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)
CREATED = "1704844800"  # 2024-01-10


class _FakeRunner:
    def __init__(self):
        self.queries = []
        self.db_path = "/db/main.sqlite"

    def query(self, sql):
        self.queries.append(sql)
        if "FROM TMArea" in sql:
            return [["A1", "Work", "1"]]
        if "FROM TMTaskTag" in sql:
            return []
        if "FROM TMTag" in sql:
            return [["G1", "urgent", ""]]
        if "WHERE type = 1" in sql:
            return [["P1", "Launch", "", "1", "0", "0", CREATED, "", "", "", "", "A1", "", "0", "0"]]
        if "FROM TMTask" in sql:
            return [
                ["P1", "Launch", "", "1", "0", "0", CREATED, "", "", "", "", "A1", "", "0", "0"],
                ["T1", "Copy", "", "0", "0", "0", CREATED, "", "132659072", "", "", "", "P1", "0", "0"],
            ]
        return []


def _build_request(runner=None):
    state = SimpleNamespace(runner=runner or _FakeRunner(), clock=lambda: NOW)
    return SimpleNamespace(
        app=SimpleNamespace(state=state), state=SimpleNamespace(), headers={}
    )


def test_summary_defaults_to_markdown():
    response = mcp.things_summary({}, _build_request())

    assert response["ok"] is True
    data = response["data"]
    assert data["format"] == "markdown"
    assert "### Work" in data["markdown"]
    assert "**Generated:** 2024-03-15 09:30" in data["markdown"]


def test_summary_json_tree():
    response = mcp.things_summary({"format": "json"}, _build_request())

    summary = response["data"]["summary"]
    assert summary["summary"]["totalOpenTasks"] == 1
    assert summary["todayTasks"][0]["id"] == "T1"
    assert summary["areas"][0]["projects"][0]["tasks"][0]["id"] == "T1"


def test_summary_passes_status_filter_to_query():
    runner = _FakeRunner()

    mcp.things_summary(
        {"format": "json", "status": "completed", "includeTrash": True},
        _build_request(runner),
    )

    task_query = runner.queries[2]
    assert task_query.endswith("WHERE status = 3")


def test_summary_accepts_date_range():
    response = mcp.things_summary(
        {"format": "json", "dateRange": {"from": "2024-03-01", "to": "2024-03-31"}},
        _build_request(),
    )

    summary = response["data"]["summary"]
    assert [task["id"] for task in summary["todayTasks"]] == ["T1"]
    assert "projects" not in summary


@pytest.mark.parametrize(
    ("payload", "code"),
    [
        ({"format": "html"}, "INVALID_FORMAT"),
        ({"status": "done"}, "INVALID_STATUS"),
        ({"dateRange": {"from": "March"}}, "INVALID_DATE"),
        ({"dateRange": {"from": "2024-04-01", "to": "2024-03-01"}}, "INVALID_DATE"),
        ({"dateRange": "2024"}, "INVALID_TYPE"),
        ({"tags": [1, 2]}, "INVALID_TYPE"),
        ({"limit": 5}, "UNKNOWN_FIELD"),
    ],
)
def test_summary_rejects_bad_payloads(payload, code):
    runner = _FakeRunner()

    with pytest.raises(McpError) as excinfo:
        mcp.things_summary(payload, _build_request(runner))

    assert excinfo.value.error.code == code
    assert runner.queries == []


def test_summary_rejects_non_object_payload():
    with pytest.raises(McpError) as excinfo:
        mcp.things_summary(["json"], _build_request())

    assert excinfo.value.error.code == "INVALID_TYPE"


def test_export_json_reports_database_path():
    response = mcp.export_json({"minimal": True}, _build_request())

    data = response["data"]
    assert data["export_info"]["database_path"] == "/db/main.sqlite"
    assert data["summary"]["total_projects"] == 1
    assert "checklist_items" not in data


def test_missing_database_surfaces_as_error(tmp_path):
    config = SimpleNamespace(
        home=tmp_path,
        require_macos=False,
        sqlite_binary="sqlite3",
        query_timeout=1.0,
    )
    request = SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(config=config)),
        state=SimpleNamespace(),
        headers={},
    )

    with pytest.raises(McpError) as excinfo:
        mcp.things_summary({}, request)

    assert excinfo.value.error.code == "THINGS_NOT_INSTALLED"
    assert "path" in excinfo.value.error.details
