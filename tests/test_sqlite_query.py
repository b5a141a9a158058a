import subprocess
from types import SimpleNamespace

from things_bridge.records import AreaRecord
from things_bridge.sqlite_query import (
    SqliteQueryRunner,
    parse_rows,
    query_records,
    sql_quote,
)


def test_sql_quote_doubles_single_quotes():
    assert sql_quote("abc") == "'abc'"
    assert sql_quote("it's") == "'it''s'"


def test_parse_rows_splits_lines_and_fields():
    assert parse_rows("a|b|c\nd|e|f\n") == [["a", "b", "c"], ["d", "e", "f"]]
    assert parse_rows("") == []
    assert parse_rows("\n\n") == []


def test_runner_builds_readonly_command(tmp_path):
    runner = SqliteQueryRunner(tmp_path / "main.sqlite", binary="/usr/bin/sqlite3")

    command = runner.command("SELECT 1")

    assert command[:4] == ["/usr/bin/sqlite3", "-readonly", "-separator", "|"]
    assert command[-1] == "SELECT 1"


def test_runner_parses_stdout(monkeypatch, tmp_path):
    calls = []

    def fake_run(command, **kwargs):
        calls.append((command, kwargs))
        return SimpleNamespace(returncode=0, stdout="u1|Work|1\n", stderr="")

    monkeypatch.setattr(subprocess, "run", fake_run)
    runner = SqliteQueryRunner(tmp_path / "main.sqlite", timeout=5)

    assert runner.query("SELECT uuid, title, visible FROM TMArea") == [["u1", "Work", "1"]]
    assert calls[0][1]["timeout"] == 5
    assert "shell" not in calls[0][1]


def test_runner_returns_empty_on_failure(monkeypatch, tmp_path, caplog):
    monkeypatch.setattr(
        subprocess,
        "run",
        lambda command, **kwargs: SimpleNamespace(
            returncode=1, stdout="", stderr="Error: no such table: TMArea"
        ),
    )
    runner = SqliteQueryRunner(tmp_path / "main.sqlite")

    with caplog.at_level("ERROR"):
        assert runner.query("SELECT * FROM TMArea") == []
    assert "no such table" in caplog.text


def test_runner_returns_empty_when_binary_missing(monkeypatch, tmp_path):
    def missing(command, **kwargs):
        raise FileNotFoundError("sqlite3")

    monkeypatch.setattr(subprocess, "run", missing)

    assert SqliteQueryRunner(tmp_path / "main.sqlite").query("SELECT 1") == []


def test_runner_returns_empty_on_timeout(monkeypatch, tmp_path):
    def slow(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs.get("timeout"))

    monkeypatch.setattr(subprocess, "run", slow)

    assert SqliteQueryRunner(tmp_path / "main.sqlite").query("SELECT 1") == []


def test_query_records_skips_malformed_rows():
    runner = SimpleNamespace(
        query=lambda sql: [["a1", "Work", "1"], ["short"], ["", "Blank", "1"]]
    )

    records = query_records(runner, "SELECT", AreaRecord.from_fields)

    assert records == [AreaRecord(id="a1", title="Work", visible=True)]
