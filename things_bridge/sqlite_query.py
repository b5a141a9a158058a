"""Read-only SQL access to the Things database through the sqlite3 CLI."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, Protocol, Sequence, TypeVar

from things_bridge.records import MalformedRowError

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "|"
DEFAULT_QUERY_TIMEOUT = 30.0

RecordT = TypeVar("RecordT")


class QueryRunner(Protocol):
    def query(self, sql: str) -> list[list[str]]: ...


def sql_quote(value: str) -> str:
    """Return ``value`` as a single-quoted SQL string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def parse_rows(output: str) -> list[list[str]]:
    stripped = output.strip("\n")
    if not stripped.strip():
        return []
    return [line.split(FIELD_SEPARATOR) for line in stripped.split("\n")]


class SqliteQueryRunner:
    """Run SQL against ``db_path`` in a separate read-only sqlite3 process.

    Failures are logged and reported as an empty result.
    """

    def __init__(
        self,
        db_path: Path,
        binary: str = "sqlite3",
        timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> None:
        self.db_path = Path(db_path)
        self.binary = binary
        self.timeout = timeout

    def command(self, sql: str) -> list[str]:
        return [
            self.binary,
            "-readonly",
            "-separator",
            FIELD_SEPARATOR,
            str(self.db_path),
            sql,
        ]

    def query(self, sql: str) -> list[list[str]]:
        try:
            completed = subprocess.run(
                self.command(sql),
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.error("SQL query failed: %s (query: %s)", exc, sql)
            return []

        if completed.returncode != 0:
            logger.error(
                "SQL query failed with exit code %s: %s (query: %s)",
                completed.returncode,
                completed.stderr.strip(),
                sql,
            )
            return []
        return parse_rows(completed.stdout)


def query_records(
    runner: QueryRunner,
    sql: str,
    factory: Callable[[Sequence[str]], RecordT],
) -> list[RecordT]:
    """Run ``sql`` and convert each row with ``factory``, skipping bad rows."""
    records: list[RecordT] = []
    for fields in runner.query(sql):
        try:
            records.append(factory(fields))
        except MalformedRowError as exc:
            logger.warning("Skipping malformed row: %s", exc)
    return records
