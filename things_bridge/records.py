"""Typed row records for the Things tables.

Each record knows the column list it is selected with, so the SQL and the
positional parse stay in one place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

TASK_KINDS = {"0": "task", "1": "project", "2": "heading"}
TASK_STATUSES = {"0": "open", "2": "canceled", "3": "completed"}
STATUS_CODES = {"open": 0, "canceled": 2, "completed": 3}

# Free-text columns are selected with the field separator and line breaks
# swapped for control characters, then restored when the row is read.
TEXT_COLUMNS = {"title", "notes", "shortcut"}
PIPE_MARK = "\x1e"
NEWLINE_MARK = "\x1f"


class MalformedRowError(ValueError):
    """Raised when a row does not have the expected number of fields."""


def _field(fields: Sequence[str], index: int) -> str:
    if index >= len(fields):
        return ""
    return fields[index].replace(PIPE_MARK, "|").replace(NEWLINE_MARK, "\n").strip()


def _optional(fields: Sequence[str], index: int) -> str | None:
    value = _field(fields, index)
    return value or None


def _int(fields: Sequence[str], index: int) -> int:
    try:
        return int(float(_field(fields, index)))
    except ValueError:
        return 0


def _require_width(fields: Sequence[str], width: int, table: str) -> None:
    if len(fields) != width or not fields[0].strip():
        raise MalformedRowError(
            f"{table} row has {len(fields)} fields, expected {width}"
        )


@dataclass(frozen=True)
class AreaRecord:
    COLUMNS = ("uuid", "title", "visible")

    id: str
    title: str
    visible: bool

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "AreaRecord":
        _require_width(fields, len(cls.COLUMNS), "TMArea")
        return cls(
            id=_field(fields, 0),
            title=_field(fields, 1),
            visible=_field(fields, 2) == "1",
        )


@dataclass(frozen=True)
class TagRecord:
    COLUMNS = ("uuid", "title", "shortcut")

    id: str
    title: str
    shortcut: str | None

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "TagRecord":
        _require_width(fields, len(cls.COLUMNS), "TMTag")
        return cls(
            id=_field(fields, 0),
            title=_field(fields, 1),
            shortcut=_optional(fields, 2),
        )


@dataclass(frozen=True)
class TaskTagRecord:
    COLUMNS = ("tasks", "tags")

    task_id: str
    tag_id: str

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "TaskTagRecord":
        _require_width(fields, len(cls.COLUMNS), "TMTaskTag")
        return cls(task_id=_field(fields, 0), tag_id=_field(fields, 1))


@dataclass(frozen=True)
class TaskRecord:
    # stopDate is the completion timestamp column in TMTask.
    COLUMNS = (
        "uuid",
        "title",
        "notes",
        "type",
        "status",
        "trashed",
        "creationDate",
        "userModificationDate",
        "startDate",
        "deadline",
        "stopDate",
        "area",
        "project",
        "checklistItemsCount",
        "openChecklistItemsCount",
    )

    id: str
    title: str
    notes: str | None
    kind: str
    status: str
    trashed: bool
    creation_date: str | None
    modification_date: str | None
    start_date: str | None
    deadline: str | None
    completion_date: str | None
    area_id: str | None
    project_id: str | None
    checklist_total: int
    checklist_open: int

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "TaskRecord":
        _require_width(fields, len(cls.COLUMNS), "TMTask")
        return cls(
            id=_field(fields, 0),
            title=_field(fields, 1),
            notes=_optional(fields, 2),
            kind=TASK_KINDS.get(_field(fields, 3), "heading"),
            status=TASK_STATUSES.get(_field(fields, 4), "open"),
            trashed=_field(fields, 5) == "1",
            creation_date=_optional(fields, 6),
            modification_date=_optional(fields, 7),
            start_date=_optional(fields, 8),
            deadline=_optional(fields, 9),
            completion_date=_optional(fields, 10),
            area_id=_optional(fields, 11),
            project_id=_optional(fields, 12),
            checklist_total=_int(fields, 13),
            checklist_open=_int(fields, 14),
        )


@dataclass(frozen=True)
class ChecklistItemRecord:
    COLUMNS = ("uuid", "title", "status", "creationDate", "task")

    id: str
    title: str
    status: str
    creation_date: str | None
    task_id: str

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "ChecklistItemRecord":
        _require_width(fields, len(cls.COLUMNS), "TMChecklistItem")
        return cls(
            id=_field(fields, 0),
            title=_field(fields, 1),
            status=TASK_STATUSES.get(_field(fields, 2), "open"),
            creation_date=_optional(fields, 3),
            task_id=_field(fields, 4),
        )


@dataclass(frozen=True)
class ItemState:
    """Minimal view of a single TMTask row used for verification."""

    COLUMNS = ("uuid", "title", "type", "status", "trashed", "area", "project")

    id: str
    title: str | None
    kind: str
    status: str
    trashed: bool
    area_id: str | None
    project_id: str | None

    @classmethod
    def from_fields(cls, fields: Sequence[str]) -> "ItemState":
        _require_width(fields, len(cls.COLUMNS), "TMTask")
        return cls(
            id=_field(fields, 0),
            title=_optional(fields, 1),
            kind=TASK_KINDS.get(_field(fields, 2), "task"),
            status=TASK_STATUSES.get(_field(fields, 3), "open"),
            trashed=_field(fields, 4) == "1",
            area_id=_optional(fields, 5),
            project_id=_optional(fields, 6),
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "title": self.title,
            "type": self.kind,
            "status": self.status,
            "trashed": self.trashed,
            "areaId": self.area_id,
            "projectId": self.project_id,
        }


def _select_column(column: str) -> str:
    if column not in TEXT_COLUMNS:
        return column
    return f"replace(replace({column}, '|', char(30)), char(10), char(31))"


def select_columns(record_type: type) -> str:
    return ", ".join(_select_column(column) for column in record_type.COLUMNS)
