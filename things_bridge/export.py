"""Flat JSON export of the Things database."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from things_bridge.dates import format_epoch_datetime, format_packed_date
from things_bridge.records import (
    AreaRecord,
    ChecklistItemRecord,
    TagRecord,
    TaskRecord,
    TaskTagRecord,
    select_columns,
)
from things_bridge.sqlite_query import QueryRunner, query_records
from things_bridge.summary import status_predicate


def _task_entry(task: TaskRecord, minimal: bool) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "id": task.id,
        "title": task.title or None,
        "type": task.kind,
        "status": task.status,
        "trashed": task.trashed,
        "area_id": task.area_id,
        "project_id": task.project_id,
    }
    if minimal:
        return entry
    entry.update(
        {
            "notes": task.notes,
            "creation_date": format_epoch_datetime(task.creation_date) or None,
            "modification_date": format_epoch_datetime(task.modification_date) or None,
            "start_date": format_packed_date(task.start_date) or None,
            "deadline": format_packed_date(task.deadline) or None,
            "completion_date": format_epoch_datetime(task.completion_date) or None,
            "checklist_items_total": task.checklist_total,
            "checklist_items_open": task.checklist_open,
        }
    )
    return entry


def export_database(
    runner: QueryRunner,
    db_path: Path | None,
    now: datetime,
    include_completed: bool = False,
    include_trash: bool = False,
    minimal: bool = False,
) -> dict[str, Any]:
    predicate = status_predicate(include_completed, include_trash)

    areas = query_records(
        runner, f"SELECT {select_columns(AreaRecord)} FROM TMArea", AreaRecord.from_fields
    )
    tags = query_records(
        runner, f"SELECT {select_columns(TagRecord)} FROM TMTag", TagRecord.from_fields
    )
    tasks = query_records(
        runner,
        f"SELECT {select_columns(TaskRecord)} FROM TMTask "
        f"WHERE {predicate} ORDER BY creationDate",
        TaskRecord.from_fields,
    )
    links = query_records(
        runner,
        f"SELECT {select_columns(TaskTagRecord)} FROM TMTaskTag",
        TaskTagRecord.from_fields,
    )

    data: dict[str, Any] = {
        "export_info": {
            "exported_at": now.isoformat(),
            "source": "Things Bridge",
            "database_path": str(db_path) if db_path else None,
            "filters": {
                "include_completed": include_completed,
                "include_trash": include_trash,
                "minimal": minimal,
            },
        },
        "areas": [
            {"id": area.id, "title": area.title or None}
            if minimal
            else {"id": area.id, "title": area.title or None, "visible": area.visible}
            for area in areas
        ],
        "tags": [
            {"id": tag.id, "title": tag.title or None}
            if minimal
            else {"id": tag.id, "title": tag.title or None, "shortcut": tag.shortcut}
            for tag in tags
        ],
        "tasks": [_task_entry(task, minimal) for task in tasks],
        "task_tags": [{"task_id": link.task_id, "tag_id": link.tag_id} for link in links],
    }

    summary: dict[str, Any] = {
        "total_areas": len(areas),
        "total_tags": len(tags),
        "total_items": len(tasks),
        "total_tasks": sum(1 for task in tasks if task.kind == "task"),
        "total_projects": sum(1 for task in tasks if task.kind == "project"),
        "total_headings": sum(1 for task in tasks if task.kind == "heading"),
        "open_items": sum(
            1 for task in tasks if task.status == "open" and not task.trashed
        ),
        "completed_items": sum(1 for task in tasks if task.status == "completed"),
        "trashed_items": sum(1 for task in tasks if task.trashed),
    }

    if not minimal:
        checklist = query_records(
            runner,
            f"SELECT {select_columns(ChecklistItemRecord)} FROM TMChecklistItem "
            f"WHERE task IN (SELECT uuid FROM TMTask WHERE {predicate}) "
            "ORDER BY creationDate",
            ChecklistItemRecord.from_fields,
        )
        data["checklist_items"] = [
            {
                "id": item.id,
                "title": item.title or None,
                "status": item.status,
                "creation_date": format_epoch_datetime(item.creation_date) or None,
                "task_id": item.task_id,
            }
            for item in checklist
        ]
        summary["total_checklist_items"] = len(checklist)
        summary["total_task_tag_relationships"] = len(links)

    data["summary"] = summary
    return data
