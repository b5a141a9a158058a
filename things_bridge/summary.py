"""Assemble a hierarchical summary of the Things database.

The database is flat: tasks, projects and headings share one table, areas and
tags live in their own tables, and tags attach through an association table.
``load_snapshot`` reads those rows once; ``assemble_summary`` joins and
filters them in memory and nests the result as areas -> projects -> tasks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from things_bridge.compress import compress
from things_bridge.dates import (
    decode_epoch,
    decode_packed,
    format_epoch_date,
    format_packed_date,
)
from things_bridge.records import (
    STATUS_CODES,
    AreaRecord,
    TagRecord,
    TaskRecord,
    TaskTagRecord,
    select_columns,
)
from things_bridge.sqlite_query import QueryRunner, query_records
from things_bridge.url_scheme import build_things_url

logger = logging.getLogger(__name__)

STATUS_FILTERS = {"open", "completed", "canceled", "all"}


@dataclass(frozen=True)
class DateRange:
    start: date | None = None
    end: date | None = None

    def contains(self, value: date) -> bool:
        if self.start is not None and value < self.start:
            return False
        if self.end is not None and value > self.end:
            return False
        return True


@dataclass(frozen=True)
class SummaryFilters:
    include_completed: bool = False
    include_trash: bool = False
    include_inactive: bool = False
    status: str | None = None
    areas: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    projects: tuple[str, ...] = ()
    date_range: DateRange | None = None


@dataclass
class Snapshot:
    areas: list[AreaRecord] = field(default_factory=list)
    tags: list[TagRecord] = field(default_factory=list)
    tasks: list[TaskRecord] = field(default_factory=list)
    task_tags: list[TaskTagRecord] = field(default_factory=list)
    # Every project regardless of status, for resolving back-references.
    project_refs: list[TaskRecord] = field(default_factory=list)


def status_predicate(
    include_completed: bool = False,
    include_trash: bool = False,
    status: str | None = None,
) -> str:
    """Build the single WHERE clause used to load tasks."""
    clauses: list[str] = []
    if status and status != "all":
        clauses.append(f"status = {STATUS_CODES[status]}")
    elif not include_completed and status != "all":
        clauses.append("status = 0")
    if not include_trash:
        clauses.append("trashed = 0")
    return " AND ".join(clauses) if clauses else "1=1"


def load_snapshot(runner: QueryRunner, filters: SummaryFilters) -> Snapshot:
    predicate = status_predicate(
        filters.include_completed, filters.include_trash, filters.status
    )
    return Snapshot(
        areas=query_records(
            runner,
            f"SELECT {select_columns(AreaRecord)} FROM TMArea",
            AreaRecord.from_fields,
        ),
        tags=query_records(
            runner,
            f"SELECT {select_columns(TagRecord)} FROM TMTag",
            TagRecord.from_fields,
        ),
        tasks=query_records(
            runner,
            f"SELECT {select_columns(TaskRecord)} FROM TMTask WHERE {predicate}",
            TaskRecord.from_fields,
        ),
        task_tags=query_records(
            runner,
            f"SELECT {select_columns(TaskTagRecord)} FROM TMTaskTag",
            TaskTagRecord.from_fields,
        ),
        project_refs=query_records(
            runner,
            f"SELECT {select_columns(TaskRecord)} FROM TMTask WHERE type = 1",
            TaskRecord.from_fields,
        ),
    )


def _show_url(item_id: str) -> str:
    return build_things_url("show", {"id": item_id})


def _task_dates(record: TaskRecord) -> list[date]:
    dates: list[date] = []
    created = decode_epoch(record.creation_date)
    if created is not None:
        dates.append(created.astimezone().date())
    for raw in (record.start_date, record.deadline):
        decoded = decode_packed(raw)
        if decoded is not None:
            dates.append(decoded)
    return dates


class _Assembly:
    """Working state for one summary; discarded after one call."""

    def __init__(self, snapshot: Snapshot, filters: SummaryFilters) -> None:
        self.snapshot = snapshot
        self.filters = filters
        self.areas_by_id = {area.id: area for area in snapshot.areas}
        self.tags_by_id = {tag.id: tag for tag in snapshot.tags}
        self.records = {task.id: task for task in snapshot.tasks}
        self.project_records = {project.id: project for project in snapshot.project_refs}
        self.project_records.update(
            (task.id, task) for task in snapshot.tasks if task.kind == "project"
        )
        self.items: dict[str, dict[str, Any]] = {}
        self.tag_counts: dict[str, int] = {tag.id: 0 for tag in snapshot.tags}

    def _area_ref(self, area_id: str | None) -> dict[str, str] | None:
        area = self.areas_by_id.get(area_id) if area_id else None
        if area is None:
            return None
        return {"id": area.id, "name": area.title or "Unnamed Area"}

    def _project_ref(self, project_id: str | None) -> dict[str, str] | None:
        project = self.project_records.get(project_id) if project_id else None
        if project is None:
            return None
        return {"id": project.id, "name": project.title or "Untitled"}

    def effective_area_id(self, record: TaskRecord) -> str | None:
        if record.area_id:
            return record.area_id
        project = self.project_records.get(record.project_id or "")
        return project.area_id if project is not None else None

    def build_items(self) -> None:
        for record in self.snapshot.tasks:
            self.items[record.id] = {
                "id": record.id,
                "title": record.title or "Untitled",
                "type": record.kind,
                "status": record.status,
                "notes": record.notes or "",
                "creationDate": format_epoch_date(record.creation_date),
                "modificationDate": format_epoch_date(record.modification_date),
                "startDate": format_packed_date(record.start_date),
                "deadline": format_packed_date(record.deadline),
                "completionDate": format_epoch_date(record.completion_date),
                "area": self._area_ref(record.area_id),
                "project": self._project_ref(record.project_id),
                "tags": [],
                "checklistItems": {
                    "total": record.checklist_total,
                    "open": record.checklist_open,
                },
                "thingsUrl": _show_url(record.id),
            }

    def attach_tags(self) -> None:
        for link in self.snapshot.task_tags:
            item = self.items.get(link.task_id)
            tag = self.tags_by_id.get(link.tag_id)
            if item is None or tag is None:
                continue
            item["tags"].append({"id": tag.id, "name": tag.title or "Unnamed Tag"})
            self.tag_counts[tag.id] += 1

    def filter_ids(self) -> list[str]:
        ids = [record.id for record in self.snapshot.tasks]
        filters = self.filters

        if filters.areas:
            wanted = set(filters.areas)
            ids = [
                task_id
                for task_id in ids
                if self._area_name(self.effective_area_id(self.records[task_id]))
                in wanted
            ]

        if filters.tags:
            required = set(filters.tags)
            ids = [
                task_id
                for task_id in ids
                if required <= {tag["name"] for tag in self.items[task_id]["tags"]}
            ]

        if filters.projects:
            wanted = set(filters.projects)
            ids = [task_id for task_id in ids if self._matches_project(task_id, wanted)]

        if filters.date_range is not None:
            date_range = filters.date_range
            ids = [
                task_id
                for task_id in ids
                if any(
                    date_range.contains(value)
                    for value in _task_dates(self.records[task_id])
                )
            ]
        return ids

    def _area_name(self, area_id: str | None) -> str | None:
        ref = self._area_ref(area_id)
        return ref["name"] if ref else None

    def _matches_project(self, task_id: str, wanted: set[str]) -> bool:
        item = self.items[task_id]
        if item["type"] == "project" and item["title"] in wanted:
            return True
        project = item.get("project")
        return project is not None and project["name"] in wanted


def _area_node(area: AreaRecord) -> dict[str, Any]:
    return {
        "id": area.id,
        "name": area.title or "Unnamed Area",
        "visible": area.visible,
        "thingsUrl": _show_url(area.id),
    }


def _navigation_urls() -> dict[str, str]:
    return {
        "showToday": build_things_url("show", {"list": "today"}),
        "showInbox": build_things_url("show", {"list": "inbox"}),
        "showProjects": build_things_url("show", {"list": "projects"}),
        "showAreas": build_things_url("show", {"list": "areas"}),
    }


def assemble_summary(
    snapshot: Snapshot,
    filters: SummaryFilters,
    today: date,
    now: datetime,
) -> dict[str, Any]:
    """Join, filter and nest ``snapshot`` into the compressed summary tree."""
    assembly = _Assembly(snapshot, filters)
    assembly.build_items()
    assembly.attach_tags()

    surviving = [assembly.items[task_id] for task_id in assembly.filter_ids()]
    projects = [item for item in surviving if item["type"] == "project"]
    tasks = [item for item in surviving if item["type"] == "task"]
    inbox_tasks = [
        item for item in tasks if item["area"] is None and item["project"] is None
    ]
    today_iso = today.isoformat()
    today_tasks = [item for item in tasks if item["startDate"] == today_iso]

    for project in projects:
        project["tasks"] = [
            task
            for task in tasks
            if task["project"] is not None and task["project"]["id"] == project["id"]
        ]

    area_nodes: list[dict[str, Any]] = []
    for area in snapshot.areas:
        if filters.areas and (area.title or "Unnamed Area") not in filters.areas:
            continue
        node = _area_node(area)
        node["projects"] = [
            project
            for project in projects
            if project["area"] is not None and project["area"]["id"] == area.id
        ]
        node["tasks"] = [
            task
            for task in tasks
            if task["area"] is not None
            and task["area"]["id"] == area.id
            and task["project"] is None
        ]
        area_nodes.append(node)

    tag_nodes: list[dict[str, Any]] = []
    used_tag_ids = {tag["id"] for item in surviving for tag in item["tags"]}
    for tag in snapshot.tags:
        tag_nodes.append(
            {
                "id": tag.id,
                "name": tag.title or "Unnamed Tag",
                "shortcut": tag.shortcut or "",
                "taskCount": assembly.tag_counts[tag.id],
                "thingsUrl": build_things_url("show", {"filter": tag.title}),
            }
        )

    if not filters.include_inactive:
        area_nodes = [
            node for node in area_nodes if node["projects"] or node["tasks"]
        ]
        tag_nodes = [node for node in tag_nodes if node["id"] in used_tag_ids]

    logger.info(
        "Assembled summary: %d tasks, %d projects, %d areas, %d tags",
        len(tasks),
        len(projects),
        len(area_nodes),
        len(tag_nodes),
    )

    summary = {
        "summary": {
            "totalOpenTasks": len(tasks),
            "totalActiveProjects": len(projects),
            "totalAreas": len(area_nodes),
            "totalTags": len(tag_nodes),
            "lastUpdated": now.isoformat(),
        },
        "areas": area_nodes,
        "inboxTasks": inbox_tasks,
        "todayTasks": today_tasks,
        "projects": projects,
        "tags": tag_nodes,
        "urls": _navigation_urls(),
    }
    return compress(summary) or {}


def build_summary(
    runner: QueryRunner,
    filters: SummaryFilters,
    today: date,
    now: datetime,
) -> dict[str, Any]:
    return assemble_summary(load_snapshot(runner, filters), filters, today, now)
