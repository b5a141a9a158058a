"""Markdown rendering for the compressed summary tree."""

from __future__ import annotations

from datetime import datetime
from typing import Any


def _tag_list(item: dict[str, Any]) -> str:
    return ", ".join(f"#{tag['name']}" for tag in item.get("tags") or [])


def _checklist(item: dict[str, Any]) -> str | None:
    checklist = item.get("checklistItems")
    if not checklist or not checklist.get("total"):
        return None
    return f"{checklist.get('open', 0)}/{checklist['total']} remaining"


def _checkbox(item: dict[str, Any]) -> str:
    return "[x]" if item.get("status") in {"completed", "canceled"} else "[ ]"


def _task_line(item: dict[str, Any], bold: bool = False, scheduled: bool = True) -> str:
    title = f"**{item['title']}**" if bold else item["title"]
    line = f"- {_checkbox(item)} {title}"
    if scheduled and item.get("startDate"):
        line += f" (scheduled: {item['startDate']})"
    if item.get("deadline"):
        line += f" (due: {item['deadline']})"
    return line


def _task_details(item: dict[str, Any], indent: str, with_id: bool = True) -> list[str]:
    lines: list[str] = []
    if with_id:
        lines.append(f"{indent}- *ID: {item['id']}*")
    if item.get("notes"):
        lines.append(f"{indent}- {item['notes']}")
    if item.get("tags"):
        lines.append(f"{indent}- Tags: {_tag_list(item)}")
    checklist = _checklist(item)
    if checklist:
        lines.append(f"{indent}- Checklist: {checklist}")
    return lines


def _render_project_tasks(project: dict[str, Any], indent: str) -> list[str]:
    lines: list[str] = []
    for task in project.get("tasks") or []:
        lines.append(indent + _task_line(task))
        lines.extend(_task_details(task, indent + "  ", with_id=False))
    return lines


def render_summary_markdown(data: dict[str, Any], generated_at: datetime) -> str:
    """Render ``data`` (as returned by ``assemble_summary``) as Markdown."""
    lines: list[str] = ["# Things Database Summary", ""]
    counts = data.get("summary") or {}
    lines.append(f"**Generated:** {generated_at.strftime('%Y-%m-%d %H:%M')}")
    if counts.get("lastUpdated"):
        lines.append(f"**Last Updated:** {counts['lastUpdated']}")
    lines.extend(
        [
            "",
            "## Overview",
            "",
            f"- **Open Tasks:** {counts.get('totalOpenTasks', 0)}",
            f"- **Active Projects:** {counts.get('totalActiveProjects', 0)}",
            f"- **Areas:** {counts.get('totalAreas', 0)}",
            f"- **Tags in Use:** {counts.get('totalTags', 0)}",
            "",
        ]
    )

    today_tasks = data.get("todayTasks") or []
    if today_tasks:
        lines.extend(["## Today", ""])
        for task in today_tasks:
            lines.append(_task_line(task, bold=True, scheduled=False))
            lines.extend(_task_details(task, "  "))
            if task.get("area"):
                lines.append(f"  - Area: {task['area']['name']}")
            if task.get("project"):
                lines.append(f"  - Project: {task['project']['name']}")
        lines.append("")

    inbox_tasks = data.get("inboxTasks") or []
    if inbox_tasks:
        lines.extend(["## Inbox", ""])
        for task in inbox_tasks:
            lines.append(_task_line(task, bold=True))
            lines.extend(_task_details(task, "  "))
        lines.append("")

    areas = data.get("areas") or []
    if areas:
        lines.extend(["## Areas", ""])
        for area in areas:
            lines.append(f"### {area['name']}")
            lines.append(f"*ID: {area['id']}*")
            if area.get("visible") is False:
                lines.append("*Status: Hidden area*")
            lines.append("")

            if area.get("projects"):
                lines.append("**Projects:**")
                for project in area["projects"]:
                    lines.append(f"- {_checkbox(project)} **{project['title']}**")
                    lines.extend(_task_details(project, "  "))
                    if project.get("deadline"):
                        lines.append(f"  - Due: {project['deadline']}")
                    if project.get("tasks"):
                        lines.append("  - **Tasks:**")
                        lines.extend(_render_project_tasks(project, "    "))
                lines.append("")

            if area.get("tasks"):
                lines.append("**Tasks:**")
                for task in area["tasks"]:
                    lines.append(_task_line(task))
                    lines.extend(_task_details(task, "  ", with_id=False))
                lines.append("")

    standalone = [
        project for project in data.get("projects") or [] if not project.get("area")
    ]
    if standalone:
        lines.extend(["## Projects", ""])
        for project in standalone:
            lines.append(f"### {project['title']}")
            lines.append(f"*ID: {project['id']}*")
            if project.get("notes"):
                lines.append(project["notes"])
            if project.get("startDate"):
                lines.append(f"**Start:** {project['startDate']}")
            if project.get("deadline"):
                lines.append(f"**Due:** {project['deadline']}")
            if project.get("tags"):
                lines.append(f"**Tags:** {_tag_list(project)}")
            lines.append("")
            if project.get("tasks"):
                lines.append("**Tasks:**")
                lines.extend(_render_project_tasks(project, ""))
                lines.append("")

    tags = data.get("tags") or []
    if tags:
        lines.extend(["## Tags", ""])
        for tag in sorted(tags, key=lambda tag: tag.get("taskCount", 0), reverse=True):
            lines.append(f"### #{tag['name']}")
            lines.append(f"- **Task Count:** {tag.get('taskCount', 0)}")
            if tag.get("shortcut"):
                lines.append(f"- **Shortcut:** {tag['shortcut']}")
            lines.append(f"- *ID: {tag['id']}*")
            lines.append("")

    urls = data.get("urls") or {}
    if urls:
        lines.extend(
            [
                "## Quick Navigation",
                "",
                f"- [Today]({urls.get('showToday', '')})",
                f"- [Inbox]({urls.get('showInbox', '')})",
                f"- [Projects]({urls.get('showProjects', '')})",
                f"- [Areas]({urls.get('showAreas', '')})",
                "",
            ]
        )

    lines.extend(["---", ""])
    return "\n".join(lines)
