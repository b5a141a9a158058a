"""Read tools: the hierarchical summary and the flat JSON export."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Request

from things_bridge.context import get_request_now, get_request_runner
from things_bridge.dates import parse_iso_date
from things_bridge.errors import McpError, success_response
from things_bridge.export import export_database
from things_bridge.mcp_payload import (
    _ensure_payload_dict,
    _optional_bool,
    _optional_str,
    _optional_str_list,
    _reject_unknown_fields,
)
from things_bridge.mcp_router import mcp_router
from things_bridge.summary import STATUS_FILTERS, DateRange, SummaryFilters, build_summary
from things_bridge.summary_markdown import render_summary_markdown

logger = logging.getLogger(__name__)

SUMMARY_FORMATS = {"markdown", "json"}


def _parse_date_range(raw: Any) -> DateRange | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise McpError(
            "INVALID_TYPE",
            "dateRange must be an object.",
            {"type": type(raw).__name__},
        )
    _reject_unknown_fields(raw, {"from", "to"})
    bounds = {}
    for key in ("from", "to"):
        value = _optional_str(raw, key)
        if not value:
            bounds[key] = None
            continue
        try:
            bounds[key] = parse_iso_date(value)
        except ValueError as exc:
            raise McpError(
                "INVALID_DATE",
                f"dateRange.{key} must be a YYYY-MM-DD date.",
                {"field": f"dateRange.{key}", "value": value},
            ) from exc
    if bounds["from"] is None and bounds["to"] is None:
        return None
    if bounds["from"] and bounds["to"] and bounds["from"] > bounds["to"]:
        raise McpError(
            "INVALID_DATE",
            "dateRange.from must not be after dateRange.to.",
            {"from": bounds["from"].isoformat(), "to": bounds["to"].isoformat()},
        )
    return DateRange(start=bounds["from"], end=bounds["to"])


def _summary_filters(payload: dict[str, Any]) -> SummaryFilters:
    status = _optional_str(payload, "status")
    if status is not None and status not in STATUS_FILTERS:
        raise McpError(
            "INVALID_STATUS",
            "status must be one of: all, canceled, completed, open.",
            {"status": status},
        )
    return SummaryFilters(
        include_completed=_optional_bool(payload, "includeCompleted"),
        include_trash=_optional_bool(payload, "includeTrash"),
        include_inactive=_optional_bool(payload, "includeInactive"),
        status=status,
        areas=tuple(_optional_str_list(payload, "areas")),
        tags=tuple(_optional_str_list(payload, "tags")),
        projects=tuple(_optional_str_list(payload, "projects")),
        date_range=_parse_date_range(payload.get("dateRange")),
    )


@mcp_router.post("/tool:things_summary")
def things_summary(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Summarize areas, projects, tasks and tags as Markdown or a JSON tree."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(
        payload,
        {
            "format",
            "includeCompleted",
            "includeTrash",
            "includeInactive",
            "status",
            "areas",
            "tags",
            "projects",
            "dateRange",
        },
    )

    output_format = _optional_str(payload, "format") or "markdown"
    if output_format not in SUMMARY_FORMATS:
        raise McpError(
            "INVALID_FORMAT",
            "format must be 'markdown' or 'json'.",
            {"format": output_format},
        )
    filters = _summary_filters(payload)

    runner = get_request_runner(request)
    now = get_request_now(request)
    summary = build_summary(runner, filters, now.date(), now)
    logger.info("Built %s summary", output_format)

    if output_format == "json":
        return success_response({"format": "json", "summary": summary})
    return success_response(
        {"format": "markdown", "markdown": render_summary_markdown(summary, now)}
    )


@mcp_router.post("/tool:export_json")
def export_json(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Export the raw database contents as flat JSON collections."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"includeCompleted", "includeTrash", "minimal"})

    runner = get_request_runner(request)
    exported = export_database(
        runner,
        getattr(runner, "db_path", None),
        get_request_now(request),
        include_completed=_optional_bool(payload, "includeCompleted"),
        include_trash=_optional_bool(payload, "includeTrash"),
        minimal=_optional_bool(payload, "minimal"),
    )
    return success_response(exported)
