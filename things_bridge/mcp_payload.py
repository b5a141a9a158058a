"""Payload validation helpers for tool endpoints."""

from __future__ import annotations

from typing import Any

from things_bridge.errors import McpError


def _ensure_payload_dict(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise McpError(
            "INVALID_TYPE",
            "Payload must be an object.",
            {"type": type(payload).__name__},
        )
    return payload


def _reject_unknown_fields(payload: dict[str, Any], allowed_fields: set[str]) -> None:
    unknown_fields = sorted(set(payload) - allowed_fields)
    if unknown_fields:
        raise McpError(
            "UNKNOWN_FIELD",
            "Unknown fields are not allowed.",
            {"fields": unknown_fields},
        )


def _require_fields(payload: dict[str, Any], *fields: str) -> None:
    missing = [name for name in fields if payload.get(name) in (None, "")]
    if missing:
        raise McpError(
            "MISSING_FIELDS",
            f"{', '.join(fields)} {'is' if len(fields) == 1 else 'are'} required.",
            {"fields": missing},
        )


def _optional_str(payload: dict[str, Any], field: str) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise McpError(
            "INVALID_TYPE",
            f"{field} must be a string.",
            {"field": field, "type": type(value).__name__},
        )
    return value


def _optional_bool(payload: dict[str, Any], field: str, default: bool = False) -> bool:
    value = payload.get(field)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise McpError(
            "INVALID_TYPE",
            f"{field} must be a boolean.",
            {"field": field, "type": type(value).__name__},
        )
    return value


def _optional_int(payload: dict[str, Any], field: str) -> int | None:
    value = payload.get(field)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise McpError(
            "INVALID_TYPE",
            f"{field} must be a non-negative integer.",
            {"field": field},
        )
    return value


def _optional_str_list(payload: dict[str, Any], field: str) -> list[str]:
    """Accept a list of strings or a single comma-separated string."""
    value = payload.get(field)
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return [item for item in value if item.strip()]
    raise McpError(
        "INVALID_TYPE",
        f"{field} must be a list of strings.",
        {"field": field},
    )
