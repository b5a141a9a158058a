"""Strip empty values from an assembled response tree."""

from __future__ import annotations

from typing import Any

CHECKLIST_KEY = "checklistItems"


def _is_empty_checklist(key: str, value: Any) -> bool:
    return (
        key == CHECKLIST_KEY
        and isinstance(value, dict)
        and value.get("total") == 0
        and value.get("open") == 0
    )


def compress(value: Any) -> Any:
    """Return ``value`` without empty strings, lists, objects or None.

    A ``checklistItems`` pair of ``{"total": 0, "open": 0}`` is treated as
    empty too. Returns None when nothing meaningful is left.
    """
    if isinstance(value, list):
        items = [compress(item) for item in value]
        kept = [item for item in items if item is not None and item != ""]
        return kept or None

    if isinstance(value, dict):
        result: dict[str, Any] = {}
        for key, item in value.items():
            compressed = compress(item)
            if compressed is None or compressed == "" or compressed == []:
                continue
            if _is_empty_checklist(key, compressed):
                continue
            result[key] = compressed
        return result or None

    return value
