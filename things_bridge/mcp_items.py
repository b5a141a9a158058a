"""Write tools: create, update, remove, navigate and verify Things items."""

from __future__ import annotations

import logging
import re
from typing import Any

from fastapi import Request

from things_bridge.context import (
    bridge_errors,
    get_request_auth_token,
    get_request_dispatcher,
    get_request_verifier,
    get_request_verify_wait_ms,
)
from things_bridge.errors import McpError, success_response
from things_bridge.mcp_payload import (
    _ensure_payload_dict,
    _optional_bool,
    _optional_int,
    _optional_str,
    _optional_str_list,
    _reject_unknown_fields,
    _require_fields,
)
from things_bridge.mcp_router import mcp_router
from things_bridge.mutations import (
    ITEM_TYPES,
    PROJECT,
    PROJECT_CREATE_FIELDS,
    PROJECT_UPDATE_FIELDS,
    TERMINAL_FIELDS,
    TODO,
    TODO_CREATE_FIELDS,
    TODO_UPDATE_FIELDS,
    WriteCommand,
    dispatch_commands,
    normalize_field_name,
    plan_add_project,
    plan_add_todo,
    plan_delete,
    plan_json_import,
    plan_search,
    plan_show,
    plan_update,
)
from things_bridge.verification import DEFAULT_STATE_WAIT_MS, Verifier

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")

CONTROL_FIELDS = {"id", "verify", "wait_ms"}
LIST_TARGET_FIELDS = {
    "project_id",
    "project_name",
    "project",
    "area_id",
    "area_name",
    "area",
}
TODO_ADD_FIELDS = set(TODO_CREATE_FIELDS) | LIST_TARGET_FIELDS
PROJECT_ADD_FIELDS = set(PROJECT_CREATE_FIELDS)
TODO_CHANGE_FIELDS = set(TODO_UPDATE_FIELDS) | set(TERMINAL_FIELDS) | LIST_TARGET_FIELDS
PROJECT_CHANGE_FIELDS = set(PROJECT_UPDATE_FIELDS) | set(TERMINAL_FIELDS)
VERIFY_EXPECTATIONS = {"exists", "updated", "completed", "canceled", "trashed"}
STATE_EXPECTATIONS = {"completed", "canceled", "trashed"}


def _snake_case(name: str) -> str:
    """``projectId``, ``project-id`` and ``project_id`` all become ``project_id``."""
    return normalize_field_name(_CAMEL_BOUNDARY.sub(r"_\1", name)).lower()


def _normalized_payload(payload: Any, allowed_fields: set[str]) -> dict[str, Any]:
    payload = _ensure_payload_dict(payload)
    fields = {_snake_case(str(key)): value for key, value in payload.items()}
    _reject_unknown_fields(fields, allowed_fields)
    for name in TERMINAL_FIELDS:
        _optional_bool(fields, name)
    return fields


def _dispatch(request: Request, commands: list[WriteCommand]) -> list[dict[str, Any]]:
    dispatcher = get_request_dispatcher(request)
    with bridge_errors():
        return dispatch_commands(commands, dispatcher)


def _unverified_warning(action: str, item_type: str, item_id: str, wait_ms: int) -> str:
    return (
        f"Could not confirm that {item_type} {item_id} was {action} after {wait_ms}ms. "
        "Things may still apply the change; call verify_item with a longer waitMs."
    )


def _check_update(
    verifier: Verifier, item_id: str, changes: dict[str, Any], wait_ms: int
) -> tuple[str, bool]:
    if changes.get("completed"):
        return "completed", verifier.verify_completed(item_id, wait_ms)
    if changes.get("canceled"):
        return "canceled", verifier.verify_canceled(item_id, wait_ms)
    return "updated", verifier.verify_updated(item_id, changes.get("title"), wait_ms)


def _update_item(
    item_type: str, payload: Any, request: Request, allowed_fields: set[str]
) -> dict[str, Any]:
    fields = _normalized_payload(payload, allowed_fields | CONTROL_FIELDS)
    _require_fields(fields, "id")
    item_id = _optional_str(fields, "id")
    verify = _optional_bool(fields, "verify", default=True)
    wait_ms = _optional_int(fields, "wait_ms")
    changes = {name: value for name, value in fields.items() if name not in CONTROL_FIELDS}

    with bridge_errors():
        commands = plan_update(item_type, item_id, changes, get_request_auth_token(request))
    verifier = get_request_verifier(request) if verify else None
    dispatched = _dispatch(request, commands)
    data: dict[str, Any] = {"id": item_id, "type": item_type, "commands": dispatched}
    if verifier is None:
        return success_response(data)

    if wait_ms is None:
        terminal = any(changes.get(name) for name in TERMINAL_FIELDS)
        wait_ms = DEFAULT_STATE_WAIT_MS if terminal else get_request_verify_wait_ms(request)
    expectation, verified = _check_update(verifier, item_id, changes, wait_ms)
    data["verified"] = verified
    data["verification"] = {"expected": expectation, "waitMs": wait_ms}
    if verified:
        return success_response(data)
    logger.warning("Unverified %s update of %s", item_type, item_id)
    return success_response(
        data, warnings=[_unverified_warning(expectation, item_type, item_id, wait_ms)]
    )


def _remove_item(item_type: str, payload: Any, request: Request) -> dict[str, Any]:
    fields = _normalized_payload(payload, CONTROL_FIELDS)
    _require_fields(fields, "id")
    item_id = _optional_str(fields, "id")
    verify = _optional_bool(fields, "verify", default=True)
    wait_ms = _optional_int(fields, "wait_ms")

    with bridge_errors():
        commands = plan_delete(item_type, item_id, get_request_auth_token(request))
    verifier = get_request_verifier(request) if verify else None
    dispatched = _dispatch(request, commands)
    data: dict[str, Any] = {"id": item_id, "type": item_type, "commands": dispatched}
    if verifier is None:
        return success_response(data)

    if wait_ms is None:
        wait_ms = DEFAULT_STATE_WAIT_MS
    verified = verifier.verify_trashed(item_id, wait_ms)
    data["verified"] = verified
    data["verification"] = {"expected": "trashed", "waitMs": wait_ms}
    if verified:
        return success_response(data)
    return success_response(
        data, warnings=[_unverified_warning("removed", item_type, item_id, wait_ms)]
    )


@mcp_router.post("/tool:add_todo")
def add_todo(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create a to-do; no auth token is needed for creation."""
    fields = _normalized_payload(payload, TODO_ADD_FIELDS)
    _require_fields(fields, "title")
    dispatched = _dispatch(request, plan_add_todo(fields))
    return success_response({"type": TODO, "title": fields["title"], "commands": dispatched})


@mcp_router.post("/tool:add_project")
def add_project(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create a project, optionally with newline-separated to-dos."""
    fields = _normalized_payload(payload, PROJECT_ADD_FIELDS)
    _require_fields(fields, "title")
    dispatched = _dispatch(request, plan_add_project(fields))
    return success_response(
        {"type": PROJECT, "title": fields["title"], "commands": dispatched}
    )


@mcp_router.post("/tool:update_todo")
def update_todo(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Update an existing to-do and optionally confirm the change."""
    return _update_item(TODO, payload, request, TODO_CHANGE_FIELDS)


@mcp_router.post("/tool:update_project")
def update_project(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    return _update_item(PROJECT, payload, request, PROJECT_CHANGE_FIELDS)


@mcp_router.post("/tool:remove_todo")
def remove_todo(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Move a to-do to the Things trash."""
    return _remove_item(TODO, payload, request)


@mcp_router.post("/tool:remove_project")
def remove_project(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    return _remove_item(PROJECT, payload, request)


@mcp_router.post("/tool:show")
def show(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Reveal a list, area, project or to-do in the Things window."""
    fields = _normalized_payload(payload, {"id", "query", "filter_tags"})
    commands = plan_show(
        _optional_str(fields, "id"),
        _optional_str(fields, "query"),
        _optional_str_list(fields, "filter_tags"),
    )
    return success_response({"commands": _dispatch(request, commands)})


@mcp_router.post("/tool:search")
def search(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    fields = _normalized_payload(payload, {"query"})
    _require_fields(fields, "query")
    commands = plan_search(_optional_str(fields, "query"))
    return success_response({"commands": _dispatch(request, commands)})


@mcp_router.post("/tool:json_import")
def json_import(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Create or update several items through the Things JSON command."""
    payload = _ensure_payload_dict(payload)
    _reject_unknown_fields(payload, {"data", "reveal"})
    _require_fields(payload, "data")

    items = payload["data"]
    if not isinstance(items, list) or not items:
        raise McpError(
            "INVALID_TYPE",
            "data must be a non-empty array of items.",
            {"field": "data"},
        )
    for index, item in enumerate(items):
        if not isinstance(item, dict) or item.get("type") not in ITEM_TYPES:
            raise McpError(
                "INVALID_TYPE",
                "Each item must be an object with type 'to-do' or 'project'.",
                {"index": index},
            )
        if not isinstance(item.get("attributes", {}), dict):
            raise McpError(
                "INVALID_TYPE",
                "Item attributes must be an object.",
                {"index": index},
            )

    with bridge_errors():
        commands = plan_json_import(
            items,
            _optional_bool(payload, "reveal", default=False) or None,
            get_request_auth_token(request),
        )
    dispatched = _dispatch(request, commands)
    return success_response({"count": len(items), "commands": dispatched})


@mcp_router.post("/tool:verify_item")
def verify_item(payload: dict[str, Any], request: Request) -> dict[str, Any]:
    """Read one item back from the database and compare it to an expectation.

    Not finding the item is a normal result, reported as ``verified: false``.
    """
    fields = _normalized_payload(payload, {"id", "expect", "expected_title", "wait_ms"})
    _require_fields(fields, "id")
    item_id = _optional_str(fields, "id")
    expectation = _optional_str(fields, "expect") or "exists"
    if expectation not in VERIFY_EXPECTATIONS:
        raise McpError(
            "INVALID_EXPECTATION",
            "expect must be one of: canceled, completed, exists, trashed, updated.",
            {"expect": expectation},
        )
    expected_title = _optional_str(fields, "expected_title")
    wait_ms = _optional_int(fields, "wait_ms")
    if wait_ms is None and expectation in STATE_EXPECTATIONS:
        wait_ms = DEFAULT_STATE_WAIT_MS
    elif wait_ms is None:
        wait_ms = get_request_verify_wait_ms(request)

    verifier = get_request_verifier(request)
    data: dict[str, Any] = {"id": item_id, "expect": expectation, "waitMs": wait_ms}
    if expectation == "exists":
        state = verifier.verify_exists(item_id, wait_ms)
        data["verified"] = state is not None
        data["item"] = state.to_dict() if state is not None else None
    elif expectation == "updated":
        data["verified"] = verifier.verify_updated(item_id, expected_title, wait_ms)
    elif expectation == "completed":
        data["verified"] = verifier.verify_completed(item_id, wait_ms)
    elif expectation == "canceled":
        data["verified"] = verifier.verify_canceled(item_id, wait_ms)
    else:
        data["verified"] = verifier.verify_trashed(item_id, wait_ms)
    return success_response(data)
