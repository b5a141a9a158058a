"""Turn requested changes into write-channel commands.

Things accepts writes only through its URL scheme. Field edits go out as a
single ``update``/``update-project`` URL. Completion and cancellation go out
as a ``json`` operation instead. When a request carries both, the field edit
is sent first.

Planning is pure: the ``plan_*`` functions only build command objects, and
``dispatch_commands`` is the single place that touches the OS.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol, Union

from things_bridge.errors import AuthorizationMissingError
from things_bridge.url_scheme import (
    AUTH_TOKEN_PARAM,
    build_things_url,
    mask_token,
)

logger = logging.getLogger(__name__)

TODO = "to-do"
PROJECT = "project"
ITEM_TYPES = {TODO, PROJECT}

TAG_SEPARATOR = ","
CHECKLIST_SEPARATOR = "\n"

TERMINAL_FIELDS = ("completed", "canceled")

# Request field -> URL parameter, per item type.
TODO_UPDATE_FIELDS = {
    "title": "title",
    "notes": "notes",
    "prepend_notes": "prepend-notes",
    "append_notes": "append-notes",
    "when": "when",
    "deadline": "deadline",
    "tags": "tags",
    "add_tags": "add-tags",
    "checklist_items": "checklist-items",
    "prepend_checklist_items": "prepend-checklist-items",
    "append_checklist_items": "append-checklist-items",
    "add_checklist_items": "append-checklist-items",
    "list": "list",
    "list_id": "list-id",
    "heading": "heading",
    "heading_id": "heading-id",
    "creation_date": "creation-date",
    "completion_date": "completion-date",
}

PROJECT_UPDATE_FIELDS = {
    "title": "title",
    "notes": "notes",
    "prepend_notes": "prepend-notes",
    "append_notes": "append-notes",
    "when": "when",
    "deadline": "deadline",
    "tags": "tags",
    "add_tags": "add-tags",
    "area": "area",
    "area_name": "area",
    "area_id": "area-id",
    "creation_date": "creation-date",
    "completion_date": "completion-date",
}

TODO_CREATE_FIELDS = {
    "title": "title",
    "notes": "notes",
    "when": "when",
    "deadline": "deadline",
    "tags": "tags",
    "checklist_items": "checklist-items",
    "list": "list",
    "list_id": "list-id",
    "heading": "heading",
    "heading_id": "heading-id",
    "heading_name": "heading",
    "completed": "completed",
    "canceled": "canceled",
    "creation_date": "creation-date",
    "completion_date": "completion-date",
}

PROJECT_CREATE_FIELDS = {
    "title": "title",
    "notes": "notes",
    "when": "when",
    "deadline": "deadline",
    "tags": "tags",
    "area": "area",
    "area_name": "area",
    "area_id": "area-id",
    "todos": "to-dos",
    "completed": "completed",
    "canceled": "canceled",
    "creation_date": "creation-date",
    "completion_date": "completion-date",
}

LIST_SEPARATORS = {
    "tags": TAG_SEPARATOR,
    "add-tags": TAG_SEPARATOR,
    "checklist-items": CHECKLIST_SEPARATOR,
    "prepend-checklist-items": CHECKLIST_SEPARATOR,
    "append-checklist-items": CHECKLIST_SEPARATOR,
    "to-dos": CHECKLIST_SEPARATOR,
}

# Update parameters that Things clears when sent with an empty value.
CLEARABLE_PARAMS = {"notes", "deadline", "tags", "checklist-items"}


class EmptyChangeSetError(ValueError):
    """Raised when an update request carries no recognised change."""


class Dispatcher(Protocol):
    def open_url(self, url: str) -> None: ...

    def run_applescript(self, script: str) -> None: ...


@dataclass(frozen=True)
class UrlCommand:
    """A plain ``things:///<command>`` URL."""

    command: str
    params: dict[str, Any] = field(default_factory=dict)
    cleared: frozenset[str] = frozenset()

    @property
    def url(self) -> str:
        return build_things_url(self.command, self.params, keep_empty=self.cleared)

    def describe(self) -> dict[str, Any]:
        token = self.params.get(AUTH_TOKEN_PARAM)
        fields = sorted(key for key in self.params if key != AUTH_TOKEN_PARAM)
        return {
            "channel": "url",
            "command": self.command,
            "fields": fields,
            "url": mask_token(self.url, token),
        }


@dataclass(frozen=True)
class JsonOperation:
    """A structured ``things:///json`` update of an existing item."""

    item_type: str
    item_id: str
    attributes: dict[str, Any]
    auth_token: str

    def payload(self) -> list[dict[str, Any]]:
        return [
            {
                "type": self.item_type,
                "operation": "update",
                "id": self.item_id,
                "attributes": dict(self.attributes),
            }
        ]

    @property
    def url(self) -> str:
        return build_things_url(
            "json", {"data": self.payload(), AUTH_TOKEN_PARAM: self.auth_token}
        )

    def describe(self) -> dict[str, Any]:
        return {
            "channel": "json",
            "command": "json",
            "operation": self.payload()[0],
            "url": mask_token(self.url, self.auth_token),
        }


@dataclass(frozen=True)
class AppleScriptCommand:
    """An AppleScript snippet run through ``osascript``."""

    script: str

    def describe(self) -> dict[str, Any]:
        return {"channel": "applescript", "script": self.script}


WriteCommand = Union[UrlCommand, JsonOperation, AppleScriptCommand]


def normalize_field_name(name: str) -> str:
    return name.strip().replace("-", "_")


def normalize_changes(changes: Mapping[str, Any]) -> dict[str, Any]:
    return {normalize_field_name(key): value for key, value in changes.items()}


def _join(param: str, value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        separator = LIST_SEPARATORS.get(param, TAG_SEPARATOR)
        return separator.join(str(item) for item in value if str(item))
    return value


def _map_fields(
    changes: Mapping[str, Any], field_map: Mapping[str, str]
) -> dict[str, Any]:
    params: dict[str, Any] = {}
    for name, value in changes.items():
        param = field_map.get(name)
        if param is None or value is None:
            continue
        params[param] = _join(param, value)
    return params


def _pop_list_target(changes: dict[str, Any]) -> dict[str, Any]:
    """Collapse project/area target fields into ``list``/``list-id``.

    A to-do lives in one container, so a project target wins over an area.
    """
    project_id = changes.pop("project_id", None)
    project_name = changes.pop("project_name", None) or changes.pop("project", None)
    area_id = changes.pop("area_id", None)
    area_name = changes.pop("area_name", None) or changes.pop("area", None)

    if project_id or project_name:
        return {"list-id": project_id, "list": None if project_id else project_name}
    if area_id or area_name:
        return {"list-id": area_id, "list": None if area_id else area_name}
    return {}


def _require_token(auth_token: str | None) -> str:
    if not auth_token:
        raise AuthorizationMissingError(
            "THINGS_AUTH_TOKEN environment variable is required for update operations"
        )
    return auth_token


def _check_item_type(item_type: str) -> None:
    if item_type not in ITEM_TYPES:
        raise ValueError(f"Unsupported item type: {item_type}")


def plan_update(
    item_type: str,
    item_id: str,
    changes: Mapping[str, Any],
    auth_token: str | None,
) -> list[WriteCommand]:
    """Route an update of an existing item to the URL and/or JSON channel."""
    _check_item_type(item_type)
    token = _require_token(auth_token)

    normalized = normalize_changes(changes)
    terminal = {
        name: bool(normalized[name])
        for name in TERMINAL_FIELDS
        if normalized.get(name) is not None
    }
    field_map = TODO_UPDATE_FIELDS if item_type == TODO else PROJECT_UPDATE_FIELDS
    edits = {
        name: value for name, value in normalized.items() if name not in TERMINAL_FIELDS
    }
    completion_date = None
    if terminal:
        completion_date = edits.pop("completion_date", None)

    commands: list[WriteCommand] = []
    url_params = _map_fields(edits, field_map)
    if item_type == TODO:
        url_params.update(_pop_list_target(edits))
    url_params = {
        key: value
        for key, value in url_params.items()
        if value is not None and (value != "" or key in CLEARABLE_PARAMS)
    }
    if url_params:
        command = "update" if item_type == TODO else "update-project"
        params = {"id": item_id, AUTH_TOKEN_PARAM: token}
        params.update(url_params)
        cleared = frozenset(key for key, value in url_params.items() if value == "")
        commands.append(UrlCommand(command, params, cleared))

    if terminal:
        attributes: dict[str, Any] = dict(terminal)
        if completion_date:
            attributes["completion-date"] = completion_date
        commands.append(JsonOperation(item_type, item_id, attributes, token))

    if not commands:
        raise EmptyChangeSetError("No supported fields to update.")
    return commands


def plan_add_todo(fields: Mapping[str, Any]) -> list[WriteCommand]:
    normalized = normalize_changes(fields)
    target = _pop_list_target(normalized)
    params = _map_fields(normalized, TODO_CREATE_FIELDS)
    params.update({key: value for key, value in target.items() if value is not None})
    return [UrlCommand("add", params)]


def plan_add_project(fields: Mapping[str, Any]) -> list[WriteCommand]:
    params = _map_fields(normalize_changes(fields), PROJECT_CREATE_FIELDS)
    return [UrlCommand("add-project", params)]


def plan_show(
    item_id: str | None = None,
    query: str | None = None,
    filter_tags: list[str] | None = None,
) -> list[WriteCommand]:
    params: dict[str, Any] = {"id": item_id, "query": query}
    if filter_tags:
        params["filter"] = _join("tags", filter_tags)
    return [UrlCommand("show", params)]


def plan_search(query: str) -> list[WriteCommand]:
    return [UrlCommand("search", {"query": query})]


def plan_json_import(
    items: list[dict[str, Any]],
    reveal: bool | None,
    auth_token: str | None,
) -> list[WriteCommand]:
    """Import items through the JSON channel.

    Creating items needs no token; any item carrying ``operation: update``
    does.
    """
    params: dict[str, Any] = {"data": items, "reveal": reveal}
    if any(item.get("operation") == "update" for item in items):
        params[AUTH_TOKEN_PARAM] = _require_token(auth_token)
    return [UrlCommand("json", params)]


def _applescript_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def plan_delete(
    item_type: str, item_id: str, auth_token: str | None
) -> list[WriteCommand]:
    """Move an item to the Things trash."""
    _check_item_type(item_type)
    _require_token(auth_token)
    noun = "to do" if item_type == TODO else "project"
    script = (
        'tell application "Things3" to delete '
        f"{noun} id {_applescript_string(item_id)}"
    )
    return [AppleScriptCommand(script)]


def dispatch_commands(
    commands: list[WriteCommand], dispatcher: Dispatcher
) -> list[dict[str, Any]]:
    """Send ``commands`` in order and return their masked descriptions."""
    dispatched: list[dict[str, Any]] = []
    for command in commands:
        description = command.describe()
        if isinstance(command, AppleScriptCommand):
            dispatcher.run_applescript(command.script)
        else:
            dispatcher.open_url(command.url)
        logger.info(
            "Dispatched %s command: %s",
            description["channel"],
            description.get("url") or description.get("script"),
        )
        dispatched.append(description)
    return dispatched
