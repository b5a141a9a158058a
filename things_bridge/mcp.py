"""Tool handler registration."""

# ruff: noqa: F401

from __future__ import annotations

from fastapi import FastAPI

from things_bridge.mcp_router import mcp_router

# Import modules to register routes with the shared router.
from things_bridge import mcp_items, mcp_summary, mcp_tools_endpoint

# Re-export endpoints for tests and direct imports.
from things_bridge.mcp_items import (
    add_project,
    add_todo,
    json_import,
    remove_project,
    remove_todo,
    search,
    show,
    update_project,
    update_todo,
    verify_item,
)
from things_bridge.mcp_summary import export_json, things_summary
from things_bridge.mcp_tools_endpoint import list_tool_schemas


def register_mcp_handlers(app: FastAPI) -> None:
    """Attach tool routes to the FastAPI application."""
    app.include_router(mcp_router)
