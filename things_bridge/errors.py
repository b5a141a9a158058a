"""Structured error types for Things tool responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class ErrorResponse:
    """Serializable error payload returned by tool handlers."""

    code: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class McpError(RuntimeError):
    """Exception carrying a structured error response."""

    def __init__(
        self, code: str, message: str, details: Mapping[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.error = ErrorResponse(
            code=code, message=message, details=dict(details or {})
        )


class ThingsEnvironmentError(RuntimeError):
    """Raised when the Things application or its host platform is unavailable."""

    code = "THINGS_UNAVAILABLE"

    def to_mcp_error(self) -> McpError:
        return McpError(self.code, str(self))


class PlatformError(ThingsEnvironmentError):
    """Raised when the service runs on a platform Things does not support."""

    code = "UNSUPPORTED_PLATFORM"


class AuthorizationMissingError(RuntimeError):
    """Raised when a mutation of an existing item has no auth token."""

    def to_mcp_error(self) -> McpError:
        return McpError(
            "AUTH_TOKEN_REQUIRED",
            str(self),
            {"env": "THINGS_AUTH_TOKEN"},
        )


class DispatchError(RuntimeError):
    """Raised when a write-channel command could not be handed to the OS."""


def success_response(
    payload: dict[str, Any], warnings: list[str] | None = None
) -> dict[str, Any]:
    """Wrap a successful tool response in the standard envelope."""
    response: dict[str, Any] = {"ok": True, "data": payload}
    if warnings:
        response["warnings"] = list(warnings)
    return response


def error_response(error: ErrorResponse) -> dict[str, Any]:
    """Wrap an error response in the standard envelope."""
    return {"ok": False, "error": error.to_dict()}
