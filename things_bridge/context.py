"""Request-scoped access to configuration and the Things collaborators.

Handlers never build runners or dispatchers themselves. They ask for them
here, which lets tests place fakes on ``app.state`` (``runner``,
``dispatcher``, ``sleep``, ``clock``, ``auth_token``) and call handlers
directly.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Iterator

from fastapi import Request

from things_bridge.config import AppConfig
from things_bridge.database import ensure_supported_platform, locate_database
from things_bridge.errors import (
    AuthorizationMissingError,
    DispatchError,
    McpError,
    ThingsEnvironmentError,
)
from things_bridge.mutations import Dispatcher, EmptyChangeSetError
from things_bridge.sqlite_query import QueryRunner, SqliteQueryRunner
from things_bridge.url_scheme import UrlDispatcher
from things_bridge.verification import DEFAULT_WAIT_MS, Verifier

SERVICE_TOKEN_HEADER = "X-Things-Service-Token"
AUTH_EXEMPT_PATHS = {"/health"}


def _state(request: Request) -> Any:
    return request.app.state


def get_request_config(request: Request) -> AppConfig | None:
    return getattr(_state(request), "config", None)


def _require_platform(request: Request) -> None:
    config = get_request_config(request)
    if config is None or config.require_macos:
        ensure_supported_platform()


@contextmanager
def bridge_errors() -> Iterator[None]:
    """Translate bridge exceptions raised inside the block into ``McpError``."""
    try:
        yield
    except (ThingsEnvironmentError, AuthorizationMissingError) as exc:
        raise exc.to_mcp_error() from exc
    except DispatchError as exc:
        raise McpError("DISPATCH_FAILED", str(exc)) from exc
    except EmptyChangeSetError as exc:
        raise McpError(
            "NO_CHANGES",
            str(exc),
            {"hint": "Pass at least one field to change."},
        ) from exc


def get_request_runner(request: Request) -> QueryRunner:
    """Return the query runner for this request, locating the database if needed."""
    runner = getattr(_state(request), "runner", None)
    if runner is not None:
        return runner

    config = get_request_config(request)
    with bridge_errors():
        _require_platform(request)
        db_path = locate_database(config.home if config else None)
    if config is None:
        return SqliteQueryRunner(db_path)
    return SqliteQueryRunner(
        db_path, binary=config.sqlite_binary, timeout=config.query_timeout
    )


def get_request_dispatcher(request: Request) -> Dispatcher:
    dispatcher = getattr(_state(request), "dispatcher", None)
    if dispatcher is not None:
        return dispatcher
    with bridge_errors():
        _require_platform(request)
    return UrlDispatcher()


def get_request_verifier(request: Request) -> Verifier:
    sleep: Callable[[float], None] = getattr(_state(request), "sleep", None) or time.sleep
    return Verifier(get_request_runner(request), sleep=sleep)


def get_request_auth_token(request: Request) -> str | None:
    token = getattr(_state(request), "auth_token", None)
    if token:
        return token
    config = get_request_config(request)
    return config.auth_token if config else None


def get_request_verify_wait_ms(request: Request) -> int:
    config = get_request_config(request)
    return config.verify_wait_ms if config else DEFAULT_WAIT_MS


def get_request_now(request: Request) -> datetime:
    """Current local time; ``app.state.clock`` overrides it in tests."""
    clock = getattr(_state(request), "clock", None)
    if clock is not None:
        return clock()
    return datetime.now().astimezone()
