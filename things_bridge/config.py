"""Configuration loading for the Things bridge."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path


class ConfigError(RuntimeError):
    """Raised when required configuration is missing or invalid."""


@dataclass(frozen=True)
class AppConfig:
    auth_token: str | None
    home: Path | None
    sqlite_binary: str
    query_timeout: float
    verify_wait_ms: int
    require_macos: bool
    service_token: str | None
    log_level: str


def _read_dotenv_value(dotenv_path: Path, key: str) -> str | None:
    """Read a single key from a .env file without mutating the environment."""
    if not dotenv_path.is_file():
        return None
    try:
        content = dotenv_path.read_text(encoding="utf-8")
    except OSError:
        return None

    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if stripped.startswith("export "):
            stripped = stripped[len("export ") :].strip()
        if "=" not in stripped:
            continue
        name, value = stripped.split("=", 1)
        if name.strip() != key:
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]
        return value or None
    return None


def _lookup(dotenv_path: Path, key: str) -> str | None:
    value = os.environ.get(key)
    if value is None:
        value = _read_dotenv_value(dotenv_path, key)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _read_bool(raw_value: str | None, *, default: bool, key: str) -> bool:
    if raw_value is None:
        return default
    normalized = raw_value.strip().lower()
    if not normalized:
        return default
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{key} must be a boolean value.")


def _read_number(raw_value: str | None, *, default, key: str, cast):
    if raw_value is None:
        return default
    try:
        value = cast(raw_value)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number.") from exc
    if value < 0:
        raise ConfigError(f"{key} must not be negative.")
    return value


def load_config() -> AppConfig:
    """Load configuration from the environment, falling back to ``.env``."""
    dotenv_path = Path.cwd() / ".env"

    raw_home = _lookup(dotenv_path, "THINGS_HOME")
    home = Path(raw_home).expanduser().resolve() if raw_home else None

    log_level = (_lookup(dotenv_path, "THINGS_LOG_LEVEL") or "INFO").upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError("THINGS_LOG_LEVEL must be a logging level name.")

    return AppConfig(
        auth_token=_lookup(dotenv_path, "THINGS_AUTH_TOKEN"),
        home=home,
        sqlite_binary=_lookup(dotenv_path, "THINGS_SQLITE_BINARY") or "sqlite3",
        query_timeout=_read_number(
            _lookup(dotenv_path, "THINGS_QUERY_TIMEOUT"),
            default=30.0,
            key="THINGS_QUERY_TIMEOUT",
            cast=float,
        ),
        verify_wait_ms=_read_number(
            _lookup(dotenv_path, "THINGS_VERIFY_WAIT_MS"),
            default=100,
            key="THINGS_VERIFY_WAIT_MS",
            cast=int,
        ),
        require_macos=_read_bool(
            _lookup(dotenv_path, "THINGS_REQUIRE_MACOS"),
            default=True,
            key="THINGS_REQUIRE_MACOS",
        ),
        service_token=_lookup(dotenv_path, "THINGS_SERVICE_TOKEN"),
        log_level=log_level,
    )
