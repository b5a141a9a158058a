"""Locate the Things database inside the macOS group container."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from things_bridge.errors import PlatformError, ThingsEnvironmentError

logger = logging.getLogger(__name__)

GROUP_CONTAINERS_DIR = Path("Library") / "Group Containers"
THINGS_BUNDLE_FRAGMENT = "JLMPQHK86H.com.culturedcode.ThingsMac"
THINGS_DATA_PREFIX = "ThingsData-"
DATABASE_RELATIVE_PATH = Path("Things Database.thingsdatabase") / "main.sqlite"


class DatabaseNotFoundError(ThingsEnvironmentError):
    """Base class for the stages of the database existence chain."""

    code = "THINGS_DATABASE_NOT_FOUND"

    def __init__(self, message: str, path: Path) -> None:
        super().__init__(message)
        self.path = path

    def to_mcp_error(self):
        error = super().to_mcp_error()
        error.error.details["path"] = str(self.path)
        return error


class ThingsNotInstalledError(DatabaseNotFoundError):
    code = "THINGS_NOT_INSTALLED"


class ThingsContainerNotFoundError(DatabaseNotFoundError):
    code = "THINGS_CONTAINER_NOT_FOUND"


class ThingsDataDirNotFoundError(DatabaseNotFoundError):
    code = "THINGS_DATA_DIR_NOT_FOUND"


class ThingsDatabaseFileNotFoundError(DatabaseNotFoundError):
    code = "THINGS_DATABASE_NOT_FOUND"


def ensure_supported_platform(platform: str | None = None) -> None:
    current = platform or sys.platform
    if current != "darwin":
        raise PlatformError(
            f"Things database access is only available on macOS (platform: {current})."
        )


def _first_child_dir(parent: Path, predicate) -> Path | None:
    for entry in sorted(parent.iterdir(), key=lambda path: path.name):
        if entry.is_dir() and predicate(entry.name):
            return entry
    return None


def locate_database(home: Path | None = None) -> Path:
    """Resolve the path to ``main.sqlite`` or raise a stage-specific error."""
    home_dir = Path(home) if home is not None else Path.home()
    containers_root = home_dir / GROUP_CONTAINERS_DIR
    if not containers_root.is_dir():
        raise ThingsNotInstalledError(
            f"Things group container not found in {containers_root}. "
            "Please ensure Things.app is installed on macOS.",
            containers_root,
        )

    container = _first_child_dir(
        containers_root, lambda name: THINGS_BUNDLE_FRAGMENT in name
    )
    if container is None:
        raise ThingsContainerNotFoundError(
            f"Things container not found in {containers_root}. "
            "Please ensure Things.app is installed and has been launched at least once.",
            containers_root,
        )

    data_dir = _first_child_dir(
        container, lambda name: name.startswith(THINGS_DATA_PREFIX)
    )
    if data_dir is None:
        raise ThingsDataDirNotFoundError(
            f"ThingsData directory not found in {container}. "
            "Open Things.app once so it creates its data directory.",
            container,
        )

    db_path = data_dir / DATABASE_RELATIVE_PATH
    if not db_path.is_file():
        raise ThingsDatabaseFileNotFoundError(
            f"Things database file not found at {db_path}. "
            "Check that Things.app finished syncing its local database.",
            db_path,
        )

    logger.debug("Found Things database at %s", db_path)
    return db_path
