"""Build and dispatch ``things:///`` URLs."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Collection, Mapping
from urllib.parse import quote

from things_bridge.errors import DispatchError

logger = logging.getLogger(__name__)

THINGS_SCHEME = "things:///"
AUTH_TOKEN_PARAM = "auth-token"
MASK = "***"
DEFAULT_DISPATCH_TIMEOUT = 15.0


def encode_component(value: str) -> str:
    return quote(value, safe="")


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(str(item) for item in value)
    return str(value)


def build_things_url(
    command: str,
    params: Mapping[str, Any] | None = None,
    keep_empty: Collection[str] = (),
) -> str:
    """Return ``things:///<command>?...`` with every value percent-encoded.

    ``None`` values are skipped, and so are empty strings unless the key is
    listed in ``keep_empty``, which sends it as ``key=``. For the ``json``
    command the ``data`` parameter is serialized as JSON before encoding.
    """
    parts: list[str] = []
    for key, value in (params or {}).items():
        if value is None or (value == "" and key not in keep_empty):
            continue
        if key == "data" and command == "json" and not isinstance(value, str):
            text = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        else:
            text = _stringify(value)
        parts.append(f"{encode_component(key)}={encode_component(text)}")

    base = f"{THINGS_SCHEME}{command}"
    return f"{base}?{'&'.join(parts)}" if parts else base


def mask_token(text: str, token: str | None) -> str:
    """Hide ``token`` (raw or percent-encoded) inside ``text``."""
    if not token:
        return text
    masked = text.replace(encode_component(token), MASK)
    return masked.replace(token, MASK)


class UrlDispatcher:
    """Hand URLs and AppleScript snippets to macOS.

    Dispatch is fire-and-forget: a zero exit status only means the OS
    accepted the request, not that Things applied it.
    """

    def __init__(
        self,
        open_binary: str = "open",
        osascript_binary: str = "osascript",
        timeout: float = DEFAULT_DISPATCH_TIMEOUT,
    ) -> None:
        self.open_binary = open_binary
        self.osascript_binary = osascript_binary
        self.timeout = timeout

    def open_url(self, url: str) -> None:
        # -g keeps Things in the background while it handles the URL.
        self._run([self.open_binary, "-g", url], url)

    def run_applescript(self, script: str) -> None:
        self._run([self.osascript_binary, "-e", script], script)

    def _run(self, command: list[str], description: str) -> None:
        try:
            completed = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            raise DispatchError(f"Failed to dispatch command: {exc}") from exc
        if completed.returncode != 0:
            raise DispatchError(
                f"{command[0]} exited with status {completed.returncode}: "
                f"{completed.stderr.strip()}"
            )
        logger.debug("Dispatched %s", command[0])
