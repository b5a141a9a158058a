"""Read-after-write checks against the Things database.

Things writes its database some time after it handles a URL, and nothing
signals when that happens. Each check sleeps once, reads one row and
reports what it saw. Callers wanting more confidence call again with a
longer wait.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from things_bridge.records import ItemState, select_columns
from things_bridge.sqlite_query import QueryRunner, query_records, sql_quote

logger = logging.getLogger(__name__)

DEFAULT_WAIT_MS = 100
DEFAULT_STATE_WAIT_MS = 1000


class Verifier:
    def __init__(
        self,
        runner: QueryRunner,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.runner = runner
        self.sleep = sleep

    def _wait(self, wait_ms: int) -> None:
        if wait_ms > 0:
            self.sleep(wait_ms / 1000)

    def verify_exists(self, item_id: str, wait_ms: int = DEFAULT_WAIT_MS) -> ItemState | None:
        self._wait(wait_ms)
        sql = (
            f"SELECT {select_columns(ItemState)} FROM TMTask "
            f"WHERE uuid = {sql_quote(item_id)}"
        )
        states = query_records(self.runner, sql, ItemState.from_fields)
        if not states:
            logger.info("Item %s not found after %sms", item_id, wait_ms)
            return None
        return states[0]

    def verify_completed(
        self, item_id: str, wait_ms: int = DEFAULT_STATE_WAIT_MS
    ) -> bool:
        state = self.verify_exists(item_id, wait_ms)
        return state is not None and state.status == "completed"

    def verify_canceled(
        self, item_id: str, wait_ms: int = DEFAULT_STATE_WAIT_MS
    ) -> bool:
        state = self.verify_exists(item_id, wait_ms)
        return state is not None and state.status == "canceled"

    def verify_trashed(
        self, item_id: str, wait_ms: int = DEFAULT_STATE_WAIT_MS
    ) -> bool:
        # A purged item is gone entirely, which also counts as removed.
        state = self.verify_exists(item_id, wait_ms)
        return state is None or state.trashed

    def verify_updated(
        self,
        item_id: str,
        expected_title: str | None = None,
        wait_ms: int = DEFAULT_WAIT_MS,
    ) -> bool:
        state = self.verify_exists(item_id, wait_ms)
        if state is None:
            return False
        if expected_title is not None and state.title != expected_title:
            logger.warning(
                "Item %s title is %r, expected %r", item_id, state.title, expected_title
            )
            return False
        return True
