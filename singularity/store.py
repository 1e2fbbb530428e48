# singularity/store.py
"""
Fire-and-forget persistence on top of the DatabaseManager.

Game logic is synchronous, so writes are scheduled as tasks on the running
loop. Writes that share a key run in the order they were scheduled. Failures
are logged and in-memory state stays authoritative.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, TYPE_CHECKING

from .database import META_LAST_SAVE_ID

if TYPE_CHECKING:
    from .database import DatabaseManager
    from .records import PlayerStorageRecord

log = logging.getLogger(__name__)

WriteFactory = Callable[[], Awaitable[Any]]


class DurableStore:
    def __init__(self, db_manager: "DatabaseManager"):
        self.db_manager = db_manager
        self._pending: Set[asyncio.Task] = set()
        self._last_by_key: Dict[str, asyncio.Task] = {}

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # --- Domain Writes ---
    def save_record(self, record: "PlayerStorageRecord") -> Optional[asyncio.Task]:
        data = record.to_dict()
        return self._schedule(f"record:{record.player_id}",
                              lambda: self.db_manager.save_storage_record(record.player_id, data))

    def delete_record(self, player_id: int) -> Optional[asyncio.Task]:
        return self._schedule(f"record:{player_id}",
                              lambda: self.db_manager.delete_storage_record(player_id))

    def save_placements(self, placements: Dict[str, List[Dict[str, Any]]]) -> Optional[asyncio.Task]:
        snapshot = {name: list(locations) for name, locations in placements.items()}
        return self._schedule("placements", lambda: self.db_manager.replace_placements(snapshot))

    def save_meta(self, key: str, value: Optional[str]) -> Optional[asyncio.Task]:
        return self._schedule(f"meta:{key}", lambda: self.db_manager.set_meta(key, value))

    def save_last_save_id(self, save_id: str) -> Optional[asyncio.Task]:
        return self.save_meta(META_LAST_SAVE_ID, save_id)

    # --- Scheduling ---
    def _schedule(self, key: str, write: WriteFactory) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            log.warning("No running event loop, write '%s' was not persisted.", key)
            return None

        previous = self._last_by_key.get(key)
        task = loop.create_task(self._run(previous, write), name=f"store:{key}")
        self._pending.add(task)
        self._last_by_key[key] = task
        task.add_done_callback(lambda t: self._on_done(key, t))
        return task

    async def _run(self, previous: Optional[asyncio.Task], write: WriteFactory):
        if previous is not None and not previous.done():
            await asyncio.wait({previous})
        await write()

    def _on_done(self, key: str, task: asyncio.Task):
        self._pending.discard(task)
        if self._last_by_key.get(key) is task:
            del self._last_by_key[key]
        if task.cancelled():
            log.warning("Persistence write '%s' was cancelled.", key)
            return
        exc = task.exception()
        if exc is not None:
            log.exception("Persistence write '%s' failed:", key, exc_info=exc)

    async def flush(self):
        """Waits until every scheduled write has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
