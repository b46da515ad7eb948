"""Trailing-edge debounce for store writes, keyed by (entity id, field)."""
import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)

WriteFactory = Callable[[], Awaitable[Any]]
ErrorCallback = Callable[[Hashable, Exception], None]


class WriteCoalescer:
    """Holds the latest write per key and runs it after ``delay`` seconds of quiet.

    Scheduling again for the same key cancels the pending write and restarts the timer.
    """

    def __init__(self, delay: float = 1.0, on_error: ErrorCallback | None = None) -> None:
        self.delay = delay
        self.on_error = on_error
        self._pending: dict[Hashable, tuple[asyncio.Task, WriteFactory]] = {}

    @property
    def pending(self) -> list[Hashable]:
        return list(self._pending)

    def schedule(self, key: Hashable, write: WriteFactory) -> None:
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous[0].cancel()
            logger.debug("Superseded pending write %s", key)
        task = asyncio.create_task(self._run_later(key, write))
        self._pending[key] = (task, write)

    def cancel(self, key: Hashable) -> bool:
        entry = self._pending.pop(key, None)
        if entry is None:
            return False
        entry[0].cancel()
        return True

    async def flush(self) -> dict[Hashable, Exception | None]:
        """Run every pending write now, in scheduling order."""
        entries = list(self._pending.items())
        self._pending.clear()
        for _, (task, _) in entries:
            task.cancel()
        await asyncio.gather(*(task for _, (task, _) in entries), return_exceptions=True)
        results: dict[Hashable, Exception | None] = {}
        for key, (_, write) in entries:
            results[key] = await self._execute(key, write)
        return results

    async def close(self) -> None:
        """Drop pending writes without running them."""
        entries = list(self._pending.values())
        self._pending.clear()
        for task, _ in entries:
            task.cancel()
        await asyncio.gather(*(task for task, _ in entries), return_exceptions=True)

    async def _run_later(self, key: Hashable, write: WriteFactory) -> None:
        await asyncio.sleep(self.delay)
        self._pending.pop(key, None)
        await self._execute(key, write)

    async def _execute(self, key: Hashable, write: WriteFactory) -> Exception | None:
        try:
            await write()
        except Exception as e:
            logger.error("Deferred write %s failed: %s", key, e)
            if self.on_error is not None:
                self.on_error(key, e)
            return e
        return None
