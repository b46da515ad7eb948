"""Per-id not-found tracking with a cooldown.

Ids that keep missing are suppressed for a while instead of being
re-requested on every render. One tracker is created per application and
injected where needed.
"""
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class _MissState:
    count: int = 0
    suppressed_at: float | None = None


class NotFoundTracker:
    def __init__(
        self,
        threshold: int = 3,
        cooldown_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = max(1, threshold)
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock
        self._misses: dict[str, _MissState] = {}

    def record_not_found(self, node_id: str) -> None:
        state = self._misses.setdefault(node_id, _MissState())
        state.count += 1
        if state.count >= self.threshold and state.suppressed_at is None:
            state.suppressed_at = self._clock()
            logger.warning(
                "Node %s not found %d times, suppressing for %.0fs", node_id, state.count, self.cooldown_seconds
            )

    def record_success(self, node_id: str) -> None:
        self._misses.pop(node_id, None)

    def is_suppressed(self, node_id: str) -> bool:
        state = self._misses.get(node_id)
        if state is None or state.suppressed_at is None:
            return False
        if self._clock() - state.suppressed_at >= self.cooldown_seconds:
            # Cooldown over: allow retries and start counting again
            del self._misses[node_id]
            logger.info("Cooldown expired for node %s", node_id)
            return False
        return True

    def miss_count(self, node_id: str) -> int:
        state = self._misses.get(node_id)
        return state.count if state else 0

    def reset(self) -> None:
        self._misses.clear()
