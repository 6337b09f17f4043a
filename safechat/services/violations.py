"""
Violation counters and the punishment threshold.

The ledger is the single source of truth for "how many times has actor X
failed check Y". Counters only ever grow here; resets are an administrative
action on the store.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# Fixed lock set shared by all (actor, check) keys
LOCK_STRIPES = 64

Key = Tuple[str, str]  # (actor_id, check_name)
CounterLoader = Callable[[], Dict[Key, int]]
CounterSaver = Callable[[str, str, int], None]


@dataclass(frozen=True)
class Increment:
    count: int
    punish: bool


def should_punish(count: int, interval: int) -> bool:
    return count > 0 and interval > 0 and count % interval == 0


class ViolationLedger:
    def __init__(self, load: Optional[CounterLoader] = None, save: Optional[CounterSaver] = None):
        self._counts: Dict[Key, int] = {}
        self._locks: List[threading.Lock] = [threading.Lock() for _ in range(LOCK_STRIPES)]
        self._guard = threading.Lock()
        self._save = save
        self._writer: Optional[ThreadPoolExecutor] = None
        if save is not None:
            self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="safechat-store")
        if load is not None:
            self.load(load)

    def load(self, loader: CounterLoader) -> None:
        try:
            counts = loader()
        except Exception as e:
            logger.error(f"Failed to load violation counters, starting empty: {e}")
            return
        with self._guard:
            for key, value in counts.items():
                self._counts[key] = max(int(value), self._counts.get(key, 0))
        logger.info(f"Loaded {len(counts)} violation counters")

    def _lock_for(self, key: Key) -> threading.Lock:
        return self._locks[hash(key) % LOCK_STRIPES]

    def get(self, actor_id: str, check_name: str) -> int:
        return self._counts.get((actor_id, check_name), 0)

    def increment(self, actor_id: str, check_name: str, interval: int) -> Increment:
        """Atomically bump the counter and decide whether punishment fires."""
        key = (actor_id, check_name)
        with self._lock_for(key):
            count = self._counts.get(key, 0) + 1
            self._counts[key] = count
            self._persist(actor_id, check_name, count)
        return Increment(count=count, punish=should_punish(count, interval))

    def reset(self, actor_id: str, check_name: Optional[str] = None) -> None:
        """Administrative reset of in-memory counters; pair with
        ``violations_db.reset_counters`` to clear the stored ones."""
        with self._guard:
            keys = [k for k in list(self._counts) if k[0] == actor_id and (check_name is None or k[1] == check_name)]
        for key in keys:
            with self._lock_for(key):
                self._counts.pop(key, None)

    def _persist(self, actor_id: str, check_name: str, count: int) -> None:
        if self._writer is None:
            return
        try:
            future = self._writer.submit(self._save, actor_id, check_name, count)
        except RuntimeError as e:
            logger.error(f"Violation store is shut down, counter {actor_id}/{check_name}={count} not saved: {e}")
            return
        future.add_done_callback(_log_save_failure)

    def shutdown(self, wait: bool = True) -> None:
        if self._writer is not None:
            self._writer.shutdown(wait=wait)


def _log_save_failure(future: Future) -> None:
    error = future.exception()
    if error is not None:
        logger.error(f"Failed to save violation counter: {error}")
