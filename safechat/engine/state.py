"""
Per-actor message history used by the stateful checks.

Each actor gets one ActorMessageState, created lazily on the first message and
dropped when the actor leaves the chat or stays idle past the timeout. Access
goes through ``ActorStateStore.session`` which serializes evaluations for the
same actor while leaving other actors untouched.
"""
from __future__ import annotations

import logging
import threading
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

# Hard cap on remembered timestamps, independent of the flood settings
MAX_WINDOW_ENTRIES = 256


@dataclass
class ActorMessageState:
    timestamps: Deque[float] = field(default_factory=lambda: deque(maxlen=MAX_WINDOW_ENTRIES))
    last_message: Optional[str] = None
    last_message_at: Optional[float] = None
    repetition_streak: int = 0


@dataclass
class _Entry:
    state: ActorMessageState = field(default_factory=ActorMessageState)
    lock: threading.Lock = field(default_factory=threading.Lock)
    sessions: int = 0
    last_seen: float = 0.0
    evicted: bool = False


class ActorStateStore:
    """Keyed store of ActorMessageState with per-actor serialization.

    The bookkeeping lock only guards the entry map and the session counts;
    evaluation itself runs under the actor's own lock.
    """

    def __init__(self, idle_timeout: float = 30 * 60):
        self.idle_timeout = idle_timeout
        self._entries: Dict[str, _Entry] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def __contains__(self, actor_id: str) -> bool:
        with self._guard:
            return actor_id in self._entries

    def _acquire(self, actor_id: str) -> _Entry:
        with self._guard:
            entry = self._entries.get(actor_id)
            if entry is None or entry.evicted:
                entry = _Entry()
                self._entries[actor_id] = entry
            entry.sessions += 1
            return entry

    def _release(self, actor_id: str, entry: _Entry) -> None:
        with self._guard:
            entry.sessions -= 1
            if entry.evicted and entry.sessions == 0 and self._entries.get(actor_id) is entry:
                del self._entries[actor_id]

    @contextmanager
    def session(self, actor_id: str, now: Optional[float] = None) -> Iterator[ActorMessageState]:
        entry = self._acquire(actor_id)
        try:
            with entry.lock:
                entry.last_seen = time.time() if now is None else now
                yield entry.state
        finally:
            self._release(actor_id, entry)

    def evict(self, actor_id: str) -> bool:
        """Drop an actor's state. In-flight sessions keep their reference and
        the entry disappears once the last one finishes."""
        with self._guard:
            entry = self._entries.get(actor_id)
            if entry is None:
                return False
            entry.evicted = True
            if entry.sessions == 0:
                del self._entries[actor_id]
            return True

    def evict_idle(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        cutoff = now - self.idle_timeout
        removed = 0
        with self._guard:
            for actor_id, entry in list(self._entries.items()):
                if entry.sessions == 0 and entry.last_seen < cutoff:
                    del self._entries[actor_id]
                    removed += 1
        if removed:
            logger.debug(f"Evicted {removed} idle actor states")
        return removed
