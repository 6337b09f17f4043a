"""
Ordered collection of the registered checks.
"""
from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from safechat.checks.base import Check
from safechat.engine.state import ActorMessageState
from safechat.errors import DuplicateCheckError
from safechat.models import ChatData, CheckRegistered

logger = logging.getLogger(__name__)

RegistrationListener = Callable[[CheckRegistered], None]

WILDCARD_PERMISSION = "safechat.bypass.*"


def has_permission(permissions: Iterable[str], permission: str) -> bool:
    if not permission:
        return False
    granted = set(permissions or ())
    return permission in granted or WILDCARD_PERMISSION in granted or "*" in granted


class CheckRegistry:
    """Checks sorted by ascending priority; equal priorities keep their
    registration order. Append-only, read concurrently during evaluation."""

    def __init__(self):
        self._checks: List[Check] = []
        self._by_name: Dict[str, Check] = {}
        self._listeners: List[RegistrationListener] = []

    def __len__(self) -> int:
        return len(self._checks)

    def __iter__(self) -> Iterator[Check]:
        return iter(self._checks)

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def get(self, name: str) -> Optional[Check]:
        return self._by_name.get(name)

    def add_listener(self, listener: RegistrationListener) -> None:
        self._listeners.append(listener)

    def register(self, check: Check) -> None:
        if check.name in self._by_name:
            raise DuplicateCheckError(f"A check named {check.name!r} is already registered")

        # sorted() is stable, so ties stay in registration order
        self._checks = sorted(self._checks + [check], key=lambda c: int(c.priority))
        self._by_name[check.name] = check
        logger.info(f"Registered check {check.name} (priority {int(check.priority)})")

        event = CheckRegistered(name=check.name, priority=int(check.priority), check=check)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Check registration listener failed for {check.name}: {e}", exc_info=True)

    def evaluate_all(
        self,
        data: ChatData,
        state: ActorMessageState,
        permissions: Iterable[str] = (),
    ) -> List[Tuple[Check, bool]]:
        """Run every non-bypassed check against the message.

        No short-circuit: independent violations are all reported in one pass.
        A check that raises is logged and counted as a pass.
        """
        granted = frozenset(permissions or ())
        results: List[Tuple[Check, bool]] = []
        for check in self._checks:
            if has_permission(granted, check.bypass_permission):
                continue
            try:
                failed = bool(check.evaluate(data, state))
            except Exception as e:
                logger.error(f"Check {check.name} raised on message from {data.actor_id}: {e}", exc_info=True)
                failed = False
            results.append((check, failed))
        return results
