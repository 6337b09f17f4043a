from __future__ import annotations

import itertools
import logging
import time
from typing import Iterable, Optional

from safechat.checks.base import Check
from safechat.engine.registry import CheckRegistry
from safechat.engine.state import ActorStateStore
from safechat.models import ChatData, Decision, ViolationRecord, ActorWarning
from safechat.services.violations import ViolationLedger

logger = logging.getLogger(__name__)

# Idle actor states are swept every N submissions instead of on a timer
CLEANUP_INTERVAL = 100


def state_key(actor_id, scope=None) -> str:
    """Key of an actor's message history. A scope (e.g. a chat id) keeps the
    same actor's history in different rooms apart."""
    return str(actor_id) if scope is None else f"{scope}:{actor_id}"


class Engine:
    """Runs the registered checks for each message and turns failures into
    counters, punishment commands, warnings and log records.

    ``submit`` never blocks on I/O and never raises for a single bad message;
    executing the returned side effects is up to the caller.
    """

    def __init__(
        self,
        registry: CheckRegistry,
        ledger: Optional[ViolationLedger] = None,
        states: Optional[ActorStateStore] = None,
        cleanup_interval: int = CLEANUP_INTERVAL,
    ):
        self.registry = registry
        self.ledger = ledger if ledger is not None else ViolationLedger()
        self.states = states if states is not None else ActorStateStore()
        self.cleanup_interval = cleanup_interval
        self._submissions = itertools.count(1)

    def submit(
        self,
        actor_id,
        display_name: str,
        message: str,
        timestamp: Optional[float] = None,
        permissions: Iterable[str] = (),
        scope=None,
    ) -> Decision:
        actor_id = str(actor_id)
        key = state_key(actor_id, scope)
        data = ChatData(
            actor_id=actor_id,
            display_name=display_name or actor_id,
            message=message if isinstance(message, str) else "",
            timestamp=time.time() if timestamp is None else float(timestamp),
        )
        decision = Decision()

        try:
            with self.states.session(key, now=data.timestamp) as state:
                results = self.registry.evaluate_all(data, state, permissions)
                for check, failed in results:
                    if failed:
                        self._record_failure(check, data, decision)
        except Exception as e:
            # fail open
            logger.error(f"Evaluation failed for {actor_id}: {e}", exc_info=True)

        decision.allowed = not decision.failed_checks
        self._maybe_cleanup(data.timestamp)
        return decision

    def _record_failure(self, check: Check, data: ChatData, decision: Decision) -> None:
        decision.failed_checks.append(check.name)
        result = self.ledger.increment(data.actor_id, check.name, check.punishment_interval)

        if result.punish and check.punishment_command:
            command = check.resolve_placeholders(check.punishment_command, data)
            decision.punishments.append(command)

        if check.warning_enabled:
            templates = check.warning_messages()
            if templates:
                template = templates[(result.count - 1) % len(templates)]
                decision.warnings.append(
                    ActorWarning(actor_id=data.actor_id, text=check.resolve_placeholders(template, data))
                )

        if check.logging_enabled:
            decision.log_entries.append(ViolationRecord(
                actor_id=data.actor_id,
                display_name=data.display_name,
                check_name=check.name,
                message=data.message,
                timestamp=data.timestamp,
                count=result.count,
                punished=result.punish,
            ))

    def _maybe_cleanup(self, now: float) -> None:
        if next(self._submissions) % self.cleanup_interval:
            return
        try:
            self.states.evict_idle(now)
        except Exception as e:
            logger.error(f"Idle state cleanup failed: {e}")

    def evict(self, actor_id, scope=None) -> bool:
        """Forget an actor's message history in ``scope``, e.g. after they
        leave that chat. Violation counters are kept."""
        return self.states.evict(state_key(actor_id, scope))

    def shutdown(self) -> None:
        self.ledger.shutdown()
