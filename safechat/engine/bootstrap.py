"""
Builds the engine from config: checks, counters store and actor state.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

import config
import violations_db
from safechat.checks import (
    AddressCheck,
    CapsCheck,
    Check,
    FloodCheck,
    RepetitionCheck,
    WordsBlacklistCheck,
)
from safechat.engine.orchestrator import Engine
from safechat.engine.registry import CheckRegistry, RegistrationListener
from safechat.engine.state import ActorStateStore
from safechat.errors import SafeChatError
from safechat.placeholders import Localization
from safechat.services.violations import ViolationLedger

logger = logging.getLogger(__name__)

CheckFactory = Callable[[Localization], Check]


def default_check_factories() -> List[Tuple[str, CheckFactory]]:
    return [
        ("Address", lambda loc: AddressCheck(config.check_settings("ADDRESS"), config.address_settings(), loc)),
        ("Flood", lambda loc: FloodCheck(config.check_settings("FLOOD"), config.flood_settings(), loc)),
        ("Repetition", lambda loc: RepetitionCheck(config.check_settings("REPETITION"), config.repetition_settings(), loc)),
        ("WordsBlacklist", lambda loc: WordsBlacklistCheck(config.check_settings("BLACKLIST"), config.blacklist_settings(), loc)),
        ("Caps", lambda loc: CapsCheck(config.check_settings("CAPS"), config.caps_settings(), loc)),
    ]


def build_registry(
    localization: Localization,
    factories: Optional[List[Tuple[str, CheckFactory]]] = None,
    listeners: Optional[List[RegistrationListener]] = None,
) -> CheckRegistry:
    """Construct every check first, then register the ones that built.

    A check whose settings are invalid is logged and left out; the others
    still register.
    """
    built: List[Check] = []
    for name, factory in factories if factories is not None else default_check_factories():
        try:
            built.append(factory(localization))
        except SafeChatError as e:
            logger.error(f"Check {name} not registered, invalid configuration: {e}")

    registry = CheckRegistry()
    for listener in listeners or []:
        registry.add_listener(listener)
    for check in built:
        registry.register(check)
    return registry


def build_engine(persist: bool = True) -> Engine:
    localization = config.localization()
    registry = build_registry(localization)

    ledger = ViolationLedger()
    if persist:
        violations_db.DB_PATH = config.DB_PATH
        try:
            violations_db.init_db()
        except Exception as e:
            logger.error(f"Violation database unavailable, counters will not survive restarts: {e}")
        else:
            ledger = ViolationLedger(load=violations_db.load_counters, save=violations_db.save_counter)

    states = ActorStateStore(idle_timeout=config.IDLE_TIMEOUT_SECONDS)
    logger.info(f"Engine ready with {len(registry)} checks: {', '.join(c.name for c in registry)}")
    return Engine(registry, ledger=ledger, states=states)
