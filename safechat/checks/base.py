"""
Check contract shared by every chat policy.

A check reports True when the message FAILS the policy and False when it
passes. Checks only hold immutable configuration; any history they need lives
in the ActorMessageState handed in by the engine, so a single instance serves
every actor.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Protocol, runtime_checkable

from safechat.engine.state import ActorMessageState
from safechat.errors import ConfigError
from safechat.models import ChatData
from safechat.placeholders import CHECK_PLACEHOLDER, Localization, resolve_placeholders

SPLIT_SPACE = re.compile(r"\s+")


class Priority(IntEnum):
    """Evaluation tiers, lowest value runs first."""
    HIGHEST = 0
    HIGH = 1
    NORMAL = 2
    LOW = 3
    LOWEST = 4


@dataclass(frozen=True)
class CheckSettings:
    enabled: bool = True
    warning_enabled: bool = True
    logging_enabled: bool = False
    punish_after: int = 3
    punish_command: str = ""

    def __post_init__(self):
        if isinstance(self.punish_after, bool) or not isinstance(self.punish_after, int):
            raise ConfigError(f"punish_after must be an integer, got {self.punish_after!r}")
        if self.punish_after < 1:
            raise ConfigError(f"punish_after must be >= 1, got {self.punish_after}")


@runtime_checkable
class Check(Protocol):
    name: str
    bypass_permission: str
    priority: int

    def evaluate(self, data: ChatData, state: ActorMessageState) -> bool:
        ...

    def warning_messages(self) -> List[str]:
        ...

    def resolve_placeholders(self, template: str, data: ChatData) -> str:
        ...

    @property
    def enabled(self) -> bool:
        ...

    @property
    def warning_enabled(self) -> bool:
        ...

    @property
    def logging_enabled(self) -> bool:
        ...

    @property
    def punishment_interval(self) -> int:
        ...

    @property
    def punishment_command(self) -> str:
        ...


def is_blank(text) -> bool:
    return not isinstance(text, str) or not text.strip()


class ConfiguredCheck:
    """Accessors shared by the bundled checks, backed by frozen settings."""

    name = ""
    bypass_permission = ""
    priority = Priority.NORMAL

    def __init__(self, settings: CheckSettings, localization: Localization):
        self.settings = settings
        self.localization = localization

    def __repr__(self) -> str:
        return f"<{type(self).__name__} name={self.name!r} priority={int(self.priority)}>"

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    @property
    def warning_enabled(self) -> bool:
        return self.settings.warning_enabled

    @property
    def logging_enabled(self) -> bool:
        return self.settings.logging_enabled

    @property
    def punishment_interval(self) -> int:
        return self.settings.punish_after

    @property
    def punishment_command(self) -> str:
        return self.settings.punish_command

    def warning_messages(self) -> List[str]:
        return self.localization.warnings_for(self.name)

    def resolve_placeholders(self, template: str, data: ChatData) -> str:
        return resolve_placeholders(
            template, data, self.localization.prefix, {CHECK_PLACEHOLDER: self.name}
        )

    def evaluate(self, data: ChatData, state: ActorMessageState) -> bool:
        if not self.enabled or data is None or is_blank(data.message):
            return False
        return self.test(data, state)

    def test(self, data: ChatData, state: ActorMessageState) -> bool:
        raise NotImplementedError
