from __future__ import annotations

from dataclasses import dataclass

from safechat.checks.base import CheckSettings, ConfiguredCheck, Priority
from safechat.engine.state import ActorMessageState
from safechat.errors import ConfigError
from safechat.models import ChatData
from safechat.placeholders import Localization


@dataclass(frozen=True)
class CapsSettings:
    max_ratio: float = 0.8
    min_letters: int = 6

    def __post_init__(self):
        if not 0.0 <= self.max_ratio < 1.0:
            raise ConfigError(f"caps max_ratio must be in [0, 1), got {self.max_ratio}")
        if self.min_letters < 1:
            raise ConfigError(f"caps min_letters must be >= 1, got {self.min_letters}")


def caps_ratio(text: str) -> float:
    letters = [c for c in text if c.isalpha()]
    if not letters:
        return 0.0
    return sum(1 for c in letters if c.isupper()) / len(letters)


class CapsCheck(ConfiguredCheck):
    name = "Caps"
    bypass_permission = "safechat.bypass.caps"
    priority = Priority.LOWEST

    def __init__(self, settings: CheckSettings, caps: CapsSettings, localization: Localization):
        super().__init__(settings, localization)
        self.max_ratio = caps.max_ratio
        self.min_letters = caps.min_letters

    def test(self, data: ChatData, state: ActorMessageState) -> bool:
        letters = sum(1 for c in data.message if c.isalpha())
        # short shouted acronyms ("GG", "LOL") are exempt
        if letters < self.min_letters:
            return False
        return caps_ratio(data.message) > self.max_ratio
