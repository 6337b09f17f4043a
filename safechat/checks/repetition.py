from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher

from safechat.checks.base import CheckSettings, ConfiguredCheck, Priority
from safechat.engine.state import ActorMessageState
from safechat.errors import ConfigError
from safechat.models import ChatData
from safechat.placeholders import Localization

_WHITESPACE = re.compile(r"\s+")

MODE_EXACT = "exact"
MODE_SIMILAR = "similar"


@dataclass(frozen=True)
class RepetitionSettings:
    mode: str = MODE_EXACT
    similarity_threshold: float = 0.9
    time_window: float = 30.0  # seconds between the two messages
    min_repeats: int = 1

    def __post_init__(self):
        if self.mode not in (MODE_EXACT, MODE_SIMILAR):
            raise ConfigError(f"repetition mode must be '{MODE_EXACT}' or '{MODE_SIMILAR}', got {self.mode!r}")
        if not 0.0 < self.similarity_threshold <= 1.0:
            raise ConfigError(f"similarity_threshold must be in (0, 1], got {self.similarity_threshold}")
        if self.time_window <= 0:
            raise ConfigError(f"repetition time_window must be positive, got {self.time_window}")
        if self.min_repeats < 1:
            raise ConfigError(f"min_repeats must be >= 1, got {self.min_repeats}")


def normalize(text: str) -> str:
    return _WHITESPACE.sub(" ", text).strip().lower()


class RepetitionCheck(ConfiguredCheck):
    """Flags a message that repeats the actor's previous one.

    The previous-message record is refreshed on every evaluation, pass or
    fail, so the comparison is always against the true last message.
    """

    name = "Repetition"
    bypass_permission = "safechat.bypass.repetition"
    priority = Priority.NORMAL

    def __init__(self, settings: CheckSettings, repetition: RepetitionSettings, localization: Localization):
        super().__init__(settings, localization)
        self.options = repetition

    def is_repeat(self, previous: str, current: str) -> bool:
        if self.options.mode == MODE_EXACT:
            return previous == current
        if previous == current:
            return True
        return SequenceMatcher(None, previous, current).ratio() > self.options.similarity_threshold

    def test(self, data: ChatData, state: ActorMessageState) -> bool:
        current = normalize(data.message)
        previous = state.last_message
        previous_at = state.last_message_at

        recent = previous_at is not None and data.timestamp - previous_at <= self.options.time_window
        if previous is not None and recent and self.is_repeat(previous, current):
            state.repetition_streak += 1
        else:
            state.repetition_streak = 0

        state.last_message = current
        state.last_message_at = data.timestamp
        return state.repetition_streak >= self.options.min_repeats
