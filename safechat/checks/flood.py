from __future__ import annotations

from dataclasses import dataclass

from safechat.checks.base import CheckSettings, ConfiguredCheck, Priority
from safechat.engine.state import MAX_WINDOW_ENTRIES, ActorMessageState
from safechat.errors import ConfigError
from safechat.models import ChatData
from safechat.placeholders import Localization


@dataclass(frozen=True)
class FloodSettings:
    max_messages: int = 5  # messages per window
    window_seconds: float = 10.0

    def __post_init__(self):
        if self.max_messages < 1 or self.max_messages >= MAX_WINDOW_ENTRIES:
            raise ConfigError(f"flood max_messages must be in 1..{MAX_WINDOW_ENTRIES - 1}, got {self.max_messages}")
        if self.window_seconds <= 0:
            raise ConfigError(f"flood window_seconds must be positive, got {self.window_seconds}")


class FloodCheck(ConfiguredCheck):
    """Rolling-window message rate limit."""

    name = "Flood"
    bypass_permission = "safechat.bypass.flood"
    priority = Priority.HIGH

    def __init__(self, settings: CheckSettings, flood: FloodSettings, localization: Localization):
        super().__init__(settings, localization)
        self.max_messages = flood.max_messages
        self.window_seconds = flood.window_seconds

    def test(self, data: ChatData, state: ActorMessageState) -> bool:
        now = data.timestamp
        window = state.timestamps
        # timestamps may arrive out of order, so expire by value
        if any(now - t >= self.window_seconds for t in window):
            kept = [t for t in window if now - t < self.window_seconds]
            window.clear()
            window.extend(kept)
        window.append(now)
        return len(window) > self.max_messages
