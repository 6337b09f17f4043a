from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Optional, Tuple

import ahocorasick

from safechat.checks.base import CheckSettings, ConfiguredCheck, Priority
from safechat.engine.state import ActorMessageState
from safechat.errors import ConfigError
from safechat.models import ChatData
from safechat.placeholders import Localization

logger = logging.getLogger(__name__)

MATCH_WORD = "word"
MATCH_SUBSTRING = "substring"

LEET_TABLE = str.maketrans({
    "0": "o",
    "1": "i",
    "3": "e",
    "4": "a",
    "5": "s",
    "7": "t",
    "@": "a",
    "$": "s",
})
_PUNCTUATION = re.compile(r"[^\w\s]")


@dataclass(frozen=True)
class BlacklistSettings:
    words: Tuple[str, ...] = ()
    match_mode: str = MATCH_WORD
    strip_punctuation: bool = True
    leetspeak: bool = True

    def __post_init__(self):
        if self.match_mode not in (MATCH_WORD, MATCH_SUBSTRING):
            raise ConfigError(f"blacklist match_mode must be '{MATCH_WORD}' or '{MATCH_SUBSTRING}', got {self.match_mode!r}")
        for word in self.words:
            if not word or not word.strip():
                raise ConfigError("blacklist contains an empty entry")


class WordsBlacklistCheck(ConfiguredCheck):
    name = "WordsBlacklist"
    bypass_permission = "safechat.bypass.blacklist"
    priority = Priority.NORMAL

    def __init__(self, settings: CheckSettings, blacklist: BlacklistSettings, localization: Localization):
        super().__init__(settings, localization)
        self.options = blacklist
        self.automaton = self._build_automaton()

    def _build_automaton(self) -> Optional[ahocorasick.Automaton]:
        terms = {self.normalize(word) for word in self.options.words}
        terms.discard("")
        if not terms:
            return None
        automaton = ahocorasick.Automaton()
        for term in terms:
            automaton.add_word(term, term)
        automaton.make_automaton()
        logger.info(f"Blacklist initialized: {len(terms)} terms loaded")
        return automaton

    def normalize(self, text: str) -> str:
        text = text.lower()
        if self.options.leetspeak:
            text = text.translate(LEET_TABLE)
        if self.options.strip_punctuation:
            text = _PUNCTUATION.sub("", text)
        return text.strip()

    def find(self, text: str) -> Optional[str]:
        """Return the first blacklisted term in ``text`` or None."""
        if self.automaton is None:
            return None
        normalized = self.normalize(text)
        for end_index, term in self.automaton.iter(normalized):
            if self.options.match_mode == MATCH_SUBSTRING:
                return term
            start = end_index - len(term) + 1
            before_ok = start == 0 or not normalized[start - 1].isalnum()
            after_ok = end_index + 1 == len(normalized) or not normalized[end_index + 1].isalnum()
            if before_ok and after_ok:
                return term
        return None

    def test(self, data: ChatData, state: ActorMessageState) -> bool:
        return self.find(data.message) is not None
