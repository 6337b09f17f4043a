"""
Configuration for the SafeChat Telegram guard.
Values come from the environment (a local .env file is loaded first).

Per-check settings are parsed lazily by the ``*_settings`` helpers so one bad
value only disables the check it belongs to; see ``safechat.engine.bootstrap``.
"""
import os
from typing import Dict, FrozenSet, List, Optional, Tuple

from dotenv import load_dotenv

from safechat.checks import (
    AddressSettings,
    BlacklistSettings,
    CapsSettings,
    CheckSettings,
    FloodSettings,
    RepetitionSettings,
)
from safechat.errors import ConfigError
from safechat.placeholders import Localization

load_dotenv()

# ============================================================================
# BOT CONFIGURATION
# ============================================================================
BOT_TOKEN = os.getenv("BOT_TOKEN")
ADMIN_ID = int(os.getenv("ADMIN_ID", "0"))
DB_PATH = os.getenv("DB_PATH", "violations.db")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Actor history is dropped after this many idle seconds
IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", "1800"))

# Prefix shown in front of warnings ({PREFIX})
CHAT_PREFIX = os.getenv("CHAT_PREFIX", "🛡 SafeChat »")

# ============================================================================
# DEFAULTS PER CHECK
# ============================================================================
# Punishment commands understood by safechat.services.enforcement:
#   mute <user_id> [minutes] | unmute <user_id> | kick <user_id> | ban <user_id>
DEFAULT_PUNISH_COMMANDS = {
    "ADDRESS": "mute {PLAYER_ID} 30",
    "FLOOD": "mute {PLAYER_ID} 10",
    "REPETITION": "mute {PLAYER_ID} 5",
    "CAPS": "mute {PLAYER_ID} 5",
    "BLACKLIST": "mute {PLAYER_ID} 60",
}

DEFAULT_PUNISH_AFTER = {
    "ADDRESS": 2,
    "FLOOD": 3,
    "REPETITION": 3,
    "CAPS": 5,
    "BLACKLIST": 2,
}

DEFAULT_WARNINGS = {
    "Address": ("{PREFIX} {PLAYER}, please don't share links or addresses here.",),
    "Flood": ("{PREFIX} {PLAYER}, slow down! You are sending messages too fast.",),
    "Repetition": ("{PREFIX} {PLAYER}, please don't repeat the same message.",),
    "Caps": ("{PREFIX} {PLAYER}, please don't write in all caps.",),
    "WordsBlacklist": (
        "{PREFIX} {PLAYER}, watch your language.",
        "{PREFIX} {PLAYER}, that word is not allowed here.\nRepeated use will get you muted.",
    ),
}

# Keys of DEFAULT_WARNINGS mapped to their env prefix
CHECK_KEYS = {
    "Address": "ADDRESS",
    "Flood": "FLOOD",
    "Repetition": "REPETITION",
    "Caps": "CAPS",
    "WordsBlacklist": "BLACKLIST",
}

BLACKLIST_WORDS = [
    "kys", "kill yourself", "stfu", "idiot", "free crypto",
]

ALLOWED_DOMAINS = ["t.me", "telegram.org"]


# ============================================================================
# PARSING HELPERS
# ============================================================================

def env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None


def env_list(name: str, default: List[str], separator: str = ",") -> Tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return tuple(default)
    return tuple(part.strip() for part in raw.split(separator) if part.strip())


def check_settings(key: str) -> CheckSettings:
    """Common settings for the check with env prefix ``key`` (e.g. ``FLOOD``)."""
    return CheckSettings(
        enabled=env_bool(f"{key}_ENABLED", True),
        warning_enabled=env_bool(f"{key}_WARNING", True),
        logging_enabled=env_bool(f"{key}_LOGGING", False),
        punish_after=env_int(f"{key}_PUNISH_AFTER", DEFAULT_PUNISH_AFTER.get(key, 3)),
        punish_command=os.getenv(f"{key}_PUNISH_COMMAND", DEFAULT_PUNISH_COMMANDS.get(key, "")),
    )


def address_settings() -> AddressSettings:
    return AddressSettings(
        allowed_domains=env_list("ALLOWED_DOMAINS", ALLOWED_DOMAINS),
        allowed_addresses=env_list("ALLOWED_ADDRESSES", []),
    )


def flood_settings() -> FloodSettings:
    return FloodSettings(
        max_messages=env_int("FLOOD_MAX_MESSAGES", 5),
        window_seconds=env_float("FLOOD_WINDOW_SECONDS", 10.0),
    )


def repetition_settings() -> RepetitionSettings:
    return RepetitionSettings(
        mode=os.getenv("REPETITION_MODE", "exact").strip().lower(),
        similarity_threshold=env_float("REPETITION_SIMILARITY", 0.9),
        time_window=env_float("REPETITION_WINDOW_SECONDS", 30.0),
        min_repeats=env_int("REPETITION_MIN_REPEATS", 1),
    )


def caps_settings() -> CapsSettings:
    return CapsSettings(
        max_ratio=env_float("CAPS_MAX_RATIO", 0.8),
        min_letters=env_int("CAPS_MIN_LETTERS", 6),
    )


def blacklist_settings() -> BlacklistSettings:
    return BlacklistSettings(
        words=env_list("BLACKLIST_WORDS", BLACKLIST_WORDS),
        match_mode=os.getenv("BLACKLIST_MATCH_MODE", "word").strip().lower(),
        strip_punctuation=env_bool("BLACKLIST_STRIP_PUNCTUATION", True),
        leetspeak=env_bool("BLACKLIST_LEETSPEAK", True),
    )


def localization() -> Localization:
    """Prefix and warning templates. ``<KEY>_WARNING_MESSAGES`` overrides the
    defaults; templates are separated by ``|`` and ``\\n`` starts a new line."""
    warnings: Dict[str, Tuple[str, ...]] = {}
    for check_name, key in CHECK_KEYS.items():
        raw = os.getenv(f"{key}_WARNING_MESSAGES")
        if raw is None:
            warnings[check_name] = DEFAULT_WARNINGS[check_name]
        else:
            warnings[check_name] = tuple(
                part.strip().replace("\\n", "\n") for part in raw.split("|") if part.strip()
            )
    return Localization(prefix=CHAT_PREFIX, warnings=warnings)


def bypass_grants(raw: Optional[str] = None) -> Dict[str, FrozenSet[str]]:
    """
    Parse BYPASS_GRANTS, e.g. ``123:safechat.bypass.caps,safechat.bypass.flood;456:*``.
    """
    raw = os.getenv("BYPASS_GRANTS", "") if raw is None else raw
    grants: Dict[str, FrozenSet[str]] = {}
    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        user_id, sep, perms = entry.partition(":")
        if not sep or not user_id.strip():
            raise ConfigError(f"Malformed BYPASS_GRANTS entry: {entry!r}")
        grants[user_id.strip()] = frozenset(p.strip() for p in perms.split(",") if p.strip())
    return grants
