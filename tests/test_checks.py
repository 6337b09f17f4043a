import os
import sys
from difflib import SequenceMatcher

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from safechat.checks import (
    AddressCheck,
    AddressSettings,
    BlacklistSettings,
    CapsCheck,
    CapsSettings,
    CheckSettings,
    FloodCheck,
    FloodSettings,
    RepetitionCheck,
    RepetitionSettings,
    WordsBlacklistCheck,
)
from safechat.engine.state import ActorMessageState
from safechat.errors import ConfigError
from safechat.models import ChatData
from safechat.placeholders import Localization

LOC = Localization(prefix="[SC]", warnings={"Caps": ("{PREFIX} {PLAYER} stop shouting",)})


def msg(text, ts=1000.0, actor="42", name="alice"):
    return ChatData(actor_id=actor, display_name=name, message=text, timestamp=ts)


def address_check(domains=(), addresses=()):
    return AddressCheck(CheckSettings(), AddressSettings(tuple(domains), tuple(addresses)), LOC)


# --------------------------------------------------------------------------
# Address
# --------------------------------------------------------------------------

def test_address_subdomain_of_allowed_domain_passes():
    check = address_check(domains=["example.com"])
    assert check.evaluate(msg("visit sub.example.com now"), ActorMessageState()) is False


def test_address_requires_exact_ip_match():
    check = address_check(addresses=["192.168.1.1"])
    assert check.evaluate(msg("visit 192.168.1.50 now"), ActorMessageState()) is True


def test_address_allowed_ip_passes():
    check = address_check(addresses=["192.168.1.50"])
    assert check.evaluate(msg("visit 192.168.1.50 now"), ActorMessageState()) is False


def test_address_unknown_domain_fails():
    check = address_check(domains=["example.com"])
    assert check.evaluate(msg("join evil-server.net for free stuff"), ActorMessageState()) is True


def test_address_domain_match_is_case_insensitive():
    check = address_check(domains=["example.com"])
    assert check.evaluate(msg("see WWW.EXAMPLE.COM"), ActorMessageState()) is False


def test_address_plain_text_passes():
    check = address_check()
    assert check.evaluate(msg("hello everyone, how are you doing today"), ActorMessageState()) is False


def test_address_rejects_malformed_allowed_address():
    with pytest.raises(ConfigError):
        AddressSettings(allowed_addresses=("not-an-ip",))


# --------------------------------------------------------------------------
# Flood
# --------------------------------------------------------------------------

def flood_check(max_messages=5, window=10.0, enabled=True):
    return FloodCheck(CheckSettings(enabled=enabled), FloodSettings(max_messages, window), LOC)


def test_flood_sixth_message_in_window_fails():
    check = flood_check()
    state = ActorMessageState()
    results = [check.evaluate(msg(f"m{i}", ts=100.0 + i), state) for i in range(6)]
    assert results == [False, False, False, False, False, True]


def test_flood_spaced_messages_never_fail():
    check = flood_check()
    state = ActorMessageState()
    for i in range(30):
        assert check.evaluate(msg(f"m{i}", ts=100.0 + i * 11), state) is False
    assert len(state.timestamps) == 1


def test_flood_window_rolls_instead_of_resetting_per_bucket():
    check = flood_check(max_messages=2, window=10.0)
    state = ActorMessageState()
    assert check.evaluate(msg("a", ts=9.0), state) is False
    assert check.evaluate(msg("b", ts=11.0), state) is False
    # 9.0 and 11.0 are still inside the window ending at 12.0
    assert check.evaluate(msg("c", ts=12.0), state) is True


def test_flood_out_of_order_timestamp_expires_by_value():
    check = flood_check(max_messages=2, window=10.0)
    state = ActorMessageState()
    assert check.evaluate(msg("a", ts=100.0), state) is False
    assert check.evaluate(msg("b", ts=50.0), state) is False
    assert check.evaluate(msg("c", ts=101.0), state) is False
    assert list(state.timestamps) == [100.0, 101.0]


def test_disabled_check_passes_without_touching_state():
    check = flood_check(max_messages=1, enabled=False)
    state = ActorMessageState()
    for i in range(5):
        assert check.evaluate(msg("spam", ts=100.0 + i), state) is False
    assert len(state.timestamps) == 0


def test_blank_message_passes_without_touching_state():
    check = flood_check(max_messages=1)
    state = ActorMessageState()
    assert check.evaluate(msg("   "), state) is False
    assert check.evaluate(msg(""), state) is False
    assert len(state.timestamps) == 0


def test_flood_settings_validation():
    with pytest.raises(ConfigError):
        FloodSettings(max_messages=0)
    with pytest.raises(ConfigError):
        FloodSettings(window_seconds=0)


# --------------------------------------------------------------------------
# Repetition
# --------------------------------------------------------------------------

def repetition_check(**kwargs):
    return RepetitionCheck(CheckSettings(), RepetitionSettings(**kwargs), LOC)


def test_repetition_second_identical_message_fails():
    check = repetition_check()
    state = ActorMessageState()
    assert check.evaluate(msg("buy my stuff", ts=1.0), state) is False
    assert check.evaluate(msg("buy my stuff", ts=2.0), state) is True


def test_repetition_different_message_resets_streak():
    check = repetition_check()
    state = ActorMessageState()
    check.evaluate(msg("hello", ts=1.0), state)
    assert check.evaluate(msg("hello", ts=2.0), state) is True
    assert check.evaluate(msg("something else", ts=3.0), state) is False
    assert state.repetition_streak == 0


def test_repetition_normalizes_case_and_whitespace():
    check = repetition_check()
    state = ActorMessageState()
    check.evaluate(msg("Hello   There", ts=1.0), state)
    assert check.evaluate(msg(" hello there ", ts=2.0), state) is True


def test_repetition_tracks_last_message_even_when_failing():
    check = repetition_check()
    state = ActorMessageState()
    check.evaluate(msg("again", ts=1.0), state)
    check.evaluate(msg("again", ts=2.0), state)
    assert state.last_message == "again"
    assert state.last_message_at == 2.0


def test_repetition_outside_time_window_passes():
    check = repetition_check(time_window=30.0)
    state = ActorMessageState()
    check.evaluate(msg("hi all", ts=0.0), state)
    assert check.evaluate(msg("hi all", ts=31.0), state) is False


def test_repetition_similar_mode_catches_near_duplicates():
    check = repetition_check(mode="similar", similarity_threshold=0.85)
    state = ActorMessageState()
    check.evaluate(msg("join my server right now", ts=1.0), state)
    assert check.evaluate(msg("join my server right now!!", ts=2.0), state) is True
    assert check.evaluate(msg("what time is the event?", ts=3.0), state) is False


def test_repetition_similarity_must_exceed_threshold():
    previous, current = "abcd", "abce"
    ratio = SequenceMatcher(None, previous, current).ratio()
    at_threshold = repetition_check(mode="similar", similarity_threshold=ratio)
    below_threshold = repetition_check(mode="similar", similarity_threshold=ratio - 0.01)
    assert at_threshold.is_repeat(previous, current) is False
    assert below_threshold.is_repeat(previous, current) is True


def test_repetition_min_repeats():
    check = repetition_check(min_repeats=2)
    state = ActorMessageState()
    assert check.evaluate(msg("x y z", ts=1.0), state) is False
    assert check.evaluate(msg("x y z", ts=2.0), state) is False
    assert check.evaluate(msg("x y z", ts=3.0), state) is True


def test_repetition_rejects_unknown_mode():
    with pytest.raises(ConfigError):
        RepetitionSettings(mode="fuzzy")


# --------------------------------------------------------------------------
# Caps
# --------------------------------------------------------------------------

def test_caps_ninety_percent_fails_with_eighty_percent_threshold():
    check = CapsCheck(CheckSettings(), CapsSettings(max_ratio=0.8, min_letters=5), LOC)
    assert check.evaluate(msg("HELLO WORLd!!"), ActorMessageState()) is True


def test_caps_short_message_is_exempt():
    check = CapsCheck(CheckSettings(), CapsSettings(max_ratio=0.8, min_letters=20), LOC)
    assert check.evaluate(msg("HELLO WORLd!!"), ActorMessageState()) is False


def test_caps_normal_message_passes():
    check = CapsCheck(CheckSettings(), CapsSettings(max_ratio=0.8, min_letters=5), LOC)
    assert check.evaluate(msg("Hello World, NASA launched today"), ActorMessageState()) is False


# --------------------------------------------------------------------------
# Blacklist
# --------------------------------------------------------------------------

def blacklist_check(words=("idiot", "kill yourself"), **kwargs):
    return WordsBlacklistCheck(CheckSettings(), BlacklistSettings(words=tuple(words), **kwargs), LOC)


def test_blacklist_whole_word_match():
    check = blacklist_check()
    assert check.evaluate(msg("you are an idiot"), ActorMessageState()) is True
    assert check.evaluate(msg("that was idiotic"), ActorMessageState()) is False


def test_blacklist_substring_mode():
    check = blacklist_check(match_mode="substring")
    assert check.evaluate(msg("that was idiotic"), ActorMessageState()) is True


def test_blacklist_leetspeak_and_punctuation():
    check = blacklist_check()
    assert check.evaluate(msg("what an 1d10t"), ActorMessageState()) is True
    assert check.evaluate(msg("what an i.d.i.o.t"), ActorMessageState()) is True


def test_blacklist_leetspeak_can_be_disabled():
    check = blacklist_check(leetspeak=False)
    assert check.evaluate(msg("what an 1d10t"), ActorMessageState()) is False


def test_blacklist_phrase():
    check = blacklist_check()
    assert check.find("just KILL YOURSELF already") == "kill yourself"


def test_blacklist_empty_list_passes():
    check = blacklist_check(words=())
    assert check.evaluate(msg("anything goes"), ActorMessageState()) is False


# --------------------------------------------------------------------------
# Placeholders
# --------------------------------------------------------------------------

def test_resolve_placeholders():
    check = CapsCheck(CheckSettings(), CapsSettings(), LOC)
    data = msg("HEY", name="alice", actor="42")
    assert check.resolve_placeholders("{PREFIX} {PLAYER} ({PLAYER_ID}) failed {CHECK}", data) == "[SC] alice (42) failed Caps"
    assert check.resolve_placeholders("no placeholders {here}", data) == "no placeholders {here}"
    assert check.warning_messages() == ["{PREFIX} {PLAYER} stop shouting"]


def test_punish_after_must_be_positive():
    with pytest.raises(ConfigError):
        CheckSettings(punish_after=0)
