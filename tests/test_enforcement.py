import asyncio
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from telegram.error import TelegramError

from safechat.services import enforcement
from safechat.services.enforcement import CommandError, execute_command, parse_command, send_warning


class FakeBot:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    async def restrict_chat_member(self, **kwargs):
        if self.fail:
            raise TelegramError("not enough rights")
        self.calls.append(("restrict", kwargs))

    async def ban_chat_member(self, **kwargs):
        self.calls.append(("ban", kwargs))

    async def unban_chat_member(self, **kwargs):
        self.calls.append(("unban", kwargs))


class FakeChat:
    def __init__(self):
        self.sent = []
        self.id = -100123

    async def send_message(self, text, **kwargs):
        msg = type("M", (), {"message_id": len(self.sent) + 100, "text": text})()
        self.sent.append(text)
        return msg


def run(coro):
    return asyncio.run(coro)


def test_parse_command():
    assert parse_command("mute 42 15") == enforcement.PunishmentCommand("mute", 42, 15)
    assert parse_command("/mute 42").minutes == enforcement.DEFAULT_MUTE_MINUTES
    assert parse_command("BAN 7") == enforcement.PunishmentCommand("ban", 7, None)


@pytest.mark.parametrize("command", ["", "mute", "explode 42", "mute bob", "mute 42 soon", "mute 42 0"])
def test_parse_command_rejects_bad_input(command):
    with pytest.raises(CommandError):
        parse_command(command)


def test_execute_mute():
    bot = FakeBot()
    assert run(execute_command(bot, -100123, "mute 42 15")) is True
    action, kwargs = bot.calls[0]
    assert action == "restrict"
    assert kwargs["user_id"] == 42
    assert kwargs["chat_id"] == -100123
    assert kwargs["permissions"].can_send_messages is False


def test_execute_kick_bans_then_unbans():
    bot = FakeBot()
    assert run(execute_command(bot, -1, "kick 42")) is True
    assert [c[0] for c in bot.calls] == ["ban", "unban"]


def test_execute_failure_is_logged_not_raised():
    bot = FakeBot(fail=True)
    assert run(execute_command(bot, -1, "mute 42")) is False
    assert run(execute_command(bot, -1, "nonsense")) is False


@pytest.mark.asyncio
async def test_send_warning_without_auto_delete():
    chat = FakeChat()
    sent = await send_warning(chat, "[SC] alice, slow down", delay=0)
    assert chat.sent == ["[SC] alice, slow down"]
    assert sent.message_id == 100
