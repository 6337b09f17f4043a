"""
Executes resolved punishment commands and delivers warnings through the
Telegram Bot API.

Command grammar (one command per string):
    mute <user_id> [minutes]
    unmute <user_id>
    kick <user_id>
    ban <user_id>
"""
from __future__ import annotations

import asyncio
import logging
import shlex
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from typing import List, Optional

from telegram import Bot, Chat, ChatPermissions, Message
from telegram.error import TelegramError

logger = logging.getLogger(__name__)

DEFAULT_MUTE_MINUTES = 10
WARNING_DELETE_AFTER_SECONDS = 15


class CommandError(ValueError):
    """Raised for a punishment command that cannot be parsed."""


@dataclass(frozen=True)
class PunishmentCommand:
    action: str
    user_id: int
    minutes: Optional[int] = None


def parse_command(command: str) -> PunishmentCommand:
    try:
        parts: List[str] = shlex.split(command.strip().lstrip("/"))
    except ValueError as e:
        raise CommandError(f"Unparseable command {command!r}: {e}") from None
    if len(parts) < 2:
        raise CommandError(f"Command needs an action and a user id: {command!r}")

    action = parts[0].lower()
    if action not in ("mute", "unmute", "kick", "ban"):
        raise CommandError(f"Unknown punishment action {action!r}")
    try:
        user_id = int(parts[1])
    except ValueError:
        raise CommandError(f"Invalid user id in {command!r}") from None

    minutes = None
    if action == "mute":
        minutes = DEFAULT_MUTE_MINUTES
        if len(parts) > 2:
            try:
                minutes = int(parts[2])
            except ValueError:
                raise CommandError(f"Invalid mute duration in {command!r}") from None
            if minutes < 1:
                raise CommandError(f"Mute duration must be positive in {command!r}")
    return PunishmentCommand(action=action, user_id=user_id, minutes=minutes)


async def execute_command(bot: Bot, chat_id: int, command: str) -> bool:
    """
    Run a punishment command in ``chat_id``.

    Returns:
        bool: True when the Bot API accepted the action. Failures are logged;
        the violation counter is never rolled back.
    """
    try:
        parsed = parse_command(command)
    except CommandError as e:
        logger.error(f"Punishment command rejected: {e}")
        return False

    try:
        if parsed.action == "mute":
            until = datetime.now(UTC) + timedelta(minutes=parsed.minutes)
            await bot.restrict_chat_member(
                chat_id=chat_id,
                user_id=parsed.user_id,
                permissions=ChatPermissions(can_send_messages=False),
                until_date=until,
            )
        elif parsed.action == "unmute":
            await bot.restrict_chat_member(
                chat_id=chat_id,
                user_id=parsed.user_id,
                permissions=ChatPermissions.all_permissions(),
            )
        elif parsed.action == "kick":
            await bot.ban_chat_member(chat_id=chat_id, user_id=parsed.user_id)
            await bot.unban_chat_member(chat_id=chat_id, user_id=parsed.user_id, only_if_banned=True)
        else:
            await bot.ban_chat_member(chat_id=chat_id, user_id=parsed.user_id)
    except TelegramError as e:
        logger.error(f"Failed to execute '{command}' in chat {chat_id}: {e}")
        return False

    logger.info(f"Executed punishment '{command}' in chat {chat_id}")
    return True


async def send_warning(chat: Chat, text: str, reply_to: Optional[int] = None,
                       delay: int = WARNING_DELETE_AFTER_SECONDS) -> Optional[Message]:
    try:
        sent = await chat.send_message(
            text,
            reply_to_message_id=reply_to,
            allow_sending_without_reply=True,
        )
    except TelegramError as e:
        logger.warning(f"Failed to send warning to chat {chat.id}: {e}")
        return None
    if delay:
        asyncio.create_task(_delete_message_later(sent, delay))
    return sent


async def _delete_message_later(message: Message, delay: int) -> None:
    try:
        await asyncio.sleep(delay)
        await message.delete()
    except TelegramError:
        pass
