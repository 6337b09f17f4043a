from __future__ import annotations

import asyncio
import logging
import time
from typing import Dict, FrozenSet, Set, Tuple

from telegram import Bot, Message, Update, User
from telegram.constants import ChatType
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from config import ADMIN_ID
from safechat.engine.orchestrator import Engine
from safechat.engine.registry import WILDCARD_PERMISSION
from safechat.logging import VIOLATIONS_LOGGER
from safechat.models import Decision
from safechat.services.enforcement import execute_command, send_warning

logger = logging.getLogger(__name__)
violations_logger = logging.getLogger(VIOLATIONS_LOGGER)

ADMIN_CACHE_SECONDS = 600

# chat_id -> (fetched_at, admin user ids)
_admin_cache: Dict[int, Tuple[float, FrozenSet[int]]] = {}
_background_tasks: Set[asyncio.Task] = set()


def display_name(user: User) -> str:
    if user.username:
        return user.username
    return user.full_name or str(user.id)


def _spawn(coro) -> asyncio.Task:
    task = asyncio.create_task(coro)
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


async def _chat_admins(bot: Bot, chat_id: int) -> FrozenSet[int]:
    now = time.time()
    cached = _admin_cache.get(chat_id)
    if cached and now - cached[0] < ADMIN_CACHE_SECONDS:
        return cached[1]
    try:
        members = await bot.get_chat_administrators(chat_id)
    except TelegramError as e:
        logger.warning(f"Could not fetch administrators for chat {chat_id}: {e}")
        return cached[1] if cached else frozenset()
    admins = frozenset(member.user.id for member in members)
    _admin_cache[chat_id] = (now, admins)
    return admins


async def resolve_permissions(update: Update, context: ContextTypes.DEFAULT_TYPE) -> FrozenSet[str]:
    """Bypass permissions held by the sender. The bot admin and chat
    administrators bypass every check; BYPASS_GRANTS adds specific ones."""
    user = update.effective_user
    chat = update.effective_chat
    if user.id == ADMIN_ID:
        return frozenset({WILDCARD_PERMISSION})

    granted = set(context.bot_data.get("bypass_grants", {}).get(str(user.id), ()))
    if chat is not None and chat.type in (ChatType.GROUP, ChatType.SUPERGROUP):
        if user.id in await _chat_admins(context.bot, chat.id):
            granted.add(WILDCARD_PERMISSION)
    return frozenset(granted)


async def apply_decision(message: Message, bot: Bot, decision: Decision) -> None:
    for record in decision.log_entries:
        violations_logger.info(
            f"{record.check_name} violation #{record.count} by {record.display_name} "
            f"({record.actor_id}){' [punished]' if record.punished else ''}: {record.message[:200]!r}"
        )

    if not decision.allowed:
        try:
            await message.delete()
        except TelegramError as e:
            logger.warning(f"Could not delete message {message.message_id} in {message.chat_id}: {e}")

    for warning in decision.warnings:
        _spawn(send_warning(message.chat, warning.text))

    for command in decision.punishments:
        _spawn(execute_command(bot, message.chat_id, command))


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Run every check on an incoming text message and enforce the outcome."""
    message = update.effective_message
    user = update.effective_user
    if not message or not message.text or not user or user.is_bot:
        return

    engine: Engine = context.bot_data["engine"]
    try:
        permissions = await resolve_permissions(update, context)
        decision = engine.submit(
            user.id,
            display_name(user),
            message.text,
            timestamp=time.time(),
            permissions=permissions,
            scope=message.chat_id,
        )
        if decision.failed_checks:
            logger.debug(f"Message {message.message_id} from {user.id} failed {decision.failed_checks}")
        await apply_decision(message, context.bot, decision)
    except Exception as e:
        logger.error(f"Error processing message from {user.id}: {e}", exc_info=True)


async def handle_member_left(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Drop the message history a member built up in the chat they left."""
    message = update.effective_message
    if not message or not message.left_chat_member:
        return
    engine: Engine = context.bot_data["engine"]
    if engine.evict(message.left_chat_member.id, scope=message.chat_id):
        logger.debug(f"Evicted message state for {message.left_chat_member.id} in {message.chat_id}")
