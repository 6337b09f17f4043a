"""
SafeChat Telegram guard - entrypoint.
Runs every group text message through the chat checks and enforces
punishments and warnings.
"""
import logging
import sys
import traceback

from telegram import Update
from telegram.ext import Application, ContextTypes, MessageHandler, filters

import config
from safechat.engine.bootstrap import build_engine
from safechat.errors import ConfigError
from safechat.handlers.messages import handle_member_left, handle_text_message
from safechat.logging import configure_logging

logger = configure_logging(getattr(logging, config.LOG_LEVEL, logging.INFO))


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Log errors without crashing the bot."""
    try:
        logger.error(f"Error while handling update {update}: {context.error}")
        if context.error:
            logger.error(
                "Error traceback: "
                + "".join(traceback.format_exception(type(context.error), context.error, context.error.__traceback__))
            )
    except Exception as e:
        logger.error(f"Error handler failed: {e}", exc_info=True)


async def post_shutdown(application: Application) -> None:
    engine = application.bot_data.get("engine")
    if engine is not None:
        engine.shutdown()
        logger.info("Violation store flushed")


def build_application(token: str) -> Application:
    try:
        bypass_grants = config.bypass_grants()
    except ConfigError as e:
        logger.error(f"Ignoring BYPASS_GRANTS: {e}")
        bypass_grants = {}

    application = Application.builder().token(token).post_shutdown(post_shutdown).build()
    application.bot_data["engine"] = build_engine()
    application.bot_data["bypass_grants"] = bypass_grants

    application.add_handler(MessageHandler(filters.StatusUpdate.LEFT_CHAT_MEMBER, handle_member_left))
    application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_text_message))
    application.add_error_handler(error_handler)
    return application


def main():
    if not config.BOT_TOKEN:
        logger.error("BOT_TOKEN not set in environment variables!")
        sys.exit(1)
    if not config.ADMIN_ID:
        logger.warning("ADMIN_ID not set, only chat administrators bypass checks")

    application = build_application(config.BOT_TOKEN)
    logger.info("Starting SafeChat guard (polling mode)...")
    try:
        application.run_polling(allowed_updates=Update.ALL_TYPES)
    except KeyboardInterrupt:
        logger.info("Bot interrupted by user")


if __name__ == "__main__":
    main()
