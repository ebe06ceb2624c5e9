"""Telegram application factory."""

import logging

from telegram.ext import Application, CommandHandler, MessageHandler, filters

from src.bot.telegram.handlers import (
    handle_message,
    handle_reset,
    handle_start,
    handle_status,
)
from src.config import settings

logger = logging.getLogger(__name__)


def create_app() -> Application:
    """Build and configure the Telegram application.

    Updates are processed concurrently; the responder serialises messages
    that share a chat.
    """
    app = Application.builder().token(settings.telegram_bot_token).concurrent_updates(True).build()

    app.add_handler(CommandHandler("start", handle_start))
    app.add_handler(CommandHandler("reset", handle_reset))
    app.add_handler(CommandHandler("status", handle_status))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))

    return app
