"""Telegram handlers: every chat is a responder channel."""

import logging

from telegram import Update
from telegram.ext import ContextTypes

from src.bot.telegram.security import is_allowed
from src.responder.cascade import Responder

logger = logging.getLogger(__name__)


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start — greet the user."""
    if not is_allowed(update):
        return

    await update.message.reply_text("Hi! I'm Bache. Talk to me 😊")


async def handle_reset(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /reset — forget this chat's history and learned models."""
    if not is_allowed(update):
        return

    await Responder.get().reset(str(update.effective_chat.id))
    await update.message.reply_text("Okay, I forgot everything. Starting fresh.")


async def handle_status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /status — show which stage answered last and memory size."""
    if not is_allowed(update):
        return

    responder = Responder.get()
    channel = str(update.effective_chat.id)
    memory = responder.memory(channel)
    lines = [
        "Bache status",
        f"Last stage: {responder.last_stage.get(channel, 'none')}",
        f"Short-term memory: {len(memory)}/{memory.capacity}",
        f"Ranked candidates: {len(responder.ranking(channel))}",
    ]
    await update.message.reply_text("\n".join(lines))


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle incoming text messages."""
    if not is_allowed(update):
        return

    text = update.message.text or ""
    chat_id = update.effective_chat.id
    logger.info("Message from %s: %s", chat_id, text[:80])

    reply = await Responder.get().handle_message(
        str(chat_id), text, str(update.effective_user.id)
    )
    await update.message.reply_text(reply)
