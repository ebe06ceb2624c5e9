"""Bache entry point."""

import asyncio
import logging

from src.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


async def _serve_http() -> None:
    from src.bot.server import ChatServer
    from src.responder.cascade import Responder

    server = ChatServer(Responder.get())
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Start the bot on the configured platform."""
    if settings.chat_platform == "telegram":
        from src.bot.telegram.app import create_app

        if not settings.telegram_bot_token:
            logger.error("TELEGRAM_BOT_TOKEN is not set")
            return
        logger.info("Starting Bache on Telegram...")
        create_app().run_polling()
    elif settings.chat_platform == "http":
        logger.info("Starting Bache HTTP server...")
        try:
            asyncio.run(_serve_http())
        except KeyboardInterrupt:
            logger.info("Interrupted")
    else:
        from src.bot.cli import repl
        from src.responder.cascade import Responder

        asyncio.run(repl(Responder.get()))


if __name__ == "__main__":
    main()
