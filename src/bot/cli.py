"""Interactive terminal chat for local testing."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.responder.cascade import Responder

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit"}
RESET_COMMAND = "/reset"


async def repl(
    responder: Responder,
    channel: str = "cli",
    read: Callable[[str], str] = input,
    write: Callable[[str], None] = print,
) -> int:
    """Read lines until ``exit`` or EOF. Returns the number of messages answered."""
    answered = 0
    while True:
        try:
            line = await asyncio.to_thread(read, "user: ")
        except EOFError:
            break
        command = line.strip().lower()
        if command in EXIT_COMMANDS:
            break
        if not command:
            continue
        if command == RESET_COMMAND:
            await responder.reset(channel)
            write("bot: (memory cleared)")
            continue
        reply = await responder.handle_message(channel, line, "cli")
        write(f"bot: {reply}")
        answered += 1
    return answered
