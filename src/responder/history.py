"""Persisted conversation history per channel.

Entry 0 is always the system prompt; it is recreated whenever missing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ValidationError

from src.storage import ChannelKeys

if TYPE_CHECKING:
    from src.storage import KeyValueStore

logger = logging.getLogger(__name__)

Role = Literal["system", "user", "assistant"]


class MessageRecord(BaseModel):
    """A single conversation message."""

    role: Role
    content: str


class ConversationHistory:
    def __init__(self, store: KeyValueStore, system_prompt: str) -> None:
        self._store = store
        self.system_prompt = system_prompt

    def _system(self) -> dict:
        return MessageRecord(role="system", content=self.system_prompt).model_dump()

    async def ensure(self, channel: str) -> None:
        """Create the history, or repair it so entry 0 is the system prompt."""
        key = ChannelKeys(channel).history
        raw = await self._store.get(key)
        if isinstance(raw, list) and raw and isinstance(raw[0], dict):
            if raw[0].get("role") == "system":
                return
            logger.warning("History %s lost its system prompt; reseeding", key)
            await self._store.set(key, [self._system(), *raw])
            return
        if raw is not None and raw != []:
            logger.warning("History at %s is malformed; reinitialising", key)
        await self._store.set(key, [self._system()])

    async def append(self, channel: str, role: Role, content: str) -> None:
        record = MessageRecord(role=role, content=content)
        await self._store.push(ChannelKeys(channel).history, record.model_dump())

    async def load(self, channel: str) -> list[MessageRecord]:
        """All valid records, oldest first."""
        key = ChannelKeys(channel).history
        raw = await self._store.get(key)
        if not isinstance(raw, list):
            return []
        records = []
        for item in raw:
            try:
                records.append(MessageRecord.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed history record in %s", key)
        return records

    async def assistant_replies(self, channel: str) -> list[str]:
        return [m.content for m in await self.load(channel) if m.role == "assistant"]

    async def reset(self, channel: str) -> None:
        await self._store.delete(ChannelKeys(channel).history)
        await self.ensure(channel)
