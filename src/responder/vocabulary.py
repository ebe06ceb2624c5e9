"""Per-channel vocabulary learned from chat text, split into verbs and nouns.

The split is a suffix heuristic, not a part-of-speech tagger: a word ending
in one of the lexicon's verb suffixes counts as a verb, anything else as a
noun.  The generic fallback template draws its words from here.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, ValidationError

from src.responder.tokenizer import STOPWORDS, tokenize
from src.storage import ChannelKeys

if TYPE_CHECKING:
    from src.storage import KeyValueStore

logger = logging.getLogger(__name__)


class LearnedWords(BaseModel):
    """Verbs and nouns seen on a channel, in first-seen order."""

    verbs: list[str] = Field(default_factory=list)
    nouns: list[str] = Field(default_factory=list)

    def is_sparse(self, minimum: int) -> bool:
        return len(self.verbs) < minimum or len(self.nouns) < minimum


class Vocabulary:
    def __init__(
        self,
        store: KeyValueStore,
        verb_suffixes: Iterable[str] = (),
        stopwords: Iterable[str] = STOPWORDS,
        capacity: int = 500,
    ) -> None:
        self._store = store
        self._suffixes = tuple(s for s in verb_suffixes if s)
        self._stopwords = frozenset(stopwords)
        self.capacity = capacity

    def is_verb(self, word: str) -> bool:
        return word.endswith(self._suffixes) if self._suffixes else False

    async def load(self, channel: str) -> LearnedWords:
        key = ChannelKeys(channel).vocabulary
        raw = await self._store.get(key)
        if raw is None:
            return LearnedWords()
        try:
            return LearnedWords.model_validate(raw)
        except ValidationError:
            logger.warning("Vocabulary at %s is malformed; reinitialising", key)
            return LearnedWords()

    async def learn(self, channel: str, text: str) -> int:
        """Record the new words of *text*. Returns how many were added."""
        words = tokenize(text, self._stopwords)
        if not words:
            return 0

        learned = await self.load(channel)
        seen = set(learned.verbs) | set(learned.nouns)
        added = 0
        for word in words:
            if word in seen:
                continue
            seen.add(word)
            bucket = learned.verbs if self.is_verb(word) else learned.nouns
            if len(bucket) >= self.capacity:
                bucket.pop(0)
            bucket.append(word)
            added += 1

        if added:
            await self._store.set(ChannelKeys(channel).vocabulary, learned.model_dump())
        return added

    async def clear(self, channel: str) -> None:
        await self._store.delete(ChannelKeys(channel).vocabulary)
