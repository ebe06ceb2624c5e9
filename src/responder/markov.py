"""Per-channel n-gram Markov model: learning and generation.

The model is persisted at ``markov:<channel>`` as a list of
``{"gram": "w1 w2", "next": {"w3": count}}`` entries.  ``learn`` reads the
whole list, mutates it and writes it back, so concurrent writers on one
channel must be serialised by the caller.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, Field, ValidationError

from src.responder.tokenizer import STOPWORDS, tokenize
from src.storage import ChannelKeys

if TYPE_CHECKING:
    from src.storage import KeyValueStore

logger = logging.getLogger(__name__)

START = "<s>"
END = "</s>"

# Output shorter than this is rejected.
MIN_OUTPUT_TOKENS = 3

Sampling = Literal["greedy", "weighted"]
StartPick = Literal["first", "random"]


class MarkovEntry(BaseModel):
    """One gram and the counts of the tokens seen after it."""

    gram: str
    next: dict[str, int] = Field(default_factory=dict)


def pick_greedy(next_counts: dict[str, int]) -> str:
    """Highest count wins; ties go to the first token encountered."""
    best, best_count = "", -1
    for token, count in next_counts.items():
        if count > best_count:
            best, best_count = token, count
    return best


def pick_weighted(next_counts: dict[str, int], rng: random.Random) -> str:
    """Sample a token with probability proportional to its count."""
    total = sum(next_counts.values())
    r = rng.random() * total
    for token, count in next_counts.items():
        if r < count:
            return token
        r -= count
    return next(iter(next_counts), "")


class MarkovModel:
    """Learns gram → next-token counts and walks them to generate text."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        order: int = 2,
        sampling: Sampling = "weighted",
        start: StartPick = "first",
        max_steps: int = 50,
        max_tokens: int = 15,
        rng: random.Random | None = None,
        stopwords: Iterable[str] = STOPWORDS,
    ) -> None:
        self._store = store
        self._stopwords = frozenset(stopwords)
        self.order = order
        self.sampling = sampling
        self.start = start
        self.max_steps = max_steps
        self.max_tokens = max_tokens
        self._rng = rng or random.Random()

    # -- Persistence -----------------------------------------------------------

    async def load(self, channel: str) -> list[MarkovEntry]:
        """Read the full model; malformed state is treated as empty."""
        key = ChannelKeys(channel).markov
        raw = await self._store.get(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Markov model at %s is not a list; reinitialising", key)
            return []
        entries = []
        for item in raw:
            try:
                entries.append(MarkovEntry.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed Markov entry in %s: %r", key, item)
        return entries

    async def clear(self, channel: str) -> None:
        await self._store.delete(ChannelKeys(channel).markov)

    # -- Learning --------------------------------------------------------------

    def frame(self, tokens: list[str]) -> list[str]:
        return [START, *tokens, END]

    async def learn(self, channel: str, tokens: list[str]) -> int:
        """Count every (gram, next token) pair in *tokens*.

        Returns the number of pairs counted.  Nothing is written for input
        too short to form a single pair.
        """
        framed = self.frame(tokens)
        if len(framed) <= self.order:
            return 0

        model = await self.load(channel)
        by_gram = {entry.gram: entry for entry in model}
        pairs = 0
        for i in range(len(framed) - self.order):
            gram = " ".join(framed[i : i + self.order])
            following = framed[i + self.order]
            entry = by_gram.get(gram)
            if entry is None:
                entry = MarkovEntry(gram=gram)
                model.append(entry)
                by_gram[gram] = entry
            entry.next[following] = entry.next.get(following, 0) + 1
            pairs += 1

        await self._store.set(ChannelKeys(channel).markov, [e.model_dump() for e in model])
        return pairs

    # -- Generation ------------------------------------------------------------

    def _choose(self, candidates: list[MarkovEntry]) -> MarkovEntry | None:
        if not candidates:
            return None
        if self.start == "random":
            return self._rng.choice(candidates)
        return candidates[0]

    def _starting_gram(self, model: list[MarkovEntry], input_text: str) -> MarkovEntry | None:
        input_tokens = set(tokenize(input_text, self._stopwords))
        seeded = [e for e in model if input_tokens & set(e.gram.split())]
        if seeded:
            return self._choose(seeded)
        return self._choose([e for e in model if e.gram.split()[0] == START])

    def _next(self, next_counts: dict[str, int]) -> str:
        if self.sampling == "greedy":
            return pick_greedy(next_counts)
        return pick_weighted(next_counts, self._rng)

    async def generate(self, channel: str, input_text: str) -> str | None:
        """Walk the model from a gram related to *input_text*.

        Returns None when the walk produces fewer than three tokens.
        """
        model = await self.load(channel)
        if not model:
            return None
        by_gram = {entry.gram: entry for entry in model}

        start = self._starting_gram(model, input_text)
        if start is None:
            return None

        window = start.gram.split()
        output = [tok for tok in window if tok not in (START, END)]
        for _ in range(self.max_steps):
            if len(output) >= self.max_tokens:
                break
            entry = by_gram.get(" ".join(window))
            if entry is None or not entry.next:
                break
            token = self._next(entry.next)
            if token == END:
                break
            output.append(token)
            window = [*window[1:], token]

        output = output[: self.max_tokens]
        if len(output) < MIN_OUTPUT_TOKENS:
            logger.debug("Markov output too short for channel %s: %r", channel, output)
            return None
        return " ".join(output)
