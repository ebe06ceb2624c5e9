"""Bounded ranking of candidate replies gathered from search and learning.

Scores combine topic hits, overlap with the query, sentiment words and the
trust of the source, plus a freshness term that decays with age.  Entries
with equal scores come back in no guaranteed order.
"""

from __future__ import annotations

import heapq
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from src.responder.tokenizer import tokenize

if TYPE_CHECKING:
    from src.responder.lexicon import Lexicon

BASE_SCORE = 1.0
TOPIC_BONUS = 2.0
QUERY_OVERLAP_WEIGHT = 1.5
SENTIMENT_WEIGHT = 0.5
SECONDS_PER_HOUR = 3600.0


@dataclass
class RankedResponse:
    response: str
    score: float
    timestamp: float
    source: str | None = None


def _key(response: str) -> str:
    return " ".join(response.split())


class ResponseRanking:
    """Max-score structure over candidate replies, capped at *capacity*."""

    def __init__(
        self,
        lexicon: Lexicon,
        capacity: int = 50,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._lexicon = lexicon
        self.capacity = capacity
        self._clock = clock
        self._items: dict[str, RankedResponse] = {}

    def score(
        self,
        response: str,
        source: str | None = None,
        query_tokens: list[str] | None = None,
    ) -> float:
        """Base score of *response*, without the freshness term."""
        tokens = tokenize(response, stopwords=self._lexicon.stopword_set)
        token_set = set(tokens)
        total = BASE_SCORE

        for topic in self._lexicon.topics:
            if token_set & {k.lower() for k in topic.keywords}:
                total += TOPIC_BONUS

        if query_tokens:
            total += QUERY_OVERLAP_WEIGHT * len(set(query_tokens) & token_set)

        positive = sum(1 for t in tokens if t in self._lexicon.positive_words)
        negative = sum(1 for t in tokens if t in self._lexicon.negative_words)
        total += SENTIMENT_WEIGHT * (positive - negative)

        if source:
            total += self._lexicon.source_weights.get(source.lower(), 0.0)
        return total

    def effective_score(self, item: RankedResponse) -> float:
        age_hours = max(0.0, self._clock() - item.timestamp) / SECONDS_PER_HOUR
        return item.score + 1.0 / (1.0 + age_hours)

    def add(
        self,
        response: str,
        source: str | None = None,
        query_tokens: list[str] | None = None,
    ) -> RankedResponse | None:
        """Insert *response*, or bump and refresh an equivalent existing entry.

        Returns the entry, or None for blank input.
        """
        key = _key(response)
        if not key:
            return None
        gained = self.score(key, source, query_tokens)
        now = self._clock()

        item = self._items.get(key)
        if item is not None:
            item.score += gained
            item.timestamp = now
        else:
            item = RankedResponse(response=key, score=gained, timestamp=now, source=source)
            self._items[key] = item

        if len(self._items) > self.capacity:
            self._evict_lowest()
        return item

    def _evict_lowest(self) -> None:
        lowest = min(self._items.values(), key=self.effective_score)
        del self._items[_key(lowest.response)]

    def get_top_entries(self, k: int = 1) -> list[RankedResponse]:
        return heapq.nlargest(k, self._items.values(), key=self.effective_score)

    def get_top(self, k: int = 1) -> list[str]:
        """The *k* highest-scoring responses, best first."""
        return [item.response for item in self.get_top_entries(k)]

    def prune_old(self, max_age_hours: float = 24) -> int:
        """Drop entries older than *max_age_hours*. Returns how many were removed."""
        threshold = self._clock() - max_age_hours * SECONDS_PER_HOUR
        stale = [key for key, item in self._items.items() if item.timestamp < threshold]
        for key in stale:
            del self._items[key]
        return len(stale)

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)
