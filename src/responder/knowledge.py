"""Knowledge graph: pattern-based triple extraction and per-channel storage.

Triples are appended to ``kg:<channel>`` without deduplication: saying the
same thing twice stores the same fact twice.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from src.responder.tokenizer import STOPWORDS, tokenize
from src.storage import ChannelKeys

if TYPE_CHECKING:
    from src.storage import KeyValueStore

logger = logging.getLogger(__name__)


class Triple(BaseModel):
    """A subject–predicate–object fact."""

    subject: str
    predicate: str
    object: str

    def render(self) -> str:
        return f"{self.subject} {self.predicate} {self.object}"


TripleBuilder = Callable[[re.Match[str]], Triple]

_PHRASE = r"\w+(?: \w+)?"
_FA_WORD = r"[\u0600-\u06FF\u200c]+"


def _fixed(predicate: str) -> TripleBuilder:
    """Builder for patterns capturing (subject, object) as groups 1 and 2."""

    def build(m: re.Match[str]) -> Triple:
        return Triple(subject=m.group(1), predicate=predicate, object=m.group(2))

    return build


# Table order is extraction order.  Patterns overlap on purpose.
EXTRACTION_PATTERNS: tuple[tuple[re.Pattern[str], TripleBuilder], ...] = (
    (
        re.compile(rf"\bmy ({_PHRASE}) is (?:a |an |the )?({_PHRASE})", re.IGNORECASE),
        lambda m: Triple(subject="user", predicate=m.group(1), object=m.group(2)),
    ),
    (
        re.compile(rf"\bi (?:like|love|enjoy) ({_PHRASE})", re.IGNORECASE),
        lambda m: Triple(subject="user", predicate="likes", object=m.group(1)),
    ),
    (
        re.compile(rf"\b(\w+) (?:is called|is named) ({_PHRASE})", re.IGNORECASE),
        _fixed("is called"),
    ),
    (
        re.compile(rf"\b(\w+) (?:belongs to|is owned by) ({_PHRASE})", re.IGNORECASE),
        _fixed("belongs to"),
    ),
    (
        re.compile(rf"\b(\w+) (?:lives|lived) in ({_PHRASE})", re.IGNORECASE),
        _fixed("lives in"),
    ),
    (
        re.compile(rf"\b([A-Z]\w+(?: [A-Z]\w+)?) is (?:a |an |the )?({_PHRASE})"),
        _fixed("is"),
    ),
    (
        re.compile(rf"({_FA_WORD}) (?:نامیده می\u200cشود|متعلق به) ({_FA_WORD})"),
        _fixed("مرتبط با"),
    ),
    (
        re.compile(rf"({_FA_WORD}) (?:را|رو) ({_FA_WORD})"),
        _fixed("درباره"),
    ),
)


def extract_triples(text: str) -> list[Triple]:
    """Apply every extraction pattern to *text* and collect the triples.

    Each pattern scans the whole text independently, so one sentence can
    yield several (possibly overlapping) triples.  Captures are only
    stripped; a triple with an empty part is skipped.
    """
    triples: list[Triple] = []
    for pattern, build in EXTRACTION_PATTERNS:
        for match in pattern.finditer(text):
            triple = build(match)
            subject, obj = triple.subject.strip(), triple.object.strip()
            if not subject or not obj:
                continue
            triples.append(
                Triple(subject=subject, predicate=triple.predicate.strip(), object=obj)
            )
    return triples


class KnowledgeGraph:
    """Append-only triple sequence per channel."""

    def __init__(self, store: KeyValueStore, stopwords: Iterable[str] = STOPWORDS) -> None:
        self._store = store
        self._stopwords = frozenset(stopwords)

    async def _load(self, channel: str) -> list[Triple]:
        key = ChannelKeys(channel).knowledge
        raw = await self._store.get(key)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Knowledge graph at %s is not a list; treating as empty", key)
            return []
        triples = []
        for item in raw:
            try:
                triples.append(Triple.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed triple in %s: %r", key, item)
        return triples

    async def add_knowledge(self, channel: str, text: str) -> list[Triple]:
        """Extract triples from *text* and append them. Returns the new triples."""
        triples = extract_triples(text)
        if not triples:
            return []
        existing = await self._load(channel)
        existing.extend(triples)
        await self._store.set(
            ChannelKeys(channel).knowledge, [t.model_dump() for t in existing]
        )
        logger.debug("Stored %d triples for channel %s", len(triples), channel)
        return triples

    async def query_knowledge(
        self,
        channel: str,
        query: str,
        subject: str | None = None,
    ) -> list[Triple]:
        """Return triples whose subject or object shares a token with *query*.

        *subject*, when given, must equal the triple's subject
        (case-insensitive).  Results keep insertion order.
        """
        query_tokens = set(tokenize(query, self._stopwords))
        if not query_tokens:
            return []
        wanted = subject.strip().lower() if subject else None

        matches = []
        for triple in await self._load(channel):
            if wanted is not None and triple.subject.lower() != wanted:
                continue
            parts = tokenize(f"{triple.subject} {triple.object}", self._stopwords)
            if query_tokens & set(parts):
                matches.append(triple)
        return matches

    async def clear(self, channel: str) -> None:
        await self._store.delete(ChannelKeys(channel).knowledge)
