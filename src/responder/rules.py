"""Table-driven matchers: FAQ, topic keywords, follow-ups and guard word lists.

Every table is scanned in order and the first hit wins, so table order is
priority order.
"""

from __future__ import annotations

import logging
import random
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from src.responder.tokenizer import normalize, tokenize

if TYPE_CHECKING:
    from src.responder.lexicon import FaqEntry, FollowUp, Lexicon, Topic

logger = logging.getLogger(__name__)


def contains_any(text: str, words: Iterable[str]) -> str | None:
    """Return the first of *words* present in *text* as a whole word or phrase.

    Both sides are normalised, so punctuation and case are ignored.
    """
    padded = f" {' '.join(normalize(text))} "
    for word in words:
        phrase = " ".join(normalize(word))
        if phrase and f" {phrase} " in padded:
            return word
    return None


def contains_substring(text: str, fragments: Iterable[str]) -> str | None:
    """Return the first of *fragments* found anywhere in the lowercased *text*."""
    lowered = text.lower()
    for fragment in fragments:
        if fragment and fragment.lower() in lowered:
            return fragment
    return None


def is_question(text: str, lexicon: Lexicon) -> bool:
    """A question mark anywhere, or a question word among the tokens."""
    if any(marker in text for marker in lexicon.question_markers):
        return True
    return bool(set(normalize(text)) & set(lexicon.question_words))


class RuleMatcher:
    """FAQ table: substring triggers → canned response."""

    def __init__(self, entries: list[FaqEntry]) -> None:
        self._entries = list(entries)

    def match(self, text: str) -> str | None:
        for entry in self._entries:
            trigger = contains_substring(text, entry.triggers)
            if trigger is not None:
                logger.debug("FAQ trigger matched: %r", trigger)
                return entry.response
        return None


class TopicMatcher:
    """Keyword topics: any input token in a topic's keywords picks one of its responses."""

    def __init__(self, topics: list[Topic], rng: random.Random | None = None) -> None:
        self._topics = list(topics)
        self._rng = rng or random.Random()

    def match_topic(self, text: str) -> Topic | None:
        tokens = set(tokenize(text, stopwords=()))
        for topic in self._topics:
            if tokens & {k.lower() for k in topic.keywords}:
                return topic
        return None

    def match(self, text: str) -> str | None:
        topic = self.match_topic(text)
        if topic is None or not topic.responses:
            return None
        return self._rng.choice(topic.responses)


class FollowUpMatcher:
    """Regex follow-ups such as "I went to X" → "How was X?"."""

    def __init__(self, follow_ups: list[FollowUp]) -> None:
        self._rules = [
            (re.compile(rule.pattern, re.IGNORECASE), rule.template) for rule in follow_ups
        ]

    def match(self, text: str) -> str | None:
        for pattern, template in self._rules:
            m = pattern.search(text)
            if m is None:
                continue
            groups = {k: v.strip() for k, v in m.groupdict().items() if v}
            if not groups and m.groupdict():
                continue
            return template.format(**groups)
        return None


def is_excited(text: str, lexicon: Lexicon) -> bool:
    """An excited word, or a run of exclamation marks."""
    if "!!" in text:
        return True
    return bool(set(normalize(text)) & set(lexicon.excited_words))
