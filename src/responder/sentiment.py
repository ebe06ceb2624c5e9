"""Lexicon-based sentiment scoring."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from src.responder.rules import is_question
from src.responder.tokenizer import normalize

if TYPE_CHECKING:
    from src.responder.lexicon import Lexicon

Sentiment = Literal["positive", "negative", "neutral", "question"]


@dataclass
class SentimentResult:
    score: float
    sentiment: Sentiment


class SentimentAnalyzer:
    """Counts positive and negative words.

    A negation flips the next sentiment word within two tokens, and an
    intensifier directly before a sentiment word doubles it.  Text with a
    zero score that reads as a question is labelled ``question``.
    """

    def __init__(self, lexicon: Lexicon) -> None:
        self._lexicon = lexicon
        self._positive = set(lexicon.positive_words)
        self._negative = set(lexicon.negative_words)
        self._negations = set(lexicon.negations)
        self._intensifiers = set(lexicon.intensifiers)

    def analyze(self, text: str) -> SentimentResult:
        tokens = normalize(text)
        score = 0.0
        negate_until = -1
        for i, token in enumerate(tokens):
            if token in self._negations:
                negate_until = i + 2
                continue
            if token in self._positive:
                value = 1.0
            elif token in self._negative:
                value = -1.0
            else:
                continue
            if i > 0 and tokens[i - 1] in self._intensifiers:
                value *= 2
            if i <= negate_until:
                value = -value
                negate_until = -1
            score += value

        if score > 0:
            sentiment: Sentiment = "positive"
        elif score < 0:
            sentiment = "negative"
        elif is_question(text, self._lexicon):
            sentiment = "question"
        else:
            sentiment = "neutral"
        return SentimentResult(score=score, sentiment=sentiment)

