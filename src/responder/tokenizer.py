"""Text normalisation and tokenisation shared by every cascade stage."""

import re
from collections.abc import Iterable

# Zero-width space, non-joiner, joiner and BOM split words like whitespace.
_ZERO_WIDTH_RE = re.compile(r"[\u200b\u200c\u200d\ufeff]")
# Anything that is not a letter, digit or whitespace (underscore included).
_PUNCT_RE = re.compile(r"[^\w\s]|_")

STOPWORDS = frozenset(
    {
        # English
        "the", "an", "of", "to", "is", "are", "was", "and", "or", "in", "on",
        "at", "it", "be", "for", "with", "as", "by", "this", "that",
        # Persian
        "و", "در", "به", "که", "از", "را", "با", "این", "آن", "هم",
    }
)  # fmt: skip


def normalize(text: str) -> list[str]:
    """Lowercase, strip punctuation and split on whitespace.

    Keeps every word, including stopwords and one-letter tokens, so the
    result still reads as a sentence (used for Markov learning).
    """
    text = _ZERO_WIDTH_RE.sub(" ", text.lower())
    text = _PUNCT_RE.sub("", text)
    return text.split()


def tokenize(text: str, stopwords: Iterable[str] = STOPWORDS) -> list[str]:
    """Return content tokens: normalised words longer than one character, minus stopwords."""
    stop = stopwords if isinstance(stopwords, (set, frozenset)) else set(stopwords)
    return [tok for tok in normalize(text) if len(tok) > 1 and tok not in stop]
