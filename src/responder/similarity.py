"""Term-frequency vectors and cosine similarity for the semantic fallback."""

import math
from collections import Counter
from collections.abc import Iterable

from src.responder.tokenizer import STOPWORDS, tokenize

DEFAULT_THRESHOLD = 0.3


def tf(tokens: list[str]) -> dict[str, float]:
    """Token counts divided by the token total (no IDF weighting)."""
    if not tokens:
        return {}
    total = len(tokens)
    return {token: count / total for token, count in Counter(tokens).items()}


def cosine_similarity(a: dict[str, float], b: dict[str, float]) -> float:
    dot = mag_a = mag_b = 0.0
    for key in a.keys() | b.keys():
        va, vb = a.get(key, 0.0), b.get(key, 0.0)
        dot += va * vb
        mag_a += va * va
        mag_b += vb * vb
    if not mag_a or not mag_b:
        return 0.0
    return dot / (math.sqrt(mag_a) * math.sqrt(mag_b))


def find_best(
    text: str,
    candidates: Iterable[str],
    threshold: float = DEFAULT_THRESHOLD,
    stopwords: Iterable[str] = STOPWORDS,
) -> str | None:
    """Return the candidate most similar to *text* if it scores above *threshold*.

    Ties keep the first candidate seen at the top score.
    """
    stop = frozenset(stopwords)
    target = tf(tokenize(text, stop))
    if not target:
        return None

    best: str | None = None
    best_score = 0.0
    for candidate in candidates:
        score = cosine_similarity(target, tf(tokenize(candidate, stop)))
        if score > best_score:
            best, best_score = candidate, score

    if best is not None and best_score > threshold:
        return best
    return None
