"""Tests for term-frequency vectors, cosine similarity and best-match lookup."""

import pytest

from src.responder.similarity import cosine_similarity, find_best, tf


def test_tf_divides_counts_by_total() -> None:
    assert tf(["a", "a", "b"]) == pytest.approx({"a": 2 / 3, "b": 1 / 3})


def test_tf_empty() -> None:
    assert tf([]) == {}


def test_cosine_identical_vectors() -> None:
    vec = {"cat": 0.5, "mat": 0.5}
    assert cosine_similarity(vec, dict(vec)) == pytest.approx(1.0)


def test_cosine_disjoint_vectors() -> None:
    assert cosine_similarity({"cat": 1.0}, {"dog": 1.0}) == 0.0


def test_cosine_with_empty_vector() -> None:
    assert cosine_similarity({}, {"dog": 1.0}) == 0.0
    assert cosine_similarity({}, {}) == 0.0


def test_cosine_partial_overlap() -> None:
    score = cosine_similarity({"big": 0.5, "cats": 0.5}, {"cats": 1.0})
    assert score == pytest.approx(0.5**0.5)


def test_find_best_picks_most_similar() -> None:
    candidates = ["we play games", "cartoons are fun"]
    assert find_best("I like cartoons", candidates) == "cartoons are fun"


def test_find_best_below_threshold() -> None:
    # Cosine is 0.25 here.
    assert find_best("cats dogs birds fish", ["cats run jump swim"]) is None
    assert find_best("cats dogs birds fish", ["cats run jump swim"], threshold=0.2) == (
        "cats run jump swim"
    )


def test_find_best_tie_keeps_first() -> None:
    assert find_best("cats", ["big cats", "cats small"]) == "big cats"


def test_find_best_without_candidates() -> None:
    assert find_best("anything here", []) is None


def test_find_best_with_empty_text() -> None:
    assert find_best("", ["cartoons are fun"]) is None
    assert find_best("the a", ["cartoons are fun"]) is None


def test_find_best_with_custom_stopwords() -> None:
    candidates = ["cartoons are fun"]
    assert find_best("cartoons", candidates) == "cartoons are fun"
    assert find_best("cartoons", candidates, stopwords={"cartoons"}) is None
