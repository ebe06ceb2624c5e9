"""Tests for triple extraction and the per-channel knowledge graph."""

import pytest

from src.responder.knowledge import KnowledgeGraph, Triple, extract_triples


@pytest.fixture
def graph(store) -> KnowledgeGraph:
    return KnowledgeGraph(store)


# -- extract_triples ---------------------------------------------------------


def test_extract_possessive_fact() -> None:
    assert extract_triples("my name is John") == [
        Triple(subject="user", predicate="name", object="John")
    ]


def test_extract_preference() -> None:
    assert extract_triples("I love chocolate cake") == [
        Triple(subject="user", predicate="likes", object="chocolate cake")
    ]


def test_extract_capitalised_is_fact() -> None:
    triples = extract_triples("Paris is a city")
    assert Triple(subject="Paris", predicate="is", object="city") in triples


def test_extract_multiple_patterns_in_table_order() -> None:
    triples = extract_triples("Tom lives in London and I like pizza")
    assert [t.predicate for t in triples] == ["likes", "lives in"]


def test_extract_ownership() -> None:
    triples = extract_triples("Rex belongs to Sam")
    assert triples == [Triple(subject="Rex", predicate="belongs to", object="Sam")]


def test_extract_overlapping_matches() -> None:
    triples = extract_triples("Bob is called Bobby")
    assert triples == [
        Triple(subject="Bob", predicate="is called", object="Bobby"),
        Triple(subject="Bob", predicate="is", object="called Bobby"),
    ]


def test_extract_persian_pattern() -> None:
    triples = extract_triples("سبحان را دوست")
    assert triples == [Triple(subject="سبحان", predicate="درباره", object="دوست")]


def test_extract_nothing() -> None:
    assert extract_triples("hello there") == []
    assert extract_triples("") == []


def test_triple_render() -> None:
    assert Triple(subject="a", predicate="b", object="c").render() == "a b c"


# -- add_knowledge -----------------------------------------------------------


async def test_add_knowledge_appends_without_dedup(graph, store) -> None:
    await graph.add_knowledge("1", "my name is John")
    await graph.add_knowledge("1", "my name is John")

    stored = store.data["kg:1"]
    assert len(stored) == 2
    assert stored[0] == stored[1] == {"subject": "user", "predicate": "name", "object": "John"}


async def test_add_knowledge_without_triples_writes_nothing(graph, store) -> None:
    assert await graph.add_knowledge("1", "nothing to learn here") == []
    assert "kg:1" not in store.data


async def test_add_knowledge_recovers_from_malformed_state(graph, store) -> None:
    store.data["kg:1"] = "garbage"
    await graph.add_knowledge("1", "my dog is Rex")
    assert store.data["kg:1"] == [{"subject": "user", "predicate": "dog", "object": "Rex"}]


async def test_channels_are_isolated(graph, store) -> None:
    await graph.add_knowledge("a", "my dog is Rex")
    assert await graph.query_knowledge("b", "rex") == []
    assert len(await graph.query_knowledge("a", "rex")) == 1


# -- query_knowledge ---------------------------------------------------------


async def test_query_matches_subject_or_object(graph) -> None:
    await graph.add_knowledge("1", "Rex belongs to Sam")
    assert len(await graph.query_knowledge("1", "where is rex")) == 1
    assert len(await graph.query_knowledge("1", "who is sam")) == 1
    assert await graph.query_knowledge("1", "who is bob") == []


async def test_query_keeps_insertion_order(graph) -> None:
    await graph.add_knowledge("1", "my cat is Tom")
    await graph.add_knowledge("1", "my dog is Rex")
    await graph.add_knowledge("1", "my fish is Nemo")

    results = await graph.query_knowledge("1", "tom rex nemo")
    assert [t.object for t in results] == ["Tom", "Rex", "Nemo"]


async def test_query_subject_filter(graph) -> None:
    await graph.add_knowledge("1", "Rex belongs to Sam")
    await graph.add_knowledge("1", "my dog is Rex")

    results = await graph.query_knowledge("1", "rex", subject="USER")
    assert results == [Triple(subject="user", predicate="dog", object="Rex")]


async def test_query_with_only_stopwords_returns_nothing(graph) -> None:
    await graph.add_knowledge("1", "my dog is Rex")
    assert await graph.query_knowledge("1", "the a is") == []


async def test_query_skips_malformed_records(graph, store) -> None:
    store.data["kg:1"] = [{"subject": "Rex"}, {"subject": "Rex", "predicate": "is", "object": "dog"}]
    results = await graph.query_knowledge("1", "rex")
    assert results == [Triple(subject="Rex", predicate="is", object="dog")]


async def test_clear(graph, store) -> None:
    await graph.add_knowledge("1", "my dog is Rex")
    await graph.clear("1")
    assert "kg:1" not in store.data


async def test_query_honours_custom_stopwords(store) -> None:
    graph = KnowledgeGraph(store, stopwords={"rex"})
    await graph.add_knowledge("1", "my dog is Rex")

    assert await graph.query_knowledge("1", "rex") == []
    assert await graph.query_knowledge("1", "user") == [
        Triple(subject="user", predicate="dog", object="Rex")
    ]
