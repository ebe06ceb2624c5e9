"""Tests for the DuckDuckGo + Wikipedia search service."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.responder.search import (
    SearchService,
    Snippet,
    extract_duckduckgo,
    extract_wikipedia,
)

DDG_URL = "https://ddg.test/"
WIKI_URL = "https://wiki.test/api.php"

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def service() -> SearchService:
    return SearchService(duckduckgo_url=DDG_URL, wikipedia_url=WIKI_URL, timeout=2.0)


def _json_response(url: str, payload: dict, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code=status_code,
        json=payload,
        request=httpx.Request("GET", url),
    )


def _mock_httpx_client(mock_client_cls: MagicMock, responses: dict[str, object]) -> AsyncMock:
    """Wire up an AsyncClient mock answering per URL; exceptions are raised."""

    async def _get(url, params=None):
        outcome = responses[url]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    mock_client = AsyncMock()
    mock_client.get.side_effect = _get
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


DDG_PAYLOAD = {"AbstractText": "Cats are small furry animals.", "Results": []}
WIKI_PAYLOAD = {
    "query": {
        "search": [
            {"snippet": 'The <span class="searchmatch">cat</span> is a domestic species'},
            {"snippet": ""},
        ]
    }
}

# ---------------------------------------------------------------------------
# Payload extraction
# ---------------------------------------------------------------------------


def test_extract_duckduckgo_prefers_abstract() -> None:
    assert extract_duckduckgo(DDG_PAYLOAD) == ["Cats are small furry animals."]


def test_extract_duckduckgo_falls_back_to_results() -> None:
    data = {"AbstractText": "", "Results": [{"Text": "Official site"}]}
    assert extract_duckduckgo(data) == ["Official site"]


def test_extract_duckduckgo_related_topics() -> None:
    data = {
        "AbstractText": "",
        "RelatedTopics": [{"Text": "Cat (animal)"}, {"Name": "Group", "Topics": []}],
    }
    assert extract_duckduckgo(data) == ["Cat (animal)"]


def test_extract_duckduckgo_empty() -> None:
    assert extract_duckduckgo({}) == []


def test_extract_wikipedia_strips_markup() -> None:
    assert extract_wikipedia(WIKI_PAYLOAD) == ["The cat is a domestic species"]


# ---------------------------------------------------------------------------
# SearchService.search
# ---------------------------------------------------------------------------


async def test_search_merges_sources_in_order(service) -> None:
    responses = {
        DDG_URL: _json_response(DDG_URL, DDG_PAYLOAD),
        WIKI_URL: _json_response(WIKI_URL, WIKI_PAYLOAD),
    }
    with patch("src.responder.search.httpx.AsyncClient") as mock_cls:
        client = _mock_httpx_client(mock_cls, responses)
        snippets = await service.search("cats")

    assert snippets == [
        Snippet(text="Cats are small furry animals.", source="duckduckgo"),
        Snippet(text="The cat is a domestic species", source="wikipedia"),
    ]
    assert client.get.await_count == 2
    assert mock_cls.call_args.kwargs["timeout"] == 2.0


async def test_search_drops_failed_source(service) -> None:
    responses = {
        DDG_URL: httpx.ConnectError("boom"),
        WIKI_URL: _json_response(WIKI_URL, WIKI_PAYLOAD),
    }
    with patch("src.responder.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, responses)
        snippets = await service.search("cats")

    assert [s.source for s in snippets] == ["wikipedia"]


async def test_search_drops_http_error_status(service) -> None:
    responses = {
        DDG_URL: _json_response(DDG_URL, DDG_PAYLOAD),
        WIKI_URL: _json_response(WIKI_URL, {}, status_code=503),
    }
    with patch("src.responder.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, responses)
        snippets = await service.search("cats")

    assert [s.source for s in snippets] == ["duckduckgo"]


async def test_search_all_sources_fail(service) -> None:
    responses = {
        DDG_URL: httpx.ReadTimeout("slow"),
        WIKI_URL: httpx.ConnectError("down"),
    }
    with patch("src.responder.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, responses)
        assert await service.search("cats") == []


async def test_search_blank_query_skips_network(service) -> None:
    with patch("src.responder.search.httpx.AsyncClient") as mock_cls:
        assert await service.search("   ") == []
    mock_cls.assert_not_called()


async def test_search_web_returns_texts(service) -> None:
    responses = {
        DDG_URL: _json_response(DDG_URL, DDG_PAYLOAD),
        WIKI_URL: _json_response(WIKI_URL, {"query": {"search": []}}),
    }
    with patch("src.responder.search.httpx.AsyncClient") as mock_cls:
        _mock_httpx_client(mock_cls, responses)
        assert await service.search_web("cats") == ["Cats are small furry animals."]
