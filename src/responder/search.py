"""Web search over DuckDuckGo instant answers and Wikipedia, queried together.

Best effort only: no retries, one shared timeout, and any failing source is
dropped.  When every source fails the result is an empty list.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx
from bs4 import BeautifulSoup

from src.config import settings

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "BacheBot/0.1 (+https://srza.ir)"


@dataclass
class Snippet:
    """A short text result and the source it came from."""

    text: str
    source: str


def _strip_html(fragment: str) -> str:
    """Wikipedia snippets carry ``<span class="searchmatch">`` markup."""
    return " ".join(BeautifulSoup(fragment, "html.parser").get_text().split())


def extract_duckduckgo(data: dict[str, Any]) -> list[str]:
    """Pull text out of an instant-answer payload."""
    if data.get("AbstractText"):
        return [data["AbstractText"]]
    texts = [r.get("Text", "") for r in data.get("Results", [])]
    if not texts:
        texts = [t.get("Text", "") for t in data.get("RelatedTopics", []) if isinstance(t, dict)]
    return [t for t in texts if t]


def extract_wikipedia(data: dict[str, Any]) -> list[str]:
    hits = data.get("query", {}).get("search", [])
    texts = [_strip_html(hit.get("snippet", "")) for hit in hits]
    return [t for t in texts if t]


class SearchService:
    """Queries every source concurrently and merges what comes back."""

    def __init__(
        self,
        *,
        duckduckgo_url: str | None = None,
        wikipedia_url: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self.duckduckgo_url = duckduckgo_url or settings.duckduckgo_api_url
        self.wikipedia_url = wikipedia_url or settings.wikipedia_api_url
        self.timeout = timeout or settings.search_timeout

    async def _duckduckgo(self, client: httpx.AsyncClient, query: str) -> list[Snippet]:
        params = {"q": query, "format": "json", "no_html": 1, "skip_disambig": 1}
        resp = await client.get(self.duckduckgo_url, params=params)
        resp.raise_for_status()
        return [Snippet(text=t, source="duckduckgo") for t in extract_duckduckgo(resp.json())]

    async def _wikipedia(self, client: httpx.AsyncClient, query: str) -> list[Snippet]:
        params = {
            "action": "query",
            "list": "search",
            "srsearch": query,
            "format": "json",
            "utf8": 1,
        }
        resp = await client.get(self.wikipedia_url, params=params)
        resp.raise_for_status()
        return [Snippet(text=t, source="wikipedia") for t in extract_wikipedia(resp.json())]

    async def search(self, query: str) -> list[Snippet]:
        """Return snippets from every source that answered, in source order."""
        if not query.strip():
            return []
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": DEFAULT_USER_AGENT},
            ) as client:
                results = await asyncio.gather(
                    self._duckduckgo(client, query),
                    self._wikipedia(client, query),
                    return_exceptions=True,
                )
        except httpx.HTTPError:
            logger.exception("Web search client failed")
            return []

        snippets: list[Snippet] = []
        for source, result in zip(("duckduckgo", "wikipedia"), results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Search source %s failed: %s", source, result)
                continue
            snippets.extend(result)
        logger.info("Web search for %r returned %d snippets", query[:80], len(snippets))
        return snippets

    async def search_web(self, query: str) -> list[str]:
        """Snippet texts only."""
        return [s.text for s in await self.search(query)]
