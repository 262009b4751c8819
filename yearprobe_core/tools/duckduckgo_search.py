# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
DuckDuckGo HTML search.

Uses the no-JavaScript endpoint. Result links are redirect wrappers
(`/l/?uddg=<encoded target>`) and are unwrapped before returning. A
challenge page is treated as "no results", never as an error.
"""

from __future__ import annotations

import logging
from urllib.parse import quote_plus

import httpx
from bs4 import BeautifulSoup

from yearprobe_core.schema.evidence import SearchResult
from yearprobe_core.tools.url_utils import is_valid_public_http_url, unwrap_redirect_url
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.antibot import detect_challenge

logger = logging.getLogger(__name__)

SEARCH_URL = "https://html.duckduckgo.com/html/?q="

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


def parse_results(html: str, *, max_results: int = 10) -> list[SearchResult]:
    soup = BeautifulSoup(html or "", "lxml")
    results: list[SearchResult] = []
    for node in soup.select(".result"):
        link = node.select_one(".result__a")
        if link is None:
            continue
        url = unwrap_redirect_url(str(link.get("href") or ""))
        if not is_valid_public_http_url(url):
            continue
        snippet_node = node.select_one(".result__snippet")
        results.append(
            SearchResult(
                url=url,
                title=link.get_text(" ", strip=True),
                snippet=snippet_node.get_text(" ", strip=True) if snippet_node is not None else "",
            )
        )
        if len(results) >= max_results:
            break
    return results


class DuckDuckGoSearch:
    def __init__(
        self,
        *,
        timeout_s: float = 15.0,
        max_results: int = 10,
        client: httpx.AsyncClient | None = None,
    ):
        self.max_results = max(1, int(max_results))
        self._client = client or httpx.AsyncClient(
            timeout=float(timeout_s),
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def search(self, query: str) -> list[SearchResult]:
        url = SEARCH_URL + quote_plus(query)
        Trace.event("duckduckgo.request", {"query": query})
        try:
            r = await self._client.get(url)
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("[DuckDuckGo] Request failed for %r: %s", query, e)
            return []

        html = r.text
        detection = detect_challenge(html, url)
        if detection.present:
            logger.info("[DuckDuckGo] Challenge page (%s) for %r", detection.kind.value, query)
            Trace.event("duckduckgo.challenge", {"query": query, "kind": detection.kind.value})
            return []

        results = parse_results(html, max_results=self.max_results)
        Trace.event("duckduckgo.response", {"query": query, "results": len(results)})
        return results
