from __future__ import annotations

import asyncio
import logging

import httpx

from yearprobe_core.schema.evidence import SearchResult
from yearprobe_core.tools.url_utils import is_valid_public_http_url
from yearprobe_core.utils.trace import Trace

logger = logging.getLogger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"


class TavilySearch:
    def __init__(
        self,
        *,
        api_key: str,
        timeout_s: float = 15.0,
        max_results: int = 10,
        concurrency: int = 4,
        exclude_domains: list[str] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.max_results = max(1, min(int(max_results), 20))
        self._sem = asyncio.Semaphore(max(1, min(int(concurrency or 4), 16)))
        self._exclude_domains = sorted({d.lower().lstrip(".") for d in (exclude_domains or []) if d})[:32]

        self._client = client or httpx.AsyncClient(
            timeout=float(timeout_s),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            headers=self._headers(api_key),
        )

    @staticmethod
    def _headers(api_key: str) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "X-Client-Source": "yearprobe"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return headers

    async def close(self) -> None:
        await self._client.aclose()

    def _payload(self, query: str) -> dict:
        payload: dict = {
            "query": query,
            "search_depth": "basic",
            "max_results": self.max_results,
            "topic": "general",
            "include_raw_content": False,
        }
        if self._exclude_domains:
            payload["exclude_domains"] = self._exclude_domains
        return payload

    async def search(self, query: str) -> list[SearchResult]:
        payload = self._payload(query)
        async with self._sem:
            Trace.event("tavily.request", {"url": TAVILY_SEARCH_URL, "payload": payload})
            r = await self._client.post(TAVILY_SEARCH_URL, json=payload)
            try:
                r.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.debug(
                    "[Tavily] HTTP error %s. Response: %s",
                    e.response.status_code,
                    (e.response.text or "")[:500],
                )
                raise
            Trace.event("tavily.response", {"status_code": r.status_code, "text": r.text})
            data = r.json()

        results: list[SearchResult] = []
        for item in data.get("results") or []:
            url = str(item.get("url") or "")
            if not is_valid_public_http_url(url):
                continue
            results.append(
                SearchResult(url=url, title=str(item.get("title") or ""), snippet=str(item.get("content") or ""))
            )
        return results[: self.max_results]
