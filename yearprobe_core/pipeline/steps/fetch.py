# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Fetch Step

Runs the search provider on the newest queries, then fetches the
discovered pages under a concurrency limit and an overall stage timeout.
Every page passes the anti-bot gate before it counts as fetched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from yearprobe_core.pipeline.state import ResearchState
from yearprobe_core.runtime_config import FetchConfig
from yearprobe_core.tools.interfaces import CaptchaSolver, PageFetcher, SearchProvider
from yearprobe_core.tools.url_utils import canonical_url_for_dedupe, is_valid_public_http_url
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.antibot import GateAction, decide, detect_challenge

logger = logging.getLogger(__name__)

NO_URLS_ERROR = "No URLs found from search"
TIMEOUT_ERROR = "Fetch stage timed out"


@dataclass
class FetchStep:
    """
    Search and fetch candidate pages.

    State Input:
        - search_queries (last `queries_per_pass` are searched)
        - urls_to_fetch, fetched_pages (URLs already attempted, for dedupe)

    State Output:
        - urls_to_fetch (union; URLs attempted this pass, never the capped overflow)
        - fetched_pages (union, gated pages only)
        - errors (appended)
    """

    search: SearchProvider
    fetcher: PageFetcher
    solver: CaptchaSolver | None = None
    config: FetchConfig = field(default_factory=FetchConfig)
    queries_per_pass: int = 2
    name: str = "fetch"

    async def _search_urls(self, queries: list[str], errors: list[str]) -> list[str]:
        urls: list[str] = []
        for query in queries:
            try:
                results = await self.search.search(query)
            except Exception as e:
                logger.warning("[Fetch] Search failed for %r: %s", query, e)
                errors.append(f"Search failed for '{query}': {e}")
                continue
            urls.extend(r.url for r in results)
        return urls

    async def _gate(self, url: str, content: str) -> str | None:
        detection = detect_challenge(content, url)
        action = decide(detection, solver_available=self.solver is not None)

        if action == GateAction.ACCEPT:
            return content
        if action == GateAction.DROP:
            logger.info("[Gate] Dropped %s (%s challenge)", url, detection.kind.value)
            Trace.event("gate.dropped", {"url": url, "kind": detection.kind.value})
            return None

        result = await self.solver.solve(url, detection.kind, detection.site_key)
        if not result.success or not result.token:
            logger.info("[Gate] Solve failed for %s: %s", url, result.error)
            Trace.event("gate.solve_failed", {"url": url, "kind": detection.kind.value, "error": result.error})
            return None

        resolved = await self.fetcher.submit_challenge_token(url, detection.kind, result.token)
        if not resolved or detect_challenge(resolved, url).present:
            logger.info("[Gate] Challenge persisted after solve for %s", url)
            Trace.event("gate.still_challenged", {"url": url, "kind": detection.kind.value})
            return None

        Trace.event("gate.solved", {"url": url, "kind": detection.kind.value})
        return resolved

    async def _fetch_one(self, url: str, sem: asyncio.Semaphore) -> str | None:
        async with sem:
            content = await self.fetcher.fetch(url)
            if not content:
                return None
            return await self._gate(url, content)

    async def run(self, state: ResearchState) -> dict[str, Any]:
        errors: list[str] = []
        queries = state.search_queries[-self.queries_per_pass :] if self.queries_per_pass > 0 else []
        found = await self._search_urls(queries, errors)
        if not found:
            errors.append(NO_URLS_ERROR)

        seen = {canonical_url_for_dedupe(u) for u in state.urls_to_fetch}
        seen.update(canonical_url_for_dedupe(u) for u in state.fetched_pages)
        new_urls: list[str] = []
        for url in found:
            key = canonical_url_for_dedupe(url)
            if key in seen or not is_valid_public_http_url(url):
                continue
            seen.add(key)
            new_urls.append(url)

        targets = new_urls[: self.config.max_pages]
        pages: dict[str, str] = {}
        if targets:
            pages = await self._fetch_all(targets, errors)
            try:
                await self.fetcher.persist_cookies()
            except Exception as e:
                logger.warning("[Fetch] Cookie persistence failed: %s", e)

        Trace.event(
            "fetch.completed",
            {"queries": queries, "urls_found": len(found), "targets": len(targets), "pages": len(pages)},
        )
        return {"urls_to_fetch": targets, "fetched_pages": pages, "errors": errors}

    async def _fetch_all(self, urls: list[str], errors: list[str]) -> dict[str, str]:
        sem = asyncio.Semaphore(max(1, self.config.max_concurrency))
        tasks = {asyncio.create_task(self._fetch_one(url, sem)): url for url in urls}

        done, pending = await asyncio.wait(tasks, timeout=self.config.stage_timeout_sec)
        if pending:
            logger.warning("[Fetch] Stage timed out, cancelling %d fetches", len(pending))
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            errors.append(TIMEOUT_ERROR)

        pages: dict[str, str] = {}
        # Keep discovery order for reproducible downstream ordering.
        for task, url in tasks.items():
            if task not in done:
                continue
            exc = task.exception()
            if exc is not None:
                logger.warning("[Fetch] Failed %s: %s", url, exc)
                errors.append(f"Fetch failed for {url}: {exc}")
                continue
            content = task.result()
            if content:
                pages[url] = content
        return pages
