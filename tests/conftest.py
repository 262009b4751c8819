# Copyright (C) 2025 YearProbe Contributors
#
# This file is part of YearProbe Engine.
#
# YearProbe Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.


import pytest
from unittest.mock import AsyncMock, MagicMock

from yearprobe_core.agents.llm_client import LLMClient
from yearprobe_core.config import YearProbeConfig
from yearprobe_core.runtime_config import EngineRuntimeConfig, FetchConfig
from yearprobe_core.schema.evidence import EvidenceItem, SearchResult, SourceType
from yearprobe_core.tools.captcha_solver import TwoCaptchaSolver
from yearprobe_core.tools.duckduckgo_search import DuckDuckGoSearch
from yearprobe_core.tools.page_fetcher import HttpPageFetcher


def wiki_page(year_text: str) -> str:
    return (
        "<html><body><main>"
        '<table class="infobox"><tr><th>Released</th>'
        f"<td>{year_text}</td></tr></table>"
        "<p>The song was a worldwide hit.</p>"
        "</main></body></html>"
    )


def generic_page(text: str) -> str:
    return f"<html><body><p>{text}</p></body></html>"


def make_evidence(
    year: int,
    confidence: float,
    source_type: SourceType = SourceType.UNCLASSIFIED,
    source: str | None = None,
    snippet: str = "snippet",
) -> EvidenceItem:
    return EvidenceItem(
        source=source or f"https://example.com/{year}",
        source_type=source_type,
        year=year,
        confidence=confidence,
        snippet=snippet,
    )


@pytest.fixture
def runtime_config():
    """Runtime config with no inter-call delay and a short fetch timeout."""
    return EngineRuntimeConfig(
        fetch=FetchConfig(min_delay_between_calls_sec=0.0, stage_timeout_sec=5.0),
    )


@pytest.fixture
def config(runtime_config):
    return YearProbeConfig(runtime=runtime_config)


@pytest.fixture
def mock_llm_client():
    """Matches the interface of LLMClient, returning AsyncMocks."""
    client = MagicMock(spec=LLMClient)
    client.call = AsyncMock(return_value={
        "content": '{"year": 1965, "confidence": 0.9, "reasoning": "Original single"}',
        "parsed": {"year": 1965, "confidence": 0.9, "reasoning": "Original single"},
        "model": "gpt-4o-mini",
        "usage": {"total_tokens": 100},
    })
    client.close = AsyncMock()
    return client


@pytest.fixture
def mock_search():
    """Matches the interface of DuckDuckGoSearch; returns no results by default."""
    search = MagicMock(spec=DuckDuckGoSearch)
    search.search = AsyncMock(return_value=[])
    search.close = AsyncMock()
    return search


@pytest.fixture
def pages():
    """url -> content served by mock_fetcher. Tests fill it in."""
    return {}


@pytest.fixture
def mock_fetcher(pages):
    """Matches the interface of HttpPageFetcher, serving the `pages` fixture."""
    fetcher = MagicMock(spec=HttpPageFetcher)
    fetcher.fetch = AsyncMock(side_effect=lambda url: pages.get(url, ""))
    fetcher.submit_challenge_token = AsyncMock(return_value="")
    fetcher.persist_cookies = AsyncMock()
    fetcher.close = AsyncMock()
    return fetcher


@pytest.fixture
def mock_solver():
    solver = MagicMock(spec=TwoCaptchaSolver)
    solver.solve = AsyncMock()
    solver.close = AsyncMock()
    return solver


@pytest.fixture
def serve(mock_search, pages):
    """Register pages and make every search return their URLs."""

    def _serve(content_by_url: dict[str, str]) -> None:
        pages.update(content_by_url)
        mock_search.search.return_value = [SearchResult(url=u, title=u) for u in content_by_url]

    return _serve


@pytest.fixture
def mock_httpx_client():
    """Mocks httpx.AsyncClient for testing tools internals."""
    client = MagicMock()
    client.post = AsyncMock()
    client.get = AsyncMock()
    client.aclose = AsyncMock()

    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.raise_for_status = MagicMock()
    mock_response.json.return_value = {}
    mock_response.text = ""

    client.post.return_value = mock_response
    client.get.return_value = mock_response

    return client
