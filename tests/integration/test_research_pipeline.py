# Copyright (C) 2025 YearProbe Contributors
#
# This file is part of YearProbe Engine.
#
# YearProbe Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
End-to-end research scenarios with mocked collaborators.

Search, fetch, solver and arbiter are mocks; extraction, gating, scoring,
consensus and the retry state machine run for real.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import generic_page, wiki_page
from yearprobe_core.agents.arbiter import OpenAIArbiter
from yearprobe_core.engine import ReleaseYearAgent
from yearprobe_core.pipeline import PipelineFactory, ResearchState, Stage
from yearprobe_core.schema.evidence import SearchResult
from yearprobe_core.verification.controller import NO_EVIDENCE_REASONING

WIKI_URLS = [
    "https://en.wikipedia.org/wiki/Take_On_Me",
    "https://de.wikipedia.org/wiki/Take_On_Me",
    "https://fr.wikipedia.org/wiki/Take_On_Me",
    "https://es.wikipedia.org/wiki/Take_On_Me",
]


@pytest.fixture
def mock_arbiter():
    arbiter = MagicMock(spec=OpenAIArbiter)
    arbiter.invoke = AsyncMock(return_value='{"year": 1965, "confidence": 0.9, "reasoning": "Original single"}')
    arbiter.close = AsyncMock()
    return arbiter


def build_pipeline(mock_search, mock_fetcher, runtime_config, **kwargs):
    return PipelineFactory(search=mock_search, fetcher=mock_fetcher, runtime=runtime_config, **kwargs).build()


@pytest.mark.integration
class TestResearchScenarios:
    @pytest.mark.asyncio
    async def test_unanimous_encyclopedia_evidence(self, config, mock_search, mock_fetcher, mock_arbiter, serve):
        serve({url: wiki_page("16 October 1985") for url in WIKI_URLS})
        agent = ReleaseYearAgent(config, search=mock_search, fetcher=mock_fetcher, arbiter=mock_arbiter)

        result = await agent.research("a-ha", "Take On Me")

        assert result.year == 1985
        assert result.confidence >= 0.8
        assert result.confidence <= 0.95
        assert result.sources_count == 4
        assert all(e.confidence == pytest.approx(0.81) for e in result.evidence)
        assert result.reasoning.startswith("Year 1985 supported by 4 sources: encyclopedia (Released: 16 October 1985")
        mock_arbiter.invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_split_evidence_is_arbitrated(self, config, mock_search, mock_fetcher, mock_arbiter, serve):
        serve({
            "https://blog-a.example/yesterday": generic_page("Recorded and released in 1965."),
            "https://blog-b.example/yesterday": generic_page("The 1998 remaster is the best one."),
            "https://blog-c.example/yesterday": generic_page("A 1972 compilation included it."),
        })
        agent = ReleaseYearAgent(config, search=mock_search, fetcher=mock_fetcher, arbiter=mock_arbiter)

        result = await agent.research("The Beatles", "Yesterday")

        mock_arbiter.invoke.assert_awaited_once()
        prompt = mock_arbiter.invoke.call_args.args[0]
        assert "1965" in prompt and "1998" in prompt and "1972" in prompt
        assert result.year == 1965
        assert 0 < result.confidence <= 0.95
        assert result.reasoning.endswith("Arbiter: Original single")

    @pytest.mark.asyncio
    async def test_malformed_arbiter_output_keeps_plurality(
        self, runtime_config, mock_search, mock_fetcher, mock_arbiter, serve
    ):
        serve({
            "https://blog-a.example/s": generic_page("1965 1965"),
            "https://genius.com/s": '<div class="metadata_unit-info">Released 1998</div>',
            "https://blog-c.example/s": generic_page("1972"),
        })
        mock_arbiter.invoke.return_value = "I think it is probably the sixties"
        pipeline = build_pipeline(mock_search, mock_fetcher, runtime_config, arbiter=mock_arbiter)

        state = await pipeline.run(ResearchState.initial("The Beatles", "Yesterday"))

        mock_arbiter.invoke.assert_awaited_once()
        assert state.arbitrated is False
        assert state.final_year == 1998
        assert any("Arbitration rejected" in e for e in state.errors)

    @pytest.mark.asyncio
    async def test_arbiter_exception_keeps_plurality(
        self, runtime_config, mock_search, mock_fetcher, mock_arbiter, serve
    ):
        serve({
            "https://blog-a.example/s": generic_page("1965"),
            "https://blog-b.example/s": generic_page("1998"),
            "https://blog-c.example/s": generic_page("1972"),
        })
        mock_arbiter.invoke.side_effect = RuntimeError("rate limited")
        pipeline = build_pipeline(mock_search, mock_fetcher, runtime_config, arbiter=mock_arbiter)

        state = await pipeline.run(ResearchState.initial("The Beatles", "Yesterday"))

        assert state.final_year == 1965
        assert any("rate limited" in e for e in state.errors)

    @pytest.mark.asyncio
    async def test_zero_evidence(self, config, mock_search, mock_fetcher):
        agent = ReleaseYearAgent(config, search=mock_search, fetcher=mock_fetcher)

        result = await agent.research("Nobody", "Nothing")

        assert result.year == 0
        assert result.confidence == 0.0
        assert result.reasoning == NO_EVIDENCE_REASONING
        assert result.sources_count == 0

    @pytest.mark.asyncio
    async def test_retry_bound_under_permanently_low_confidence(self, runtime_config, mock_search, mock_fetcher):
        pipeline = build_pipeline(mock_search, mock_fetcher, runtime_config)

        state = await pipeline.run(ResearchState.initial("Nobody", "Nothing"))

        assert state.retry_count == 2
        assert state.stage == Stage.DONE
        # Two searches per pass, three passes.
        assert mock_search.search.await_count == 6
        assert state.errors.count("No URLs found from search") == 3
        assert len(state.search_queries) == 4 + 6 + 6

    @pytest.mark.asyncio
    async def test_challenge_page_is_dropped(self, config, mock_search, mock_fetcher, mock_solver, serve):
        challenged = "https://challenged.example/take-on-me"
        serve({
            WIKI_URLS[0]: wiki_page("1985"),
            challenged: '<html><body><div class="g-recaptcha"></div></body></html>',
            WIKI_URLS[1]: wiki_page("1985"),
        })
        agent = ReleaseYearAgent(config, search=mock_search, fetcher=mock_fetcher, solver=mock_solver)

        result = await agent.research("a-ha", "Take On Me")

        assert result.year == 1985
        assert result.sources_count == 2
        assert challenged not in {e.source for e in result.evidence}
        mock_solver.solve.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retry_accumulates_evidence_and_pages(self, runtime_config, mock_search, mock_fetcher, pages):
        first = ["https://blog-a.example/s", "https://blog-b.example/s"]
        late = "https://blog-c.example/s"
        pages.update({first[0]: generic_page("1980"), first[1]: generic_page("1990"), late: generic_page("1980")})

        async def search(query):
            if "single album release year" in query or "first release original" in query:
                return [SearchResult(url=late)]
            return [SearchResult(url=u) for u in first]

        mock_search.search.side_effect = search
        pipeline = build_pipeline(mock_search, mock_fetcher, runtime_config)

        state = await pipeline.run(ResearchState.initial("Band", "Song"))

        assert state.retry_count == 1
        assert list(state.fetched_pages) == first + [late]
        assert [e.source for e in state.evidence] == first + [late]
        assert state.final_year == 1980
        assert 0 < state.confidence <= 0.95
        assert mock_fetcher.fetch.await_count == 3

    @pytest.mark.asyncio
    async def test_urls_beyond_page_cap_are_fetched_on_retry(self, runtime_config, mock_search, mock_fetcher, pages):
        filler = [f"https://fan-site-{i}.example/song" for i in range(10)]
        rich = ["https://en.wikipedia.org/wiki/Song", "https://de.wikipedia.org/wiki/Song"]
        pages.update({u: generic_page("A fan page without dates.") for u in filler})
        pages.update({u: wiki_page("1985") for u in rich})

        async def search(query):
            if "single album release year" in query or "first release original" in query:
                return [SearchResult(url=u) for u in rich]
            return [SearchResult(url=u) for u in filler + rich]

        mock_search.search.side_effect = search
        pipeline = build_pipeline(mock_search, mock_fetcher, runtime_config)

        state = await pipeline.run(ResearchState.initial("Band", "Song"))

        assert state.retry_count == 1
        assert list(state.fetched_pages) == filler + rich
        assert state.final_year == 1985
