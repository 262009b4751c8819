# YearProbe Engine - main entry point

import asyncio
import logging
import json
import time
from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import uuid4

from yearprobe_core import ARBITER_PROMPT_VERSION, QUERY_STRATEGY_VERSION
from yearprobe_core.agents.arbiter import OpenAIArbiter
from yearprobe_core.agents.llm_client import LLMClient
from yearprobe_core.config import YearProbeConfig
from yearprobe_core.pipeline import PipelineFactory, ResearchPipeline, ResearchState
from yearprobe_core.schema.evidence import AgentResult
from yearprobe_core.tools.captcha_solver import TwoCaptchaSolver
from yearprobe_core.tools.cookie_store import DiskCookieStore
from yearprobe_core.tools.duckduckgo_search import DuckDuckGoSearch
from yearprobe_core.tools.interfaces import Arbiter, CaptchaSolver, PageFetcher, SearchProvider
from yearprobe_core.tools.page_fetcher import HttpPageFetcher
from yearprobe_core.tools.tavily_search import TavilySearch
from yearprobe_core.utils.trace import Trace

logger = logging.getLogger(__name__)

DISABLED_REASONING = "Agent disabled"


class ReleaseYearAgent:
    """
    The main entry point for release-year research.

    One long-lived instance is shared by callers. Each research() call runs
    a fresh pipeline state; consecutive calls are spaced by at least
    min_delay_between_calls_sec.
    """

    def __init__(
        self,
        config: YearProbeConfig,
        *,
        search: SearchProvider,
        fetcher: PageFetcher,
        solver: Optional[CaptchaSolver] = None,
        arbiter: Optional[Arbiter] = None,
        enforce_delay: bool = True,
    ):
        self.config = config
        self.search = search
        self.fetcher = fetcher
        self.solver = solver
        self.arbiter = arbiter
        self.enforce_delay = enforce_delay
        self.pipeline: ResearchPipeline = PipelineFactory(
            search=search,
            fetcher=fetcher,
            solver=solver,
            arbiter=arbiter,
            runtime=config.runtime,
        ).build()

        self._delay_lock = asyncio.Lock()
        self._last_call_started: float | None = None

        if config.runtime.debug.engine_debug:
            logging.getLogger("yearprobe_core").setLevel(logging.DEBUG)

        logger.debug("Effective config: %s", json.dumps(self.config.runtime.to_safe_log_dict(), ensure_ascii=False))

    async def _wait_for_slot(self) -> None:
        if not self.enforce_delay:
            return
        min_delay = self.config.runtime.fetch.min_delay_between_calls_sec
        async with self._delay_lock:
            now = time.monotonic()
            if self._last_call_started is not None:
                wait = self._last_call_started + min_delay - now
                if wait > 0:
                    logger.debug("[Agent] Waiting %.2fs before next research call", wait)
                    await asyncio.sleep(wait)
            self._last_call_started = time.monotonic()

    async def research(self, artist: str, title: str) -> AgentResult:
        """
        Determine the most probable original release year.

        Never raises: "no answer" is year=0, confidence=0, and internal
        errors come back in the same shape with reasoning "Error: <message>".
        """
        if not self.config.runtime.research.enabled:
            return AgentResult.failure(DISABLED_REASONING)

        await self._wait_for_slot()

        trace_id = f"{datetime.now().strftime('%Y-%m-%d_%H-%M-%S')}_{str(uuid4())[:6]}"
        Trace.start(trace_id, runtime=self.config.runtime, trace_dir=Path(self.config.cache_dir).parent / "trace")
        try:
            Trace.event("agent.research.start", {
                "artist": artist,
                "title": title,
                "query_strategy": QUERY_STRATEGY_VERSION,
                "arbiter_prompt": ARBITER_PROMPT_VERSION,
            })
            state = await self.pipeline.run(ResearchState.initial(artist, title))
            for err in state.errors:
                logger.debug("[Agent] Non-fatal: %s", err)

            result = AgentResult(
                year=state.final_year,
                confidence=state.confidence,
                reasoning=state.reasoning,
                sources_count=len(state.scored_evidence),
                evidence=list(state.scored_evidence),
            )
            Trace.event("agent.research.end", {"year": result.year, "confidence": result.confidence})
            logger.info(
                "[Agent] %s - %s: year=%s confidence=%.2f sources=%d",
                artist,
                title,
                result.year,
                result.confidence,
                result.sources_count,
            )
            return result
        except Exception as e:
            logger.exception("[Agent] Research failed for %s - %s", artist, title)
            return AgentResult.failure(f"Error: {e}")
        finally:
            Trace.stop()

    async def close(self) -> None:
        for collaborator in (self.search, self.fetcher, self.solver, self.arbiter):
            close = getattr(collaborator, "close", None)
            if close is None:
                continue
            try:
                await close()
            except Exception as e:
                logger.warning("[Agent] Close failed for %s: %s", type(collaborator).__name__, e)


def build_search(config: YearProbeConfig) -> SearchProvider:
    search_cfg = config.runtime.search
    if config.search_provider == "tavily" and config.tavily_api_key:
        return TavilySearch(
            api_key=config.tavily_api_key,
            timeout_s=search_cfg.timeout_sec,
            max_results=search_cfg.max_results,
            exclude_domains=search_cfg.exclude_domains,
        )
    if config.search_provider == "tavily":
        logger.warning("[Agent] TAVILY_API_KEY missing; falling back to DuckDuckGo")
    return DuckDuckGoSearch(timeout_s=search_cfg.timeout_sec, max_results=search_cfg.max_results)


def build_agent(config: YearProbeConfig, *, enforce_delay: bool = True) -> ReleaseYearAgent:
    """Wire the shipped adapters from configuration."""
    runtime = config.runtime
    cookie_store = DiskCookieStore(Path(config.cache_dir) / "cookies", ttl_sec=runtime.fetch.cookie_ttl_sec)
    fetcher = HttpPageFetcher(cookie_store=cookie_store, timeout_s=runtime.fetch.request_timeout_sec)

    solver = None
    if config.twocaptcha_api_key and runtime.captcha.enabled:
        solver = TwoCaptchaSolver(
            api_key=config.twocaptcha_api_key,
            timeout_s=runtime.captcha.timeout_sec,
            poll_interval_s=runtime.captcha.poll_interval_sec,
        )

    arbiter = None
    if config.openai_api_key:
        llm = LLMClient(
            openai_api_key=config.openai_api_key,
            default_timeout=runtime.llm.timeout_sec,
            max_retries=runtime.llm.max_retries,
        )
        arbiter = OpenAIArbiter(
            llm,
            model=config.openai_model,
            temperature=runtime.llm.temperature,
            max_output_tokens=runtime.llm.max_output_tokens,
        )

    return ReleaseYearAgent(
        config,
        search=build_search(config),
        fetcher=fetcher,
        solver=solver,
        arbiter=arbiter,
        enforce_delay=enforce_delay,
    )
