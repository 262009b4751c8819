# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Pipeline Factory

The single place where collaborators are wired into steps.

Usage:
    factory = PipelineFactory(search=search, fetcher=fetcher, runtime=runtime)
    pipeline = factory.build()
    final_state = await pipeline.run(ResearchState.initial(artist, title))
"""

from __future__ import annotations

from dataclasses import dataclass, field

from yearprobe_core.pipeline.core import ResearchPipeline
from yearprobe_core.pipeline.steps import (
    AnswerStep,
    ExtractStep,
    FetchStep,
    QueryGenerationStep,
    ResolveStep,
    ScoreStep,
)
from yearprobe_core.runtime_config import EngineRuntimeConfig
from yearprobe_core.tools.interfaces import Arbiter, CaptchaSolver, PageFetcher, SearchProvider


@dataclass
class PipelineFactory:
    """
    Attributes:
        search: Search provider
        fetcher: Page fetcher
        solver: CAPTCHA solver (None disables solving; challenged pages are dropped)
        arbiter: LLM arbiter (None keeps the plurality result on ambiguity)
        runtime: Runtime tunables
    """

    search: SearchProvider
    fetcher: PageFetcher
    solver: CaptchaSolver | None = None
    arbiter: Arbiter | None = None
    runtime: EngineRuntimeConfig = field(default_factory=EngineRuntimeConfig)

    def build(self) -> ResearchPipeline:
        tunables = self.runtime.research
        solver = self.solver if self.runtime.captcha.enabled else None
        return ResearchPipeline(
            search=QueryGenerationStep(),
            fetch=FetchStep(
                search=self.search,
                fetcher=self.fetcher,
                solver=solver,
                config=self.runtime.fetch,
                queries_per_pass=tunables.queries_per_pass,
            ),
            extract=ExtractStep(),
            score=ScoreStep(),
            resolve=ResolveStep(arbiter=self.arbiter, tunables=tunables),
            answer=AnswerStep(tunables=tunables),
            tunables=tunables,
        )
