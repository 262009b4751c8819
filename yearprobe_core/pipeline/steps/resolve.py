# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Resolve Step

Plurality consensus over scored evidence, escalated to the arbiter when
the result is ambiguous. An arbiter answer replaces the plurality result
only when it names a plausible year with positive confidence; otherwise
the failure is recorded and the plurality result stands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from yearprobe_core.agents.arbiter import build_arbitration_prompt, parse_arbiter_response
from yearprobe_core.pipeline.state import ResearchState
from yearprobe_core.runtime_config import ResearchTunables
from yearprobe_core.schema.evidence import is_plausible_year
from yearprobe_core.tools.interfaces import Arbiter
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.consensus import resolve_consensus

logger = logging.getLogger(__name__)


@dataclass
class ResolveStep:
    """
    State Input:
        - scored_evidence

    State Output:
        - candidate_years, confidence (replaced)
        - arbitrated, reasoning (arbiter reasoning when accepted)
        - errors (arbiter failures)
    """

    arbiter: Arbiter | None = None
    tunables: ResearchTunables = field(default_factory=ResearchTunables)
    name: str = "resolve"

    async def run(self, state: ResearchState) -> dict[str, Any]:
        consensus = resolve_consensus(state.scored_evidence, self.tunables)
        update: dict[str, Any] = {
            "candidate_years": consensus.candidate_years,
            "confidence": consensus.confidence,
            "arbitrated": False,
            "reasoning": "",
        }
        Trace.event(
            "resolve.consensus",
            {
                "candidate_years": consensus.candidate_years,
                "confidence": consensus.confidence,
                "variance": consensus.variance,
                "ambiguous": consensus.ambiguous,
            },
        )

        if not consensus.ambiguous:
            return update
        if self.arbiter is None:
            logger.info("[Resolve] Ambiguous result but no arbiter configured; keeping plurality")
            return update

        prompt = build_arbitration_prompt(state.artist, state.title, state.scored_evidence)
        try:
            raw = await self.arbiter.invoke(prompt)
        except Exception as e:
            logger.warning("[Resolve] Arbiter call failed: %s", e)
            update["errors"] = [f"Arbitration failed: {e}"]
            return update

        verdict = parse_arbiter_response(raw)
        if not is_plausible_year(verdict.year) or verdict.confidence <= 0:
            logger.warning("[Resolve] Arbiter verdict rejected: year=%s conf=%s", verdict.year, verdict.confidence)
            update["errors"] = [f"Arbitration rejected: {verdict.reasoning or 'no usable year'}"]
            return update

        logger.info("[Resolve] Arbiter chose %d (conf %.2f)", verdict.year, verdict.confidence)
        Trace.event("resolve.arbitrated", {"year": verdict.year, "confidence": verdict.confidence})
        update.update(
            candidate_years={verdict.year: verdict.confidence},
            confidence=verdict.confidence,
            arbitrated=True,
            reasoning=verdict.reasoning,
        )
        return update
