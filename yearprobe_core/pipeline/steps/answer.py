# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from yearprobe_core.pipeline.state import ResearchState
from yearprobe_core.runtime_config import ResearchTunables
from yearprobe_core.verification.consensus import leading_year
from yearprobe_core.verification.controller import build_reasoning, finalize_confidence


@dataclass
class AnswerStep:
    """
    Compute the terminal answer fields.

    final_year is the highest-scoring candidate; confidence gets the
    evidence-volume discount and the final cap.
    """

    tunables: ResearchTunables = field(default_factory=ResearchTunables)
    name: str = "answer"

    async def run(self, state: ResearchState) -> dict[str, Any]:
        year = leading_year(state.candidate_years)
        if not year:
            confidence = 0.0
        else:
            confidence = finalize_confidence(state.confidence, len(state.scored_evidence), self.tunables)
        reasoning = build_reasoning(
            year,
            state.scored_evidence,
            arbiter_reasoning=state.reasoning if state.arbitrated else None,
        )
        return {"final_year": year, "confidence": confidence, "reasoning": reasoning}
