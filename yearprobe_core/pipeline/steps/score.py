# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from yearprobe_core.pipeline.state import ResearchState
from yearprobe_core.verification.scoring import score_evidence


@dataclass
class ScoreStep:
    """Re-score all accumulated evidence (replaces scored_evidence)."""

    name: str = "score"

    async def run(self, state: ResearchState) -> dict[str, Any]:
        return {"scored_evidence": score_evidence(state.evidence)}
