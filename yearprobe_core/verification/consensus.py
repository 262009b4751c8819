# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Consensus Resolver

Aggregates weighted evidence by candidate year.

- confidence: share of total evidential weight backing the leading year
  (plurality share, not a probability)
- variance: population variance of the distinct candidate years, not
  weighted by score (spread of claims, not spread of trust)
- ambiguous: wide spread, enough evidence and weak plurality; such a result
  goes to the arbiter before it is accepted
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

from yearprobe_core.runtime_config import ResearchTunables
from yearprobe_core.schema.evidence import EvidenceItem


@dataclass(frozen=True)
class ConsensusResult:
    candidate_years: dict[int, float] = field(default_factory=dict)
    confidence: float = 0.0
    variance: float = 0.0
    ambiguous: bool = False

    @property
    def leading_year(self) -> int:
        return leading_year(self.candidate_years)


def leading_year(candidate_years: dict[int, float]) -> int:
    """Highest-scoring year; the first inserted wins ties; 0 when empty."""
    best_year = 0
    best_score = 0.0
    for year, score in candidate_years.items():
        if score > best_score:
            best_year, best_score = year, score
    return best_year


def plurality_share(candidate_years: dict[int, float]) -> float:
    total = sum(candidate_years.values())
    if total <= 0:
        return 0.0
    return max(candidate_years.values()) / total


def population_variance(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    mean = sum(values) / len(values)
    return sum((v - mean) ** 2 for v in values) / len(values)


def group_by_year(scored_evidence: Sequence[EvidenceItem]) -> dict[int, float]:
    scores: dict[int, float] = {}
    for item in scored_evidence:
        scores[item.year] = scores.get(item.year, 0.0) + item.confidence
    return scores


def resolve_consensus(
    scored_evidence: Sequence[EvidenceItem],
    tunables: ResearchTunables | None = None,
) -> ConsensusResult:
    """
    Aggregate scored evidence into candidate years and a plurality confidence.

    Args:
        scored_evidence: Reliability-weighted evidence
        tunables: Thresholds for the ambiguity decision

    Returns:
        ConsensusResult; ambiguous=True means arbitration is required
    """
    tunables = tunables or ResearchTunables()
    candidate_years = group_by_year(scored_evidence)
    confidence = plurality_share(candidate_years)
    variance = population_variance([float(y) for y in candidate_years])

    ambiguous = (
        variance > tunables.variance_threshold
        and len(scored_evidence) >= tunables.ambiguity_min_evidence
        and confidence < tunables.ambiguity_max_confidence
    )
    return ConsensusResult(
        candidate_years=candidate_years,
        confidence=confidence,
        variance=variance,
        ambiguous=ambiguous,
    )
