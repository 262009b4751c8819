# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Retry / answer decisions.

Pure helpers used by the resolve and answer steps:
- query templates per pass
- the retry predicate
- the evidence-volume discount on the final confidence
- the human-readable reasoning string
"""

from __future__ import annotations

from typing import Sequence

from yearprobe_core.runtime_config import ResearchTunables
from yearprobe_core.schema.evidence import EvidenceItem

NO_EVIDENCE_REASONING = "No reliable evidence found"
MAX_REASONING_SNIPPETS = 3
REASONING_SNIPPET_CHARS = 50


def base_queries(artist: str, title: str) -> list[str]:
    return [
        f'"{artist}" "{title}" release date year',
        f'"{title}" by "{artist}" original release',
        f"{artist} {title} wikipedia",
        f"{artist} {title} discography",
    ]


def refined_queries(artist: str, title: str) -> list[str]:
    return [
        f"{artist} {title} single album release year",
        f"{artist} {title} first release original",
    ]


def generate_queries(artist: str, title: str, retry_count: int) -> list[str]:
    """Base templates on every pass; two broader templates once retrying."""
    queries = base_queries(artist, title)
    if retry_count > 0:
        queries.extend(refined_queries(artist, title))
    return queries


def should_retry(
    confidence: float,
    evidence_count: int,
    retry_count: int,
    tunables: ResearchTunables | None = None,
) -> bool:
    tunables = tunables or ResearchTunables()
    return (
        confidence < tunables.min_confidence
        and evidence_count < tunables.retry_max_evidence
        and retry_count < tunables.max_retries
    )


def finalize_confidence(confidence: float, evidence_count: int, tunables: ResearchTunables | None = None) -> float:
    """
    Discount the consensus confidence by evidence volume.

    n < 2 halves it, n < 4 takes 80%, n > 6 boosts by 10%. The result is
    always clamped into [0, max_final_confidence].
    """
    tunables = tunables or ResearchTunables()
    cap = tunables.max_final_confidence
    if evidence_count < 2:
        confidence *= 0.5
    elif evidence_count < 4:
        confidence *= 0.8
    elif evidence_count > 6:
        confidence = min(confidence * 1.1, cap)
    return max(0.0, min(confidence, cap))


def build_reasoning(year: int, scored_evidence: Sequence[EvidenceItem], arbiter_reasoning: str | None = None) -> str:
    if not scored_evidence or not year:
        return NO_EVIDENCE_REASONING

    supporting = [e for e in scored_evidence if e.year == year]
    parts = [
        f"{e.source_type.value} ({e.snippet[:REASONING_SNIPPET_CHARS]}...)"
        for e in supporting[:MAX_REASONING_SNIPPETS]
    ]
    reasoning = f"Year {year} supported by {len(supporting)} sources: {', '.join(parts)}"
    if arbiter_reasoning:
        reasoning += f" Arbiter: {arbiter_reasoning}"
    return reasoning
