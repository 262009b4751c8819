# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Research State

Working memory of a single research() call. Steps never mutate it; they
return a partial update (a plain dict) and merge_state() applies it field
by field:

    APPEND     search_queries, evidence, errors
    UNION      urls_to_fetch, extracted_urls (ordered, first occurrence kept)
    MAP_UNION  fetched_pages (earlier pages are never lost)
    REPLACE    scored_evidence, candidate_years, final_year, confidence,
               reasoning, retry_count, arbitrated, stage
    IMMUTABLE  artist, title
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from yearprobe_core.pipeline.errors import PipelineViolation
from yearprobe_core.schema.evidence import EvidenceItem


class Stage(str, Enum):
    SEARCHING = "searching"
    FETCHING = "fetching"
    EXTRACTING = "extracting"
    SCORING = "scoring"
    RESOLVING = "resolving"
    RETRYING = "retrying"
    ANSWERING = "answering"
    DONE = "done"


class MergeRule(str, Enum):
    APPEND = "append"
    UNION = "union"
    MAP_UNION = "map_union"
    REPLACE = "replace"
    IMMUTABLE = "immutable"


@dataclass(frozen=True)
class ResearchState:
    artist: str
    title: str
    search_queries: list[str] = field(default_factory=list)
    urls_to_fetch: list[str] = field(default_factory=list)
    fetched_pages: dict[str, str] = field(default_factory=dict)
    extracted_urls: list[str] = field(default_factory=list)
    evidence: list[EvidenceItem] = field(default_factory=list)
    scored_evidence: list[EvidenceItem] = field(default_factory=list)
    candidate_years: dict[int, float] = field(default_factory=dict)
    final_year: int = 0
    confidence: float = 0.0
    reasoning: str = ""
    retry_count: int = 0
    arbitrated: bool = False
    errors: list[str] = field(default_factory=list)
    stage: Stage = Stage.SEARCHING

    @classmethod
    def initial(cls, artist: str, title: str) -> "ResearchState":
        return cls(artist=artist, title=title)


MERGE_RULES: dict[str, MergeRule] = {
    "artist": MergeRule.IMMUTABLE,
    "title": MergeRule.IMMUTABLE,
    "search_queries": MergeRule.APPEND,
    "urls_to_fetch": MergeRule.UNION,
    "fetched_pages": MergeRule.MAP_UNION,
    "extracted_urls": MergeRule.UNION,
    "evidence": MergeRule.APPEND,
    "scored_evidence": MergeRule.REPLACE,
    "candidate_years": MergeRule.REPLACE,
    "final_year": MergeRule.REPLACE,
    "confidence": MergeRule.REPLACE,
    "reasoning": MergeRule.REPLACE,
    "retry_count": MergeRule.REPLACE,
    "arbitrated": MergeRule.REPLACE,
    "errors": MergeRule.APPEND,
    "stage": MergeRule.REPLACE,
}


def _ordered_union(current: list[Any], incoming: list[Any]) -> list[Any]:
    seen = set(current)
    out = list(current)
    for item in incoming:
        if item not in seen:
            seen.add(item)
            out.append(item)
    return out


def merge_state(state: ResearchState, update: dict[str, Any], *, step_name: str = "merge") -> ResearchState:
    """
    Apply a partial update and return the new state.

    Raises:
        PipelineViolation: unknown field, or a write to an immutable field
    """
    if not update:
        return state

    changes: dict[str, Any] = {}
    for key, value in update.items():
        rule = MERGE_RULES.get(key)
        if rule is None:
            raise PipelineViolation(
                step_name=step_name,
                invariant="update names a known state field",
                expected=sorted(MERGE_RULES),
                actual=key,
            )
        current = getattr(state, key)
        match rule:
            case MergeRule.IMMUTABLE:
                if value != current:
                    raise PipelineViolation(
                        step_name=step_name,
                        invariant=f"'{key}' is immutable for the run",
                        expected=current,
                        actual=value,
                    )
            case MergeRule.APPEND:
                changes[key] = [*current, *value]
            case MergeRule.UNION:
                changes[key] = _ordered_union(current, list(value))
            case MergeRule.MAP_UNION:
                changes[key] = {**current, **value}
            case MergeRule.REPLACE:
                changes[key] = value

    return replace(state, **changes)
