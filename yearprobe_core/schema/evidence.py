# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Evidence schema for release-year research.

An EvidenceItem is one claim about a release year plus its provenance.
Items are immutable: scoring produces new items, it never edits old ones.

Key Design Principles:
1. year == 0 means "no year found" and is never a claim
2. confidence is local to extraction until the scorer weights it
3. Every item keeps its source URL so the answer stays traceable
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import Field, field_validator

from yearprobe_core.schema.serialization import SchemaModel

MIN_PLAUSIBLE_YEAR = 1900


def current_year() -> int:
    return datetime.now(timezone.utc).year


def is_plausible_year(year: int) -> bool:
    return MIN_PLAUSIBLE_YEAR <= int(year) <= current_year()


class SourceType(str, Enum):
    """
    Provenance category of a fetched page.

    Each category exposes release information in a structurally
    different place, and carries a different reliability weight.
    """

    ENCYCLOPEDIA = "encyclopedia"
    """Wikipedia-style article with an info panel."""

    DISCOGRAPHY_DB = "discography_db"
    """Discography databases (MusicBrainz, Discogs)."""

    CRITIC_DB = "critic_db"
    """Critic databases with a labelled release-date field (AllMusic)."""

    REVIEW_AGGREGATOR = "review_aggregator"
    """User/critic rating aggregators."""

    REVIEW_SITE = "review_site"
    """Music press and chart sites."""

    LYRICS_SITE = "lyrics_site"
    """Lyrics/annotation sites. Low trust regardless of local confidence."""

    STREAMING_METADATA = "streaming_metadata"
    """Streaming service pages. Dates often reflect re-uploads."""

    UNCLASSIFIED = "unclassified"
    """Anything else."""


class ExtractionResult(SchemaModel):
    """Output of the year extractor for a single page."""

    year: int = 0
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    snippet: str = ""

    @property
    def found(self) -> bool:
        return self.year > 0

    @classmethod
    def empty(cls) -> "ExtractionResult":
        return cls(year=0, confidence=0.0, snippet="")


class EvidenceItem(SchemaModel):
    """
    A single release-year claim extracted from one page.

    Example:
        EvidenceItem(
            source="https://en.wikipedia.org/wiki/Take_On_Me",
            source_type=SourceType.ENCYCLOPEDIA,
            year=1985,
            confidence=0.9,
            snippet="Released: 1985",
        )
    """

    source: str
    """URL the claim came from."""

    source_type: SourceType = SourceType.UNCLASSIFIED

    year: int
    """Claimed release year, always within [1900, current year]."""

    confidence: float = Field(ge=0.0, le=1.0)
    """Local extraction confidence; weighted confidence after scoring."""

    snippet: str = ""
    """Short human-readable excerpt supporting the claim."""

    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("year")
    @classmethod
    def _year_in_range(cls, v: int) -> int:
        if not is_plausible_year(v):
            raise ValueError(f"year {v} outside [{MIN_PLAUSIBLE_YEAR}, {current_year()}]")
        return v

    def with_confidence(self, confidence: float) -> "EvidenceItem":
        return self.model_copy(update={"confidence": max(0.0, min(1.0, float(confidence)))})


class SearchResult(SchemaModel):
    """A single hit returned by a search provider."""

    url: str
    title: str = ""
    snippet: str = ""


class AgentResult(SchemaModel):
    """Public result of one research() call."""

    year: int = 0
    """Most probable original release year; 0 if undetermined."""

    confidence: float = Field(0.0, ge=0.0, le=1.0)
    reasoning: str = ""
    sources_count: int = 0
    evidence: list[EvidenceItem] | None = None

    @classmethod
    def failure(cls, reasoning: str) -> "AgentResult":
        return cls(year=0, confidence=0.0, reasoning=reasoning, sources_count=0)
