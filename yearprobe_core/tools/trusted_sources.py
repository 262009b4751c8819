# Copyright (C) 2025 YearProbe Contributors
#
# This file is part of YearProbe Engine.
#
# YearProbe Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

"""
Music Source Registry
=====================
Registry of the domains we know how to read, grouped by provenance
category, plus the reliability weight of each category.

Categories:
- encyclopedia: articles with a structured info panel
- discography_db: release databases with dedicated year fields/links
- critic_db: critic databases with a labelled release date
- review_aggregator: rating aggregators
- review_site: music press, charts
- lyrics_site: lyrics and annotation sites
- streaming_metadata: streaming service pages

Anything not listed is `unclassified`.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from yearprobe_core.schema.evidence import SourceType
from yearprobe_core.tools.url_utils import domain_of, host_matches

SOURCE_DOMAINS: dict[SourceType, list[str]] = {
    SourceType.ENCYCLOPEDIA: [
        "wikipedia.org",
    ],
    SourceType.DISCOGRAPHY_DB: [
        "musicbrainz.org", "discogs.com",
    ],
    SourceType.CRITIC_DB: [
        "allmusic.com",
    ],
    SourceType.REVIEW_AGGREGATOR: [
        "rateyourmusic.com", "albumoftheyear.org", "metacritic.com",
    ],
    SourceType.REVIEW_SITE: [
        "billboard.com", "pitchfork.com", "rollingstone.com",
    ],
    SourceType.LYRICS_SITE: [
        "genius.com", "azlyrics.com",
    ],
    SourceType.STREAMING_METADATA: [
        "spotify.com", "music.apple.com", "deezer.com",
    ],
}

# Tunable constant set, not derived from data.
SOURCE_WEIGHTS: Mapping[SourceType, float] = MappingProxyType({
    SourceType.ENCYCLOPEDIA: 0.9,
    SourceType.DISCOGRAPHY_DB: 0.85,
    SourceType.CRITIC_DB: 0.85,
    SourceType.REVIEW_AGGREGATOR: 0.8,
    SourceType.REVIEW_SITE: 0.75,
    SourceType.STREAMING_METADATA: 0.6,
    SourceType.LYRICS_SITE: 0.5,
    SourceType.UNCLASSIFIED: 0.4,
})


def reliability_weight(source_type: SourceType) -> float:
    return SOURCE_WEIGHTS.get(source_type, SOURCE_WEIGHTS[SourceType.UNCLASSIFIED])


def classify_source(url: str) -> SourceType:
    """Map a URL to its provenance category by host (sub-domains match)."""
    host = domain_of(url)
    if not host:
        return SourceType.UNCLASSIFIED
    for source_type, domains in SOURCE_DOMAINS.items():
        if any(host_matches(host, d) for d in domains):
            return source_type
    return SourceType.UNCLASSIFIED
