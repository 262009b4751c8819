# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Year Extractor

Source-specific patterns that turn one fetched page into a candidate
release year, a local confidence and a supporting snippet.

Each provenance category exposes the release date in a different place:
- encyclopedia: "Released" row of the info panel, else earliest year in
  the lead paragraphs (original release predates reissue mentions)
- discography_db: dedicated year link / year field
- critic_db: labelled release-date field
- lyrics_site: metadata info block
- everything else: majority vote over years in the visible body text

A year outside [1900, current year] is never returned. When nothing
plausible is found the result is year=0, confidence=0 and the caller
must drop it before scoring.
"""

from __future__ import annotations

import logging
import re
from collections import Counter

from bs4 import BeautifulSoup
from bs4.element import Tag

from yearprobe_core.schema.evidence import ExtractionResult, SourceType, is_plausible_year

logger = logging.getLogger(__name__)

YEAR_PATTERN = re.compile(r"\b(19\d{2}|20\d{2})\b")

CONFIDENCE_INFOBOX = 0.9
CONFIDENCE_LEAD_PARAGRAPHS = 0.7
CONFIDENCE_DISCOGRAPHY = 0.8
CONFIDENCE_CRITIC_DB = 0.85
CONFIDENCE_LYRICS = 0.7
CONFIDENCE_GENERIC = 0.4

LEAD_PARAGRAPHS = 5
GENERIC_SCAN_CHARS = 5000

_DISCOGRAPHY_FIELDS = ('.release-date', '[itemprop="datePublished"]', "time[datetime]")
_LYRICS_FIELDS = (".metadata_unit-info", '[class*="MetadataStats"]', '[class*="HeaderMetadata"]')


def _clean(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def plausible_years(text: str) -> list[int]:
    """All 4-digit years in text that fall inside the plausible range, in order."""
    return [int(m) for m in YEAR_PATTERN.findall(text or "") if is_plausible_year(int(m))]


def _first_plausible(text: str) -> int:
    years = plausible_years(text)
    return years[0] if years else 0


def _from_infobox(soup: BeautifulSoup) -> ExtractionResult | None:
    for infobox in soup.select(".infobox"):
        for th in infobox.find_all("th"):
            if "Released" not in th.get_text():
                continue
            td = th.find_next_sibling("td")
            if not isinstance(td, Tag):
                continue
            released = _clean(td.get_text(" "))
            year = _first_plausible(released)
            if year:
                return ExtractionResult(
                    year=year,
                    confidence=CONFIDENCE_INFOBOX,
                    snippet=f"Released: {released[:100]}",
                )
    return None


def _from_lead_paragraphs(soup: BeautifulSoup) -> ExtractionResult | None:
    lead = _clean(" ".join(p.get_text(" ") for p in soup.find_all("p")[:LEAD_PARAGRAPHS]))
    years = plausible_years(lead)
    if not years:
        return None
    return ExtractionResult(
        year=min(years),
        confidence=CONFIDENCE_LEAD_PARAGRAPHS,
        snippet=lead[:150],
    )


def _from_fields(
    soup: BeautifulSoup,
    selectors: tuple[str, ...],
    *,
    confidence: float,
    label: str,
) -> ExtractionResult | None:
    for selector in selectors:
        for node in soup.select(selector):
            text = _clean(node.get_text(" ")) or _clean(str(node.get("datetime") or ""))
            year = _first_plausible(text)
            if year:
                return ExtractionResult(year=year, confidence=confidence, snippet=f"{label}: {text[:100]}")
    return None


def _extract_encyclopedia(soup: BeautifulSoup) -> ExtractionResult | None:
    return _from_infobox(soup) or _from_lead_paragraphs(soup)


def _extract_discography(soup: BeautifulSoup) -> ExtractionResult | None:
    year_link = soup.select_one('a[href*="/year/"]')
    if year_link is not None:
        text = _clean(year_link.get_text())
        year = _first_plausible(text)
        if year:
            return ExtractionResult(year=year, confidence=CONFIDENCE_DISCOGRAPHY, snippet=f"Year field: {text}")
    return _from_fields(soup, _DISCOGRAPHY_FIELDS, confidence=CONFIDENCE_DISCOGRAPHY, label="Release date")


def _extract_generic(soup: BeautifulSoup) -> ExtractionResult | None:
    for node in soup(["script", "style", "noscript", "template"]):
        node.decompose()
    root = soup.body or soup
    body_text = root.get_text(" ")[:GENERIC_SCAN_CHARS]
    counts = Counter(plausible_years(body_text))
    if not counts:
        return None
    # most_common is stable: on ties the year seen first wins.
    year, count = counts.most_common(1)[0]
    return ExtractionResult(
        year=year,
        confidence=CONFIDENCE_GENERIC,
        snippet=f"Generic extraction: {year} mentioned {count} times",
    )


def extract_year(content: str, source_type: SourceType) -> ExtractionResult:
    """
    Extract the most likely release year from page content.

    Args:
        content: Raw page content (HTML or plain text)
        source_type: Provenance category of the page

    Returns:
        ExtractionResult; ExtractionResult.empty() when no plausible year exists
    """
    if not content or not content.strip():
        return ExtractionResult.empty()

    soup = BeautifulSoup(content, "lxml")

    match source_type:
        case SourceType.ENCYCLOPEDIA:
            result = _extract_encyclopedia(soup)
        case SourceType.DISCOGRAPHY_DB:
            result = _extract_discography(soup)
        case SourceType.CRITIC_DB:
            result = _from_fields(
                soup, (".release-date",), confidence=CONFIDENCE_CRITIC_DB, label="Release date"
            )
        case SourceType.LYRICS_SITE:
            result = _from_fields(soup, _LYRICS_FIELDS, confidence=CONFIDENCE_LYRICS, label="Metadata")
        case _:
            result = _extract_generic(soup)

    if result is None or not is_plausible_year(result.year):
        return ExtractionResult.empty()
    return result
