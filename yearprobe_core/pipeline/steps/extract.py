# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from yearprobe_core.pipeline.state import ResearchState
from yearprobe_core.schema.evidence import EvidenceItem
from yearprobe_core.tools.trusted_sources import classify_source
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.year_extractor import extract_year

logger = logging.getLogger(__name__)


@dataclass
class ExtractStep:
    """
    Turn newly fetched pages into evidence.

    Pages extracted in an earlier pass are skipped so evidence is never
    duplicated across retries. Pages without a plausible year yield nothing.

    State Output:
        - evidence (appended)
        - extracted_urls (union)
        - errors (appended)
    """

    name: str = "extract"

    async def run(self, state: ResearchState) -> dict[str, Any]:
        done = set(state.extracted_urls)
        evidence: list[EvidenceItem] = []
        errors: list[str] = []
        processed: list[str] = []

        for url, content in state.fetched_pages.items():
            if url in done:
                continue
            processed.append(url)
            source_type = classify_source(url)
            try:
                result = extract_year(content, source_type)
            except Exception as e:
                logger.warning("[Extract] Failed for %s: %s", url, e)
                errors.append(f"Extraction failed for {url}: {e}")
                continue
            if not result.found:
                continue
            evidence.append(
                EvidenceItem(
                    source=url,
                    source_type=source_type,
                    year=result.year,
                    confidence=result.confidence,
                    snippet=result.snippet,
                )
            )

        Trace.event(
            "extract.completed",
            {
                "pages": len(processed),
                "evidence": [{"source": e.source, "year": e.year, "type": e.source_type.value} for e in evidence],
            },
        )
        return {"evidence": evidence, "extracted_urls": processed, "errors": errors}
