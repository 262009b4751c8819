# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Evidence scoring: apply the source reliability table to raw evidence.
"""

from __future__ import annotations

from typing import Iterable

from yearprobe_core.schema.evidence import EvidenceItem
from yearprobe_core.tools.trusted_sources import reliability_weight


def weighted_confidence(item: EvidenceItem) -> float:
    return item.confidence * reliability_weight(item.source_type)


def score_evidence(evidence: Iterable[EvidenceItem]) -> list[EvidenceItem]:
    """
    Weight each item's local confidence by its source reliability.

    Returns new items sorted by weighted confidence, highest first. The sort is
    stable, so equal scores keep extraction order (used only for reasoning text).
    """
    scored = [item.with_confidence(weighted_confidence(item)) for item in evidence]
    scored.sort(key=lambda e: e.confidence, reverse=True)
    return scored
