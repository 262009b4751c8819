# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Schema models shared by the pipeline, tools and public API.
"""

from yearprobe_core.schema.evidence import (
    MIN_PLAUSIBLE_YEAR,
    AgentResult,
    EvidenceItem,
    ExtractionResult,
    SearchResult,
    SourceType,
    current_year,
    is_plausible_year,
)
from yearprobe_core.schema.serialization import SchemaModel, dump_schema

__all__ = [
    "MIN_PLAUSIBLE_YEAR",
    "AgentResult",
    "EvidenceItem",
    "ExtractionResult",
    "SchemaModel",
    "SearchResult",
    "SourceType",
    "current_year",
    "dump_schema",
    "is_plausible_year",
]
