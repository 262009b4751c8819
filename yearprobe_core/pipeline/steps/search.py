# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from yearprobe_core.pipeline.state import ResearchState
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.controller import generate_queries

logger = logging.getLogger(__name__)


@dataclass
class QueryGenerationStep:
    """
    Append this pass's search queries.

    State Output:
        - search_queries (appended)
    """

    name: str = "search"

    async def run(self, state: ResearchState) -> dict[str, Any]:
        queries = generate_queries(state.artist, state.title, state.retry_count)
        logger.debug("[Search] Pass %d queries: %s", state.retry_count + 1, queries)
        Trace.event("search.queries", {"retry_count": state.retry_count, "queries": queries})
        return {"search_queries": queries}
