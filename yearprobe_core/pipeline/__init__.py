# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Pipeline Module

Step-based research state machine.

This module provides:
- ResearchState: Working memory threaded through steps, merged by field rule
- Step: Protocol for composable pipeline steps
- ResearchPipeline: Executor for the Searching..Done state machine
- PipelineFactory: Wires collaborators into steps

Example:
    from yearprobe_core.pipeline import PipelineFactory, ResearchState

    pipeline = PipelineFactory(search=search, fetcher=fetcher).build()
    final_state = await pipeline.run(ResearchState.initial("a-ha", "Take On Me"))
"""

from yearprobe_core.pipeline.core import ResearchPipeline, Step
from yearprobe_core.pipeline.errors import PipelineExecutionError, PipelineViolation
from yearprobe_core.pipeline.factory import PipelineFactory
from yearprobe_core.pipeline.state import MERGE_RULES, MergeRule, ResearchState, Stage, merge_state


__all__ = [
    # State
    "MERGE_RULES",
    "MergeRule",
    "ResearchState",
    "Stage",
    "merge_state",
    # Core
    "ResearchPipeline",
    "Step",
    # Factory
    "PipelineFactory",
    # Errors
    "PipelineExecutionError",
    "PipelineViolation",
]
