# Copyright (C) 2025 YearProbe Contributors
#
# This file is part of YearProbe Engine.
#
# YearProbe Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Pipeline Core

Defines the Step protocol and the research state machine.

    Searching -> Fetching -> Extracting -> Scoring -> Resolving
        Resolving -> Retrying -> Searching   (low confidence, little evidence)
        Resolving -> Answering -> Done       (otherwise)

Design Principles:
- Steps are composable units of work with a single run() method
- Steps return a partial update; merge_state() applies it by field rule
- Steps are stateless; state lives in ResearchState
- The only back-edge is Retrying, bounded by max_retries

Usage:
    pipeline = ResearchPipeline(search=..., fetch=..., ...)
    final_state = await pipeline.run(ResearchState.initial(artist, title))
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from yearprobe_core.pipeline.errors import PipelineExecutionError, PipelineViolation
from yearprobe_core.pipeline.state import ResearchState, Stage, merge_state
from yearprobe_core.runtime_config import ResearchTunables
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.controller import should_retry


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Step Protocol
# ─────────────────────────────────────────────────────────────────────────────


@runtime_checkable
class Step(Protocol):
    """
    Protocol for pipeline steps.

    Each step:
    - Has a unique name for logging/tracing
    - Receives the current state, returns a partial update dict
    - Never mutates the state it receives
    """

    name: str

    async def run(self, state: ResearchState) -> dict[str, Any]:
        """Execute this step and return a partial state update."""
        ...


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline Executor
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class ResearchPipeline:
    """
    Runs the research state machine for one artist/title pair.

    Attributes:
        search: Query generation step
        fetch: Search + page retrieval step
        extract: Evidence extraction step
        score: Reliability weighting step
        resolve: Consensus (+ arbitration) step
        answer: Terminal answer step
        tunables: Retry thresholds and bounds
    """

    search: Step
    fetch: Step
    extract: Step
    score: Step
    resolve: Step
    answer: Step
    tunables: ResearchTunables = field(default_factory=ResearchTunables)

    @property
    def max_resolve_passes(self) -> int:
        return self.tunables.max_retries + 1

    async def _run_step(self, step: Step, state: ResearchState, stage: Stage) -> ResearchState:
        Trace.event("pipeline.step_start", {"step": step.name, "stage": stage.value, "retry": state.retry_count})
        try:
            update = await step.run(state)
        except Exception as e:
            Trace.event(
                "pipeline.step_error",
                {"step": step.name, "error": str(e), "error_type": type(e).__name__},
            )
            if isinstance(e, (PipelineViolation, PipelineExecutionError)):
                raise
            raise PipelineExecutionError(step.name, str(e), cause=e) from e

        new_state = merge_state(state, {**(update or {}), "stage": stage}, step_name=step.name)
        Trace.event("pipeline.step_end", {"step": step.name, "stage": stage.value})
        return new_state

    def _check_inputs(self, state: ResearchState) -> None:
        if not (state.artist or "").strip() or not (state.title or "").strip():
            raise PipelineViolation(
                step_name="pipeline",
                invariant="artist and title are non-empty",
                expected="non-empty strings",
                actual={"artist": state.artist, "title": state.title},
            )

    async def run(self, state: ResearchState) -> ResearchState:
        """
        Drive the state machine to Done.

        Raises:
            PipelineViolation: Contract violation (bad inputs, bad update,
                retry bound breached)
            PipelineExecutionError: A step failed unexpectedly
        """
        self._check_inputs(state)
        Trace.event("pipeline.start", {"artist": state.artist, "title": state.title})

        stage = Stage.SEARCHING
        resolve_passes = 0

        while stage != Stage.DONE:
            match stage:
                case Stage.SEARCHING:
                    state = await self._run_step(self.search, state, stage)
                    stage = Stage.FETCHING
                case Stage.FETCHING:
                    state = await self._run_step(self.fetch, state, stage)
                    stage = Stage.EXTRACTING
                case Stage.EXTRACTING:
                    state = await self._run_step(self.extract, state, stage)
                    stage = Stage.SCORING
                case Stage.SCORING:
                    state = await self._run_step(self.score, state, stage)
                    stage = Stage.RESOLVING
                case Stage.RESOLVING:
                    resolve_passes += 1
                    if resolve_passes > self.max_resolve_passes:
                        raise PipelineViolation(
                            step_name="pipeline",
                            invariant="Answering is reached within max_retries + 1 resolve passes",
                            expected=self.max_resolve_passes,
                            actual=resolve_passes,
                        )
                    state = await self._run_step(self.resolve, state, stage)
                    if should_retry(state.confidence, len(state.scored_evidence), state.retry_count, self.tunables):
                        stage = Stage.RETRYING
                    else:
                        stage = Stage.ANSWERING
                case Stage.RETRYING:
                    state = merge_state(state, {"retry_count": state.retry_count + 1, "stage": stage})
                    if state.retry_count > self.tunables.max_retries:
                        raise PipelineViolation(
                            step_name="pipeline",
                            invariant="retry_count <= max_retries",
                            expected=self.tunables.max_retries,
                            actual=state.retry_count,
                        )
                    logger.info(
                        "[Pipeline] Retry %d/%d (confidence %.2f, %d evidence)",
                        state.retry_count,
                        self.tunables.max_retries,
                        state.confidence,
                        len(state.scored_evidence),
                    )
                    Trace.event("pipeline.retry", {"retry_count": state.retry_count, "confidence": state.confidence})
                    stage = Stage.SEARCHING
                case Stage.ANSWERING:
                    state = await self._run_step(self.answer, state, stage)
                    stage = Stage.DONE

        state = merge_state(state, {"stage": Stage.DONE})
        Trace.event(
            "pipeline.end",
            {
                "final_year": state.final_year,
                "confidence": state.confidence,
                "retry_count": state.retry_count,
                "evidence": len(state.evidence),
                "errors": len(state.errors),
            },
        )
        return state

    def __repr__(self) -> str:
        steps = [s.name for s in (self.search, self.fetch, self.extract, self.score, self.resolve, self.answer)]
        return f"ResearchPipeline(steps={steps})"
