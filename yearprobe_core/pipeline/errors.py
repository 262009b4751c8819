# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Pipeline Errors

Contract violations propagate out of the pipeline unchanged; anything else
a step raises is wrapped in PipelineExecutionError with the step name.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PipelineViolation(Exception):
    """
    Raised when a programming contract of the pipeline is broken.

    Examples: empty artist/title, a stage writing an unknown state field
    or an immutable one, the retry counter exceeding its bound.

    Attributes:
        step_name: Name of the step (or stage) that detected the violation
        invariant: Description of the violated invariant
        expected: What was expected
        actual: What was actually found
        details: Additional context for debugging
    """

    step_name: str
    invariant: str
    expected: Any
    actual: Any
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        msg = (
            f"Pipeline violation in '{self.step_name}': {self.invariant}. "
            f"Expected: {self.expected}, Actual: {self.actual}"
        )
        super().__init__(msg)

    def to_trace_dict(self) -> dict[str, Any]:
        return {
            "error": "pipeline_violation",
            "step_name": self.step_name,
            "invariant": self.invariant,
            "expected": str(self.expected),
            "actual": str(self.actual),
            "details": self.details,
        }


class PipelineExecutionError(Exception):
    """Raised when a step fails for reasons other than a contract violation."""

    def __init__(self, step_name: str, message: str, cause: Exception | None = None):
        self.step_name = step_name
        self.cause = cause
        full_msg = f"Pipeline execution failed at '{step_name}': {message}"
        if cause:
            full_msg += f" (caused by: {cause})"
        super().__init__(full_msg)
