# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Pipeline Steps Module

Exports all available step implementations.
"""

from yearprobe_core.pipeline.steps.answer import AnswerStep
from yearprobe_core.pipeline.steps.extract import ExtractStep
from yearprobe_core.pipeline.steps.fetch import FetchStep
from yearprobe_core.pipeline.steps.resolve import ResolveStep
from yearprobe_core.pipeline.steps.score import ScoreStep
from yearprobe_core.pipeline.steps.search import QueryGenerationStep


__all__ = [
    "AnswerStep",
    "ExtractStep",
    "FetchStep",
    "QueryGenerationStep",
    "ResolveStep",
    "ScoreStep",
]
