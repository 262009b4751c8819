# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Release-year arbitration.

When consensus is ambiguous (wide spread of candidate years, weak
plurality) the evidence is serialized into a single prompt and handed to
an LLM. The verdict is advisory: any failure to produce a usable answer
falls back to the plurality result.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Sequence

from yearprobe_core.agents.llm_client import LLMClient
from yearprobe_core.schema.evidence import EvidenceItem

logger = logging.getLogger(__name__)

PARSE_FAILURE_REASONING = "Failed to parse LLM response"
DEFAULT_VERDICT_CONFIDENCE = 0.5

ARBITER_INSTRUCTIONS = (
    "You are an expert music historian. You determine the original release year "
    "of songs from conflicting web evidence.\n"
    "For classical compositions, answer with the composition year. "
    "For TV or show theme songs, answer with the year the show first aired.\n"
    "Respond with a JSON object only: "
    '{"year": <int>, "confidence": <float 0-1>, "reasoning": "<short explanation>"}'
)

TIE_BREAK_RULES = (
    "1. Classical compositions: use the composition year, not a recording year.",
    "2. TV/show theme songs: use the year the show first aired, not the soundtrack release.",
    "3. Prefer the original release over reissues, remasters and compilations.",
    "4. If released as a single before the album, use the earlier date.",
    "5. Prefer the earliest worldwide release over regional releases.",
)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class ArbiterVerdict:
    year: int = 0
    confidence: float = 0.0
    reasoning: str = ""

    @classmethod
    def failed(cls) -> "ArbiterVerdict":
        return cls(year=0, confidence=0.0, reasoning=PARSE_FAILURE_REASONING)


def build_arbitration_prompt(artist: str, title: str, evidence: Sequence[EvidenceItem]) -> str:
    lines = [f'Determine the original release year of "{title}" by {artist}.', "", "Evidence found:"]
    for item in evidence:
        lines.append(f'- {item.source_type.value} ({item.source}): {item.year} - "{item.snippet[:100]}"')
    lines.append("")
    lines.append("Rules:")
    lines.extend(TIE_BREAK_RULES)
    lines.append("")
    lines.append('Return JSON: {"year": <int>, "confidence": <float 0-1>, "reasoning": "<string>"}')
    return "\n".join(lines)


def parse_arbiter_response(text: str) -> ArbiterVerdict:
    """
    Parse the arbiter's JSON answer.

    Code fences are stripped. Any malformed answer yields ArbiterVerdict.failed();
    this function never raises.
    """
    cleaned = _FENCE_RE.sub("", (text or "").strip()).strip()
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, TypeError):
        # Models sometimes wrap the object in prose.
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start < 0 or end <= start:
            logger.warning("[Arbiter] Unparseable response: %s", cleaned[:200])
            return ArbiterVerdict.failed()
        try:
            data = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError:
            logger.warning("[Arbiter] Unparseable response: %s", cleaned[:200])
            return ArbiterVerdict.failed()

    if not isinstance(data, dict):
        return ArbiterVerdict.failed()

    try:
        year = int(data.get("year") or 0)
        raw_conf = data.get("confidence")
        confidence = float(raw_conf) if raw_conf else DEFAULT_VERDICT_CONFIDENCE
    except (TypeError, ValueError):
        return ArbiterVerdict.failed()

    return ArbiterVerdict(
        year=year,
        confidence=max(0.0, min(1.0, confidence)),
        reasoning=str(data.get("reasoning") or ""),
    )


class OpenAIArbiter:
    """Arbiter collaborator backed by the OpenAI Responses API."""

    def __init__(
        self,
        llm_client: LLMClient,
        *,
        model: str = "gpt-4o-mini",
        temperature: float | None = 0.2,
        max_output_tokens: int | None = 400,
        timeout: float | None = None,
    ):
        self.llm_client = llm_client
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.timeout = timeout

    async def invoke(self, prompt: str) -> str:
        result = await self.llm_client.call(
            model=self.model,
            input=prompt,
            instructions=ARBITER_INSTRUCTIONS,
            json_output=True,
            temperature=self.temperature,
            max_output_tokens=self.max_output_tokens,
            timeout=self.timeout,
            trace_kind="arbiter",
        )
        return result.get("content") or ""

    async def close(self) -> None:
        await self.llm_client.close()
