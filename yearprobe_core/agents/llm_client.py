# Copyright (C) 2025 YearProbe Contributors
#
# This file is part of YearProbe Engine.
#
# YearProbe Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# YearProbe Engine is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with YearProbe Engine. If not, see <https://www.gnu.org/licenses/>.

"""
LLM client using the OpenAI Responses API.

- Clear separation of instructions vs input
- Optional JSON output mode
- Bounded retries with linear backoff
- Trace event logging
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import time

from openai import AsyncOpenAI

from yearprobe_core.utils.trace import Trace

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Thin async wrapper around `client.responses.create`.

    Example:
        client = LLMClient(openai_api_key="sk-...")
        result = await client.call(
            model="gpt-4o-mini",
            input="Which year ...",
            instructions="You are an expert music historian.",
            json_output=True,
        )
    """

    def __init__(
        self,
        *,
        openai_api_key: str | None = None,
        default_timeout: float = 60.0,
        max_retries: int = 3,
        client: AsyncOpenAI | None = None,
    ):
        self.client = client or AsyncOpenAI(api_key=openai_api_key)
        self.default_timeout = default_timeout
        self.max_retries = max(1, int(max_retries))

    async def call(
        self,
        *,
        model: str,
        input: str,  # noqa: A002 - 'input' is the official API param name
        instructions: str | None = None,
        json_output: bool = False,
        temperature: float | None = None,
        timeout: float | None = None,
        max_output_tokens: int | None = None,
        trace_kind: str = "llm_call",
    ) -> dict:
        """
        Execute an LLM call.

        Returns:
            Dict with keys:
            - "content": Raw text content from the model
            - "parsed": Parsed JSON if json_output=True and parsable, else None
            - "model": Model used
            - "usage": Token usage info if available

        Raises:
            ValueError: If no usable response was produced after all retries
        """
        params: dict = {
            "model": model,
            "input": input,
            "timeout": timeout or self.default_timeout,
        }
        if instructions:
            params["instructions"] = instructions
        if max_output_tokens:
            params["max_output_tokens"] = max_output_tokens
        if json_output:
            params["text"] = {"format": {"type": "json_object"}}
        # Reasoning models reject temperature.
        if temperature is not None and "gpt-5" not in model and not model.startswith("o"):
            params["temperature"] = temperature

        payload_hash = hashlib.md5(((instructions or "") + "||" + input).encode()).hexdigest()
        Trace.event(f"{trace_kind}.prompt", {
            "model": model,
            "input_chars": len(input),
            "instructions_chars": len(instructions or ""),
            "payload_hash": payload_hash,
            "json_output": json_output,
        })

        last_error: Exception | None = None
        for attempt in range(self.max_retries):
            start_time = time.time()
            try:
                if attempt > 0:
                    await asyncio.sleep(0.5 * attempt)
                    logger.debug("[LLMClient] Retry %d/%d for %s", attempt + 1, self.max_retries, model)

                response = await self.client.responses.create(**params)
                latency_ms = int((time.time() - start_time) * 1000)

                content = response.output_text
                if not content or not content.strip():
                    if getattr(response, "error", None):
                        raise ValueError(f"LLM error: {response.error}")
                    raise ValueError("Empty response from LLM")

                parsed = None
                if json_output:
                    try:
                        parsed = json.loads(content)
                    except json.JSONDecodeError as e:
                        logger.warning("[LLMClient] JSON parse failed: %s", e)

                usage = {"latency_ms": latency_ms}
                if getattr(response, "usage", None):
                    usage.update({
                        "input_tokens": response.usage.input_tokens,
                        "output_tokens": response.usage.output_tokens,
                        "total_tokens": response.usage.total_tokens,
                    })

                Trace.event(f"{trace_kind}.response", {
                    "model": response.model,
                    "content_chars": len(content),
                    "attempt": attempt + 1,
                    "payload_hash": payload_hash,
                })
                return {
                    "content": content,
                    "parsed": parsed,
                    "model": response.model,
                    "usage": usage,
                }
            except Exception as e:
                last_error = e
                logger.warning("[LLMClient] Attempt %d failed: %s", attempt + 1, e)
                Trace.event(f"{trace_kind}.error", {
                    "model": model,
                    "attempt": attempt + 1,
                    "error": str(e)[:200],
                    "payload_hash": payload_hash,
                })

        raise ValueError(f"LLM call failed after {self.max_retries} attempts: {last_error}")

    async def close(self) -> None:
        """Clean up resources."""
        if self.client:
            await self.client.close()
