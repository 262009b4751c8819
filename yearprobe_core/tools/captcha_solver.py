# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
2Captcha client.

Submits a challenge through `in.php` and polls `res.php` until a token is
ready or the solve timeout elapses. Failures are returned, not raised.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from yearprobe_core.tools.interfaces import SolveResult
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.antibot import ChallengeKind

logger = logging.getLogger(__name__)

SUBMIT_URL = "https://2captcha.com/in.php"
RESULT_URL = "https://2captcha.com/res.php"
NOT_READY = "CAPCHA_NOT_READY"


def submit_params(kind: ChallengeKind, site_key: str, page_url: str) -> dict[str, str] | None:
    match kind:
        case ChallengeKind.RECAPTCHA_V2:
            return {"method": "userrecaptcha", "googlekey": site_key, "pageurl": page_url}
        case ChallengeKind.RECAPTCHA_V3:
            return {
                "method": "userrecaptcha",
                "version": "v3",
                "action": "verify",
                "min_score": "0.3",
                "googlekey": site_key,
                "pageurl": page_url,
            }
        case ChallengeKind.HCAPTCHA:
            return {"method": "hcaptcha", "sitekey": site_key, "pageurl": page_url}
        case ChallengeKind.TURNSTILE:
            return {"method": "turnstile", "sitekey": site_key, "pageurl": page_url}
        case _:
            return None


class TwoCaptchaSolver:
    def __init__(
        self,
        *,
        api_key: str,
        timeout_s: float = 120.0,
        poll_interval_s: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_key = api_key
        self.timeout_s = float(timeout_s)
        self.poll_interval_s = max(0.0, float(poll_interval_s))
        self._client = client or httpx.AsyncClient(timeout=30.0)

    async def close(self) -> None:
        await self._client.aclose()

    async def solve(self, url: str, kind: ChallengeKind, site_key: str) -> SolveResult:
        params = submit_params(kind, site_key, url)
        if params is None:
            return SolveResult(success=False, error=f"unsupported challenge kind: {kind.value}")

        Trace.event("captcha.submit", {"url": url, "kind": kind.value})
        try:
            r = await self._client.post(SUBMIT_URL, data={"key": self.api_key, "json": "1", **params})
            r.raise_for_status()
            data = r.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[Captcha] Submit failed for %s: %s", url, e)
            return SolveResult(success=False, error=str(e))

        if data.get("status") != 1:
            return SolveResult(success=False, error=str(data.get("request") or "submit rejected"))
        task_id = str(data.get("request"))

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeout_s
        while loop.time() < deadline:
            await asyncio.sleep(self.poll_interval_s)
            try:
                r = await self._client.get(
                    RESULT_URL,
                    params={"key": self.api_key, "action": "get", "id": task_id, "json": "1"},
                )
                r.raise_for_status()
                data = r.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("[Captcha] Poll failed for %s: %s", url, e)
                return SolveResult(success=False, error=str(e))

            if data.get("status") == 1:
                Trace.event("captcha.solved", {"url": url, "kind": kind.value})
                return SolveResult(success=True, token=str(data.get("request")))
            if data.get("request") != NOT_READY:
                return SolveResult(success=False, error=str(data.get("request")))

        logger.info("[Captcha] Timed out after %.0fs for %s", self.timeout_s, url)
        return SolveResult(success=False, error="timeout")
