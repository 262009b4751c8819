# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
HTTP page fetcher.

One long-lived httpx client with a persistent browser-like User-Agent.
Session cookies are seeded from the cookie store on first use and written
back per domain by persist_cookies(). Transport failures return an empty
string; the pipeline treats that as "no page", never as an error.
"""

from __future__ import annotations

import logging

import httpx

from yearprobe_core.tools.interfaces import CookieStore
from yearprobe_core.tools.url_utils import normalize_host
from yearprobe_core.utils.trace import Trace
from yearprobe_core.verification.antibot import ChallengeKind

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)

# Challenge pages are usually served with these statuses; the gate needs their body.
CHALLENGE_STATUSES = frozenset({403, 429, 503})

TOKEN_FIELDS: dict[ChallengeKind, str] = {
    ChallengeKind.RECAPTCHA_V2: "g-recaptcha-response",
    ChallengeKind.RECAPTCHA_V3: "g-recaptcha-response",
    ChallengeKind.HCAPTCHA: "h-captcha-response",
    ChallengeKind.TURNSTILE: "cf-turnstile-response",
}


class HttpPageFetcher:
    def __init__(
        self,
        *,
        cookie_store: CookieStore | None = None,
        timeout_s: float = 30.0,
        user_agent: str = DEFAULT_USER_AGENT,
        client: httpx.AsyncClient | None = None,
    ):
        self.cookie_store = cookie_store
        self._cookies_loaded = False
        self._client = client or httpx.AsyncClient(
            timeout=float(timeout_s),
            follow_redirects=True,
            limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            headers={
                "User-Agent": user_agent,
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Accept-Language": "en-US,en;q=0.9",
            },
        )

    async def close(self) -> None:
        await self._client.aclose()

    def _load_cookies(self) -> None:
        if self._cookies_loaded:
            return
        self._cookies_loaded = True
        if self.cookie_store is None:
            return
        try:
            stored = self.cookie_store.load_all()
        except Exception as e:
            logger.debug("[Fetch] Cookie load failed: %s", e)
            return
        for domain, cookies in stored.items():
            for name, value in cookies.items():
                self._client.cookies.set(name, value, domain=domain)
        if stored:
            logger.debug("[Fetch] Loaded cookies for %d domains", len(stored))

    def _body(self, response: httpx.Response) -> str:
        if response.status_code < 400 or response.status_code in CHALLENGE_STATUSES:
            return response.text or ""
        logger.debug("[Fetch] HTTP %s for %s", response.status_code, response.url)
        return ""

    async def fetch(self, url: str) -> str:
        self._load_cookies()
        try:
            r = await self._client.get(url)
        except httpx.HTTPError as e:
            logger.debug("[Fetch] Failed %s: %s", url, e)
            Trace.event("fetch.error", {"url": url, "error": str(e)[:200]})
            return ""
        content = self._body(r)
        Trace.event("fetch.response", {"url": url, "status_code": r.status_code, "chars": len(content)})
        return content

    async def submit_challenge_token(self, url: str, kind: ChallengeKind, token: str) -> str:
        field = TOKEN_FIELDS.get(kind)
        if not field or not token:
            return ""
        self._load_cookies()
        try:
            r = await self._client.post(url, data={field: token})
        except httpx.HTTPError as e:
            logger.debug("[Fetch] Token submit failed %s: %s", url, e)
            return ""
        return self._body(r)

    async def persist_cookies(self) -> None:
        if self.cookie_store is None:
            return
        by_domain: dict[str, dict[str, str]] = {}
        for cookie in self._client.cookies.jar:
            domain = normalize_host((cookie.domain or "").lstrip("."))
            if domain and cookie.value is not None:
                by_domain.setdefault(domain, {})[cookie.name] = cookie.value
        for domain, cookies in by_domain.items():
            self.cookie_store.save(domain, cookies)
