# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Collaborator interfaces.

The pipeline only depends on these protocols; concrete adapters live next
to them in this package and tests substitute mocks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from yearprobe_core.schema.evidence import SearchResult
from yearprobe_core.verification.antibot import ChallengeKind


@dataclass(frozen=True)
class SolveResult:
    success: bool
    token: str | None = None
    error: str | None = None


@runtime_checkable
class SearchProvider(Protocol):
    async def search(self, query: str) -> list[SearchResult]:
        """Return ranked results; an empty list when nothing matched."""
        ...


@runtime_checkable
class PageFetcher(Protocol):
    async def fetch(self, url: str) -> str:
        """Return raw page content, or an empty string on failure."""
        ...

    async def submit_challenge_token(self, url: str, kind: ChallengeKind, token: str) -> str:
        """Re-submit a solved challenge token and return the resulting content."""
        ...

    async def persist_cookies(self) -> None:
        ...


@runtime_checkable
class CaptchaSolver(Protocol):
    async def solve(self, url: str, kind: ChallengeKind, site_key: str) -> SolveResult:
        ...


@runtime_checkable
class CookieStore(Protocol):
    def load(self, domain: str) -> dict[str, str]:
        ...

    def save(self, domain: str, cookies: dict[str, str]) -> None:
        ...

    def load_all(self) -> dict[str, dict[str, str]]:
        ...


@runtime_checkable
class Arbiter(Protocol):
    async def invoke(self, prompt: str) -> str:
        """Return the raw model answer for an arbitration prompt."""
        ...
