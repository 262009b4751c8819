# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
Anti-Bot Gate

Prioritized classifier for bot-challenge pages, plus the decision of what
to do with a challenged page.

Detection order:
1. Provider-specific challenge phrases tied to the fetch domain
2. Structured widget markers: reCAPTCHA v2, reCAPTCHA v3, hCaptcha, Turnstile
3. Generic "human verification" phrases, suppressed on pages that carry
   genuine article content

A challenge is only worth solving when its family is supported and a site
key was found. Everything else drops the page; a dropped page only reduces
evidence volume, it never fails the run.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum

from yearprobe_core.tools.url_utils import domain_of, host_matches

logger = logging.getLogger(__name__)


class ChallengeKind(str, Enum):
    NONE = "none"
    IMAGE = "image"
    """Provider image grid; no site key, not solvable."""
    RECAPTCHA_V2 = "recaptcha_v2"
    RECAPTCHA_V3 = "recaptcha_v3"
    HCAPTCHA = "hcaptcha"
    TURNSTILE = "turnstile"
    UNKNOWN = "unknown"


SOLVABLE_KINDS = frozenset({
    ChallengeKind.RECAPTCHA_V2,
    ChallengeKind.RECAPTCHA_V3,
    ChallengeKind.HCAPTCHA,
    ChallengeKind.TURNSTILE,
})


class GateAction(str, Enum):
    ACCEPT = "accept"
    SOLVE = "solve"
    DROP = "drop"


@dataclass(frozen=True)
class ChallengeDetection:
    present: bool
    kind: ChallengeKind = ChallengeKind.NONE
    site_key: str | None = None

    @classmethod
    def clear(cls) -> "ChallengeDetection":
        return cls(present=False)


# Provider-specific phrases, keyed by the domain they apply to.
PROVIDER_CHALLENGE_PHRASES: dict[str, tuple[str, ...]] = {
    "duckduckgo.com": ("select all squares", "captcha", "please verify"),
}

GENERIC_CHALLENGE_PHRASES = (
    "verify you are human",
    "prove you are not a robot",
    "security check",
    "please complete the captcha",
)

TURNSTILE_MARKERS = (
    "cf-turnstile",
    "challenges.cloudflare.com/turnstile",
    "cf-challenge",
)

CONTENT_MARKERS = (
    "<article",
    "<main",
    'id="content"',
    'class="content"',
    'id="mw-content-text"',
)

_SITEKEY_RE = re.compile(r'data-sitekey="([^"]+)"')
_HCAPTCHA_SITEKEY_RE = re.compile(r'data-sitekey="([a-f0-9-]{36,})"', re.IGNORECASE)
_RECAPTCHA_V3_RE = re.compile(r"""grecaptcha\.execute\s*\(\s*['"]([^'"]+)['"]""")
_TURNSTILE_SITEKEY_RES = (
    re.compile(r'cf-turnstile[^>]*data-sitekey="([^"]+)"', re.IGNORECASE),
    re.compile(r'data-sitekey="([^"]+)"[^>]*cf-turnstile', re.IGNORECASE),
)


def has_content_markers(lower_html: str) -> bool:
    return any(marker in lower_html for marker in CONTENT_MARKERS)


def _provider_challenge(lower_html: str, url: str) -> ChallengeDetection | None:
    host = domain_of(url)
    for domain, phrases in PROVIDER_CHALLENGE_PHRASES.items():
        if host_matches(host, domain) and any(p in lower_html for p in phrases):
            return ChallengeDetection(present=True, kind=ChallengeKind.IMAGE)
    return None


def _is_hcaptcha_widget(html: str, lower_html: str) -> bool:
    # Encyclopedia pages ship hCaptcha config for edit protection; only a
    # real widget, the challenge iframe, or a content-less page counts.
    if 'class="h-captcha"' in html and "data-sitekey" in html:
        return True
    if "hcaptcha.com/captcha/" in lower_html:
        return True
    return "h-captcha" in lower_html and "<article" not in lower_html and "<main" not in lower_html


def _is_turnstile(lower_html: str) -> bool:
    return any(marker in lower_html for marker in TURNSTILE_MARKERS)


def _widget_challenge(html: str, lower_html: str) -> ChallengeDetection | None:
    hcaptcha = _is_hcaptcha_widget(html, lower_html)
    turnstile = _is_turnstile(lower_html)

    # A bare data-sitekey belongs to reCAPTCHA unless another family claims it.
    if "g-recaptcha" in lower_html or (_SITEKEY_RE.search(html) and not hcaptcha and not turnstile):
        m = _SITEKEY_RE.search(html)
        return ChallengeDetection(
            present=True, kind=ChallengeKind.RECAPTCHA_V2, site_key=m.group(1) if m else None
        )

    m = _RECAPTCHA_V3_RE.search(html)
    if m:
        return ChallengeDetection(present=True, kind=ChallengeKind.RECAPTCHA_V3, site_key=m.group(1))

    if hcaptcha:
        m = _HCAPTCHA_SITEKEY_RE.search(html)
        return ChallengeDetection(present=True, kind=ChallengeKind.HCAPTCHA, site_key=m.group(1) if m else None)

    if turnstile:
        site_key = None
        for pattern in _TURNSTILE_SITEKEY_RES:
            m = pattern.search(html)
            if m:
                site_key = m.group(1)
                break
        if site_key is None:
            m = _SITEKEY_RE.search(html)
            site_key = m.group(1) if m else None
        return ChallengeDetection(present=True, kind=ChallengeKind.TURNSTILE, site_key=site_key)

    return None


def _generic_challenge(lower_html: str) -> ChallengeDetection | None:
    if has_content_markers(lower_html):
        return None
    if any(p in lower_html for p in GENERIC_CHALLENGE_PHRASES):
        return ChallengeDetection(present=True, kind=ChallengeKind.UNKNOWN)
    return None


def detect_challenge(content: str, url: str) -> ChallengeDetection:
    """
    Classify fetched content as a bot-challenge page or not.

    Args:
        content: Raw page content
        url: URL the content was fetched from

    Returns:
        ChallengeDetection with the first matching challenge family
    """
    html = content or ""
    if not html:
        return ChallengeDetection.clear()
    lower_html = html.lower()

    return (
        _provider_challenge(lower_html, url)
        or _widget_challenge(html, lower_html)
        or _generic_challenge(lower_html)
        or ChallengeDetection.clear()
    )


def decide(detection: ChallengeDetection, *, solver_available: bool) -> GateAction:
    """Accept clean pages, solve keyed challenges of supported families, drop the rest."""
    if not detection.present:
        return GateAction.ACCEPT
    if solver_available and detection.site_key and detection.kind in SOLVABLE_KINDS:
        return GateAction.SOLVE
    return GateAction.DROP
