# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (c) 2024-2025 YearProbe Contributors
"""
URL Utilities

Small helpers shared across tools. These functions must be side-effect free.
"""

from __future__ import annotations

from urllib.parse import unquote, urlparse


def normalize_host(host: str) -> str:
    host = (host or "").strip().lower()
    return host[4:] if host.startswith("www.") else host


def domain_of(url: str) -> str:
    """Hostname of a URL (lower-case, no www.), or "" when unparsable."""
    try:
        return normalize_host(urlparse(str(url).strip()).hostname or "")
    except ValueError:
        return ""


def host_matches(host: str, domain: str) -> bool:
    """True when host is domain itself or one of its sub-domains."""
    host = normalize_host(host)
    domain = normalize_host(domain)
    return bool(domain) and (host == domain or host.endswith("." + domain))


def is_valid_public_http_url(url: str) -> bool:
    try:
        if not url:
            return False
        u = urlparse(str(url).strip())
        if u.scheme not in ("http", "https"):
            return False
        host = normalize_host(u.hostname or "")
        if not host or host in ("127.0.0.1", "localhost"):
            return False
        return True
    except ValueError:
        return False


def canonical_url_for_dedupe(url: str) -> str:
    """
    Canonical URL representation for deduplication (host+path, no query/fragment).
    """
    try:
        u = urlparse(url)
        return normalize_host(u.netloc or "") + (u.path or "").rstrip("/")
    except ValueError:
        return (url or "").strip()


def unwrap_redirect_url(href: str) -> str:
    """
    Resolve search-engine redirect links (`/l/?uddg=<encoded>`) to the target URL.
    """
    href = (href or "").strip()
    if "uddg=" not in href:
        if href.startswith("//"):
            return "https:" + href
        return href
    encoded = href.split("uddg=", 1)[1].split("&", 1)[0]
    return unquote(encoded)
