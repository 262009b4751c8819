# Copyright (C) 2025 YearProbe Contributors
#
# This file is part of YearProbe Engine.
#
# YearProbe Engine is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published
# by the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

from __future__ import annotations

import logging
from pathlib import Path

import diskcache

from yearprobe_core.tools.url_utils import normalize_host

logger = logging.getLogger(__name__)

_KEY_PREFIX = "cookies:"


def ensure_diskcache(path: Path) -> diskcache.Cache:
    path.mkdir(parents=True, exist_ok=True)
    return diskcache.Cache(str(path))


class DiskCookieStore:
    """
    Per-domain session cookies persisted across research calls.

    Advisory only: a failed read yields no cookies and a failed write is
    logged. Entries expire after ttl_sec; the last write for a domain wins.
    """

    def __init__(self, path: Path | str, *, ttl_sec: int = 7200, cache: diskcache.Cache | None = None):
        self._cache = cache if cache is not None else ensure_diskcache(Path(path))
        self.ttl_sec = int(ttl_sec)

    def load(self, domain: str) -> dict[str, str]:
        try:
            cookies = self._cache.get(_KEY_PREFIX + normalize_host(domain))
        except Exception as e:
            logger.debug("[Cookies] Read failed for %s: %s", domain, e)
            return {}
        return dict(cookies) if isinstance(cookies, dict) else {}

    def save(self, domain: str, cookies: dict[str, str]) -> None:
        if not cookies:
            return
        try:
            self._cache.set(_KEY_PREFIX + normalize_host(domain), dict(cookies), expire=self.ttl_sec)
        except Exception as e:
            logger.warning("[Cookies] Write failed for %s: %s", domain, e)

    def load_all(self) -> dict[str, dict[str, str]]:
        out: dict[str, dict[str, str]] = {}
        for key in list(self._cache.iterkeys()):
            if not isinstance(key, str) or not key.startswith(_KEY_PREFIX):
                continue
            cookies = self._cache.get(key)
            if isinstance(cookies, dict) and cookies:
                out[key[len(_KEY_PREFIX):]] = dict(cookies)
        return out

    def close(self) -> None:
        self._cache.close()
