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
Per-research JSONL trace.

One file per `research()` call under the trace directory. Events carry
queries, URLs, gate decisions and LLM calls; fetched page bodies are stored
as a length/hash fingerprint so traces stay small. Only written on local runs.
"""

from __future__ import annotations

import contextvars
import hashlib
import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from yearprobe_core.runtime_config import EngineRuntimeConfig
from yearprobe_core.utils.runtime import is_local_run

logger = logging.getLogger(__name__)

DEFAULT_TRACE_DIR = Path("data/trace")
MAX_INLINE_CHARS = 2000
MAX_ITEMS = 50

SECRET_FIELDS = frozenset({"authorization", "api_key", "key", "token", "cookie", "set-cookie"})

_BEARER_RE = re.compile(r"(Bearer\s+)[A-Za-z0-9._-]+")
_QUERY_SECRET_RE = re.compile(r"([?&](?:key|api_key|access_token)=)[^&]+", re.IGNORECASE)
_UNSAFE_NAME_RE = re.compile(r"[^A-Za-z0-9._-]")


@dataclass(frozen=True)
class TraceContext:
    trace_id: str
    enabled: bool
    path: Path | None = None


_active: contextvars.ContextVar[TraceContext | None] = contextvars.ContextVar("yearprobe_trace", default=None)


def current_trace_id() -> str | None:
    ctx = _active.get()
    return ctx.trace_id if ctx else None


def _scrub(text: str) -> str:
    return _QUERY_SECRET_RE.sub(r"\1***", _BEARER_RE.sub(r"\1***", text))


def compact(value: Any) -> Any:
    """JSON-safe copy of an event payload with secrets masked and page bodies fingerprinted."""
    match value:
        case None | bool() | int() | float():
            return value
        case str():
            text = _scrub(value)
            if len(text) <= MAX_INLINE_CHARS:
                return text
            return {"len": len(text), "sha256": hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]}
        case dict():
            return {
                str(k): "***" if str(k).lower() in SECRET_FIELDS else compact(v)
                for k, v in list(value.items())[:MAX_ITEMS]
            }
        case list() | tuple() | set() | frozenset():
            items = list(value)
            out = [compact(v) for v in items[:MAX_ITEMS]]
            if len(items) > MAX_ITEMS:
                out.append(f"+{len(items) - MAX_ITEMS} more")
            return out
        case _:
            return compact(str(value))


class Trace:
    """Context-scoped trace session; every method is a no-op when tracing is off."""

    @staticmethod
    def start(
        trace_id: str,
        *,
        runtime: EngineRuntimeConfig | None = None,
        trace_dir: Path | None = None,
    ) -> TraceContext:
        runtime = runtime or EngineRuntimeConfig.load_from_env()
        enabled = is_local_run() and runtime.debug.trace_enabled
        path = None
        if enabled:
            directory = trace_dir or DEFAULT_TRACE_DIR
            path = directory / f"{_UNSAFE_NAME_RE.sub('_', trace_id)}.jsonl"
        ctx = TraceContext(trace_id=trace_id, enabled=enabled, path=path)
        _active.set(ctx)
        Trace.event("trace.start", {"trace_id": trace_id})
        return ctx

    @staticmethod
    def stop() -> None:
        Trace.event("trace.stop")
        _active.set(None)

    @staticmethod
    def event(name: str, data: Any | None = None) -> None:
        ctx = _active.get()
        if ctx is None or not ctx.enabled or ctx.path is None:
            return
        record = {"ts_ms": int(time.time() * 1000), "trace_id": ctx.trace_id, "event": name, "data": compact(data)}
        try:
            ctx.path.parent.mkdir(parents=True, exist_ok=True)
            with ctx.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(record, ensure_ascii=False) + "\n")
        except OSError as e:
            logger.debug("[Trace] Write failed for %s: %s", ctx.path, e)
