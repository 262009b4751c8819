from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any


def _parse_bool(raw: Any, *, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    s = str(raw).strip().lower()
    if not s:
        return default
    if s in ("1", "true", "yes", "y", "on"):
        return True
    if s in ("0", "false", "no", "n", "off"):
        return False
    return default


def _parse_int(raw: Any, *, default: int, min_v: int, max_v: int) -> int:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, int):
            v = raw
        else:
            v = int(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


def _parse_float(raw: Any, *, default: float, min_v: float, max_v: float) -> float:
    try:
        if raw is None:
            v = default
        elif isinstance(raw, (int, float)):
            v = float(raw)
        else:
            v = float(str(raw).strip())
    except (TypeError, ValueError):
        v = default
    return max(min_v, min(max_v, v))


@dataclass(frozen=True)
class ResearchTunables:
    """
    Thresholds of the retry/arbitration controller.

    These are hand-tuned constants; keep them configurable rather than
    re-deriving "better" values.
    """
    # Kill switch: disabled agent answers "Agent disabled" without network I/O.
    enabled: bool = True
    min_confidence: float = 0.6
    max_retries: int = 2
    # Retry only while evidence count is below this.
    retry_max_evidence: int = 3
    # Ambiguity: variance > threshold AND evidence >= min AND confidence < max.
    variance_threshold: float = 10.0
    ambiguity_min_evidence: int = 3
    ambiguity_max_confidence: float = 0.7
    max_final_confidence: float = 0.95
    # Search provider is called for the last N accumulated queries per pass.
    queries_per_pass: int = 2


@dataclass(frozen=True)
class FetchConfig:
    max_pages: int = 10
    max_concurrency: int = 3
    stage_timeout_sec: float = 60.0
    request_timeout_sec: float = 30.0
    min_delay_between_calls_sec: float = 2.0
    cookie_ttl_sec: int = 7200


@dataclass(frozen=True)
class SearchConfig:
    timeout_sec: float = 15.0
    max_results: int = 10
    exclude_domains: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CaptchaConfig:
    enabled: bool = True
    timeout_sec: float = 120.0
    poll_interval_sec: float = 5.0


@dataclass(frozen=True)
class EngineLLMConfig:
    timeout_sec: float = 60.0
    max_retries: int = 3
    temperature: float = 0.2
    max_output_tokens: int = 400


@dataclass(frozen=True)
class EngineDebugFlags:
    engine_debug: bool = False
    # Trace is a local-only debug feature; it is enabled by default and can be disabled via env.
    trace_enabled: bool = True


@dataclass(frozen=True)
class EngineRuntimeConfig:
    research: ResearchTunables = field(default_factory=ResearchTunables)
    fetch: FetchConfig = field(default_factory=FetchConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    captcha: CaptchaConfig = field(default_factory=CaptchaConfig)
    llm: EngineLLMConfig = field(default_factory=EngineLLMConfig)
    debug: EngineDebugFlags = field(default_factory=EngineDebugFlags)

    @staticmethod
    def load_from_env() -> "EngineRuntimeConfig":
        research = ResearchTunables(
            enabled=_parse_bool(os.getenv("YEARPROBE_ENABLED"), default=True),
            min_confidence=_parse_float(os.getenv("YEARPROBE_MIN_CONFIDENCE"), default=0.6, min_v=0.0, max_v=1.0),
            max_retries=_parse_int(os.getenv("YEARPROBE_MAX_RETRIES"), default=2, min_v=0, max_v=5),
            retry_max_evidence=_parse_int(os.getenv("YEARPROBE_RETRY_MAX_EVIDENCE"), default=3, min_v=1, max_v=20),
            variance_threshold=_parse_float(
                os.getenv("YEARPROBE_VARIANCE_THRESHOLD"), default=10.0, min_v=0.0, max_v=1000.0
            ),
            ambiguity_min_evidence=_parse_int(
                os.getenv("YEARPROBE_AMBIGUITY_MIN_EVIDENCE"), default=3, min_v=1, max_v=20
            ),
            ambiguity_max_confidence=_parse_float(
                os.getenv("YEARPROBE_AMBIGUITY_MAX_CONFIDENCE"), default=0.7, min_v=0.0, max_v=1.0
            ),
            max_final_confidence=_parse_float(
                os.getenv("YEARPROBE_MAX_FINAL_CONFIDENCE"), default=0.95, min_v=0.0, max_v=1.0
            ),
            queries_per_pass=_parse_int(os.getenv("YEARPROBE_QUERIES_PER_PASS"), default=2, min_v=1, max_v=6),
        )

        fetch = FetchConfig(
            max_pages=_parse_int(os.getenv("YEARPROBE_MAX_PAGES"), default=10, min_v=1, max_v=30),
            max_concurrency=_parse_int(os.getenv("YEARPROBE_FETCH_CONCURRENCY"), default=3, min_v=1, max_v=10),
            stage_timeout_sec=_parse_float(
                os.getenv("YEARPROBE_FETCH_STAGE_TIMEOUT"), default=60.0, min_v=5.0, max_v=600.0
            ),
            request_timeout_sec=_parse_float(
                os.getenv("YEARPROBE_REQUEST_TIMEOUT"), default=30.0, min_v=1.0, max_v=120.0
            ),
            min_delay_between_calls_sec=_parse_float(
                os.getenv("YEARPROBE_MIN_DELAY_SEC"), default=2.0, min_v=0.0, max_v=60.0
            ),
            cookie_ttl_sec=_parse_int(os.getenv("YEARPROBE_COOKIE_TTL"), default=7200, min_v=60, max_v=86400 * 7),
        )

        exclude_raw = os.getenv("YEARPROBE_SEARCH_EXCLUDE_DOMAINS", "")
        search = SearchConfig(
            timeout_sec=_parse_float(os.getenv("YEARPROBE_SEARCH_TIMEOUT"), default=15.0, min_v=1.0, max_v=60.0),
            max_results=_parse_int(os.getenv("YEARPROBE_SEARCH_MAX_RESULTS"), default=10, min_v=1, max_v=20),
            exclude_domains=[d.strip().lower().lstrip(".") for d in exclude_raw.split(",") if d.strip()],
        )

        captcha = CaptchaConfig(
            enabled=_parse_bool(os.getenv("YEARPROBE_CAPTCHA_ENABLED"), default=True),
            timeout_sec=_parse_float(os.getenv("YEARPROBE_CAPTCHA_TIMEOUT"), default=120.0, min_v=10.0, max_v=600.0),
            poll_interval_sec=_parse_float(
                os.getenv("YEARPROBE_CAPTCHA_POLL_INTERVAL"), default=5.0, min_v=0.5, max_v=30.0
            ),
        )

        llm = EngineLLMConfig(
            timeout_sec=_parse_float(os.getenv("OPENAI_TIMEOUT"), default=60.0, min_v=5.0, max_v=300.0),
            max_retries=_parse_int(os.getenv("OPENAI_MAX_RETRIES"), default=3, min_v=1, max_v=6),
            temperature=_parse_float(os.getenv("YEARPROBE_LLM_TEMPERATURE"), default=0.2, min_v=0.0, max_v=2.0),
            max_output_tokens=_parse_int(
                os.getenv("YEARPROBE_LLM_MAX_OUTPUT_TOKENS"), default=400, min_v=100, max_v=4000
            ),
        )

        debug = EngineDebugFlags(
            engine_debug=_parse_bool(os.getenv("YEARPROBE_ENGINE_DEBUG"), default=False),
            trace_enabled=not _parse_bool(os.getenv("YEARPROBE_TRACE_DISABLE"), default=False),
        )

        return EngineRuntimeConfig(
            research=research,
            fetch=fetch,
            search=search,
            captcha=captcha,
            llm=llm,
            debug=debug,
        )

    def to_safe_log_dict(self) -> dict[str, Any]:
        ex = list(self.search.exclude_domains or [])
        return {
            "research": {
                "enabled": bool(self.research.enabled),
                "min_confidence": float(self.research.min_confidence),
                "max_retries": int(self.research.max_retries),
                "retry_max_evidence": int(self.research.retry_max_evidence),
                "variance_threshold": float(self.research.variance_threshold),
                "ambiguity_min_evidence": int(self.research.ambiguity_min_evidence),
                "ambiguity_max_confidence": float(self.research.ambiguity_max_confidence),
                "max_final_confidence": float(self.research.max_final_confidence),
                "queries_per_pass": int(self.research.queries_per_pass),
            },
            "fetch": {
                "max_pages": int(self.fetch.max_pages),
                "max_concurrency": int(self.fetch.max_concurrency),
                "stage_timeout_sec": float(self.fetch.stage_timeout_sec),
                "request_timeout_sec": float(self.fetch.request_timeout_sec),
                "min_delay_between_calls_sec": float(self.fetch.min_delay_between_calls_sec),
                "cookie_ttl_sec": int(self.fetch.cookie_ttl_sec),
            },
            "search": {
                "timeout_sec": float(self.search.timeout_sec),
                "max_results": int(self.search.max_results),
                "exclude_domains_count": len(ex),
                "exclude_domains_preview": ex[:3],
            },
            "captcha": {
                "enabled": bool(self.captcha.enabled),
                "timeout_sec": float(self.captcha.timeout_sec),
            },
            "llm": {
                "timeout_sec": float(self.llm.timeout_sec),
                "max_retries": int(self.llm.max_retries),
                "temperature": float(self.llm.temperature),
            },
            "debug": {
                "engine_debug": bool(self.debug.engine_debug),
                "trace_enabled": bool(self.debug.trace_enabled),
            },
        }
