import os
from typing import Literal, Optional

from pydantic import BaseModel, Field

from yearprobe_core.runtime_config import EngineRuntimeConfig


class YearProbeConfig(BaseModel):
    """
    Configuration for the YearProbe Engine.
    Decouples the engine from environment variables.
    """

    model_config = {"arbitrary_types_allowed": True}

    # LLM Configuration
    openai_api_key: Optional[str] = Field(None, description="OpenAI API Key for conflict arbitration")
    openai_model: str = Field("gpt-4o-mini", description="Model used by the arbiter")

    # Search Configuration
    search_provider: Literal["duckduckgo", "tavily"] = Field(
        "duckduckgo", description="Web search backend"
    )
    tavily_api_key: Optional[str] = Field(None, description="Tavily API Key (search_provider=tavily)")

    # Anti-bot
    twocaptcha_api_key: Optional[str] = Field(None, description="2Captcha API key (optional)")

    # Local persistence (cookie store)
    cache_dir: str = Field("data/cache", description="Directory for diskcache stores")

    runtime: EngineRuntimeConfig = Field(default_factory=EngineRuntimeConfig.load_from_env)

    @classmethod
    def from_env(cls) -> "YearProbeConfig":
        provider = (os.getenv("YEARPROBE_SEARCH_PROVIDER") or "duckduckgo").strip().lower()
        if provider not in ("duckduckgo", "tavily"):
            provider = "duckduckgo"
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_model=os.getenv("YEARPROBE_MODEL") or "gpt-4o-mini",
            search_provider=provider,
            tavily_api_key=os.getenv("TAVILY_API_KEY") or None,
            twocaptcha_api_key=os.getenv("TWOCAPTCHA_API_KEY") or None,
            cache_dir=os.getenv("YEARPROBE_CACHE_DIR") or "data/cache",
            runtime=EngineRuntimeConfig.load_from_env(),
        )
