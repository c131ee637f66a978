import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv


class SearchProvider(Enum):
    """Supported web search providers."""
    TAVILY = "tavily"
    BRAVE = "brave"


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Config:
    """
    Immutable process configuration.

    Built once at startup with ``Config.from_env()`` and handed explicitly to the
    search client, the LLM client and the source store.
    """

    # LLM
    llm_api_key: str | None = None
    llm_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "tngtech/deepseek-r1t2-chimera:free"
    llm_timeout_seconds: float = 120.0
    llm_temperature: float = 0.3
    llm_max_tokens: int = 2048
    app_title: str = "W9 Search"
    app_url: str = "http://localhost:3000"

    # Web search
    search_provider: str = SearchProvider.TAVILY.value
    tavily_api_key: str | None = None
    brave_api_key: str | None = None
    search_max_results: int = 5
    search_timeout_seconds: float = 8.0
    page_fetch_count: int = 3
    page_fetch_timeout_seconds: float = 10.0

    # Grounding
    context_budget_chars: int = 6000
    reuse_stored_sources: bool = False

    # Storage
    database_url: str = "sqlite:///w9_search.db"
    store_timeout_seconds: float = 5.0

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Read configuration from the environment, loading a .env file first if present.

        Args:
            env_file: Optional explicit .env path (defaults to the project root .env)

        Returns:
            Config: Frozen configuration value
        """
        env_path = Path(env_file) if env_file else Path(__file__).parent.parent / ".env"
        if env_path.exists():
            load_dotenv(dotenv_path=env_path)

        return cls(
            llm_api_key=os.getenv("OPENROUTER_API_KEY") or None,
            llm_base_url=os.getenv("LLM_BASE_URL", cls.llm_base_url),
            default_model=os.getenv("DEFAULT_MODEL", cls.default_model),
            llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", cls.llm_timeout_seconds)),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", cls.llm_temperature)),
            llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", cls.llm_max_tokens)),
            app_title=os.getenv("APP_TITLE", cls.app_title),
            app_url=os.getenv("APP_URL", cls.app_url),
            search_provider=os.getenv("SEARCH_PROVIDER", cls.search_provider).strip().lower(),
            tavily_api_key=os.getenv("TAVILY_API_KEY") or None,
            brave_api_key=os.getenv("BRAVE_API_KEY") or None,
            search_max_results=int(os.getenv("SEARCH_MAX_RESULTS", cls.search_max_results)),
            search_timeout_seconds=float(
                os.getenv("SEARCH_TIMEOUT_SECONDS", cls.search_timeout_seconds)
            ),
            page_fetch_count=int(os.getenv("PAGE_FETCH_COUNT", cls.page_fetch_count)),
            page_fetch_timeout_seconds=float(
                os.getenv("PAGE_FETCH_TIMEOUT_SECONDS", cls.page_fetch_timeout_seconds)
            ),
            context_budget_chars=int(os.getenv("CONTEXT_BUDGET_CHARS", cls.context_budget_chars)),
            reuse_stored_sources=_env_bool("REUSE_STORED_SOURCES"),
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            store_timeout_seconds=float(
                os.getenv("STORE_TIMEOUT_SECONDS", cls.store_timeout_seconds)
            ),
        )

    @property
    def search_api_key(self) -> str | None:
        """API key of the configured search provider."""
        if self.search_provider == SearchProvider.BRAVE.value:
            return self.brave_api_key
        return self.tavily_api_key

    def validate(self) -> list[str]:
        """
        Check the configuration for problems.

        Returns:
            list[str]: Human-readable problems; empty when the configuration is usable
        """
        problems = []
        if not self.llm_api_key:
            problems.append("OPENROUTER_API_KEY is not set")

        providers = [p.value for p in SearchProvider]
        if self.search_provider not in providers:
            problems.append(
                f"Unknown SEARCH_PROVIDER '{self.search_provider}'. "
                f"Must be one of: {', '.join(providers)}"
            )
        elif not self.search_api_key:
            problems.append(
                f"No API key for search provider '{self.search_provider}'; "
                "web search will fall back to ungrounded answers"
            )

        if self.context_budget_chars <= 0:
            problems.append("CONTEXT_BUDGET_CHARS must be positive")
        if self.search_max_results <= 0:
            problems.append("SEARCH_MAX_RESULTS must be positive")
        if self.page_fetch_count < 0:
            problems.append("PAGE_FETCH_COUNT must not be negative")

        return problems

    def get_model_info(self) -> str:
        return f"{self.default_model} via {self.llm_base_url}"
