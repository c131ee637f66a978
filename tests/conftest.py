from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from api.base_client import BaseLLMClient
from db.source_store import SourceStore
from models.errors import SearchUnavailable
from models.rag_types import Source
from models.unified_response import CompletionResult, TokenUsage

FIXED_TIME = datetime(2026, 1, 17, 12, 0, tzinfo=timezone.utc)


def make_source(url: str, title: str, snippet: str = "", retrieved_at: datetime = FIXED_TIME):
    return Source(url=url, title=title, snippet=snippet, retrieved_at=retrieved_at)


class FakeLLMClient(BaseLLMClient):
    provider = "fake"

    def __init__(self, text: str = "ok", error: Exception | None = None):
        super().__init__(api_key="test-key", model_name="fake-model")
        self.text = text
        self.error = error
        self.calls = []

    async def complete(self, messages):
        self.calls.append(messages)
        if self.error is not None:
            raise self.error
        return CompletionResult(
            request_id="req_1",
            text=self.text,
            model=self.model_name,
            latency_ms=1,
            token_usage=TokenUsage(prompt_tokens=10, completion_tokens=5),
            finish_reason="stop",
        )


class FakeSearchClient:
    def __init__(self, results=None, error: SearchUnavailable | None = None):
        self.results = list(results or [])
        self.error = error
        self.calls = []

    async def search(self, query: str, max_results: int = 5):
        self.calls.append((query, max_results))
        if self.error is not None:
            raise self.error
        return self.results[:max_results]


def make_openai_response(content, *, prompt_tokens=12, completion_tokens=8, model="test-model"):
    return SimpleNamespace(
        model=model,
        choices=[SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")],
        usage=SimpleNamespace(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
    )


def make_openai_client(response=None, error: Exception | None = None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=response, side_effect=error)
    client.close = AsyncMock()
    return client


@pytest.fixture
def store(tmp_path):
    """SourceStore backed by a throwaway SQLite file."""
    source_store = SourceStore.from_url(f"sqlite:///{tmp_path / 'sources.db'}")
    yield source_store
    source_store.close()


@pytest.fixture
def mock_env(monkeypatch):
    """Fixture to mock environment variables for testing."""
    env_vars = {
        "OPENROUTER_API_KEY": "test-openrouter-key",
        "TAVILY_API_KEY": "test-tavily-key",
        "DEFAULT_MODEL": "test/model",
        "SEARCH_MAX_RESULTS": "3",
        "CONTEXT_BUDGET_CHARS": "1500",
        "DATABASE_URL": "sqlite:///test.db",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    for key in ("SEARCH_PROVIDER", "BRAVE_API_KEY", "REUSE_STORED_SOURCES", "LLM_BASE_URL"):
        monkeypatch.delenv(key, raising=False)
    return env_vars
