"""Web search client: one bounded provider call per query, parsed into Sources.

The top results can optionally be enriched with their page text (see page_fetcher).
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import httpx

from config.config import Config, SearchProvider
from models.errors import SearchUnavailable
from models.rag_types import Source
from utils.logger import get_logger

from .page_fetcher import PageFetcher
from .url_utils import is_http_url, normalize_url

logger = get_logger(__name__)

TAVILY_SEARCH_URL = "https://api.tavily.com/search"
BRAVE_SEARCH_URL = "https://api.search.brave.com/res/v1/web/search"
SNIPPET_MAX_CHARS = 1000
PROVIDER_MAX_RESULTS = 20

_WHITESPACE = re.compile(r"\s+")


def _trim_text(text: Any, limit: int = SNIPPET_MAX_CHARS) -> str:
    raw = _WHITESPACE.sub(" ", str(text or "")).strip()
    if len(raw) <= limit:
        return raw
    return raw[: limit - 3].rstrip() + "..."


class WebSearchClient:
    """
    Search the web through Tavily or Brave.

    Provider ranking is trusted as-is. There are no retries: each call makes a
    single attempt bounded by ``timeout_s`` so query latency stays predictable.
    """

    def __init__(
        self,
        *,
        provider: str = SearchProvider.TAVILY.value,
        api_key: str | None = None,
        timeout_s: float = 8.0,
        transport: httpx.AsyncBaseTransport | None = None,
        page_fetcher: PageFetcher | None = None,
        fetch_pages: int = 0,
    ):
        """
        Args:
            provider: "tavily" or "brave"
            api_key: Provider API key; a missing key makes every search unavailable
            timeout_s: Timeout for the whole provider call
            transport: Optional httpx transport (used by tests)
            page_fetcher: Fetcher used to replace snippets with page text
            fetch_pages: How many top results get their page fetched (0 disables)
        """
        provider = (provider or "").strip().lower()
        if provider not in {p.value for p in SearchProvider}:
            raise ValueError(f"Unsupported search provider: {provider!r}")
        self.provider = provider
        self.api_key = (api_key or "").strip()
        self.timeout_s = timeout_s
        self._transport = transport
        self.page_fetcher = page_fetcher
        self.fetch_pages = fetch_pages

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> "WebSearchClient":
        kwargs.setdefault(
            "page_fetcher",
            PageFetcher(
                timeout_s=config.page_fetch_timeout_seconds,
                transport=kwargs.get("transport"),
            ),
        )
        return cls(
            provider=config.search_provider,
            api_key=config.search_api_key,
            timeout_s=config.search_timeout_seconds,
            fetch_pages=config.page_fetch_count,
            **kwargs,
        )

    async def search(self, query: str, max_results: int = 5) -> list[Source]:
        """
        Search for ``query`` and return ranked, deduplicated candidate sources.

        Raises:
            SearchUnavailable: provider error, timeout, bad payload or missing API key
        """
        query = (query or "").strip()
        if not query or max_results <= 0:
            return []

        if not self.api_key:
            raise SearchUnavailable(
                f"No API key configured for search provider '{self.provider}'",
                reason="missing_api_key",
                provider=self.provider,
            )

        limit = min(int(max_results), PROVIDER_MAX_RESULTS)
        payload = await self._request(query, limit)
        fetched_at = datetime.now(timezone.utc)
        sources = self._dedupe(self._parse(payload, fetched_at))[:limit]
        if self.page_fetcher is not None and self.fetch_pages > 0:
            sources = await self.page_fetcher.enrich(sources, self.fetch_pages)

        logger.info(
            "Web search complete",
            extra={
                "extra_fields": {
                    "provider": self.provider,
                    "query": query[:100],
                    "source_count": len(sources),
                }
            },
        )
        return sources

    async def _request(self, query: str, limit: int) -> dict[str, Any]:
        if self.provider == SearchProvider.TAVILY.value:
            method, url = "POST", TAVILY_SEARCH_URL
            kwargs: dict[str, Any] = {
                "json": {
                    "api_key": self.api_key,
                    "query": query,
                    "search_depth": "advanced",
                    "include_answer": False,
                    "include_raw_content": False,
                    "max_results": limit,
                }
            }
        else:
            method, url = "GET", BRAVE_SEARCH_URL
            kwargs = {
                "params": {"q": query, "count": limit},
                "headers": {
                    "Accept": "application/json",
                    "X-Subscription-Token": self.api_key,
                },
            }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self._transport
            ) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                payload = response.json() if response.content else {}
        except httpx.TimeoutException as exc:
            raise SearchUnavailable(
                f"{self.provider} search timed out after {self.timeout_s}s",
                reason="timeout",
                provider=self.provider,
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise SearchUnavailable(
                f"{self.provider} search returned HTTP {exc.response.status_code}",
                reason="http_error",
                provider=self.provider,
            ) from exc
        except httpx.HTTPError as exc:
            raise SearchUnavailable(
                f"{self.provider} search failed: {exc}",
                reason="transport_error",
                provider=self.provider,
            ) from exc
        except ValueError as exc:
            raise SearchUnavailable(
                f"{self.provider} search returned an undecodable body",
                reason="bad_payload",
                provider=self.provider,
            ) from exc

        if not isinstance(payload, dict):
            raise SearchUnavailable(
                f"{self.provider} search returned a non-object payload",
                reason="bad_payload",
                provider=self.provider,
            )
        return payload

    def _bad_payload(self, detail: str) -> SearchUnavailable:
        return SearchUnavailable(
            f"{self.provider} search returned an unexpected payload: {detail}",
            reason="bad_payload",
            provider=self.provider,
        )

    def _parse(self, payload: dict[str, Any], fetched_at: datetime) -> list[Source]:
        if self.provider == SearchProvider.TAVILY.value:
            container = payload
            snippet_key = "content"
        else:
            container = payload.get("web")
            if container is None:
                container = {}
            snippet_key = "description"
            if not isinstance(container, dict):
                raise self._bad_payload(f"'web' is {type(container).__name__}, not an object")

        items = container.get("results")
        if items is None:
            items = []
        if not isinstance(items, list):
            raise self._bad_payload(f"'results' is {type(items).__name__}, not a list")

        sources: list[Source] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            url = normalize_url(str(item.get("url") or ""))
            if not url or not is_http_url(url):
                logger.debug(f"Skipping search result without usable URL: {item.get('url')!r}")
                continue
            title = _trim_text(item.get("title"), limit=300) or url
            sources.append(
                Source(
                    url=url,
                    title=title,
                    snippet=_trim_text(item.get(snippet_key)),
                    retrieved_at=fetched_at,
                )
            )
        return sources

    @staticmethod
    def _dedupe(sources: list[Source]) -> list[Source]:
        seen: set[str] = set()
        unique = []
        for source in sources:
            if source.url in seen:
                continue
            seen.add(source.url)
            unique.append(source)
        return unique
