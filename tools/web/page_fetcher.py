"""
Page-content enrichment for search results.

Provider snippets are short. For the top few results the page itself is fetched
and its main text, extracted with trafilatura, replaces the snippet. A page that
cannot be fetched or yields no text keeps the provider snippet.
"""

import asyncio
import dataclasses
import re
from collections.abc import Sequence

import httpx
import trafilatura

from models.rag_types import Source
from utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; w9-search/0.1)"
PAGE_MAX_CHARS = 1000

_WHITESPACE = re.compile(r"\s+")


class PageFetcher:
    """Fetches result pages, one bounded attempt each, and extracts their body text."""

    def __init__(
        self,
        *,
        timeout_s: float = 10.0,
        max_chars: int = PAGE_MAX_CHARS,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout_s = timeout_s
        self.max_chars = max_chars
        self.user_agent = user_agent
        self._transport = transport

    def clean(self, raw_html: str) -> str:
        """
        Extract readable text from an HTML document.

        Returns:
            str: Whitespace-collapsed text capped at ``max_chars``, or "" when nothing was found
        """
        extracted = trafilatura.extract(
            raw_html,
            include_comments=False,
            include_tables=False,
            include_images=False,
            include_links=False,
            favor_precision=True,
            output_format="txt",
        ) or ""

        text = _WHITESPACE.sub(" ", extracted).strip()
        if len(text) <= self.max_chars:
            return text
        return text[: self.max_chars - 3].rstrip() + "..."

    async def fetch_text(self, client: httpx.AsyncClient, url: str) -> str:
        """Fetch ``url`` and return its extracted text, or "" on any fetch failure."""
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.info(
                "Page fetch failed; keeping provider snippet",
                extra={"extra_fields": {"url": url, "error_type": type(exc).__name__}},
            )
            return ""

        content_type = response.headers.get("content-type", "")
        if content_type and "html" not in content_type.lower():
            logger.debug(f"Skipping non-HTML page {url} ({content_type})")
            return ""

        return self.clean(response.text)

    async def enrich(self, sources: Sequence[Source], limit: int) -> list[Source]:
        """
        Replace the snippet of the first ``limit`` sources with their page text.

        Pages are fetched concurrently. Order and the remaining sources are untouched.
        """
        enriched = list(sources)
        targets = enriched[: max(0, limit)]
        if not targets:
            return enriched

        async with httpx.AsyncClient(
            timeout=self.timeout_s,
            follow_redirects=True,
            headers={"User-Agent": self.user_agent, "Accept": "text/html,*/*;q=0.8"},
            transport=self._transport,
        ) as client:
            texts = await asyncio.gather(*(self.fetch_text(client, s.url) for s in targets))

        fetched = 0
        for position, text in enumerate(texts):
            if text:
                enriched[position] = dataclasses.replace(enriched[position], snippet=text)
                fetched += 1

        logger.info(
            "Fetched page content",
            extra={"extra_fields": {"attempted": len(targets), "fetched": fetched}},
        )
        return enriched
