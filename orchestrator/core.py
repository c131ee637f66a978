"""
RagOrchestrator - answering pipeline for w9-search.

Key guarantees:
- answer() never raises for provider or storage failures; a CompletionFailed
  becomes AnswerResult.error, everything else degrades to a soft warning
- web_search=False never touches the search provider or the source store
- every citation returned resolves to a source of the context that was sent
- cancellation is never swallowed, so abandoned requests abort in-flight calls
"""

import asyncio
import time
from collections.abc import Sequence

from api.base_client import BaseLLMClient
from config.config import Config
from db.source_store import SourceStore
from models.errors import CompletionFailed, SearchUnavailable, StoreWriteFailed
from models.rag_types import (
    AnswerResult,
    GroundingContext,
    Query,
    QueryState,
    Source,
)
from models.unified_response import NormalizedError
from orchestrator.citation_mapper import CitationMapper
from orchestrator.context_builder import ContextBuilder
from orchestrator.prompt_composer import PromptComposer
from tools.web.search_client import WebSearchClient
from utils.logger import get_logger

logger = get_logger(__name__)

WARNING_SEARCH_UNAVAILABLE = "search_unavailable"
WARNING_STORE_WRITE_FAILED = "store_write_failed"
WARNING_NO_SOURCES = "no_sources_found"


class _StateTrace:
    def __init__(self, query: Query):
        self.query = query
        self.states: list[QueryState] = [QueryState.RECEIVED]

    def enter(self, state: QueryState) -> None:
        self.states.append(state)
        logger.debug(
            f"Query entered state {state.value}",
            extra={"extra_fields": {"state": state.value, "query": self.query.text[:100]}},
        )


class RagOrchestrator:
    def __init__(
        self,
        *,
        llm_client: BaseLLMClient,
        search_client: WebSearchClient | None = None,
        store: SourceStore | None = None,
        context_builder: ContextBuilder | None = None,
        prompt_composer: PromptComposer | None = None,
        citation_mapper: CitationMapper | None = None,
        max_results: int = 5,
        context_budget: int = 6000,
        store_timeout_s: float = 5.0,
        reuse_stored_sources: bool = False,
    ):
        self.llm_client = llm_client
        self.search_client = search_client
        self.store = store
        self.context_builder = context_builder or ContextBuilder()
        self.prompt_composer = prompt_composer or PromptComposer()
        self.citation_mapper = citation_mapper or CitationMapper()
        self.max_results = max_results
        self.context_budget = context_budget
        self.store_timeout_s = store_timeout_s
        self.reuse_stored_sources = reuse_stored_sources

    @classmethod
    def from_config(cls, config: Config) -> "RagOrchestrator":
        """Wire the concrete OpenRouter, web search and SQL store collaborators."""
        from api.openrouter_client import OpenRouterClient

        return cls(
            llm_client=OpenRouterClient.from_config(config),
            search_client=WebSearchClient.from_config(config),
            store=SourceStore.from_config(config),
            max_results=config.search_max_results,
            context_budget=config.context_budget_chars,
            store_timeout_s=config.store_timeout_seconds,
            reuse_stored_sources=config.reuse_stored_sources,
        )

    # ---------- steps ----------

    async def _search(self, query: Query) -> list[Source]:
        if self.search_client is None:
            raise SearchUnavailable("No search client configured", reason="not_configured")
        return await self.search_client.search(query.text, self.max_results)

    async def _persist(self, candidates: Sequence[Source]) -> bool:
        if self.store is None or not candidates:
            return False
        try:
            await asyncio.wait_for(self.store.aupsert_many(candidates), self.store_timeout_s)
            return True
        except Exception as exc:
            if isinstance(exc, StoreWriteFailed):
                reason = exc.reason
            elif isinstance(exc, asyncio.TimeoutError):
                reason = "timeout"
            else:
                reason = type(exc).__name__
            logger.error(
                "Source store write failed; answer will be returned unsaved",
                extra={
                    "extra_fields": {
                        "reason": reason,
                        "error": str(exc),
                        "source_count": len(candidates),
                    }
                },
            )
            return False

    async def _stored_matches(self, query: Query) -> list[Source]:
        if self.store is None:
            return []
        try:
            return await asyncio.wait_for(
                self.store.asearch(query.text, self.max_results), self.store_timeout_s
            )
        except Exception as exc:
            logger.warning(
                "Stored source lookup failed",
                extra={"extra_fields": {"error": str(exc), "error_type": type(exc).__name__}},
            )
            return []

    # ---------- public API ----------

    async def answer(self, query: str, web_search: bool) -> AnswerResult:
        """
        Answer ``query``, grounding it in web sources when ``web_search`` is set.

        Args:
            query: User question
            web_search: Whether to retrieve and cite web sources

        Returns:
            AnswerResult: grounded answer, ungrounded answer, or a completion error
        """
        q = Query(text=(query or "").strip(), web_search=bool(web_search))
        trace = _StateTrace(q)
        start = time.perf_counter()

        if not q.text:
            trace.enter(QueryState.ERRORED)
            return AnswerResult(
                answer_text="",
                error=NormalizedError(code="bad_request", message="Query is empty", provider="core"),
                states=tuple(trace.states),
            )

        warnings: list[str] = []
        candidates: list[Source] = []
        persisted = False

        if q.web_search:
            trace.enter(QueryState.SEARCHING)
            try:
                candidates = await self._search(q)
            except SearchUnavailable as exc:
                trace.enter(QueryState.ERRORED)
                warnings.append(WARNING_SEARCH_UNAVAILABLE)
                logger.warning(
                    "Search unavailable; answering without sources",
                    extra={
                        "extra_fields": {
                            "reason": exc.reason,
                            "provider": exc.provider,
                            "error": exc.message,
                        }
                    },
                )
            else:
                if not candidates:
                    warnings.append(WARNING_NO_SOURCES)
                # stored matches are looked up before this query's writes land
                stored = await self._stored_matches(q) if self.reuse_stored_sources else []
                trace.enter(QueryState.PERSISTING)
                persisted = await self._persist(candidates)
                if candidates and not persisted and self.store is not None:
                    warnings.append(WARNING_STORE_WRITE_FAILED)
                candidates = candidates + stored

        context = (
            self.context_builder.build(candidates, self.context_budget)
            if candidates
            else GroundingContext(budget=self.context_budget)
        )
        trace.enter(QueryState.CONTEXT_BUILT)

        messages = self.prompt_composer.compose(q.text, context)
        trace.enter(QueryState.PROMPTED)

        trace.enter(QueryState.COMPLETING)
        try:
            completion = await self.llm_client.complete(messages)
        except CompletionFailed as exc:
            trace.enter(QueryState.ERRORED)
            logger.error(
                "Query failed at completion",
                extra={
                    "extra_fields": {
                        "reason": exc.reason,
                        "web_search": q.web_search,
                        "latency_ms": int((time.perf_counter() - start) * 1000),
                    }
                },
            )
            return AnswerResult(
                answer_text="",
                error=exc.to_normalized(),
                persisted=persisted,
                warnings=tuple(warnings),
                states=tuple(trace.states),
                model=getattr(self.llm_client, "model_name", None),
            )

        answer = self.citation_mapper.map(completion.text, context)
        trace.enter(QueryState.CITED)
        trace.enter(QueryState.DONE)

        logger.info(
            "Query answered",
            extra={
                "extra_fields": {
                    "web_search": q.web_search,
                    "grounded": answer.grounded,
                    "sources_in_context": len(context.sources),
                    "citations": len(answer.citations),
                    "dropped_markers": len(answer.dropped_markers),
                    "persisted": persisted,
                    "warnings": warnings,
                    "latency_ms": int((time.perf_counter() - start) * 1000),
                }
            },
        )

        return AnswerResult(
            answer_text=answer.text,
            citations=answer.citations,
            grounded=answer.grounded,
            persisted=persisted,
            warnings=tuple(warnings),
            states=tuple(trace.states),
            usage=completion.token_usage,
            model=completion.model,
        )

    async def recent_sources(self, limit: int = 20) -> list[Source]:
        """Most recently stored sources, for display."""
        if self.store is None:
            return []
        return await self.store.arecent(limit)

    async def aclose(self) -> None:
        await self.llm_client.aclose()
        if self.store is not None:
            self.store.close()
