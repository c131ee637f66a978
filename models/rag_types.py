from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from models.unified_response import NormalizedError, TokenUsage


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Query:
    text: str
    web_search: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Source:
    """A web source. ``url`` is the normalized URL and the identity of the row."""

    url: str
    title: str
    snippet: str = ""
    retrieved_at: datetime = field(default_factory=utcnow)
    id: int | None = None


@dataclass(frozen=True)
class GroundingContext:
    sources: tuple[Source, ...] = ()
    text: str = ""
    budget: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.sources

    def source_for_index(self, index: int) -> Source | None:
        """Resolve a 1-based citation index."""
        if 1 <= index <= len(self.sources):
            return self.sources[index - 1]
        return None

    def index_for_url(self, url: str) -> int | None:
        for position, source in enumerate(self.sources, start=1):
            if source.url == url:
                return position
        return None


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "system" | "user"
    content: str


@dataclass(frozen=True)
class PromptMessages:
    messages: tuple[ChatMessage, ...]

    @property
    def system(self) -> ChatMessage:
        return self.messages[0]

    @property
    def user(self) -> ChatMessage:
        return self.messages[-1]

    def to_openai(self) -> list[dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]


@dataclass(frozen=True)
class Citation:
    index: int
    source_url: str
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"source_url": self.source_url, "title": self.title}


@dataclass(frozen=True)
class Answer:
    text: str
    citations: tuple[Citation, ...] = ()
    grounded: bool = False
    dropped_markers: tuple[str, ...] = ()


class QueryState(str, Enum):
    RECEIVED = "received"
    SEARCHING = "searching"
    PERSISTING = "persisting"
    CONTEXT_BUILT = "context_built"
    PROMPTED = "prompted"
    COMPLETING = "completing"
    CITED = "cited"
    DONE = "done"
    ERRORED = "errored"


@dataclass(frozen=True)
class AnswerResult:
    """What the inbound ``answer`` operation hands back to the transport layer."""

    answer_text: str
    citations: tuple[Citation, ...] = ()
    error: NormalizedError | None = None
    grounded: bool = False
    persisted: bool = False
    warnings: tuple[str, ...] = ()
    states: tuple[QueryState, ...] = ()
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str | None = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "answer_text": self.answer_text,
            "citations": [c.to_dict() for c in self.citations],
            "grounded": self.grounded,
            "persisted": self.persisted,
            "warnings": list(self.warnings),
            "model": self.model,
            "usage": self.usage.to_dict(),
        }
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload
