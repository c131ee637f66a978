"""Error kinds of the answering pipeline.

Only ``CompletionFailed`` aborts a query. The other kinds are degraded around by
the orchestrator and surface as soft warnings or log records.
"""

from models.unified_response import NormalizedError


class RagError(Exception):
    """Base class for pipeline errors; ``reason`` is a short machine-readable code."""

    provider = "core"
    retryable = False

    def __init__(self, message: str, *, reason: str = "unknown", provider: str | None = None):
        super().__init__(message)
        self.message = message
        self.reason = reason
        if provider is not None:
            self.provider = provider

    def to_normalized(self) -> NormalizedError:
        return NormalizedError(
            code=self.reason,
            message=self.message,
            provider=self.provider,
            retryable=self.retryable,
        )


class SearchUnavailable(RagError):
    """The search provider failed or timed out. Recovered by answering ungrounded."""

    provider = "search"
    retryable = True


class StoreWriteFailed(RagError):
    """Persisting sources failed. Recovered silently; the answer is still returned."""

    provider = "store"


class CompletionFailed(RagError):
    """The LLM call failed or produced no usable answer. Fatal to the query."""

    provider = "llm"

    def __init__(self, message: str, *, reason: str = "provider_error", provider: str | None = None):
        super().__init__(message, reason=reason, provider=provider)
        self.retryable = reason in {"timeout", "rate_limit", "provider_error"}


class MalformedCitation(RagError):
    """A citation marker in model output did not resolve. Never propagated."""

    provider = "citations"

    def __init__(self, marker: str, *, reason: str = "unresolved_marker"):
        super().__init__(f"Unresolved citation marker {marker!r}", reason=reason)
        self.marker = marker
