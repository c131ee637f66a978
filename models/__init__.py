"""
Value objects shared across the answering pipeline.
"""

from .rag_types import (
    Answer,
    AnswerResult,
    ChatMessage,
    Citation,
    GroundingContext,
    PromptMessages,
    Query,
    QueryState,
    Source,
)
from .unified_response import CompletionResult, NormalizedError, TokenUsage

__all__ = [
    "Answer",
    "AnswerResult",
    "ChatMessage",
    "Citation",
    "CompletionResult",
    "GroundingContext",
    "NormalizedError",
    "PromptMessages",
    "Query",
    "QueryState",
    "Source",
    "TokenUsage",
]
