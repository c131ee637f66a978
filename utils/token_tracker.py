from datetime import datetime
from typing import Any

from models.rag_types import AnswerResult
from models.unified_response import TokenUsage


class TokenTracker:
    """
    Accumulates token usage and answer outcomes over a CLI session.
    """

    def __init__(self):
        self.reset()

    def reset(self) -> None:
        self.total_prompt_tokens = 0
        self.total_completion_tokens = 0
        self.total_tokens = 0
        self.requests = 0
        self.grounded_answers = 0
        self.failed_answers = 0

    def update(self, usage: TokenUsage | None) -> None:
        """
        Add the usage of one completion.

        Args:
            usage: Token usage reported by the LLM client (ignored when None)
        """
        if usage is None:
            return

        self.requests += 1
        self.total_prompt_tokens += usage.prompt_tokens
        self.total_completion_tokens += usage.completion_tokens
        self.total_tokens += usage.total_tokens

    def record(self, result: AnswerResult) -> None:
        """Account for a finished answer, successful or not."""
        if result.is_success:
            self.update(result.usage)
            if result.grounded:
                self.grounded_answers += 1
        else:
            self.failed_answers += 1

    def get_summary(self) -> dict[str, Any]:
        return {
            "requests": self.requests,
            "grounded_answers": self.grounded_answers,
            "failed_answers": self.failed_answers,
            "prompt_tokens": self.total_prompt_tokens,
            "completion_tokens": self.total_completion_tokens,
            "total_tokens": self.total_tokens,
            "timestamp": datetime.now().isoformat(),
        }

    def format_summary(self) -> str:
        stats = self.get_summary()
        return (
            f"Requests: {stats['requests']} "
            f"(grounded: {stats['grounded_answers']}, failed: {stats['failed_answers']})\n"
            f"Prompt tokens: {stats['prompt_tokens']}\n"
            f"Completion tokens: {stats['completion_tokens']}\n"
            f"Total tokens: {stats['total_tokens']}"
        )
