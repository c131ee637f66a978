from abc import ABC, abstractmethod

from models.rag_types import PromptMessages
from models.unified_response import CompletionResult


class BaseLLMClient(ABC):
    """
    Abstract base class for chat-completion clients.

    Implementations send composed prompt messages to a provider and return only
    the visible answer text; provider-specific output artifacts are removed
    before the result leaves the client.
    """

    provider = "unknown"

    def __init__(self, api_key: str, model_name: str, **kwargs):
        """
        Args:
            api_key: API key for the completion service
            model_name: Model identifier, fixed for the client's lifetime
            **kwargs: Implementation-specific options
        """
        self.api_key = api_key
        self.model_name = model_name

    @abstractmethod
    async def complete(self, messages: PromptMessages) -> CompletionResult:
        """
        Run one chat completion.

        Args:
            messages: System and user messages to send

        Returns:
            CompletionResult with reasoning segments already stripped

        Raises:
            CompletionFailed: provider error, malformed response, timeout or empty answer
        """

    async def aclose(self) -> None:
        """Release network resources held by the client."""
