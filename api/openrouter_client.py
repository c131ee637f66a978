import time
import uuid

import openai

from config.config import Config
from models.errors import CompletionFailed
from models.rag_types import PromptMessages
from models.unified_response import CompletionResult, TokenUsage
from utils.logger import get_logger

from .base_client import BaseLLMClient
from .reasoning import strip_reasoning

logger = get_logger(__name__)


class OpenRouterClient(BaseLLMClient):
    """
    Chat-completion client for OpenRouter (or any OpenAI-compatible endpoint).

    Uses the OpenAI SDK with a custom base URL. One attempt per call: the SDK's
    own retries are disabled and the call is bounded by ``timeout_s``.
    """

    provider = "openrouter"

    def __init__(
        self,
        api_key: str,
        model_name: str = "tngtech/deepseek-r1t2-chimera:free",
        *,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout_s: float = 120.0,
        temperature: float = 0.3,
        max_tokens: int = 2048,
        app_title: str = "W9 Search",
        app_url: str = "http://localhost:3000",
        client: openai.AsyncOpenAI | None = None,
        **kwargs,
    ):
        """
        Args:
            api_key: OpenRouter API key
            model_name: Model identifier
            base_url: OpenAI-compatible API root
            timeout_s: Timeout for one completion request
            temperature: Sampling temperature
            max_tokens: Maximum completion tokens
            app_title: Sent as X-Title for OpenRouter attribution
            app_url: Sent as HTTP-Referer for OpenRouter attribution
            client: Pre-built AsyncOpenAI client (used by tests)
        """
        super().__init__(api_key, model_name, **kwargs)
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.client = client or openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_s,
            max_retries=0,
            default_headers={"HTTP-Referer": app_url, "X-Title": app_title},
        )

    @classmethod
    def from_config(cls, config: Config, **kwargs) -> "OpenRouterClient":
        if not config.llm_api_key:
            raise ValueError("OPENROUTER_API_KEY not found in configuration")
        return cls(
            api_key=config.llm_api_key,
            model_name=config.default_model,
            base_url=config.llm_base_url,
            timeout_s=config.llm_timeout_seconds,
            temperature=config.llm_temperature,
            max_tokens=config.llm_max_tokens,
            app_title=config.app_title,
            app_url=config.app_url,
            **kwargs,
        )

    def _failure(self, exc: Exception) -> CompletionFailed:
        if isinstance(exc, openai.APITimeoutError):
            reason = "timeout"
        elif isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
            reason = "auth"
        elif isinstance(exc, openai.RateLimitError):
            reason = "rate_limit"
        elif isinstance(exc, openai.BadRequestError):
            reason = "bad_request"
        else:
            reason = "provider_error"
        return CompletionFailed(f"{type(exc).__name__}: {exc}", reason=reason, provider=self.provider)

    async def complete(self, messages: PromptMessages) -> CompletionResult:
        request_id = str(uuid.uuid4())
        start = time.perf_counter()

        try:
            response = await self.client.chat.completions.create(
                model=self.model_name,
                messages=messages.to_openai(),
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as exc:
            failure = self._failure(exc)
            logger.error(
                f"Completion failed: {failure.reason}",
                extra={
                    "extra_fields": {
                        "request_id": request_id,
                        "model": self.model_name,
                        "error_code": failure.reason,
                        "error_message": failure.message,
                        "retryable": failure.retryable,
                    }
                },
            )
            raise failure from exc

        latency_ms = int((time.perf_counter() - start) * 1000)

        choices = getattr(response, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        if message is None:
            logger.error(
                "Completion response had no message",
                extra={"extra_fields": {"request_id": request_id, "model": self.model_name}},
            )
            raise CompletionFailed(
                "Provider returned no choices", reason="malformed_response", provider=self.provider
            )

        text, stripped = strip_reasoning(message.content)
        if not text:
            raise CompletionFailed(
                "Model returned no visible answer", reason="empty_answer", provider=self.provider
            )

        usage = getattr(response, "usage", None)
        token_usage = TokenUsage(
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            total_tokens=getattr(usage, "total_tokens", 0) or 0,
        )

        logger.info(
            "Completion successful",
            extra={
                "extra_fields": {
                    "request_id": request_id,
                    "model": self.model_name,
                    "latency_ms": latency_ms,
                    "tokens": token_usage.total_tokens,
                    "reasoning_stripped": stripped,
                }
            },
        )

        return CompletionResult(
            request_id=request_id,
            text=text,
            model=getattr(response, "model", None) or self.model_name,
            latency_ms=latency_ms,
            token_usage=token_usage,
            finish_reason=getattr(choices[0], "finish_reason", None),
            reasoning_stripped=stripped,
        )

    async def aclose(self) -> None:
        await self.client.close()
