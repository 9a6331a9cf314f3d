"""
Provider router: sends review and chat requests to the configured backend
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import httpx

from codereviewer.agents.fallback import FallbackEngine, FallbackResult
from codereviewer.agents.parser import parse_review
from codereviewer.agents.prompts import build_review_prompt
from codereviewer.agents.providers import BaseProviderAdapter, get_provider_adapter
from codereviewer.config.settings import ProviderConfig
from codereviewer.exceptions import (
    ConfigurationError,
    ErrorKind,
    ProviderRequestFailed,
)
from codereviewer.models.review_models import ChatMessage, ReviewContext, StructuredReview

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 60.0

# Backend families whose quota errors are retried against substitute models
FALLBACK_FAMILIES = ("gemini",)


class ProviderRouter:
    """Dispatches requests to one of the three backend adapters"""

    def __init__(
        self,
        config: ProviderConfig,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        fallback_engine: Optional[FallbackEngine] = None,
    ):
        """Initialize the router with an explicit provider configuration"""
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.fallback_engine = fallback_engine or FallbackEngine()

    async def __aenter__(self) -> "ProviderRouter":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this router created it"""
        if self._owns_client:
            await self.client.aclose()

    def _get_adapter(self) -> BaseProviderAdapter:
        return get_provider_adapter(self.config, self.client)

    async def _dispatch(
        self,
        adapter: BaseProviderAdapter,
        call: Callable[[str], Awaitable[T]],
        operation: str,
    ) -> FallbackResult[T]:
        model = self.config.model or adapter.default_model
        try:
            if adapter.name in FALLBACK_FAMILIES:
                result = await self.fallback_engine.run(model, call)
            else:
                result = FallbackResult(value=await call(model), model=model)
        except (ProviderRequestFailed, ConfigurationError):
            # Don't wrap our own exceptions
            raise
        except Exception as e:
            logger.error(f"Unexpected error during {operation} with {adapter.name}: {e}")
            raise ProviderRequestFailed(
                message=str(e) or type(e).__name__,
                provider=adapter.name,
                model=model,
                kind=ErrorKind.TRANSPORT,
                original_error=e,
            )

        logger.info(
            f"{operation.capitalize()} answered by {adapter.name}/{result.model}",
            extra={
                "operation": f"{operation}_success",
                "provider": adapter.name,
                "model": result.model,
                "used_fallback": result.used_fallback,
            },
        )
        return result

    async def review_code(
        self,
        code: str,
        file_path: str,
        context: Optional[ReviewContext] = None,
    ) -> StructuredReview:
        """
        Ask the configured backend to review a piece of code

        Args:
            code: Diff or full file content
            file_path: Path shown to the model
            context: Prior findings for the file

        Returns:
            Parsed StructuredReview

        Raises:
            ConfigurationError: provider not set up; no request is made
            ProviderRequestFailed: request or parsing failed
            AllFallbacksExhausted: quota fallback chain ran out
        """
        adapter = self._get_adapter()
        prompt = build_review_prompt(code, file_path, context, depth=self.config.review_depth)

        async def _review(model: str) -> StructuredReview:
            raw = await adapter.complete_review(prompt, model)
            return parse_review(raw, provider=adapter.name, model=model)

        result = await self._dispatch(adapter, _review, "review")
        return result.value

    async def chat(self, message: str, history: Sequence[ChatMessage]) -> str:
        """Send a chat message; ``history`` holds the turns before it"""
        adapter = self._get_adapter()

        async def _chat(model: str) -> str:
            return await adapter.complete_chat(message, history, model)

        result = await self._dispatch(adapter, _chat, "chat")
        return result.value
