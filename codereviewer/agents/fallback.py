"""
Quota fallback for the Gemini backend family
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
)

from codereviewer.exceptions import AllFallbacksExhausted, ProviderRequestFailed

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Tried in this order once the configured model runs out of quota
GEMINI_FALLBACK_MODELS = (
    "gemini-2.5-flash",
    "gemini-2.0-flash",
    "gemini-1.5-flash",
    "gemini-1.5-pro",
)


@dataclass
class FallbackResult(Generic[T]):
    """Outcome of a call routed through the fallback chain"""

    value: T
    model: str
    used_fallback: bool = False


class FallbackEngine:
    """Retry a quota-exhausted call against an ordered list of substitute models"""

    def __init__(self, models: Optional[Sequence[str]] = None):
        self.models: List[str] = list(GEMINI_FALLBACK_MODELS if models is None else models)

    def candidates_for(self, primary_model: str) -> List[str]:
        """Substitute models to try, without the one that just failed"""
        return [model for model in self.models if model != primary_model]

    async def run(
        self,
        primary_model: str,
        call: Callable[[str], Awaitable[T]],
    ) -> FallbackResult[T]:
        """
        Call the primary model, falling back on quota exhaustion

        Args:
            primary_model: Configured model identifier
            call: Async callable performing the request for a given model

        Returns:
            FallbackResult with the value and the model that produced it

        Raises:
            ProviderRequestFailed: primary failed for a reason other than quota
            AllFallbacksExhausted: every substitute failed as well
        """
        try:
            return FallbackResult(value=await call(primary_model), model=primary_model)
        except ProviderRequestFailed as e:
            if not e.is_quota_exhausted:
                raise
            primary_error = e

        candidates = self.candidates_for(primary_model)
        logger.warning(
            f"Quota exhausted for {primary_model}, trying fallback models: {candidates}",
            extra={"operation": "fallback_start", "model": primary_model},
        )
        if not candidates:
            raise AllFallbacksExhausted(
                message=f"Quota exhausted for {primary_model} and no fallback models are available",
                attempted_models=[],
                last_error=primary_error,
            )

        attempted: List[str] = []
        retrying = AsyncRetrying(
            stop=stop_after_attempt(len(candidates)),
            retry=retry_if_exception_type(ProviderRequestFailed),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    model = candidates[attempt.retry_state.attempt_number - 1]
                    attempted.append(model)
                    value = await call(model)
        except ProviderRequestFailed as e:
            raise AllFallbacksExhausted(
                message=f"All fallback models failed. Last error: {e.message}",
                attempted_models=attempted,
                last_error=e,
            )

        logger.info(
            f"Fallback model {model} answered in place of {primary_model}",
            extra={"operation": "fallback_success", "model": model},
        )
        return FallbackResult(value=value, model=model, used_fallback=True)
