"""
Wire-level adapters for the three supported AI backends

Each adapter knows one backend's request schema, auth scheme and response
shape, and hands back plain text. Everything that goes wrong on the way is
raised as ProviderRequestFailed with an ErrorKind so callers never have to
look at httpx or backend JSON.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from codereviewer.agents.prompts import build_chat_prompt
from codereviewer.config.settings import DEFAULT_MODELS, SUPPORTED_PROVIDERS, ProviderConfig
from codereviewer.exceptions import ConfigurationError, ErrorKind, ProviderRequestFailed
from codereviewer.models.review_models import ChatMessage

logger = logging.getLogger(__name__)

SETUP_HINT = 'No AI provider configured. Run "awd init"'


def _remote_error_message(payload: Any) -> Optional[str]:
    """Pull ``error.message`` out of an error body, whatever its wrapping"""
    if isinstance(payload, list) and payload:
        payload = payload[0]
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        status = error.get("status")
        if message and status:
            return f"{status}: {message}"
        return message or status
    if isinstance(error, str):
        return error
    return payload.get("message")


class BaseProviderAdapter(ABC):
    """One backend family: request translation, HTTP call, response walking"""

    name: str = ""
    QUOTA_STATUS_CODES: Tuple[int, ...] = (429,)
    QUOTA_MARKERS: Tuple[str, ...] = ()

    def __init__(self, api_key: str, client: httpx.AsyncClient):
        self.api_key = api_key
        self.client = client

    @property
    def default_model(self) -> str:
        return DEFAULT_MODELS[self.name]

    @abstractmethod
    async def complete_review(self, prompt: str, model: str) -> str:
        """Send a review prompt and return the raw response text"""

    @abstractmethod
    async def complete_chat(
        self, message: str, history: Sequence[ChatMessage], model: str
    ) -> str:
        """Send a chat turn with its history and return the reply text"""

    @abstractmethod
    def _extract_text(self, data: Dict[str, Any]) -> str:
        """Walk the backend's response body down to the generated text"""

    def is_quota_error(self, status_code: Optional[int], message: str) -> bool:
        """Decide whether a failure means the key or account is out of quota"""
        if status_code in self.QUOTA_STATUS_CODES:
            return True
        lowered = message.lower()
        return any(marker in lowered for marker in self.QUOTA_MARKERS)

    async def _post(
        self,
        url: str,
        body: Dict[str, Any],
        model: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> str:
        """POST a request and return the extracted text"""
        logger.debug(
            f"Calling {self.name} with model {model}",
            extra={"operation": "provider_request", "provider": self.name, "model": model},
        )
        try:
            response = await self.client.post(url, json=body, headers=headers, params=params)
        except httpx.TimeoutException as e:
            raise ProviderRequestFailed(
                message=f"{self.name} request timed out",
                provider=self.name,
                model=model,
                kind=ErrorKind.TIMEOUT,
                original_error=e,
            )
        except httpx.RequestError as e:
            raise ProviderRequestFailed(
                message=str(e) or f"Network error calling {self.name}",
                provider=self.name,
                model=model,
                kind=ErrorKind.TRANSPORT,
                original_error=e,
            )

        if response.is_error:
            self._raise_for_status(response, model)

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderRequestFailed(
                message=f"{self.name} returned a non-JSON body",
                provider=self.name,
                model=model,
                status_code=response.status_code,
                kind=ErrorKind.PARSE,
                original_error=e,
            )

        try:
            text = self._extract_text(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise ProviderRequestFailed(
                message=f"Unexpected {self.name} response shape: {_remote_error_message(data) or e!r}",
                provider=self.name,
                model=model,
                status_code=response.status_code,
                kind=ErrorKind.PARSE,
                original_error=e,
            )
        if not isinstance(text, str):
            raise ProviderRequestFailed(
                message=f"Empty response from {self.name}",
                provider=self.name,
                model=model,
                status_code=response.status_code,
                kind=ErrorKind.PARSE,
            )
        return text

    def _raise_for_status(self, response: httpx.Response, model: str) -> None:
        try:
            remote_message = _remote_error_message(response.json())
        except ValueError:
            remote_message = None
        message = remote_message or f"HTTP {response.status_code} from {self.name}: {response.text[:200]}"

        quota = self.is_quota_error(response.status_code, message)
        logger.warning(
            f"{self.name} API error {response.status_code} for model {model}: {message}",
            extra={
                "operation": "provider_request_failed",
                "provider": self.name,
                "model": model,
                "status_code": response.status_code,
            },
        )
        raise ProviderRequestFailed(
            message=message,
            provider=self.name,
            model=model,
            status_code=response.status_code,
            kind=ErrorKind.QUOTA if quota else ErrorKind.HTTP,
        )


class OpenAIAdapter(BaseProviderAdapter):
    """Chat Completions API, bearer-token auth, message array"""

    name = "openai"
    API_URL = "https://api.openai.com/v1/chat/completions"
    QUOTA_MARKERS = ("insufficient_quota", "exceeded your current quota")

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def complete_review(self, prompt: str, model: str) -> str:
        body = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {"type": "json_object"},
        }
        return await self._post(self.API_URL, body, model, headers=self._headers())

    async def complete_chat(
        self, message: str, history: Sequence[ChatMessage], model: str
    ) -> str:
        messages = [{"role": m.role, "content": m.content} for m in history]
        messages.append({"role": "user", "content": message})
        body = {"model": model, "messages": messages}
        return await self._post(self.API_URL, body, model, headers=self._headers())

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


class ClaudeAdapter(BaseProviderAdapter):
    """Anthropic Messages API, x-api-key header, system prompt kept separate"""

    name = "claude"
    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"
    MAX_TOKENS = 1024
    QUOTA_MARKERS = ("credit balance is too low",)

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.API_VERSION,
        }

    async def complete_review(self, prompt: str, model: str) -> str:
        body = {
            "model": model,
            "max_tokens": self.MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        return await self._post(self.API_URL, body, model, headers=self._headers())

    async def complete_chat(
        self, message: str, history: Sequence[ChatMessage], model: str
    ) -> str:
        # The Messages API only takes user/assistant turns
        system_parts = [m.content for m in history if m.role == "system"]
        messages: List[Dict[str, str]] = [
            {"role": m.role, "content": m.content} for m in history if m.role != "system"
        ]
        messages.append({"role": "user", "content": message})
        body: Dict[str, Any] = {
            "model": model,
            "max_tokens": self.MAX_TOKENS,
            "messages": messages,
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        return await self._post(self.API_URL, body, model, headers=self._headers())

    def _extract_text(self, data: Dict[str, Any]) -> str:
        blocks = [block["text"] for block in data["content"] if block.get("type", "text") == "text"]
        if not blocks:
            raise IndexError("no text blocks in content")
        return "".join(blocks)


class GeminiAdapter(BaseProviderAdapter):
    """generateContent API, key in the query string, content-parts array"""

    name = "gemini"
    API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    QUOTA_MARKERS = ("resource_exhausted", "quota exceeded", "exceeded your current quota")

    async def _generate(self, text: str, model: str) -> str:
        body = {"contents": [{"parts": [{"text": text}]}]}
        return await self._post(
            self.API_URL.format(model=model),
            body,
            model,
            params={"key": self.api_key},
        )

    async def complete_review(self, prompt: str, model: str) -> str:
        return await self._generate(prompt, model)

    async def complete_chat(
        self, message: str, history: Sequence[ChatMessage], model: str
    ) -> str:
        return await self._generate(build_chat_prompt(message, history), model)

    def _extract_text(self, data: Dict[str, Any]) -> str:
        return data["candidates"][0]["content"]["parts"][0]["text"]


ADAPTERS = {
    "openai": OpenAIAdapter,
    "gemini": GeminiAdapter,
    "claude": ClaudeAdapter,
}


def get_provider_adapter(config: ProviderConfig, client: httpx.AsyncClient) -> BaseProviderAdapter:
    """Pick the adapter for the configured backend family

    Raises:
        ConfigurationError: when no supported provider or no API key is configured
    """
    if config.provider not in SUPPORTED_PROVIDERS:
        logger.error(f"Unsupported AI provider: {config.provider!r}")
        raise ConfigurationError(
            message=SETUP_HINT,
            config_key="provider",
            details={"provider": config.provider},
        )
    if not config.is_configured():
        raise ConfigurationError(
            message=f"No API key configured for {config.provider}. Run \"awd init\"",
            config_key="api_key",
            details={"provider": config.provider},
        )
    return ADAPTERS[config.provider](api_key=config.api_key, client=client)
