"""Pytest configuration and fixtures for the codereviewer.ai tests."""

import os
from pathlib import Path
from typing import Any, Callable, Dict, List
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from codereviewer.agents.code_reviewer import ProviderRouter
from codereviewer.config.settings import ProviderConfig
from codereviewer.models.review_models import ChatMessage, StructuredReview
from codereviewer.services.context_store import ContextStore
from codereviewer.services.git_service import GitService, GitStatus

# ============================================================================
# Settings and Configuration Fixtures
# ============================================================================


@pytest.fixture
def clean_env(monkeypatch):
    """Remove CODEREVIEWER_* variables so Settings only sees defaults."""
    for key in list(os.environ):
        if key.startswith("CODEREVIEWER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(Path(__file__).parent)


@pytest.fixture
def gemini_config() -> ProviderConfig:
    return ProviderConfig(provider="gemini", api_key="test-gemini-key", model="gemini-1.5-pro")


@pytest.fixture
def openai_config() -> ProviderConfig:
    return ProviderConfig(provider="openai", api_key="test-openai-key", model="gpt-4o")


@pytest.fixture
def claude_config() -> ProviderConfig:
    return ProviderConfig(
        provider="claude", api_key="test-claude-key", model="claude-3-5-sonnet-20240620"
    )


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def review_payload() -> Dict[str, Any]:
    """A well-formed review as a backend would return it."""
    return {
        "summary": "Solid code with one risky query",
        "score": 7,
        "issues": [
            {
                "line": 12,
                "type": "security",
                "msg": "SQL built with string formatting",
                "fix": "cursor.execute(query, params)",
            }
        ],
        "optimizations": ["Cache the parsed config"],
    }


@pytest.fixture
def sample_review(review_payload) -> StructuredReview:
    return StructuredReview.model_validate(review_payload)


@pytest.fixture
def make_review() -> Callable[..., StructuredReview]:
    def _make(summary: str = "Looks fine", score: int = 8) -> StructuredReview:
        return StructuredReview(summary=summary, score=score)

    return _make


@pytest.fixture
def chat_history() -> List[ChatMessage]:
    return [
        ChatMessage(role="user", content="What does this function do?"),
        ChatMessage(role="assistant", content="It parses the config file."),
    ]


# ============================================================================
# HTTP Fixtures
# ============================================================================


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.requests: List[httpx.Request] = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


@pytest.fixture
def mock_transport() -> Callable[..., RecordingTransport]:
    """Factory building a RecordingTransport from a handler function."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> RecordingTransport:
        return RecordingTransport(handler)

    return _make


@pytest.fixture
def json_response() -> Callable[..., httpx.Response]:
    def _make(payload: Any, status_code: int = 200) -> httpx.Response:
        return httpx.Response(status_code, json=payload)

    return _make


_BODY_BUILDERS: Dict[str, Callable[[str], Dict[str, Any]]] = {
    "gemini": lambda text: {
        "candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]
    },
    "openai": lambda text: {
        "choices": [{"index": 0, "message": {"role": "assistant", "content": text}}]
    },
    "claude": lambda text: {"content": [{"type": "text", "text": text}], "role": "assistant"},
}


@pytest.fixture
def backend_body() -> Callable[[str, str], Dict[str, Any]]:
    """Successful response body for a backend family wrapping ``text``"""

    def _make(provider: str, text: str) -> Dict[str, Any]:
        return _BODY_BUILDERS[provider](text)

    return _make


@pytest.fixture
def gemini_quota_body() -> Dict[str, Any]:
    return {
        "error": {
            "code": 429,
            "message": "Quota exceeded for metric: generate_content_free_tier_requests",
            "status": "RESOURCE_EXHAUSTED",
        }
    }


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def context_store(tmp_path: Path) -> ContextStore:
    return ContextStore(project_root=tmp_path)


@pytest.fixture
def mock_router(sample_review) -> Mock:
    router = Mock(spec=ProviderRouter)
    router.review_code = AsyncMock(return_value=sample_review)
    router.chat = AsyncMock(return_value="Here is my answer.")
    router.aclose = AsyncMock()
    return router


@pytest.fixture
def mock_git_service() -> Mock:
    service = Mock(spec=GitService)
    service.diff = AsyncMock(return_value="")
    service.status = AsyncMock(return_value=GitStatus(staged=[]))
    return service


@pytest.fixture
def mock_display() -> Mock:
    display = Mock()
    display.show_review = Mock()
    display.show_message = Mock()
    return display


# ============================================================================
# Pytest Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "slow: mark test as slow")
