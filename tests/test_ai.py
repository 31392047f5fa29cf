"""Summary: Tests for AI abstraction layer.

Importance: Ensures AI providers and the factory behave predictably.
Alternatives: Skip AI testing and rely on manual verification.
"""

from __future__ import annotations

import urllib.error
from dataclasses import replace

import pytest

from draftpilot.ai import (
    AiProviderFactory,
    GeminiProvider,
    MockAiProvider,
    OllamaProvider,
    OpenAiProvider,
    estimate_tokens,
)
from draftpilot.config import AppConfig
from draftpilot.errors import RemoteUnavailable


def _config(**overrides: object) -> AppConfig:
    config = AppConfig(
        db_path="test.db",
        ai_provider="mock",
        openai_api_key=None,
        openai_model="gpt-4o-mini",
        ollama_url="http://localhost:11434",
        ollama_model="llama3",
        gemini_api_key=None,
        gemini_model="gemini-2.0-flash",
        ai_timeout_seconds=5.0,
        tone_max_calls=5,
        tone_reset_prefix_chars=50,
        api_host="127.0.0.1",
        api_port=8000,
        api_key="",
    )
    return replace(config, **overrides)


def test_mock_ai_provider_returns_response() -> None:
    """Summary: Verify mock AI provider returns deterministic text.

    Importance: Confirms basic AI abstraction behavior for tests.
    Alternatives: Use live providers in integration tests only.
    """

    provider = MockAiProvider()
    result = provider.generate_text("Hello", "test")
    assert result.text == "[mock:test] Hello"
    assert result.latency_ms >= 0
    assert result.input_tokens is None


def test_factory_selects_provider() -> None:
    assert isinstance(AiProviderFactory(_config()).build(), MockAiProvider)
    assert isinstance(AiProviderFactory(_config(ai_provider="ollama")).build(), OllamaProvider)
    openai = _config(ai_provider="openai", openai_api_key="sk-test")
    assert isinstance(AiProviderFactory(openai).build(), OpenAiProvider)
    gemini = _config(ai_provider="gemini", gemini_api_key="g-test")
    assert isinstance(AiProviderFactory(gemini).build(), GeminiProvider)


@pytest.mark.parametrize("provider", ["openai", "gemini"])
def test_factory_requires_api_keys(provider: str) -> None:
    with pytest.raises(ValueError):
        AiProviderFactory(_config(ai_provider=provider)).build()


def test_model_name_follows_provider() -> None:
    assert _config().model_name == "mock"
    assert _config(ai_provider="gemini").model_name == "gemini-2.0-flash"


def test_http_provider_wraps_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    """Summary: Network failures surface as RemoteUnavailable.

    Importance: Lets services fall back without knowing transport details.
    Alternatives: Let urllib errors propagate.
    """

    def refuse(*args: object, **kwargs: object) -> None:
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr("urllib.request.urlopen", refuse)
    with pytest.raises(RemoteUnavailable):
        OllamaProvider("http://localhost:11434", "llama3", timeout=1).generate_text("hi", "test")


@pytest.mark.parametrize(("text", "expected"), [("", 0), ("abc", 1), ("abcd", 1), ("abcde", 2)])
def test_estimate_tokens_rounds_up(text: str, expected: int) -> None:
    assert estimate_tokens(text) == expected
