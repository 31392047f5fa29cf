"""Summary: AI provider abstraction and implementations.

Importance: Centralizes LLM access for portability and auditability.
Alternatives: Call provider SDKs directly in each service.
"""

from __future__ import annotations

import json
import math
import time
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from draftpilot.config import AppConfig
from draftpilot.errors import RemoteUnavailable


@dataclass(frozen=True)
class AiResult:
    """Summary: Captures AI output and metadata.

    Importance: Normalizes downstream handling of AI responses.
    Alternatives: Use dicts or provider response objects.
    """

    text: str
    latency_ms: int
    input_tokens: int | None = None
    output_tokens: int | None = None


class AiProvider(ABC):
    """Summary: Abstract interface for AI text generation.

    Importance: Allows switching between local and cloud LLMs without refactors.
    Alternatives: Use a single vendor SDK and accept lock-in risk.
    """

    @abstractmethod
    def generate_text(self, prompt: str, purpose: str) -> AiResult:
        """Summary: Generate a response for a prompt.

        Importance: Standardizes AI outputs for downstream services.
        Alternatives: Return provider-specific response objects directly.
        """


class MockAiProvider(AiProvider):
    """Summary: Deterministic AI provider for local testing.

    Importance: Enables offline workflows and repeatable tests.
    Alternatives: Use a small local LLM for all development tasks.
    """

    def generate_text(self, prompt: str, purpose: str) -> AiResult:
        """Summary: Return a canned response echoing the prompt.

        Importance: Allows core flows without external dependencies.
        Alternatives: Use fixture-based responses loaded from files.
        """

        started = time.time()
        response = f"[mock:{purpose}] {prompt[:240]}"
        latency_ms = int((time.time() - started) * 1000)
        return AiResult(text=response, latency_ms=latency_ms)


class OllamaProvider(AiProvider):
    """Summary: AI provider that targets a local Ollama server.

    Importance: Supports privacy-sensitive drafting on local hardware.
    Alternatives: Use llama.cpp directly with a Python binding.
    """

    def __init__(self, base_url: str, model: str, timeout: float = 60) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout

    def generate_text(self, prompt: str, purpose: str) -> AiResult:
        """Summary: Generate text using the Ollama HTTP API.

        Importance: Enables local inference for drafts and tone checks.
        Alternatives: Use Ollama's CLI and parse its output.
        """

        payload = {"model": self._model, "prompt": prompt, "stream": False}
        started = time.time()
        raw = _post_json(
            f"{self._base_url}/api/generate",
            payload,
            headers={},
            timeout=self._timeout,
            label="Ollama",
        )
        latency_ms = int((time.time() - started) * 1000)
        return AiResult(
            text=raw.get("response", ""),
            latency_ms=latency_ms,
            input_tokens=raw.get("prompt_eval_count"),
            output_tokens=raw.get("eval_count"),
        )


class OpenAiProvider(AiProvider):
    """Summary: AI provider using OpenAI's chat completion API.

    Importance: Enables higher-quality drafts and tone analysis when configured.
    Alternatives: Use other cloud providers or a local model.
    """

    def __init__(self, api_key: str, model: str, timeout: float = 60) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    def generate_text(self, prompt: str, purpose: str) -> AiResult:
        """Summary: Generate text using OpenAI chat completions.

        Importance: Enables cloud-grade reasoning for key workflows.
        Alternatives: Use the responses API or a different provider.
        """

        payload = {
            "model": self._model,
            "messages": [
                {"role": "system", "content": f"You are DraftPilot. Task: {purpose}."},
                {"role": "user", "content": prompt},
            ],
            "temperature": 0.2,
        }
        started = time.time()
        raw = _post_json(
            "https://api.openai.com/v1/chat/completions",
            payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            label="OpenAI",
        )
        latency_ms = int((time.time() - started) * 1000)
        try:
            content = raw["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RemoteUnavailable(f"OpenAI response missing content: {exc}") from exc
        usage = raw.get("usage") or {}
        return AiResult(
            text=content,
            latency_ms=latency_ms,
            input_tokens=usage.get("prompt_tokens"),
            output_tokens=usage.get("completion_tokens"),
        )


class GeminiProvider(AiProvider):
    """Summary: AI provider using the Gemini generateContent REST API.

    Importance: Supports the Gemini models the drafting prompts were tuned on.
    Alternatives: Use the google-generativeai SDK.
    """

    def __init__(self, api_key: str, model: str, timeout: float = 60) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout

    def generate_text(self, prompt: str, purpose: str) -> AiResult:
        """Summary: Generate text using Gemini generateContent.

        Importance: Keeps Gemini usage behind the shared provider interface.
        Alternatives: Use a chat session with history.
        """

        query = urllib.parse.urlencode({"key": self._api_key})
        url = (
            "https://generativelanguage.googleapis.com/v1beta/models/"
            f"{self._model}:generateContent?{query}"
        )
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": 1, "topP": 0.95, "topK": 40},
        }
        started = time.time()
        raw = _post_json(url, payload, headers={}, timeout=self._timeout, label="Gemini")
        latency_ms = int((time.time() - started) * 1000)
        try:
            parts = raw["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as exc:
            raise RemoteUnavailable(f"Gemini response missing candidates: {exc}") from exc
        text = "".join(part.get("text", "") for part in parts)
        usage = raw.get("usageMetadata") or {}
        return AiResult(
            text=text,
            latency_ms=latency_ms,
            input_tokens=usage.get("promptTokenCount"),
            output_tokens=usage.get("candidatesTokenCount"),
        )


@dataclass(frozen=True)
class AiProviderFactory:
    """Summary: Factory for selecting AI providers from configuration.

    Importance: Keeps provider selection logic centralized.
    Alternatives: Wire providers manually at the application entrypoint.
    """

    config: AppConfig

    def build(self) -> AiProvider:
        """Summary: Construct the configured AI provider.

        Importance: Ensures consistent provider selection across services.
        Alternatives: Use dependency injection frameworks.
        """

        timeout = self.config.ai_timeout_seconds
        if self.config.ai_provider == "ollama":
            return OllamaProvider(self.config.ollama_url, self.config.ollama_model, timeout)
        if self.config.ai_provider == "openai":
            if not self.config.openai_api_key:
                raise ValueError("OPENAI_API_KEY is required for openai provider")
            return OpenAiProvider(self.config.openai_api_key, self.config.openai_model, timeout)
        if self.config.ai_provider == "gemini":
            if not self.config.gemini_api_key:
                raise ValueError("GEMINI_API_KEY is required for gemini provider")
            return GeminiProvider(self.config.gemini_api_key, self.config.gemini_model, timeout)
        return MockAiProvider()


def estimate_tokens(text: str) -> int:
    """Summary: Estimate tokens from text length.

    Importance: Provides a rough usage metric when providers report none.
    Alternatives: Use provider token counters or tiktoken.
    """

    return math.ceil(len(text) / 4)


def _post_json(
    url: str, payload: dict[str, Any], headers: dict[str, str], timeout: float, label: str
) -> dict[str, Any]:
    """Summary: POST a JSON payload and decode the JSON reply.

    Importance: Shares transport error handling across HTTP providers.
    Alternatives: Use an HTTP client library per provider.
    """

    request = urllib.request.Request(
        url=url,
        data=json.dumps(payload).encode("utf-8"),
        headers={"Content-Type": "application/json", **headers},
        method="POST",
    )
    try:
        with urllib.request.urlopen(request, timeout=timeout) as response:
            return json.loads(response.read().decode("utf-8"))
    except (urllib.error.URLError, TimeoutError) as exc:
        raise RemoteUnavailable(f"{label} request failed: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise RemoteUnavailable(f"{label} returned invalid JSON: {exc}") from exc
