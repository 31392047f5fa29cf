"""Summary: Tests for the budgeted tone analysis service.

Importance: Validates remote use, fallbacks, rate limiting and token accounting.
Alternatives: Exercise tone analysis only through the HTTP API.
"""

from __future__ import annotations

import json
from pathlib import Path

from draftpilot.ai import AiProvider, AiResult
from draftpilot.budget import BudgetRegistry
from draftpilot.errors import RemoteUnavailable
from draftpilot.services import AiAuditLogger, ToneAnalysisService
from draftpilot.storage.sqlite_store import SqliteStore
from draftpilot.tone import LexicalToneAnalyzer

REMOTE_PAYLOAD = {
    "tone": "warm",
    "formality": "neutral",
    "sentiment": "positive",
    "clarity": "clear",
    "confidence": 0.92,
    "suggestions": ["Add a clear call to action"],
}


class ScriptedProvider(AiProvider):
    """Summary: Provider returning a fixed reply and counting calls."""

    def __init__(
        self, text: str = "", input_tokens: int | None = None, output_tokens: int | None = None
    ) -> None:
        self.text = text
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.calls = 0

    def generate_text(self, prompt: str, purpose: str) -> AiResult:
        self.calls += 1
        return AiResult(
            text=self.text,
            latency_ms=3,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


class FailingProvider(AiProvider):
    """Summary: Provider that always fails in transport."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error or RemoteUnavailable("connection refused")
        self.calls = 0

    def generate_text(self, prompt: str, purpose: str) -> AiResult:
        self.calls += 1
        raise self.error


def _service(tmp_path: Path, provider: AiProvider, max_calls: int = 5) -> tuple[ToneAnalysisService, SqliteStore]:
    store = SqliteStore(str(tmp_path / "test.db"))
    store.initialize()
    service = ToneAnalysisService(
        ai_provider=provider,
        budgets=BudgetRegistry(max_calls=max_calls),
        audit=AiAuditLogger(store=store, provider_name="scripted", model_name="test"),
    )
    return service, store


def test_remote_result_uses_reported_tokens(tmp_path: Path) -> None:
    provider = ScriptedProvider(json.dumps(REMOTE_PAYLOAD), input_tokens=120, output_tokens=40)
    service, store = _service(tmp_path, provider)
    outcome = service.analyze("Thanks for the update.", session_id="s1")
    assert outcome.mode == "remote"
    assert not outcome.used_fallback
    assert outcome.result.tone == "warm"
    assert outcome.result.confidence == 0.92
    assert outcome.result.suggestions == ("Add a clear call to action",)
    assert outcome.result.input_tokens == 120
    assert outcome.result.output_tokens == 40
    assert outcome.calls_used == 1
    assert outcome.calls_remaining == 4
    assert store.sum_ai_tokens() == (120, 40)


def test_remote_result_estimates_tokens_when_unreported(tmp_path: Path) -> None:
    provider = ScriptedProvider("Sure! " + json.dumps(REMOTE_PAYLOAD))
    service, _ = _service(tmp_path, provider)
    text = "Thanks for the update."
    outcome = service.analyze(text)
    assert outcome.result.input_tokens == -(-len(text) // 4)
    assert outcome.result.output_tokens == -(-len(json.dumps(REMOTE_PAYLOAD)) // 4)


def test_malformed_response_falls_back_and_consumes_budget(tmp_path: Path) -> None:
    provider = ScriptedProvider("I think the tone is nice.")
    service, store = _service(tmp_path, provider)
    text = "Hey thanks so much, this is awesome! btw let me know."
    outcome = service.analyze(text)
    assert outcome.mode == "fallback"
    assert outcome.result == LexicalToneAnalyzer().analyze(text)
    assert outcome.calls_used == 1
    assert len(store.list_ai_requests(10)) == 1


def test_remote_error_falls_back(tmp_path: Path) -> None:
    provider = FailingProvider()
    service, store = _service(tmp_path, provider)
    outcome = service.analyze("Please send the report.")
    assert outcome.mode == "fallback"
    assert outcome.result.confidence == 0.75
    assert outcome.result.output_tokens == 50
    assert outcome.calls_used == 1
    assert store.list_ai_requests(10) == []


def test_unexpected_provider_error_falls_back(tmp_path: Path) -> None:
    service, _ = _service(tmp_path, FailingProvider(KeyError("choices")))
    outcome = service.analyze("Please send the report.")
    assert outcome.mode == "fallback"
    assert outcome.result.suggestions


def test_budget_caps_remote_attempts(tmp_path: Path) -> None:
    """Summary: After the cap, calls never reach the provider.

    Importance: Attempts count whether or not they succeed.
    Alternatives: Count only successful remote calls.
    """

    provider = FailingProvider()
    service, _ = _service(tmp_path, provider, max_calls=5)
    outcomes = [service.analyze("Same draft text.", session_id="s1") for _ in range(8)]
    assert provider.calls == 5
    assert [outcome.mode for outcome in outcomes] == ["fallback"] * 5 + ["rate_limited"] * 3
    assert outcomes[-1].calls_used == 5
    assert outcomes[-1].calls_remaining == 0
    assert outcomes[-1].result.suggestions


def test_budget_is_scoped_per_session(tmp_path: Path) -> None:
    provider = ScriptedProvider(json.dumps(REMOTE_PAYLOAD))
    service, _ = _service(tmp_path, provider, max_calls=1)
    assert service.analyze("Draft one.", session_id="alice").mode == "remote"
    assert service.analyze("Draft one.", session_id="alice").mode == "rate_limited"
    assert service.analyze("Draft one.", session_id="bob").mode == "remote"


def test_reset_budget_restores_remote_calls(tmp_path: Path) -> None:
    provider = ScriptedProvider(json.dumps(REMOTE_PAYLOAD))
    service, _ = _service(tmp_path, provider, max_calls=1)
    service.analyze("Draft one.")
    assert service.analyze("Draft one.").mode == "rate_limited"
    assert service.reset_budget().calls_remaining == 1
    assert service.analyze("Draft one.").mode == "remote"


def test_changed_prefix_resets_budget(tmp_path: Path) -> None:
    provider = ScriptedProvider(json.dumps(REMOTE_PAYLOAD))
    service, _ = _service(tmp_path, provider, max_calls=1)
    service.analyze("Dear Sam, here is the plan.")
    assert service.analyze("Dear Sam, here is the plan.").mode == "rate_limited"
    outcome = service.analyze("Hello Alex, a different draft.")
    assert outcome.mode == "remote"
    assert outcome.calls_used == 1


def test_blank_text_is_analyzed_locally_without_budget(tmp_path: Path) -> None:
    provider = ScriptedProvider(json.dumps(REMOTE_PAYLOAD))
    service, _ = _service(tmp_path, provider)
    outcome = service.analyze("   ")
    assert outcome.mode == "local"
    assert outcome.calls_used == 0
    assert provider.calls == 0
    assert outcome.result.suggestions


class LockedStore(SqliteStore):
    """Summary: Store whose audit writes fail as if the database were locked."""

    def log_ai_request(self, request: object) -> int:
        raise RuntimeError("database is locked")


def test_audit_failure_does_not_break_analysis(tmp_path: Path) -> None:
    """Summary: A failed audit write still returns the analysis.

    Importance: Storage trouble must never surface as a tone analysis error.
    Alternatives: Fail the request when the audit log cannot be written.
    """

    store = LockedStore(str(tmp_path / "test.db"))
    store.initialize()
    service = ToneAnalysisService(
        ai_provider=ScriptedProvider(json.dumps(REMOTE_PAYLOAD)),
        budgets=BudgetRegistry(),
        audit=AiAuditLogger(store=store, provider_name="scripted", model_name="test"),
    )
    remote = service.analyze("Hello there.")
    assert remote.mode == "remote"
    assert remote.result.tone == "warm"

    service = ToneAnalysisService(
        ai_provider=ScriptedProvider("not json"),
        budgets=BudgetRegistry(),
        audit=AiAuditLogger(store=store, provider_name="scripted", model_name="test"),
    )
    assert service.analyze("Hello there.").mode == "fallback"
    assert store.sum_ai_tokens() == (0, 0)


def test_end_session_forgets_budget(tmp_path: Path) -> None:
    provider = ScriptedProvider(json.dumps(REMOTE_PAYLOAD))
    service, _ = _service(tmp_path, provider, max_calls=1)
    service.analyze("Draft one.", session_id="alice")
    assert len(service.budgets) == 1
    service.end_session("alice")
    assert len(service.budgets) == 0
    assert service.budget_for("alice").calls_remaining == 1
    assert len(service.budgets) == 0
