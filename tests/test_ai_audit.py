"""Summary: Tests for AI audit logging and usage totals.

Importance: Ensures token spend is recorded and summed correctly.
Alternatives: Inspect the database by hand.
"""

from __future__ import annotations

from pathlib import Path

from draftpilot.ai import AiResult
from draftpilot.models import TokenUsage
from draftpilot.services import AiAuditLogger, AiAuditService
from draftpilot.storage.sqlite_store import SqliteStore


def test_audit_logger_records_and_totals(tmp_path: Path) -> None:
    """Summary: Verify recorded calls show up in listings and totals.

    Importance: Backs the token usage summary shown to users.
    Alternatives: Track usage only in memory.
    """

    store = SqliteStore(str(tmp_path / "test.db"))
    store.initialize()
    logger = AiAuditLogger(store=store, provider_name="ollama", model_name="llama3")
    logger.record("prompt one", "tone_analysis", AiResult("a", 4), TokenUsage(12, 6))
    logger.record("prompt two", "generate_email", AiResult("b", 9), TokenUsage(20, 80))

    audit = AiAuditService(store=store)
    usage = audit.usage_totals()
    assert usage == TokenUsage(input_tokens=32, output_tokens=86)
    assert usage.total_tokens == 118

    requests = audit.list_requests(10)
    assert [request["purpose"] for request in requests] == ["generate_email", "tone_analysis"]
    assert requests[0]["provider"] == "ollama"
    responses = audit.list_responses(1)
    assert len(responses) == 1
    assert responses[0]["latency_ms"] == 9


class FailingStore(SqliteStore):
    def log_ai_request(self, request: object) -> int:
        raise RuntimeError("disk full")


def test_audit_logger_reports_failed_write(tmp_path: Path) -> None:
    store = FailingStore(str(tmp_path / "test.db"))
    store.initialize()
    logger = AiAuditLogger(store=store, provider_name="mock", model_name="mock")
    assert logger.record("prompt", "tone_analysis", AiResult("a", 1), TokenUsage(1, 1)) is False
