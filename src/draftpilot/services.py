"""Summary: Core application services for DraftPilot.

Importance: Orchestrates tone analysis, templating, and AI-driven drafting flows.
Alternatives: Build a full service layer with dependency injection framework.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import json
import logging
import math
from datetime import datetime
from typing import Mapping

from draftpilot.ai import AiProvider, AiResult, estimate_tokens
from draftpilot.budget import BudgetRegistry, BudgetSnapshot
from draftpilot.drafting import build_email_prompt, clean_email_response, fallback_email
from draftpilot.errors import BudgetExhausted, MalformedRemoteResponse, RemoteUnavailable
from draftpilot.models import (
    AiRequest,
    AiResponse,
    EmailRequest,
    EmailTemplate,
    GeneratedEmail,
    RenderedTemplate,
    TemplateKeyMismatch,
    TokenUsage,
    ToneAnalysisOutcome,
    ToneAnalysisResult,
)
from draftpilot.storage.sqlite_store import SqliteStore
from draftpilot.templates import (
    apply_template,
    check_template_keys,
    complete_template_data,
    get_builtin_template,
    list_templates,
)
from draftpilot.tone import LexicalToneAnalyzer, build_tone_prompt, parse_tone_payload


logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"
MAX_ROW_ID = 2**63 - 1


@dataclass(frozen=True)
class AiAuditLogger:
    """Summary: Records AI requests and responses in storage.

    Importance: Provides auditability and token accounting for AI usage.
    Alternatives: Rely solely on logs without persistence.
    """

    store: SqliteStore
    provider_name: str
    model_name: str

    def record(self, prompt: str, purpose: str, result: AiResult, usage: TokenUsage) -> bool:
        """Summary: Persist one provider exchange.

        Importance: A failed audit write is logged and never interrupts the caller.
        Alternatives: Let storage errors propagate to the request.
        """

        request = AiRequest(
            provider=self.provider_name,
            model=self.model_name,
            prompt=prompt,
            purpose=purpose,
            timestamp=datetime.utcnow(),
        )
        try:
            request_id = self.store.log_ai_request(request)
            self.store.log_ai_response(
                AiResponse(
                    request_id=request_id,
                    response_text=result.text,
                    latency_ms=result.latency_ms,
                    input_tokens=usage.input_tokens,
                    output_tokens=usage.output_tokens,
                )
            )
        except Exception:
            logger.warning("Failed to record AI %s exchange.", purpose, exc_info=True)
            return False
        return True


@dataclass(frozen=True)
class ToneAnalysisService:
    """Summary: Analyzes email tone with a budgeted remote call and a local fallback.

    Importance: Keeps tone feedback available when the AI provider is slow, broken or capped.
    Alternatives: Call the AI provider unconditionally and surface errors to the user.
    """

    ai_provider: AiProvider
    budgets: BudgetRegistry
    audit: AiAuditLogger
    analyzer: LexicalToneAnalyzer = field(default_factory=LexicalToneAnalyzer)

    def analyze(self, text: str, session_id: str = DEFAULT_SESSION) -> ToneAnalysisOutcome:
        """Summary: Produce a tone assessment for a draft.

        Importance: Always returns a fully populated result, tagged with how it was produced.
        Alternatives: Raise when the budget is exhausted.
        """

        if not text.strip():
            snapshot = self.budgets.snapshot(session_id)
            return self._outcome(self.analyzer.analyze(text), "local", snapshot)

        try:
            snapshot = self.budgets.acquire(session_id, text)
        except BudgetExhausted as exc:
            logger.warning("Tone analysis for session %s rate limited: %s", session_id, exc)
            snapshot = self.budgets.snapshot(session_id)
            return self._outcome(self.analyzer.analyze(text), "rate_limited", snapshot)

        prompt = build_tone_prompt(text)
        try:
            ai_result = self.ai_provider.generate_text(prompt, purpose="tone_analysis")
        except RemoteUnavailable as exc:
            logger.warning("Tone provider unavailable, using local analysis: %s", exc)
            return self._outcome(self.analyzer.analyze(text), "fallback", snapshot)
        except Exception:
            logger.warning("Tone provider failed, using local analysis.", exc_info=True)
            return self._outcome(self.analyzer.analyze(text), "fallback", snapshot)

        try:
            payload = parse_tone_payload(ai_result.text)
        except MalformedRemoteResponse as exc:
            logger.warning("Tone response malformed, using local analysis: %s", exc)
            local = self.analyzer.analyze(text)
            self.audit.record(
                prompt,
                "tone_analysis",
                ai_result,
                TokenUsage(local.input_tokens, local.output_tokens),
            )
            return self._outcome(local, "fallback", snapshot)

        usage = TokenUsage(
            input_tokens=_reported_or(ai_result.input_tokens, math.ceil(len(text) / 4)),
            output_tokens=_reported_or(
                ai_result.output_tokens, math.ceil(len(json.dumps(payload)) / 4)
            ),
        )
        result = ToneAnalysisResult(
            tone=payload["tone"],
            formality=payload["formality"],
            sentiment=payload["sentiment"],
            clarity=payload["clarity"],
            confidence=payload["confidence"],
            suggestions=tuple(payload["suggestions"]),
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
        )
        self.audit.record(prompt, "tone_analysis", ai_result, usage)
        logger.info(
            "Analyzed tone remotely for session %s (%s/%s calls).",
            session_id,
            snapshot.calls_used,
            snapshot.max_calls,
        )
        return self._outcome(result, "remote", snapshot)

    def analyze_locally(self, text: str) -> ToneAnalysisResult:
        return self.analyzer.analyze(text)

    def reset_budget(self, session_id: str = DEFAULT_SESSION) -> BudgetSnapshot:
        """Summary: Restore the full remote call budget for a session.

        Importance: Called when the draft under analysis changes materially.
        Alternatives: Wait for a new session to start.
        """

        logger.info("Reset tone budget for session %s.", session_id)
        return self.budgets.reset(session_id)

    def budget_for(self, session_id: str = DEFAULT_SESSION) -> BudgetSnapshot:
        return self.budgets.snapshot(session_id)

    def end_session(self, session_id: str) -> None:
        """Summary: Forget the budget of a finished composition session.

        Importance: Keeps the registry sized to live sessions.
        Alternatives: Rely on least-recently-used eviction alone.
        """

        self.budgets.discard(session_id)
        logger.info("Ended tone session %s.", session_id)

    @staticmethod
    def _outcome(
        result: ToneAnalysisResult, mode: str, snapshot: BudgetSnapshot
    ) -> ToneAnalysisOutcome:
        return ToneAnalysisOutcome(
            result=result,
            mode=mode,
            calls_used=snapshot.calls_used,
            calls_remaining=snapshot.calls_remaining,
            max_calls=snapshot.max_calls,
        )


@dataclass(frozen=True)
class TemplateService:
    """Summary: Manages built-in and user templates and applies them.

    Importance: Gives the composer one place to find and fill templates.
    Alternatives: Let clients substitute placeholders themselves.
    """

    store: SqliteStore

    def list_templates(self) -> list[EmailTemplate]:
        """Summary: Return built-in templates followed by user templates.

        Importance: Powers template pickers in the API and CLI.
        Alternatives: Serve built-in and user templates from separate endpoints.
        """

        user_templates = [stored.to_template() for stored in self.store.list_templates()]
        return list_templates() + user_templates

    def get_template(self, template_id: str) -> EmailTemplate:
        builtin = get_builtin_template(template_id)
        if builtin:
            return builtin
        stored = self.store.get_template(_user_template_id(template_id))
        if not stored:
            raise KeyError(f"Template {template_id} not found")
        return stored.to_template()

    def create_template(self, template: EmailTemplate, is_default: bool = False) -> EmailTemplate:
        self.check_keys(template)
        template_id = self.store.create_template(template, is_default=is_default)
        logger.info("Created template %s (%s).", template_id, template.name)
        return replace(template, id=str(template_id))

    def update_template(
        self,
        template_id: str,
        template: EmailTemplate | None = None,
        is_default: bool | None = None,
    ) -> EmailTemplate:
        if get_builtin_template(template_id):
            raise ValueError(f"Built-in template {template_id} is read-only")
        if template is not None:
            self.check_keys(template)
        stored = self.store.update_template(
            _user_template_id(template_id), template=template, is_default=is_default
        )
        if not stored:
            raise KeyError(f"Template {template_id} not found")
        logger.info("Updated template %s.", template_id)
        return stored.to_template()

    def delete_template(self, template_id: str) -> None:
        if get_builtin_template(template_id):
            raise ValueError(f"Built-in template {template_id} is read-only")
        if not self.store.delete_template(_user_template_id(template_id)):
            raise KeyError(f"Template {template_id} not found")
        logger.info("Deleted template %s.", template_id)

    def apply(
        self, template_id: str, data: Mapping[str, str], fill_missing: bool = False
    ) -> RenderedTemplate:
        """Summary: Fill a template with user data.

        Importance: Missing keys stay as placeholders unless fill_missing pre-populates them.
        Alternatives: Always require complete data.
        """

        template = self.get_template(template_id)
        self.check_keys(template)
        values = complete_template_data(template, data) if fill_missing else dict(data)
        return apply_template(template, values)

    def check_keys(self, template: EmailTemplate) -> TemplateKeyMismatch:
        mismatch = check_template_keys(template)
        if not mismatch.ok:
            logger.warning(
                "Template %s keys mismatch: undeclared=%s unused=%s",
                template.id or template.name,
                list(mismatch.undeclared),
                list(mismatch.unused),
            )
        return mismatch


@dataclass(frozen=True)
class EmailGenerationService:
    """Summary: Drafts emails with the AI provider.

    Importance: Keeps the system draft-first with a usable fallback when AI fails.
    Alternatives: Surface provider errors to the user.
    """

    ai_provider: AiProvider
    audit: AiAuditLogger

    def generate(self, request: EmailRequest) -> GeneratedEmail:
        """Summary: Generate an email draft for the given brief.

        Importance: Returns the canned fallback email instead of failing.
        Alternatives: Retry the provider until it succeeds.
        """

        prompt = build_email_prompt(request)
        try:
            ai_result = self.ai_provider.generate_text(prompt, purpose="generate_email")
        except Exception:
            logger.warning("Email generation failed, using fallback email.", exc_info=True)
            return GeneratedEmail(email=fallback_email(request), used_fallback=True)

        email = clean_email_response(ai_result.text)
        brief_length = (
            len(request.subject)
            + len(request.sender)
            + len(request.receiver)
            + len(request.additional_context)
        )
        usage = TokenUsage(
            input_tokens=_reported_or(ai_result.input_tokens, math.ceil(brief_length / 4)),
            output_tokens=_reported_or(ai_result.output_tokens, estimate_tokens(email)),
        )
        self.audit.record(prompt, "generate_email", ai_result, usage)
        logger.info("Generated email draft for %s.", request.receiver)
        return GeneratedEmail(email=email, used_fallback=False, token_usage=usage)


@dataclass(frozen=True)
class AiAuditService:
    """Summary: Provides access to AI audit logs.

    Importance: Enables review of AI usage, outputs and token spend.
    Alternatives: Use raw database queries or log files.
    """

    store: SqliteStore

    def list_requests(self, limit: int = 20) -> list[dict[str, str | int]]:
        requests = self.store.list_ai_requests(limit)
        return [
            {
                "id": request.id,
                "provider": request.provider,
                "model": request.model,
                "purpose": request.purpose,
                "timestamp": request.timestamp,
            }
            for request in requests
        ]

    def list_responses(self, limit: int = 20) -> list[dict[str, str | int]]:
        responses = self.store.list_ai_responses(limit)
        return [
            {
                "id": response.id,
                "request_id": response.request_id,
                "latency_ms": response.latency_ms,
                "input_tokens": response.input_tokens,
                "output_tokens": response.output_tokens,
            }
            for response in responses
        ]

    def usage_totals(self) -> TokenUsage:
        input_tokens, output_tokens = self.store.sum_ai_tokens()
        return TokenUsage(input_tokens=input_tokens, output_tokens=output_tokens)


def _reported_or(reported: int | None, estimate: int) -> int:
    if reported is None or reported < 0:
        return estimate
    return int(reported)


def _user_template_id(template_id: str) -> int:
    # User ids are SQLite rowids: ASCII digits within the signed 64-bit range.
    if not (template_id.isascii() and template_id.isdigit()):
        raise KeyError(f"Template {template_id} not found")
    value = int(template_id)
    if value > MAX_ROW_ID:
        raise KeyError(f"Template {template_id} not found")
    return value
