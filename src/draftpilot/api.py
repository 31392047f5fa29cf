"""Summary: FastAPI application for DraftPilot.

Importance: Exposes HTTP endpoints for the email composer UI and integrations.
Alternatives: Use a CLI-only workflow or a different web framework.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException
from pydantic import BaseModel, Field

from draftpilot.ai import AiProvider
from draftpilot.app import build_services
from draftpilot.budget import BudgetSnapshot
from draftpilot.config import AppConfig
from draftpilot.drafting import EMAIL_STYLE_GUIDE
from draftpilot.models import EmailRequest, EmailTemplate, ToneAnalysisOutcome
from draftpilot.services import DEFAULT_SESSION
from draftpilot.templates import check_template_keys


class ToneAnalyzeRequest(BaseModel):
    """Summary: Request payload for tone analysis.

    Importance: Carries the draft text and the session whose budget applies.
    Alternatives: Read the session from a cookie.
    """

    text: str = Field(min_length=1)
    session_id: str = DEFAULT_SESSION


class ToneResetRequest(BaseModel):
    """Summary: Request payload for resetting a session's tone budget."""

    session_id: str = DEFAULT_SESSION


class TemplateVariablePayload(BaseModel):
    key: str = Field(min_length=1)
    label: str
    default_value: str | None = None


class TemplatePayload(BaseModel):
    """Summary: Request payload for creating or replacing a user template.

    Importance: Validates template structure before it reaches storage.
    Alternatives: Accept an opaque JSON blob.
    """

    name: str = Field(min_length=1)
    template: str
    subject: str | None = None
    recipient: str | None = None
    variables: list[TemplateVariablePayload] = Field(default_factory=list)
    is_default: bool = False

    def to_template(self, template_id: str = "") -> EmailTemplate:
        return EmailTemplate.from_dict(
            {
                "name": self.name,
                "template": self.template,
                "subject": self.subject,
                "recipient": self.recipient,
                "variables": [variable.model_dump() for variable in self.variables],
            },
            template_id=template_id,
        )


class TemplateUpdatePayload(BaseModel):
    """Summary: Request payload for partial template updates."""

    template: TemplatePayload | None = None
    is_default: bool | None = None


class TemplateApplyRequest(BaseModel):
    """Summary: Request payload for filling a template.

    Importance: Keeps fill-in data explicit for API clients.
    Alternatives: Pass values as query parameters.
    """

    data: dict[str, str] = Field(default_factory=dict)
    fill_missing: bool = False


class EmailGenerateRequest(BaseModel):
    """Summary: Request payload for AI email generation."""

    sender: str = Field(min_length=1)
    receiver: str = Field(min_length=1)
    subject: str = Field(min_length=1)
    sender_title: str = ""
    receiver_title: str = ""
    tone: str = "professional"
    length: str = Field(default="medium", pattern="^(short|medium|long)$")
    additional_context: str = ""


def create_app(config: AppConfig, ai_provider: AiProvider | None = None) -> FastAPI:
    """Summary: Create a FastAPI app wired to DraftPilot services.

    Importance: Ensures the API layer shares the same configuration and storage.
    Alternatives: Instantiate services globally outside the factory.
    """

    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    app = FastAPI(title="DraftPilot API", version="0.1.0")
    services = build_services(config, ai_provider=ai_provider)

    def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
        """Summary: Enforce API key authentication when configured.

        Importance: Adds a minimal security layer for local and private deployments.
        Alternatives: Use OAuth or session-based authentication.
        """

        if not config.api_key:
            return
        if x_api_key != config.api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    def _get_template(template_id: str) -> EmailTemplate:
        try:
            return services.templates.get_template(template_id)
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Template not found") from exc

    @app.get("/health")
    def health() -> dict[str, str]:
        """Summary: Health check endpoint.

        Importance: Supports uptime checks in local and cloud deployments.
        Alternatives: Use a metrics endpoint only.
        """

        return {"status": "ok"}

    @app.post("/tone/analyze", dependencies=[Depends(require_api_key)])
    def analyze_tone(payload: ToneAnalyzeRequest) -> dict[str, Any]:
        """Summary: Analyze the tone of a draft.

        Importance: Reports whether the result came from the AI or the local analyzer.
        Alternatives: Return only the analysis fields.
        """

        outcome = services.tone.analyze(payload.text, session_id=payload.session_id)
        return _outcome_payload(outcome)

    @app.post("/tone/reset", dependencies=[Depends(require_api_key)])
    def reset_tone_budget(payload: ToneResetRequest) -> dict[str, Any]:
        return _budget_payload(payload.session_id, services.tone.reset_budget(payload.session_id))

    @app.get("/tone/budget/{session_id}", dependencies=[Depends(require_api_key)])
    def tone_budget(session_id: str) -> dict[str, Any]:
        return _budget_payload(session_id, services.tone.budget_for(session_id))

    @app.delete("/tone/budget/{session_id}", dependencies=[Depends(require_api_key)])
    def end_tone_session(session_id: str) -> dict[str, bool]:
        """Summary: Drop a session's budget when its composer closes.

        Importance: Frees the per-session counter as soon as the draft is done.
        Alternatives: Wait for least-recently-used eviction.
        """

        services.tone.end_session(session_id)
        return {"success": True}

    @app.get("/templates", dependencies=[Depends(require_api_key)])
    def list_templates() -> list[dict[str, Any]]:
        return [template.to_dict() for template in services.templates.list_templates()]

    @app.get("/templates/{template_id}", dependencies=[Depends(require_api_key)])
    def get_template(template_id: str) -> dict[str, Any]:
        return _get_template(template_id).to_dict()

    @app.post("/templates", status_code=201, dependencies=[Depends(require_api_key)])
    def create_template(payload: TemplatePayload) -> dict[str, Any]:
        """Summary: Create a user template.

        Importance: Returns key mismatch warnings without rejecting the template.
        Alternatives: Reject templates with undeclared placeholders.
        """

        template = services.templates.create_template(
            payload.to_template(), is_default=payload.is_default
        )
        return {**template.to_dict(), "warnings": _mismatch_payload(template)}

    @app.put("/templates/{template_id}", dependencies=[Depends(require_api_key)])
    def update_template(template_id: str, payload: TemplateUpdatePayload) -> dict[str, Any]:
        template = payload.template.to_template(template_id) if payload.template else None
        try:
            updated = services.templates.update_template(
                template_id, template=template, is_default=payload.is_default
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Template not found") from exc
        return {**updated.to_dict(), "warnings": _mismatch_payload(updated)}

    @app.delete("/templates/{template_id}", dependencies=[Depends(require_api_key)])
    def delete_template(template_id: str) -> dict[str, bool]:
        try:
            services.templates.delete_template(template_id)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except KeyError as exc:
            raise HTTPException(status_code=404, detail="Template not found") from exc
        return {"success": True}

    @app.post("/templates/{template_id}/apply", dependencies=[Depends(require_api_key)])
    def apply_template(template_id: str, payload: TemplateApplyRequest) -> dict[str, str]:
        _get_template(template_id)
        rendered = services.templates.apply(
            template_id, payload.data, fill_missing=payload.fill_missing
        )
        return {
            "content": rendered.content,
            "subject": rendered.subject,
            "recipient": rendered.recipient,
        }

    @app.get("/emails/styles")
    def email_styles() -> dict[str, dict[str, str]]:
        return EMAIL_STYLE_GUIDE

    @app.post("/emails/generate", dependencies=[Depends(require_api_key)])
    def generate_email(payload: EmailGenerateRequest) -> dict[str, Any]:
        """Summary: Generate an email draft.

        Importance: Falls back to a canned draft so the composer never comes back empty.
        Alternatives: Return 500 when the provider fails.
        """

        generated = services.emails.generate(EmailRequest(**payload.model_dump()))
        usage = generated.token_usage
        return {
            "email": generated.email,
            "used_fallback": generated.used_fallback,
            "token_usage": {
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
                "total_tokens": usage.total_tokens,
            },
        }

    @app.get("/ai/usage", dependencies=[Depends(require_api_key)])
    def ai_usage() -> dict[str, int]:
        usage = services.ai_audit.usage_totals()
        return {
            "input_tokens": usage.input_tokens,
            "output_tokens": usage.output_tokens,
            "total_tokens": usage.total_tokens,
        }

    @app.get("/ai/requests", dependencies=[Depends(require_api_key)])
    def ai_requests(limit: int = 20) -> list[dict[str, Any]]:
        return services.ai_audit.list_requests(limit)

    @app.get("/ai/responses", dependencies=[Depends(require_api_key)])
    def ai_responses(limit: int = 20) -> list[dict[str, Any]]:
        return services.ai_audit.list_responses(limit)

    return app


def _outcome_payload(outcome: ToneAnalysisOutcome) -> dict[str, Any]:
    result = outcome.result
    return {
        **result.to_payload(),
        "input_tokens": result.input_tokens,
        "output_tokens": result.output_tokens,
        "mode": outcome.mode,
        "used_fallback": outcome.used_fallback,
        "calls_used": outcome.calls_used,
        "calls_remaining": outcome.calls_remaining,
        "max_calls": outcome.max_calls,
    }


def _budget_payload(session_id: str, snapshot: BudgetSnapshot) -> dict[str, Any]:
    return {
        "session_id": session_id,
        "calls_used": snapshot.calls_used,
        "calls_remaining": snapshot.calls_remaining,
        "max_calls": snapshot.max_calls,
    }


def _mismatch_payload(template: EmailTemplate) -> dict[str, list[str]]:
    mismatch = check_template_keys(template)
    return {"undeclared": list(mismatch.undeclared), "unused": list(mismatch.unused)}
