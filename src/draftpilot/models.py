"""Summary: Domain model dataclasses for DraftPilot.

Importance: Defines the core entities shared across services and storage.
Alternatives: Use Pydantic models or ORM classes directly.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ToneAnalysisResult:
    """Summary: Structured tone assessment for a piece of email text.

    Importance: Single shape shared by remote and local analysis paths.
    Alternatives: Return the provider payload directly as a dict.
    """

    tone: str
    formality: str
    sentiment: str
    clarity: str
    confidence: float
    suggestions: tuple[str, ...]
    input_tokens: int
    output_tokens: int

    def to_payload(self) -> dict[str, Any]:
        """Summary: Serialize the analysis fields without token accounting.

        Importance: Matches the structure the remote model is asked to produce.
        Alternatives: Serialize the full dataclass including tokens.
        """

        return {
            "tone": self.tone,
            "formality": self.formality,
            "sentiment": self.sentiment,
            "clarity": self.clarity,
            "confidence": self.confidence,
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class ToneAnalysisOutcome:
    """Summary: Tone result paired with how it was produced.

    Importance: Lets callers show degraded mode when the remote path was not used.
    Alternatives: Raise on rate limiting and let callers run the local analyzer.
    """

    result: ToneAnalysisResult
    mode: str
    calls_used: int
    calls_remaining: int
    max_calls: int

    @property
    def used_fallback(self) -> bool:
        return self.mode != "remote"


@dataclass(frozen=True)
class TemplateVariable:
    """Summary: Declares one fillable field of an email template.

    Importance: Drives form rendering and default values.
    Alternatives: Infer fields from placeholders only.
    """

    key: str
    label: str
    default_value: str | None = None


@dataclass(frozen=True)
class EmailTemplate:
    """Summary: Represents an email template with named placeholders.

    Importance: Core unit for templated drafting.
    Alternatives: Store templates as raw strings with no metadata.
    """

    id: str
    name: str
    template: str
    variables: tuple[TemplateVariable, ...] = ()
    subject: str | None = None
    recipient: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["variables"] = [asdict(variable) for variable in self.variables]
        return data

    @staticmethod
    def from_dict(data: dict[str, Any], template_id: str | None = None) -> "EmailTemplate":
        """Summary: Build a template from a JSON-compatible dict.

        Importance: Restores stored templates and API payloads.
        Alternatives: Use a serialization library for nested dataclasses.
        """

        variables = tuple(
            TemplateVariable(
                key=item["key"],
                label=item.get("label") or item["key"],
                default_value=item.get("default_value"),
            )
            for item in data.get("variables", [])
        )
        return EmailTemplate(
            id=template_id if template_id is not None else str(data.get("id", "")),
            name=data["name"],
            template=data["template"],
            variables=variables,
            subject=data.get("subject"),
            recipient=data.get("recipient"),
        )


@dataclass(frozen=True)
class RenderedTemplate:
    """Summary: Output of applying data to a template.

    Importance: Bundles body, subject and recipient for the composer.
    Alternatives: Return a tuple of strings.
    """

    content: str
    subject: str
    recipient: str


@dataclass(frozen=True)
class TemplateKeyMismatch:
    """Summary: Advisory report comparing placeholders with declared variables.

    Importance: Surfaces malformed templates without blocking substitution.
    Alternatives: Reject templates whose keys do not line up.
    """

    undeclared: tuple[str, ...] = ()
    unused: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.undeclared and not self.unused


@dataclass(frozen=True)
class EmailRequest:
    """Summary: Inputs for generating an email draft.

    Importance: Keeps generation parameters explicit and testable.
    Alternatives: Pass a free-form prompt string.
    """

    sender: str
    receiver: str
    subject: str
    sender_title: str = ""
    receiver_title: str = ""
    tone: str = "professional"
    length: str = "medium"
    additional_context: str = ""


@dataclass(frozen=True)
class TokenUsage:
    """Summary: Input and output token counts.

    Importance: Provides cost visibility for AI features.
    Alternatives: Track only total tokens.
    """

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass(frozen=True)
class GeneratedEmail:
    """Summary: Generated email body with usage metadata.

    Importance: Lets callers tell AI output from the canned fallback.
    Alternatives: Return only the email text.
    """

    email: str
    used_fallback: bool
    token_usage: TokenUsage = field(default_factory=TokenUsage)


@dataclass(frozen=True)
class AiRequest:
    """Summary: Records an AI request for audit and traceability.

    Importance: Provides visibility into prompts and provider usage.
    Alternatives: Log requests only in observability logs.
    """

    provider: str
    model: str
    prompt: str
    purpose: str
    timestamp: datetime


@dataclass(frozen=True)
class AiResponse:
    """Summary: Records an AI response paired to a request.

    Importance: Enables audit trails and token usage reporting.
    Alternatives: Store only final outputs in the template or draft records.
    """

    request_id: int
    response_text: str
    latency_ms: int
    input_tokens: int
    output_tokens: int
