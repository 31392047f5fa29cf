"""Summary: Email template packs and placeholder substitution.

Importance: Provides starter templates and a predictable fill-in engine for drafts.
Alternatives: Use a full template language such as Jinja2.
"""

from __future__ import annotations

import re
from typing import Mapping

from draftpilot.models import EmailTemplate, RenderedTemplate, TemplateKeyMismatch, TemplateVariable

_PLACEHOLDER = re.compile(r"\{\{([^{}]+)\}\}")


def apply_template(template: EmailTemplate, data: Mapping[str, str]) -> RenderedTemplate:
    """Summary: Substitute data values into a template body, subject and recipient.

    Importance: Empty values render as [key]; keys missing from data stay as {{key}}.
    Alternatives: Raise when a placeholder has no value.
    """

    content = template.template
    subject = template.subject or ""
    recipient = template.recipient or ""
    for key, value in data.items():
        token = "{{" + key + "}}"
        replacement = value if value else f"[{key}]"
        content = content.replace(token, replacement)
        subject = subject.replace(token, replacement)
        recipient = recipient.replace(token, replacement)
    return RenderedTemplate(content=content, subject=subject, recipient=recipient)


def find_placeholders(text: str) -> list[str]:
    """Summary: List placeholder keys in order of first appearance.

    Importance: Supports key checks and form generation from raw template text.
    Alternatives: Rely only on declared variables.
    """

    seen: list[str] = []
    for key in _PLACEHOLDER.findall(text or ""):
        if key not in seen:
            seen.append(key)
    return seen


def check_template_keys(template: EmailTemplate) -> TemplateKeyMismatch:
    """Summary: Compare placeholders used in a template with its declared variables.

    Importance: Flags templates that will leave unresolved placeholders.
    Alternatives: Validate only when templates are saved.
    """

    used: list[str] = []
    for text in (template.template, template.subject or "", template.recipient or ""):
        for key in find_placeholders(text):
            if key not in used:
                used.append(key)
    declared = [variable.key for variable in template.variables]
    return TemplateKeyMismatch(
        undeclared=tuple(key for key in used if key not in declared),
        unused=tuple(key for key in declared if key not in used),
    )


def initial_template_data(template: EmailTemplate) -> dict[str, str]:
    return {
        variable.key: variable.default_value
        for variable in template.variables
        if variable.default_value
    }


def complete_template_data(template: EmailTemplate, data: Mapping[str, str]) -> dict[str, str]:
    """Summary: Pre-populate data with empty strings for every declared variable.

    Importance: Guarantees every declared placeholder is resolved on apply.
    Alternatives: Leave missing keys as literal placeholders.
    """

    completed = {variable.key: "" for variable in template.variables}
    completed.update(initial_template_data(template))
    completed.update(data)
    return completed


def list_templates() -> list[EmailTemplate]:
    """Summary: Return the built-in email templates.

    Importance: Powers template discovery in the API and CLI.
    Alternatives: Load templates from JSON files outside the codebase.
    """

    return [
        EmailTemplate(
            id="introduction",
            name="Introduction",
            subject="Introduction: {{senderName}} from {{company}}",
            template=(
                "Hello {{receiverName}},\n\n"
                "I hope this email finds you well. My name is {{senderName}} from {{company}}. "
                "I'm reaching out because {{reason}}.\n\n"
                "I would love to connect and discuss how we might work together. "
                "Would you be available for a brief call next week?\n\n"
                "Best regards,\n"
                "{{senderName}}\n"
                "{{senderRole}}\n"
                "{{company}}"
            ),
            variables=(
                TemplateVariable(key="receiverName", label="Recipient name"),
                TemplateVariable(key="senderName", label="Your name"),
                TemplateVariable(key="senderRole", label="Your role"),
                TemplateVariable(key="company", label="Company name"),
                TemplateVariable(key="reason", label="Reason for contact"),
            ),
        ),
        EmailTemplate(
            id="follow-up",
            name="Follow-up",
            subject="Follow-up: {{meetingTopic}}",
            recipient="{{recipientEmail}}",
            template=(
                "Hi {{receiverName}},\n\n"
                "Thank you for taking the time to meet with me yesterday regarding "
                "{{meetingTopic}}. I appreciated your insights on {{keyPoint}}.\n\n"
                "As discussed, I'll {{nextAction}} by {{deadline}}.\n\n"
                "Please let me know if you have any questions or need further information.\n\n"
                "Best regards,\n"
                "{{senderName}}"
            ),
            variables=(
                TemplateVariable(key="receiverName", label="Recipient name"),
                TemplateVariable(key="recipientEmail", label="Recipient email"),
                TemplateVariable(key="meetingTopic", label="Meeting topic"),
                TemplateVariable(key="keyPoint", label="Key discussion point"),
                TemplateVariable(key="nextAction", label="Your next action"),
                TemplateVariable(key="deadline", label="Deadline"),
                TemplateVariable(key="senderName", label="Your name"),
            ),
        ),
        EmailTemplate(
            id="request",
            name="Request",
            subject="Request: {{requestTopic}}",
            template=(
                "Dear {{receiverName}},\n\n"
                "I'm writing to request {{requestTopic}}. This is important because "
                "{{importance}}.\n\n"
                "The specific details are as follows:\n"
                "- {{detail1}}\n"
                "- {{detail2}}\n\n"
                "I would appreciate your response by {{deadline}}. "
                "Please let me know if you need any additional information.\n\n"
                "Thank you for your consideration.\n\n"
                "Sincerely,\n"
                "{{senderName}}\n"
                "{{senderDepartment}}"
            ),
            variables=(
                TemplateVariable(key="receiverName", label="Recipient name"),
                TemplateVariable(key="requestTopic", label="Request topic"),
                TemplateVariable(key="importance", label="Why it matters"),
                TemplateVariable(key="detail1", label="Detail 1"),
                TemplateVariable(key="detail2", label="Detail 2"),
                TemplateVariable(key="deadline", label="Deadline"),
                TemplateVariable(key="senderName", label="Your name"),
                TemplateVariable(key="senderDepartment", label="Your department"),
            ),
        ),
    ]


def get_builtin_template(template_id: str) -> EmailTemplate | None:
    templates = {template.id: template for template in list_templates()}
    return templates.get(template_id)
