"""Summary: Prompt and response helpers for AI email drafting.

Importance: Keeps generation prompts and cleanup rules in one testable place.
Alternatives: Inline prompt strings in the generation service.
"""

from __future__ import annotations

import json
import re

from draftpilot.models import EmailRequest

STYLE_BY_TONE = {
    "formal": "Formal",
    "casual": "Casual",
    "friendly": "Friendly",
}
DEFAULT_STYLE = "Business Professional"

EMAIL_STYLE_GUIDE = {
    "styles": {
        "Business Professional": (
            "Formal business communication style with proper structure and professional language"
        ),
        "Formal": "Very structured and respectful, using full titles and formal language",
        "Casual": "Relaxed and conversational while maintaining professionalism",
        "Friendly": "Warm and personable with a focus on relationship building",
    },
    "lengths": {
        "short": "Brief and concise, approximately 3-4 sentences",
        "medium": "Balanced length with adequate detail, approximately 5-7 sentences",
        "long": "Comprehensive with detailed explanations, 8+ sentences",
    },
}

_CODE_BLOCK = re.compile(r"```(?:json)?\n(.*?)\n```", re.DOTALL)
_FENCE_MARKERS = re.compile(r"```(?:json)?\n|\n```")


def map_tone_to_style(tone: str) -> str:
    return STYLE_BY_TONE.get(tone, DEFAULT_STYLE)


def build_email_prompt(request: EmailRequest) -> str:
    """Summary: Build the drafting prompt for an email request.

    Importance: Gives every provider the same structured brief.
    Alternatives: Send a chat history with separate system instructions.
    """

    lines = [
        "Generate an Email for me",
        f"Style : {map_tone_to_style(request.tone)}",
        f"Sender : {request.sender}",
        f"Title : {request.sender_title or 'N/A'}",
        f"Receiver : {request.receiver}",
        f"Title : {request.receiver_title or 'N/A'}",
        f"Subject : {request.subject}",
    ]
    if request.additional_context:
        lines.append(f"Additional Context: {request.additional_context}")
    lines.append(f"Length: {request.length}")
    lines.append("")
    lines.append(
        "Please format the email as plain text, not JSON. Start with the greeting and end "
        "with the signature. The email should be well-structured with proper paragraphs "
        "and formatting."
    )
    return "\n".join(lines)


def clean_email_response(text: str) -> str:
    """Summary: Strip code fences or JSON wrappers from a drafted email.

    Importance: Models sometimes answer in fenced JSON despite instructions.
    Alternatives: Ask the model again with stricter instructions.
    """

    if "```" not in text:
        return text
    match = _CODE_BLOCK.search(text)
    if not match:
        return text
    try:
        payload = json.loads(match.group(1))
    except json.JSONDecodeError:
        return _FENCE_MARKERS.sub("", text)
    email = payload.get("email") if isinstance(payload, dict) else None
    if isinstance(email, dict) and email.get("body"):
        return str(email["body"])
    return text


def fallback_email(request: EmailRequest) -> str:
    return (
        f"Dear {request.receiver},\n\n"
        f"I hope this email finds you well. I am writing to discuss {request.subject}.\n\n"
        f"As {request.sender_title or 'a representative'} at our organization, I wanted to "
        f"reach out to you in your capacity as {request.receiver_title or 'a professional'} "
        "to explore potential collaboration opportunities.\n\n"
        "Our team has been working on innovative solutions that I believe would align "
        "perfectly with your objectives. I would appreciate the opportunity to discuss this "
        "further at your convenience.\n\n"
        "Please let me know if you would be interested in scheduling a call or meeting to "
        "explore this topic in more detail.\n\n"
        "Best regards,\n"
        f"{request.sender}"
    )
