"""Summary: Tone analysis helpers.

Importance: Provides deterministic lexical tone analysis and remote payload validation.
Alternatives: Trust the LLM output shape and skip the local analyzer.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass
from typing import Any

from draftpilot.errors import MalformedRemoteResponse
from draftpilot.models import ToneAnalysisResult

FORMAL_MARKERS = (
    "therefore",
    "furthermore",
    "consequently",
    "regards",
    "sincerely",
    "request",
    "inquire",
)
CASUAL_MARKERS = ("hey", "thanks", "cool", "awesome", "btw", "yeah", "sure")
NEGATIVE_MARKERS = (
    "unfortunately",
    "regret",
    "sorry",
    "issue",
    "problem",
    "concern",
    "disappointed",
)
POSITIVE_MARKERS = (
    "pleased",
    "happy",
    "delighted",
    "thank",
    "appreciate",
    "excited",
    "opportunity",
)

FORMALITY_LEVELS = ("formal", "neutral", "casual")
SENTIMENTS = ("positive", "neutral", "negative")
CLARITY_LEVELS = ("clear", "somewhat clear", "unclear")

TONE_LABELS = {
    ("formal", "positive"): "professional positive",
    ("formal", "negative"): "formal critical",
    ("casual", "positive"): "friendly",
    ("casual", "negative"): "casual concerned",
}

SOFTEN_SUGGESTION = "Consider softening the negative tone while maintaining formality"
CONCISE_SUGGESTION = "Your casual email is quite long. Consider being more concise"
SHORTER_SENTENCES_SUGGESTION = "Try using shorter, clearer sentences to improve readability"
BREAK_UP_SUGGESTION = "Break up very long sentences to improve clarity"
AFFIRMATION = "Your email has a good tone and clarity"
REVIEW_SUGGESTION = "Consider reviewing your email for clarity and tone"

LOCAL_CONFIDENCE = 0.75
LOCAL_OUTPUT_TOKENS = 50
DEFAULT_REMOTE_CONFIDENCE = 0.9
CLEAR_BELOW_WORDS = 15
UNCLEAR_ABOVE_WORDS = 25
LONG_SENTENCE_WORDS = 30
LONG_CASUAL_CHARS = 500

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_JSON_BLOCK = re.compile(r"\{.*\}", re.DOTALL)

TONE_PROMPT = (
    "Analyze the tone of the following email text. "
    "Provide a structured analysis with the following elements:\n"
    "1. Overall tone (e.g., formal, casual, friendly, urgent, etc.)\n"
    "2. Formality level (formal, neutral, or casual)\n"
    "3. Sentiment (positive, neutral, or negative)\n"
    "4. Clarity (clear, somewhat clear, or unclear)\n"
    "5. 2-3 specific suggestions for improving the tone if needed\n\n"
    "Respond in JSON format with the following structure:\n"
    "{{\n"
    '  "tone": "string",\n'
    '  "formality": "formal|neutral|casual",\n'
    '  "sentiment": "positive|neutral|negative",\n'
    '  "clarity": "clear|somewhat clear|unclear",\n'
    '  "confidence": number between 0 and 1,\n'
    '  "suggestions": [array of strings]\n'
    "}}\n\n"
    "Email text to analyze:\n{text}\n"
)


@dataclass(frozen=True)
class LexicalToneAnalyzer:
    """Summary: Keyword-based tone analyzer.

    Importance: Offers deterministic, offline analysis when the AI path is unavailable.
    Alternatives: Use a trained sentiment model.
    """

    formal_markers: tuple[str, ...] = FORMAL_MARKERS
    casual_markers: tuple[str, ...] = CASUAL_MARKERS
    negative_markers: tuple[str, ...] = NEGATIVE_MARKERS
    positive_markers: tuple[str, ...] = POSITIVE_MARKERS

    def analyze(self, text: str) -> ToneAnalysisResult:
        """Summary: Classify formality, sentiment and clarity from markers and sentence length.

        Importance: Gives a complete result for any input, including empty text.
        Alternatives: Return None when the text is too short to judge.
        """

        lowered = text.lower()
        formal_count = _count_markers(lowered, self.formal_markers)
        casual_count = _count_markers(lowered, self.casual_markers)
        negative_count = _count_markers(lowered, self.negative_markers)
        positive_count = _count_markers(lowered, self.positive_markers)

        formality = _compare(formal_count, casual_count, "formal", "casual")
        sentiment = _compare(positive_count, negative_count, "positive", "negative")

        sentence_lengths = [len(sentence.split()) for sentence in split_sentences(text)]
        average = sum(sentence_lengths) / len(sentence_lengths) if sentence_lengths else 0
        clarity = classify_clarity(average)

        suggestions: list[str] = []
        if formality == "formal" and sentiment == "negative":
            suggestions.append(SOFTEN_SUGGESTION)
        if formality == "casual" and len(text) > LONG_CASUAL_CHARS:
            suggestions.append(CONCISE_SUGGESTION)
        if clarity == "unclear":
            suggestions.append(SHORTER_SENTENCES_SUGGESTION)
        if any(length > LONG_SENTENCE_WORDS for length in sentence_lengths):
            suggestions.append(BREAK_UP_SUGGESTION)
        if not suggestions:
            if clarity == "clear" and sentiment == "positive":
                suggestions.append(AFFIRMATION)
            else:
                suggestions.append(REVIEW_SUGGESTION)

        return ToneAnalysisResult(
            tone=tone_label(formality, sentiment),
            formality=formality,
            sentiment=sentiment,
            clarity=clarity,
            confidence=LOCAL_CONFIDENCE,
            suggestions=tuple(suggestions),
            input_tokens=math.ceil(len(text) / 4),
            output_tokens=LOCAL_OUTPUT_TOKENS,
        )


def split_sentences(text: str) -> list[str]:
    """Summary: Split text on runs of sentence terminators.

    Importance: Feeds the average sentence length used for clarity.
    Alternatives: Use an NLP sentence tokenizer.
    """

    return [part for part in _SENTENCE_SPLIT.split(text) if part.strip()]


def classify_clarity(average_words: float) -> str:
    if average_words < CLEAR_BELOW_WORDS:
        return "clear"
    if average_words > UNCLEAR_ABOVE_WORDS:
        return "unclear"
    return "somewhat clear"


def tone_label(formality: str, sentiment: str) -> str:
    return TONE_LABELS.get((formality, sentiment), "neutral")


def build_tone_prompt(text: str) -> str:
    return TONE_PROMPT.format(text=text)


def parse_tone_payload(raw_text: str) -> dict[str, Any]:
    """Summary: Extract and validate a structured tone payload from model output.

    Importance: Turns ad hoc LLM output into a checked shape or a clear failure.
    Alternatives: Access fields directly and let KeyError surface.
    """

    match = _JSON_BLOCK.search(raw_text or "")
    if not match:
        raise MalformedRemoteResponse("No JSON object found in tone response")
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise MalformedRemoteResponse(f"Tone response is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise MalformedRemoteResponse("Tone response is not a JSON object")

    tone = parsed.get("tone")
    if not isinstance(tone, str) or not tone.strip():
        raise MalformedRemoteResponse("Tone response is missing a tone label")
    formality = _enum_field(parsed, "formality", FORMALITY_LEVELS)
    sentiment = _enum_field(parsed, "sentiment", SENTIMENTS)
    clarity = _enum_field(parsed, "clarity", CLARITY_LEVELS)

    raw_confidence = parsed.get("confidence", DEFAULT_REMOTE_CONFIDENCE)
    if isinstance(raw_confidence, bool) or not isinstance(raw_confidence, (int, float)):
        raise MalformedRemoteResponse("Tone response confidence is not a number")
    confidence = max(0.0, min(1.0, float(raw_confidence)))

    raw_suggestions = parsed.get("suggestions") or []
    if not isinstance(raw_suggestions, list):
        raise MalformedRemoteResponse("Tone response suggestions is not a list")
    suggestions = [str(item).strip() for item in raw_suggestions if str(item).strip()]
    if not suggestions:
        suggestions = [REVIEW_SUGGESTION]

    return {
        "tone": tone.strip(),
        "formality": formality,
        "sentiment": sentiment,
        "clarity": clarity,
        "confidence": confidence,
        "suggestions": suggestions,
    }


def _enum_field(parsed: dict[str, Any], name: str, allowed: tuple[str, ...]) -> str:
    value = parsed.get(name)
    if not isinstance(value, str):
        raise MalformedRemoteResponse(f"Tone response is missing {name}")
    normalized = value.strip().lower()
    if normalized not in allowed:
        raise MalformedRemoteResponse(f"Tone response has invalid {name}: {value!r}")
    return normalized


def _count_markers(lowered: str, markers: tuple[str, ...]) -> int:
    # Distinct markers, substring match.
    return sum(1 for marker in markers if marker in lowered)


def _compare(first: int, second: int, first_label: str, second_label: str) -> str:
    if first > second:
        return first_label
    if second > first:
        return second_label
    return "neutral"
