"""Summary: Tests for the local lexical tone analyzer and payload parsing.

Importance: Validates deterministic tone analysis used when AI is unavailable.
Alternatives: Only test tone analysis through the service layer.
"""

from __future__ import annotations

import pytest

from draftpilot.errors import MalformedRemoteResponse
from draftpilot.tone import (
    AFFIRMATION,
    BREAK_UP_SUGGESTION,
    CONCISE_SUGGESTION,
    REVIEW_SUGGESTION,
    SHORTER_SENTENCES_SUGGESTION,
    SOFTEN_SUGGESTION,
    LexicalToneAnalyzer,
    build_tone_prompt,
    parse_tone_payload,
    split_sentences,
)

ANALYZER = LexicalToneAnalyzer()


def _sentence(words: int) -> str:
    return " ".join(["word"] * words) + "."


def test_casual_positive_text_is_friendly() -> None:
    """Summary: Regression fixture for a casual, grateful message.

    Importance: Pins substring semantics ("thanks" contains "thank").
    Alternatives: Match whole words only.
    """

    text = "Hey thanks so much, this is awesome! btw let me know."
    result = ANALYZER.analyze(text)
    assert result.formality == "casual"
    assert result.sentiment == "positive"
    assert result.tone == "friendly"
    assert result.clarity == "clear"
    assert result.confidence == 0.75
    assert result.suggestions == (AFFIRMATION,)
    assert result.input_tokens == 14
    assert result.output_tokens == 50


def test_formal_negative_text_suggests_softening() -> None:
    text = "Unfortunately we regret the issue. Furthermore, sincerely, regards."
    result = ANALYZER.analyze(text)
    assert result.formality == "formal"
    assert result.sentiment == "negative"
    assert result.tone == "formal critical"
    assert result.suggestions[0] == SOFTEN_SUGGESTION


def test_formal_positive_tone_label() -> None:
    result = ANALYZER.analyze("We are pleased to inquire. Sincerely.")
    assert result.tone == "professional positive"


def test_casual_negative_tone_label() -> None:
    result = ANALYZER.analyze("Hey, sorry about the problem.")
    assert result.formality == "casual"
    assert result.sentiment == "negative"
    assert result.tone == "casual concerned"


def test_markers_count_distinct_words_not_occurrences() -> None:
    """Summary: Repeated markers count once.

    Importance: A single repeated word must not outweigh several distinct markers.
    Alternatives: Count every occurrence.
    """

    text = "hey hey hey hey. Therefore, furthermore."
    result = ANALYZER.analyze(text)
    assert result.formality == "formal"


def test_matching_is_case_insensitive() -> None:
    result = ANALYZER.analyze("HEY THANKS, AWESOME.")
    assert result.formality == "casual"


def test_empty_text_still_has_suggestion() -> None:
    result = ANALYZER.analyze("")
    assert result.clarity == "clear"
    assert result.tone == "neutral"
    assert result.suggestions == (REVIEW_SUGGESTION,)
    assert result.input_tokens == 0


@pytest.mark.parametrize(
    "text",
    ["", "   ", "...!!!???", "ok", "Hello there.", "word " * 200],
)
def test_suggestions_never_empty(text: str) -> None:
    assert ANALYZER.analyze(text).suggestions


def test_local_analysis_is_deterministic() -> None:
    text = "I appreciate the opportunity. Unfortunately the schedule is a concern!"
    assert ANALYZER.analyze(text) == ANALYZER.analyze(text)


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        (_sentence(15), "somewhat clear"),
        (_sentence(25), "somewhat clear"),
        (_sentence(14) + " " + _sentence(15), "clear"),
        (_sentence(25) + " " + _sentence(26), "unclear"),
        (_sentence(14), "clear"),
        (_sentence(26), "unclear"),
    ],
)
def test_clarity_boundaries(text: str, expected: str) -> None:
    assert ANALYZER.analyze(text).clarity == expected


def test_unclear_and_long_sentence_suggestions_in_order() -> None:
    result = ANALYZER.analyze(_sentence(31))
    assert result.suggestions == (SHORTER_SENTENCES_SUGGESTION, BREAK_UP_SUGGESTION)


def test_long_sentence_flagged_even_when_average_is_low() -> None:
    text = _sentence(31) + " " + " ".join(_sentence(2) for _ in range(10))
    result = ANALYZER.analyze(text)
    assert result.clarity == "clear"
    assert result.suggestions == (BREAK_UP_SUGGESTION,)


def test_long_casual_text_suggests_concise() -> None:
    text = "Hey, cool. " + " ".join(_sentence(5) for _ in range(100))
    result = ANALYZER.analyze(text)
    assert len(text) > 500
    assert result.formality == "casual"
    assert CONCISE_SUGGESTION in result.suggestions


def test_split_sentences_discards_blank_fragments() -> None:
    assert split_sentences("One. Two!!  ?  Three?") == ["One", " Two", "  Three"]


def test_prompt_contains_text_and_schema() -> None:
    prompt = build_tone_prompt("Please review.")
    assert prompt.endswith("Please review.\n")
    assert '"formality": "formal|neutral|casual"' in prompt


def test_parse_payload_accepts_wrapped_json() -> None:
    raw = (
        "Here you go:\n```json\n"
        '{"tone": "Warm", "formality": "Casual", "sentiment": "positive", '
        '"clarity": "clear", "confidence": 1.4, "suggestions": ["Keep it up"]}\n```'
    )
    payload = parse_tone_payload(raw)
    assert payload["tone"] == "Warm"
    assert payload["formality"] == "casual"
    assert payload["confidence"] == 1.0
    assert payload["suggestions"] == ["Keep it up"]


def test_parse_payload_injects_default_suggestion_and_confidence() -> None:
    raw = '{"tone": "neutral", "formality": "neutral", "sentiment": "neutral", "clarity": "clear"}'
    payload = parse_tone_payload(raw)
    assert payload["suggestions"] == [REVIEW_SUGGESTION]
    assert payload["confidence"] == 0.9


@pytest.mark.parametrize(
    "raw",
    [
        "no json here",
        "{not valid json}",
        "[1, 2, 3]",
        '{"formality": "formal", "sentiment": "positive", "clarity": "clear"}',
        '{"tone": "x", "formality": "stiff", "sentiment": "positive", "clarity": "clear"}',
        '{"tone": "x", "formality": "formal", "sentiment": "positive", "clarity": "clear", '
        '"confidence": "high"}',
        '{"tone": "x", "formality": "formal", "sentiment": "positive", "clarity": "clear", '
        '"suggestions": "be nicer"}',
    ],
)
def test_parse_payload_rejects_malformed(raw: str) -> None:
    with pytest.raises(MalformedRemoteResponse):
        parse_tone_payload(raw)
