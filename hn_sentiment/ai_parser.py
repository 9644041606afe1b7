"""AI response parsing for HN Sentiment.

Turns a raw completion into an Analysis value.

Validation Rules:
    - Sentiment: "promoter", "neutral", "detractor" (case-insensitive);
      "supportive" and "opposing" are accepted as aliases
    - Intensity: "npsScore" (or "intensityScore" / "intensity_score"), rounded and
      clamped to 0-10, then into the sentiment's band; absent or non-finite
      values fall back to 9 / 7 / 3
    - Keywords: at most 5, provider order, blanks dropped
    - Extra fields: silently ignored
    - Invalid JSON: raises MalformedResponseError
    - Missing/invalid sentiment: raises ValueError

Response Format:
    {
        "sentiment": "promoter",
        "npsScore": 9,
        "summary": "Argues the framework removes real boilerplate",
        "keywords": ["less boilerplate", "type safety"]
    }
"""

import json
import math
from typing import Any, List, Optional

import structlog

from hn_sentiment.models.thread_models import (
    Analysis,
    SENTIMENT_DETRACTOR,
    SENTIMENT_PROMOTER,
    SENTIMENT_SCORE_BANDS,
    VALID_SENTIMENTS,
    fallback_score,
)


class MalformedResponseError(Exception):
    """Raised when the AI response JSON cannot be parsed.

    The per-comment retry loop retries these once before giving up.
    """
    pass


SENTIMENT_ALIASES = {
    'supportive': SENTIMENT_PROMOTER,
    'opposing': SENTIMENT_DETRACTOR,
}

MAX_KEYWORDS = 5

_SCORE_FIELDS = ('npsScore', 'intensityScore', 'intensity_score')


def strip_code_fences(raw_content: str) -> str:
    """Remove a surrounding ```json ... ``` fence if present."""
    stripped = raw_content.strip()

    if stripped.startswith('```'):
        start_idx = stripped.find('\n')
        if start_idx == -1:
            start_idx = 3
        else:
            start_idx += 1

        end_idx = stripped.rfind('```')
        if end_idx > start_idx:
            stripped = stripped[start_idx:end_idx].strip()
        else:
            stripped = stripped[start_idx:].strip()

    return stripped


def normalize_sentiment(value: Any) -> str:
    """Lowercase and resolve aliases. Raises ValueError for anything else."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid sentiment: {value!r}. Must be one of {VALID_SENTIMENTS}")
    sentiment = value.strip().lower()
    sentiment = SENTIMENT_ALIASES.get(sentiment, sentiment)
    if sentiment not in VALID_SENTIMENTS:
        raise ValueError(f"Invalid sentiment: {value}. Must be one of {VALID_SENTIMENTS}")
    return sentiment


def normalize_intensity(value: Any, sentiment: str) -> int:
    """Coerce a raw score into an integer inside the sentiment's band."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return fallback_score(sentiment)

    try:
        score = float(value)
    except ValueError:
        return fallback_score(sentiment)

    if not math.isfinite(score):
        return fallback_score(sentiment)

    score = int(round(min(max(score, 0.0), 10.0)))
    low, high = SENTIMENT_SCORE_BANDS[sentiment]
    clamped = min(max(score, low), high)
    if clamped != score:
        structlog.get_logger().debug(
            "intensity_clamped_to_sentiment_band",
            sentiment=sentiment,
            raw_score=value,
            clamped_score=clamped
        )
    return clamped


def normalize_keywords(value: Any) -> List[str]:
    """Stringify, drop blanks and keep the first five, in order."""
    if not isinstance(value, list):
        return []
    keywords = [str(k).strip() for k in value if k is not None]
    return [k for k in keywords if k][:MAX_KEYWORDS]


def parse_analysis_response(raw_content: Optional[str]) -> Analysis:
    """Extract and validate an Analysis from a raw completion.

    Args:
        raw_content: Raw model response text (may include markdown fences)

    Returns:
        Analysis: Validated analysis with a resolved intensity score

    Raises:
        MalformedResponseError: If the content is empty or not a JSON object
        ValueError: If the sentiment is missing or not recognized
    """
    if not raw_content or not raw_content.strip():
        raise MalformedResponseError("Empty response content")

    stripped = strip_code_fences(raw_content)

    try:
        data = json.loads(stripped)
    except json.JSONDecodeError as e:
        structlog.get_logger().warning(
            "analysis_response_invalid_json",
            error=str(e),
            raw_content=raw_content[:200]
        )
        raise MalformedResponseError(f"Invalid JSON: {e}")

    if not isinstance(data, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(data).__name__}")

    if 'sentiment' not in data:
        structlog.get_logger().warning("analysis_response_missing_sentiment", keys=sorted(data))
        raise ValueError("Missing required field: sentiment")

    sentiment = normalize_sentiment(data['sentiment'])

    raw_score = None
    for name in _SCORE_FIELDS:
        if data.get(name) is not None:
            raw_score = data[name]
            break

    summary = data.get('summary')

    return Analysis(
        sentiment=sentiment,
        intensity_score=normalize_intensity(raw_score, sentiment),
        summary='' if summary is None else str(summary).strip(),
        keywords=normalize_keywords(data.get('keywords')),
    )
