"""
Parsing and repair of the scoring stage output.

``parse_scoring_response`` never raises: anything that cannot be read as a
scoring object is replaced by a fixed fallback result tagged ``FALLBACK``.
"""
import json
import math
import re
from typing import Any, List, Optional

from fitscore.models.models import BREAKDOWN_CEILINGS, ParsedScore, ParseOutcome, ScoreBreakdown
from fitscore.utils.logging_config import get_logger

logger = get_logger(__name__)

SUGGESTION_COUNT = 5
FILLER_SUGGESTION = "Continue improving your profile to match job requirements"
DEFAULT_REASONING = "Score derived from the weighted comparison of the job and candidate summaries"

FALLBACK_SCORE = 50
FALLBACK_REASONING = "Unable to complete detailed analysis due to parsing error"
FALLBACK_BREAKDOWN = {
    "technical_skills": 15,
    "experience": 12,
    "education": 8,
    "domain_fit": 7,
    "soft_skills": 5,
    "growth_potential": 3,
}
FALLBACK_GAPS = [
    "Detailed gap analysis unavailable; compare the job requirements with your profile manually",
]
FALLBACK_SUGGESTIONS = [
    "Ensure your resume clearly highlights relevant skills",
    "Match your experience with job requirements",
    "Include relevant keywords from the job description",
    "Quantify your achievements with specific metrics",
    "Tailor your profile to the specific role requirements",
]

_FENCE = re.compile(r"```(?:json|JSON)?")


def fallback_result() -> ParsedScore:
    return ParsedScore(
        outcome=ParseOutcome.FALLBACK,
        score=FALLBACK_SCORE,
        breakdown=ScoreBreakdown(**FALLBACK_BREAKDOWN),
        gaps=list(FALLBACK_GAPS),
        suggestions=list(FALLBACK_SUGGESTIONS),
        reasoning=FALLBACK_REASONING,
    )


def extract_json_object(raw: str) -> Optional[dict]:
    """Strip fences, slice from the first '{' to the last '}' and parse it."""
    if not isinstance(raw, str):
        return None
    text = _FENCE.sub("", raw.strip())
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end < start:
        return None
    try:
        data = json.loads(text[start:end + 1])
    except ValueError:
        return None
    return data if isinstance(data, dict) else None


def _as_number(x: Any) -> Optional[float]:
    if isinstance(x, bool):
        return None
    if isinstance(x, (int, float)):
        value = float(x)
    elif isinstance(x, str):
        try:
            value = float(x.strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def _clamp(value: float, low: int, high: int) -> int:
    return int(max(low, min(high, round(value))))


def _as_text_list(x: Any) -> List[str]:
    return [str(t).strip() for t in x if t is not None and str(t).strip()]


def _normalize_breakdown(x: Any) -> ScoreBreakdown:
    values = {}
    source = x if isinstance(x, dict) else {}
    for name, ceiling in BREAKDOWN_CEILINGS.items():
        number = _as_number(source.get(name))
        values[name] = _clamp(number, 0, ceiling) if number is not None else 0
    return ScoreBreakdown(**values)


def _normalize_suggestions(items: List[str]) -> List[str]:
    items = items[:SUGGESTION_COUNT]
    while len(items) < SUGGESTION_COUNT:
        items.append(FILLER_SUGGESTION)
    return items


def parse_scoring_response(raw: str) -> ParsedScore:
    data = extract_json_object(raw)
    if data is None:
        logger.warning("Scoring response is not a JSON object; using fallback result")
        logger.debug(f"Raw scoring response: {raw!r}")
        return fallback_result()

    score = _as_number(data.get("score"))
    if score is None:
        logger.warning(f"Scoring response has a non-numeric score ({data.get('score')!r}); using fallback result")
        return fallback_result()

    suggestions = data.get("suggestions", [])
    if not isinstance(suggestions, list):
        logger.warning("Scoring response suggestions is not a list; using fallback result")
        return fallback_result()

    gaps = data.get("gaps", [])
    if isinstance(gaps, str):
        gaps = [gaps]
    elif not isinstance(gaps, list):
        gaps = []

    reasoning = data.get("reasoning")
    if not isinstance(reasoning, str) or not reasoning.strip():
        reasoning = DEFAULT_REASONING

    parsed = ParsedScore(
        outcome=ParseOutcome.PARSED,
        score=_clamp(score, 0, 100),
        breakdown=_normalize_breakdown(data.get("breakdown")),
        gaps=_as_text_list(gaps),
        suggestions=_normalize_suggestions(_as_text_list(suggestions)),
        reasoning=reasoning.strip(),
    )

    # score and breakdown come from the same unvalidated response and may disagree
    if parsed.breakdown.total() != parsed.score:
        logger.debug(f"Score {parsed.score} differs from breakdown total {parsed.breakdown.total()}")
    return parsed
