"""Score parsing and the quality review call shared by generation and revisions."""

import logging
import math
from typing import TYPE_CHECKING, Any

from scholarforge.llm.schemas import QUALITY_ASSESSMENT_SCHEMA

if TYPE_CHECKING:
    from scholarforge.llm.gateway import ModelGateway

logger = logging.getLogger(__name__)

QUALITY_EXCERPT_CHARS = 2000


def clamp_number(value: Any, fallback: float | None, low: float, high: float) -> float | None:
    """
    Clamp a numeric model output into ``[low, high]``.
    
    Non-numeric or non-finite values yield ``fallback``.
    
    Examples:
        >>> clamp_number(1.7, 0.6, 0, 1)
        1
        >>> clamp_number("high", 0.6, 0, 1)
        0.6
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value):
        return fallback
    return min(high, max(low, value))


def quality_prompt(excerpt: str) -> str:
    return f"""Review this academic document and provide a quality score (0-100) based on:
- Clarity and coherence
- Logical flow
- Academic rigor
- Citation appropriateness

Document excerpt (first {QUALITY_EXCERPT_CHARS} chars):
{excerpt[:QUALITY_EXCERPT_CHARS]}

Respond in JSON format: {{"score": 85, "feedback": "..."}}"""


async def assess_quality(
    gateway: "ModelGateway",
    markdown: str,
    fallback: float | None = 80,
) -> tuple[float | None, str | None]:
    """
    Ask the model for a 0-100 quality score of a document excerpt.
    
    Returns:
        (score, feedback); the score is clamped and falls back to
        ``fallback`` when the response carries no usable number.
    """
    response = await gateway.invoke(
        [{"role": "user", "content": quality_prompt(markdown)}],
        output_schema=QUALITY_ASSESSMENT_SCHEMA,
    )
    parsed = response.parse_json() or {}
    score = clamp_number(parsed.get("score"), fallback, 0, 100)
    if score == fallback and parsed.get("score") is None:
        logger.warning("Quality review returned no score; using fallback")
    feedback = parsed.get("feedback")
    return score, feedback if isinstance(feedback, str) else None
