"""One-pass length convergence toward a target word count."""

import logging
import re
from typing import TYPE_CHECKING

from scholarforge.content.normalize import (
    compute_word_count,
    normalize_citation_keys,
    word_count_window,
)

if TYPE_CHECKING:
    from scholarforge.llm.gateway import ModelGateway

logger = logging.getLogger(__name__)

HEADING_LINE = re.compile(r"^#{1,6}\s+(.+?)\s*$", re.MULTILINE)


def heading_outline(markdown: str) -> list[str]:
    """Markdown heading lines in document order."""
    return [match.group(0).strip() for match in HEADING_LINE.finditer(markdown)]


def build_length_prompt(body: str, target: int, direction: str) -> str:
    return f"""You are an expert academic editor.

Revise the following markdown to {direction} it so the TOTAL word count is approximately {target} words (±10%).

Strict requirements:
- Keep the section headings exactly as they are (do not add/remove headings, do not duplicate them).
- Do NOT add numbered headings (no "1. Introduction").
- Preserve all citation markers in [refX] form; do NOT introduce [1] style citations.
- Keep content technical, specific, and coherent; avoid filler.

Markdown to revise:
{body}"""


async def adjust_body_to_target_word_count(
    body: str,
    target: int,
    max_ref: int,
    gateway: "ModelGateway",
    enabled: bool = True,
) -> str:
    """
    Ask the model once to expand or condense ``body`` toward ``target`` words.
    
    Nothing happens when disabled, when the target is not positive or when
    the body is already within ten percent of the target. An empty model
    response keeps the original body, as does a rewrite whose heading lines
    differ from the original's in any way. An accepted rewrite has numeric
    citations normalized back to ``[refN]`` keys.
    
    Args:
        body: Assembled markdown body.
        target: Target word count.
        max_ref: Number of bound citation keys.
        gateway: Model gateway used for the rewrite.
        enabled: Whether length convergence is active.
        
    Returns:
        The adjusted (or original) body.
    """
    if not enabled or not target or target <= 0:
        return body
    
    current = compute_word_count(body)
    lower, upper = word_count_window(target)
    if lower <= current <= upper:
        return body
    
    direction = "expand" if target > current else "condense"
    logger.info(f"Length pass: {current} words, target {target}; asking model to {direction}")
    
    response = await gateway.invoke(
        [{"role": "user", "content": build_length_prompt(body, target, direction)}]
    )
    revised = response.text
    if not revised.strip():
        return body
    if heading_outline(revised) != heading_outline(body):
        logger.warning("Length pass changed the section headings; keeping the original body")
        return body
    return normalize_citation_keys(revised, max_ref)
