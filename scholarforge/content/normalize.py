"""Text normalization for model-written markdown.

Pure functions that remove duplicated headings, rewrite stray numeric
citations into citation keys and count words.
"""

import math
import re

HEADING_LINE = re.compile(r"^#{1,6}\s+")
NUMBERED_LINE = re.compile(r"^\d+\.\s+")
NUMERIC_CITATION = re.compile(r"\[(\d{1,3})\]")


def compute_word_count(text: str) -> int:
    """Number of whitespace-separated tokens."""
    return len(text.split())


def strip_leading_headings(markdown: str) -> str:
    """
    Drop leading blank lines, markdown headings and numbered title lines.
    
    Examples:
        >>> strip_leading_headings("## Intro\\n1. Intro\\n\\nBody text")
        'Body text'
    """
    lines = markdown.split("\n")
    i = 0
    while i < len(lines):
        stripped = lines[i].strip()
        if not stripped or HEADING_LINE.match(stripped) or NUMBERED_LINE.match(stripped):
            i += 1
            continue
        break
    return "\n".join(lines[i:]).strip()


def _normalize_title_line(line: str) -> str:
    return re.sub(r"[:\-–—]+$", "", line).strip().lower()


def strip_leading_section_title(markdown: str, section_title: str) -> str:
    """
    Drop leading lines that repeat the section title.
    
    Matching is case-insensitive and ignores trailing colons or dashes, a
    leading ordinal such as "1. " and a trailing parenthetical.
    
    Examples:
        >>> strip_leading_section_title("1. Abstract (optional):\\nBody", "Abstract")
        'Body'
    """
    if not markdown.strip():
        return markdown
    
    lines = markdown.split("\n")
    title = section_title.strip().lower()
    i = 0
    while i < len(lines):
        stripped = lines[i].strip()
        if not stripped:
            i += 1
            continue
        
        normalized = _normalize_title_line(stripped)
        if normalized == title:
            i += 1
            continue
        
        # Variants like "1. Abstract" or "Abstract (draft)"
        variant = re.sub(r"\(.*?\)$", "", NUMBERED_LINE.sub("", normalized, count=1)).strip()
        if variant == title:
            i += 1
            continue
        
        break
    
    return "\n".join(lines[i:]).strip()


def normalize_citation_keys(markdown: str, max_ref: int) -> str:
    """
    Rewrite ``[n]`` into ``[ref<n>]`` for ``1 <= n <= max_ref``.
    
    Markers outside that range are ordinary text and stay untouched.
    
    Examples:
        >>> normalize_citation_keys("See [1] and [7].", 5)
        'See [ref1] and [7].'
    """
    if max_ref <= 0:
        return markdown
    
    def replace(match: re.Match) -> str:
        number = int(match.group(1))
        if number < 1 or number > max_ref:
            return match.group(0)
        return f"[ref{number}]"
    
    return NUMERIC_CITATION.sub(replace, markdown)


def clean_section_body(markdown: str, section_title: str, max_ref: int) -> str:
    """Apply title stripping, heading stripping and key normalization."""
    return normalize_citation_keys(
        strip_leading_headings(strip_leading_section_title(markdown, section_title)),
        max_ref,
    )


def word_count_window(target: int) -> tuple[int, int]:
    """Accepted word-count range: target minus and plus ten percent."""
    return math.floor(target * 0.9), math.ceil(target * 1.1)
