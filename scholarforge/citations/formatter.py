"""Citation formatter for literature records.

Renders one literature record as a reference-list string in APA 7th,
MLA 9th, Chicago or IEEE style, and builds the author labels used for
in-text citations.
"""

import re

from scholarforge.state.enums import CitationStyle
from scholarforge.state.models import LiteratureRecord


def last_name_from_author(author_name: str) -> str:
    """
    Extract the last name from a display name.
    
    Takes the final whitespace-separated token and drops trailing
    punctuation.
    
    Examples:
        >>> last_name_from_author("Eugene F. Fama")
        'Fama'
        >>> last_name_from_author("  ")
        'Unknown'
    """
    cleaned = re.sub(r"\s+", " ", author_name.strip())
    if not cleaned:
        return "Unknown"
    return re.sub(r"[.,;:]+$", "", cleaned.split(" ")[-1]) or "Unknown"


def author_label(authors: list[str]) -> str:
    """
    Build the author part of an in-text citation.
    
    Examples:
        >>> author_label(["Ada Lovelace"])
        'Lovelace'
        >>> author_label(["Ada Lovelace", "Charles Babbage"])
        'Lovelace & Babbage'
        >>> author_label(["A. One", "B. Two", "C. Three"])
        'One et al.'
    """
    names = [name for name in authors if name]
    if not names:
        return "Unknown"
    if len(names) == 1:
        return last_name_from_author(names[0])
    if len(names) == 2:
        return f"{last_name_from_author(names[0])} & {last_name_from_author(names[1])}"
    return f"{last_name_from_author(names[0])} et al."


def format_in_text_citation(paper: LiteratureRecord, style: str | CitationStyle) -> str:
    """
    Format a parenthetical in-text citation for one paper.
    
    IEEE uses bracketed numbers, which are produced from citation keys
    rather than from the paper, so an empty string is returned for it.
    
    Returns:
        "(Last)" for MLA9, "(Last, Year)" for all other styles.
    """
    resolved = style if isinstance(style, CitationStyle) else CitationStyle.parse(style)
    label = author_label(paper.authors)
    year = str(paper.year) if paper.year else "n.d."
    
    if resolved == CitationStyle.IEEE:
        return ""
    if resolved == CitationStyle.MLA9:
        return f"({label})"
    return f"({label}, {year})"


def format_citation(paper: LiteratureRecord, style: str | CitationStyle = CitationStyle.APA7) -> str:
    """
    Format a paper as a reference-list entry.
    
    Args:
        paper: Literature record to format.
        style: Citation style; unrecognized styles render as APA7.
        
    Returns:
        Formatted reference string.
        
    Examples:
        >>> paper = LiteratureRecord(paper_id="p1", title="Deep Nets", year=2020,
        ...                          authors=["A. Smith", "B. Jones"], venue="NeurIPS")
        >>> format_citation(paper, "APA7")
        'A. Smith, B. Jones (2020). Deep Nets. NeurIPS.'
        >>> format_citation(paper, "IEEE")
        'A. Smith, B. Jones, "Deep Nets," NeurIPS, 2020.'
    """
    resolved = style if isinstance(style, CitationStyle) else CitationStyle.parse(style)
    authors = ", ".join(paper.authors)
    year = paper.year or "n.d."
    title = paper.title
    venue = paper.venue or "Unpublished manuscript"
    
    if resolved == CitationStyle.MLA9:
        return f'{authors}. "{title}." {venue}, {year}.'
    if resolved == CitationStyle.CHICAGO:
        return f'{authors}. "{title}." {venue} ({year}).'
    if resolved == CitationStyle.IEEE:
        return f'{authors}, "{title}," {venue}, {year}.'
    return f"{authors} ({year}). {title}. {venue}."
