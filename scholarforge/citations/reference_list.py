"""Reference list generation and citation record construction."""

from scholarforge.citations.formatter import format_citation
from scholarforge.state.enums import CitationStyle
from scholarforge.state.models import CitationBinding, CitationRecord

NO_REFERENCES_PLACEHOLDER = "_No references available._"


def build_references_section(
    bindings: list[CitationBinding],
    style: str | CitationStyle,
) -> str:
    """
    Build the ``## References`` block.
    
    IEEE entries are numbered ``1..N`` in key order; all other styles use
    bullets. An empty binding list renders an explicit placeholder.
    """
    if not bindings:
        return f"## References\n\n{NO_REFERENCES_PLACEHOLDER}"
    
    resolved = style if isinstance(style, CitationStyle) else CitationStyle.parse(style)
    items = []
    for index, binding in enumerate(bindings, start=1):
        formatted = format_citation(binding.paper, resolved)
        if resolved == CitationStyle.IEEE:
            items.append(f"{index}. {formatted}")
        else:
            items.append(f"- {formatted}")
    
    return ("## References\n\n" + "\n".join(items)).strip()


def citation_record_from_binding(
    binding: CitationBinding,
    style: str,
    order_index: int,
) -> CitationRecord:
    """Build the persisted Citation row for one binding."""
    paper = binding.paper
    return CitationRecord(
        doi=paper.doi,
        title=paper.title,
        authors_text=", ".join(paper.authors),
        journal=paper.venue,
        year=paper.year,
        url=paper.url,
        citation_key=binding.citation_key,
        formatted_citations={style: format_citation(paper, style)},
        order_index=order_index,
    )
