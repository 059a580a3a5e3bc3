"""Citation formatting, binding and reference lists."""

from scholarforge.citations.formatter import (
    author_label,
    format_citation,
    format_in_text_citation,
    last_name_from_author,
)
from scholarforge.citations.manager import (
    CitationManager,
    apply_citation_style,
    bind_citations,
)
from scholarforge.citations.reference_list import (
    build_references_section,
    citation_record_from_binding,
)

__all__ = [
    "author_label",
    "format_citation",
    "format_in_text_citation",
    "last_name_from_author",
    "CitationManager",
    "apply_citation_style",
    "bind_citations",
    "build_references_section",
    "citation_record_from_binding",
]
