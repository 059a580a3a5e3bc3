"""Citation manager for binding literature to keys and rendering markers."""

import re

from scholarforge.citations.formatter import format_in_text_citation
from scholarforge.state.enums import CitationStyle
from scholarforge.state.models import CitationBinding, LiteratureRecord

# One run of adjacent [refN] markers, including the whitespace after each
CITATION_RUN_PATTERN = re.compile(r"(?:\[\s*ref(\d+)\s*\]\s*)+", re.IGNORECASE)
CITATION_MARKER_PATTERN = re.compile(r"\[\s*ref(\d+)\s*\]", re.IGNORECASE)
# A marker together with the spaces before it on the same line
SPACED_MARKER_PATTERN = re.compile(r"[ \t]*\[\s*ref(\d+)\s*\]", re.IGNORECASE)


def bind_citations(records: list[LiteratureRecord]) -> list[CitationBinding]:
    """Assign ``ref1..refN`` keys in discovery order."""
    return [
        CitationBinding(citation_key=f"ref{index}", paper=record)
        for index, record in enumerate(records, start=1)
    ]


def apply_citation_style(
    markdown: str,
    bindings: list[CitationBinding],
    style: str | CitationStyle,
) -> str:
    """
    Render ``[refN]`` markers in the requested citation style.
    
    Adjacent markers collapse into a single citation with duplicates
    removed. IEEE keeps bracketed numbers (``[1,2]``); MLA9 renders
    ``(Last)`` and every other style ``(Last, Year)``. Several papers share
    one parenthetical separated by ``; ``. Keys without a binding render as
    ``(Unknown, n.d.)``.
    
    Args:
        markdown: Text containing ``[refN]`` markers.
        bindings: Citation bindings of the current document.
        style: Citation style name.
        
    Returns:
        Text with styled in-text citations.
    """
    resolved = style if isinstance(style, CitationStyle) else CitationStyle.parse(style)
    papers_by_number = {binding.number: binding.paper for binding in bindings}
    
    def render_run(match: re.Match) -> str:
        run = match.group(0)
        trailing = re.search(r"\s+$", run)
        trailing_whitespace = trailing.group(0) if trailing else ""
        
        numbers: list[int] = []
        for marker in CITATION_MARKER_PATTERN.finditer(run):
            number = int(marker.group(1))
            if number > 0 and number not in numbers:
                numbers.append(number)
        if not numbers:
            return run
        
        if resolved == CitationStyle.IEEE:
            return f"[{','.join(str(n) for n in numbers)}]{trailing_whitespace}"
        
        parts = []
        for number in numbers:
            paper = papers_by_number.get(number)
            parts.append(
                format_in_text_citation(paper, resolved) if paper else "(Unknown, n.d.)"
            )
        if len(parts) == 1:
            return f"{parts[0]}{trailing_whitespace}"
        inner = "; ".join(part[1:-1] for part in parts)
        return f"({inner}){trailing_whitespace}"
    
    return CITATION_RUN_PATTERN.sub(render_run, markdown)


class CitationManager:
    """
    Manage the citation bindings of one document.
    
    Tracks the bound literature, renders markers in the document's style,
    and verifies that every marker in a text resolves to a binding.
    """
    
    def __init__(self, bindings: list[CitationBinding] | None = None):
        self._bindings: dict[str, CitationBinding] = {}
        for binding in bindings or []:
            self.add_binding(binding)
    
    @classmethod
    def from_records(cls, records: list[LiteratureRecord]) -> "CitationManager":
        return cls(bind_citations(records))
    
    def add_binding(self, binding: CitationBinding) -> None:
        self._bindings[binding.citation_key] = binding
    
    def get_binding(self, key: str) -> CitationBinding | None:
        return self._bindings.get(key)
    
    @property
    def bindings(self) -> list[CitationBinding]:
        """Bindings in key order."""
        return sorted(self._bindings.values(), key=lambda b: b.number)
    
    def __len__(self) -> int:
        return len(self._bindings)
    
    def used_keys(self, markdown: str) -> list[str]:
        """Citation keys referenced in the text, in first-use order."""
        keys: list[str] = []
        for marker in CITATION_MARKER_PATTERN.finditer(markdown):
            key = f"ref{int(marker.group(1))}"
            if key not in keys:
                keys.append(key)
        return keys
    
    def unresolved_keys(self, markdown: str) -> list[str]:
        """Keys referenced in the text that have no binding."""
        return [key for key in self.used_keys(markdown) if key not in self._bindings]
    
    def strip_unresolved(self, markdown: str) -> str:
        """Remove markers whose key has no binding, with the spaces before them."""
        def keep_if_bound(match: re.Match) -> str:
            key = f"ref{int(match.group(1))}"
            return match.group(0) if key in self._bindings else ""
        
        return SPACED_MARKER_PATTERN.sub(keep_if_bound, markdown)
    
    def render(self, markdown: str, style: str | CitationStyle) -> str:
        return apply_citation_style(markdown, self.bindings, style)
