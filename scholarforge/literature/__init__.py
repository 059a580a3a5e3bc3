"""Literature search for ScholarForge."""

from scholarforge.citations.formatter import format_citation
from scholarforge.literature.client import LiteratureClient, PAPER_FIELDS
from scholarforge.literature.models import KeyPapers, SearchPage
from scholarforge.literature.throttle import RequestQueue, ResponseCache

__all__ = [
    "LiteratureClient",
    "PAPER_FIELDS",
    "KeyPapers",
    "SearchPage",
    "RequestQueue",
    "ResponseCache",
    "format_citation",
]
