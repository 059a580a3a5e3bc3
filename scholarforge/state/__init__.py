"""State management for ScholarForge."""

from scholarforge.state.enums import (
    JobStatus,
    RevisionStatus,
    RevisionType,
    CitationStyle,
    NoveltyClassification,
    ExportFormat,
    SECTION_ORDER,
)
from scholarforge.state.models import (
    AuthorInput,
    GenerationRequest,
    LiteratureRecord,
    CitationBinding,
    FigurePlan,
    TablePlan,
    GenerationContext,
    GenerationJob,
    Document,
    AuthorRecord,
    CitationRecord,
    FigureRecord,
    TableRecord,
    RevisionRequest,
    DocumentBundle,
)

__all__ = [
    # Enums
    "JobStatus",
    "RevisionStatus",
    "RevisionType",
    "CitationStyle",
    "NoveltyClassification",
    "ExportFormat",
    "SECTION_ORDER",
    # Models
    "AuthorInput",
    "GenerationRequest",
    "LiteratureRecord",
    "CitationBinding",
    "FigurePlan",
    "TablePlan",
    "GenerationContext",
    "GenerationJob",
    "Document",
    "AuthorRecord",
    "CitationRecord",
    "FigureRecord",
    "TableRecord",
    "RevisionRequest",
    "DocumentBundle",
]
