"""Enums and constants for ScholarForge state."""

from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle of one generation pipeline run."""
    
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    
    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class RevisionStatus(str, Enum):
    """Lifecycle of one revision request."""
    
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class RevisionType(str, Enum):
    """Kinds of revision a user can ask for."""
    
    TARGETED_EDIT = "targeted_edit"
    GLOBAL_REVISION = "global_revision"
    EXPANSION = "expansion"
    REDUCTION = "reduction"
    STYLE_ADJUSTMENT = "style_adjustment"


class CitationStyle(str, Enum):
    """Citation styles with dedicated rendering rules."""
    
    APA7 = "APA7"
    MLA9 = "MLA9"
    CHICAGO = "Chicago"
    IEEE = "IEEE"
    
    @classmethod
    def parse(cls, value: str | None) -> "CitationStyle":
        """Resolve a style name case-insensitively; unknown names fall back to APA7."""
        normalized = (value or "").strip().lower()
        for style in cls:
            if style.value.lower() == normalized:
                return style
        return cls.APA7


class NoveltyClassification(str, Enum):
    """Novelty bands derived from the 0-1 novelty score."""
    
    SUBSTANTIAL = "substantial"  # >= 0.8
    MODERATE = "moderate"        # >= 0.6
    INCREMENTAL = "incremental"
    
    @classmethod
    def from_score(cls, score: float | None) -> "NoveltyClassification":
        if score is not None and score >= 0.8:
            return cls.SUBSTANTIAL
        if score is not None and score >= 0.6:
            return cls.MODERATE
        return cls.INCREMENTAL


class ExportFormat(str, Enum):
    """Textual export formats."""
    
    MARKDOWN = "markdown"
    LATEX = "latex"


# Canonical section order of every generated document
SECTION_ORDER: tuple[str, ...] = (
    "Abstract",
    "Introduction",
    "Literature Review",
    "Methodology",
    "Results",
    "Discussion",
    "Conclusion",
)
