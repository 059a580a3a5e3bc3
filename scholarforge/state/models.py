"""Pydantic models for ScholarForge state.

These models cover the immutable generation request, the per-run
generation context, literature records and citation bindings, and the
persisted records written by the pipeline and the revision processor.
"""

import re
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from scholarforge.state.enums import (
    JobStatus,
    RevisionStatus,
    RevisionType,
)


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def _as_int(value: Any) -> int | None:
    """Integer API field, or None for nulls and non-numeric values."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


# =============================================================================
# Generation Request
# =============================================================================


class AuthorInput(BaseModel):
    """One author as submitted with a generation request."""
    
    model_config = ConfigDict(frozen=True)
    
    name: str
    affiliation: str = ""
    email: str | None = None
    orcid: str | None = None
    is_corresponding: bool = False


class GenerationRequest(BaseModel):
    """Immutable input to one pipeline run."""
    
    model_config = ConfigDict(frozen=True)
    
    document_type: str = Field(..., description="e.g. journal_article, review, thesis_chapter")
    title: str = Field(..., min_length=1)
    research_domain: str = Field(..., min_length=1)
    subdomain: str | None = None
    target_word_count: int = Field(default=3000, ge=0)
    num_figures: int = Field(default=0, ge=0)
    num_tables: int = Field(default=0, ge=0)
    num_references: int = Field(default=0, ge=0)
    citation_style: str = "APA7"
    target_journal: str | None = None
    abstract_provided: str | None = None
    key_hypotheses: list[str] = Field(default_factory=list)
    methodology_constraints: list[str] = Field(default_factory=list)
    authors: list[AuthorInput] = Field(default_factory=list)
    
    @property
    def topic(self) -> str:
        """Literature search topic: domain plus optional subdomain."""
        if self.subdomain:
            return f"{self.research_domain} {self.subdomain}"
        return self.research_domain
    
    @property
    def domain_label(self) -> str:
        if self.subdomain:
            return f"{self.research_domain} / {self.subdomain}"
        return self.research_domain


# =============================================================================
# Literature
# =============================================================================


class LiteratureRecord(BaseModel):
    """A paper returned by the literature backend (or a placeholder)."""
    
    model_config = ConfigDict(frozen=True)
    
    paper_id: str
    title: str = "Untitled"
    abstract: str | None = None
    year: int | None = None
    authors: list[str] = Field(default_factory=list)
    venue: str | None = None
    citation_count: int | None = None
    influential_citation_count: int | None = None
    fields_of_study: list[str] = Field(default_factory=list)
    external_ids: dict[str, str] = Field(default_factory=dict)
    url: str | None = None
    
    @property
    def is_placeholder(self) -> bool:
        return self.paper_id.startswith("placeholder")
    
    @property
    def doi(self) -> str | None:
        return self.external_ids.get("DOI")
    
    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "LiteratureRecord":
        """Build a record from a Semantic Scholar paper object."""
        raw_ids = payload.get("externalIds")
        external_ids = {
            key: str(value)
            for key, value in (raw_ids if isinstance(raw_ids, dict) else {}).items()
            if value is not None
        }
        return cls(
            paper_id=str(payload.get("paperId") or ""),
            title=str(payload.get("title") or "Untitled"),
            abstract=payload.get("abstract") if isinstance(payload.get("abstract"), str) else None,
            year=_as_int(payload.get("year")),
            authors=[
                str(author.get("name") or "Unknown")
                for author in payload.get("authors") or []
                if isinstance(author, dict)
            ],
            venue=str(payload.get("venue") or "") or None,
            citation_count=_as_int(payload.get("citationCount")),
            influential_citation_count=_as_int(payload.get("influentialCitationCount")),
            fields_of_study=[str(f) for f in payload.get("fieldsOfStudy") or [] if f],
            external_ids=external_ids,
            url=payload.get("url") if isinstance(payload.get("url"), str) else None,
        )
    
    @classmethod
    def placeholder(cls, index: int, reason: str) -> "LiteratureRecord":
        """Synthetic record used when the backend returns too few papers."""
        return cls(
            paper_id=f"placeholder_{index}",
            title=f"Placeholder reference {index} ({reason})",
            year=_utc_now().year,
            authors=["Unknown"],
            venue="Unknown",
        )


class CitationBinding(BaseModel):
    """A literature record bound to a stable ``ref<N>`` key."""
    
    model_config = ConfigDict(frozen=True)
    
    citation_key: str = Field(..., pattern=r"^ref\d+$")
    paper: LiteratureRecord
    
    @property
    def number(self) -> int:
        return int(re.sub(r"^ref", "", self.citation_key))


# =============================================================================
# Figure and Table Plans
# =============================================================================


class FigurePlan(BaseModel):
    figure_number: str
    figure_type: str = "figure"
    caption: str
    alt_text: str = ""


class TablePlan(BaseModel):
    table_number: str
    caption: str
    columns: list[str]
    rows: list[list[str]]


# =============================================================================
# Generation Context
# =============================================================================


class GenerationContext(BaseModel):
    """Mutable state of exactly one pipeline run.
    
    A new context is created for every run and handed to each phase in
    turn; nothing in it is shared between runs.
    """
    
    job_id: int
    request: GenerationRequest
    literature: list[LiteratureRecord] = Field(default_factory=list)
    citations: list[CitationBinding] = Field(default_factory=list)
    outline: str = ""
    sections: dict[str, str] = Field(default_factory=dict)
    figure_plans: list[FigurePlan] = Field(default_factory=list)
    table_plans: list[TablePlan] = Field(default_factory=list)
    novelty_score: float | None = None
    novelty_classification: str | None = None
    novelty_reasoning: str | None = None
    quality_score: float | None = None
    quality_feedback: str | None = None
    document_id: int | None = None


# =============================================================================
# Persisted Records
# =============================================================================


class GenerationJob(BaseModel):
    """Lifecycle record of one pipeline run; the only mutable stored entity."""
    
    id: int | None = None
    user_id: int | None = None
    status: JobStatus = JobStatus.QUEUED
    request: GenerationRequest | None = None
    current_phase: str | None = None
    progress_percentage: int = 0
    estimated_time_remaining: int | None = None  # minutes
    novelty_score: float | None = None
    quality_score: float | None = None
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None


class Document(BaseModel):
    id: int | None = None
    job_id: int
    title: str
    abstract: str = ""
    content: str
    keywords: list[str] = Field(default_factory=list)
    document_type: str
    word_count: int
    citation_style: str
    novelty_score: float | None = None
    novelty_classification: str | None = None
    quality_score: float | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class AuthorRecord(BaseModel):
    id: int | None = None
    document_id: int | None = None
    name: str
    affiliation: str = ""
    email: str | None = None
    orcid: str | None = None
    is_corresponding: bool = False
    order_index: int
    created_at: datetime = Field(default_factory=_utc_now)


class CitationRecord(BaseModel):
    id: int | None = None
    document_id: int | None = None
    doi: str | None = None
    title: str
    authors_text: str = ""
    journal: str | None = None
    year: int | None = None
    volume: str | None = None
    pages: str | None = None
    url: str | None = None
    citation_key: str | None = None
    formatted_citations: dict[str, str] = Field(default_factory=dict)
    order_index: int
    created_at: datetime = Field(default_factory=_utc_now)


class FigureRecord(BaseModel):
    id: int | None = None
    document_id: int | None = None
    figure_number: str
    figure_type: str | None = None
    caption: str
    image_url: str = ""
    generation_method: str | None = None
    alt_text: str | None = None
    position_in_document: int
    created_at: datetime = Field(default_factory=_utc_now)


class TableRecord(BaseModel):
    id: int | None = None
    document_id: int | None = None
    table_number: str
    caption: str
    html_content: str
    csv_data: str | None = None
    column_headers: list[str] = Field(default_factory=list)
    position_in_document: int
    created_at: datetime = Field(default_factory=_utc_now)


class RevisionRequest(BaseModel):
    id: int | None = None
    document_id: int
    user_id: int | None = None
    revision_type: RevisionType
    instructions: str
    preserve_argument: bool = True
    preserve_figures: bool = True
    preserve_word_count: bool = False
    preserve_citations: bool = True
    status: RevisionStatus = RevisionStatus.PENDING
    new_document_id: int | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
    completed_at: datetime | None = None


class DocumentBundle(BaseModel):
    """A document together with the dependent rows created alongside it."""
    
    document: Document
    authors: list[AuthorRecord] = Field(default_factory=list)
    citations: list[CitationRecord] = Field(default_factory=list)
    figures: list[FigureRecord] = Field(default_factory=list)
    tables: list[TableRecord] = Field(default_factory=list)
