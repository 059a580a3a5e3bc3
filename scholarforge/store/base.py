"""Persistence contract used by the pipeline, revisions and export.

The core never talks to a database directly. Implementations store
records keyed by integer ids; updates merge the given fields into the
stored record.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any

from scholarforge.errors import RecordNotFoundError
from scholarforge.state.enums import JobStatus, RevisionStatus
from scholarforge.state.models import (
    AuthorRecord,
    CitationRecord,
    Document,
    DocumentBundle,
    FigureRecord,
    GenerationJob,
    RevisionRequest,
    TableRecord,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore(ABC):
    """Async store for generation jobs, documents and their dependent rows."""
    
    # =========================================================================
    # Generation jobs
    # =========================================================================
    
    @abstractmethod
    async def create_generation_job(self, job: GenerationJob) -> GenerationJob:
        ...
    
    @abstractmethod
    async def get_generation_job(self, job_id: int) -> GenerationJob | None:
        ...
    
    @abstractmethod
    async def update_generation_job(self, job_id: int, **fields: Any) -> GenerationJob:
        """Merge ``fields`` into the job; raises RecordNotFoundError if missing."""
    
    # =========================================================================
    # Documents and dependent rows
    # =========================================================================
    
    @abstractmethod
    async def create_document(self, document: Document) -> Document:
        ...
    
    @abstractmethod
    async def get_document(self, document_id: int) -> Document | None:
        ...
    
    @abstractmethod
    async def list_documents_for_job(self, job_id: int) -> list[Document]:
        ...
    
    @abstractmethod
    async def create_authors(self, authors: list[AuthorRecord]) -> list[AuthorRecord]:
        ...
    
    @abstractmethod
    async def list_authors(self, document_id: int) -> list[AuthorRecord]:
        ...
    
    @abstractmethod
    async def create_citations(self, citations: list[CitationRecord]) -> list[CitationRecord]:
        ...
    
    @abstractmethod
    async def list_citations(self, document_id: int) -> list[CitationRecord]:
        ...
    
    @abstractmethod
    async def create_figures(self, figures: list[FigureRecord]) -> list[FigureRecord]:
        ...
    
    @abstractmethod
    async def list_figures(self, document_id: int) -> list[FigureRecord]:
        ...
    
    @abstractmethod
    async def create_tables(self, tables: list[TableRecord]) -> list[TableRecord]:
        ...
    
    @abstractmethod
    async def list_tables(self, document_id: int) -> list[TableRecord]:
        ...
    
    # =========================================================================
    # Revision requests
    # =========================================================================
    
    @abstractmethod
    async def create_revision_request(self, request: RevisionRequest) -> RevisionRequest:
        ...
    
    @abstractmethod
    async def get_revision_request(self, request_id: int) -> RevisionRequest | None:
        ...
    
    @abstractmethod
    async def update_revision_request(self, request_id: int, **fields: Any) -> RevisionRequest:
        ...
    
    # =========================================================================
    # Composite operations
    # =========================================================================
    
    async def create_document_bundle(self, bundle: DocumentBundle) -> DocumentBundle:
        """
        Create a document and all of its dependent rows.
        
        Dependent rows get the new document's id. Implementations backed by a
        transactional database should override this to write in one
        transaction.
        """
        document = await self.create_document(bundle.document)
        
        def scoped(records):
            return [record.model_copy(update={"document_id": document.id}) for record in records]
        
        return DocumentBundle(
            document=document,
            authors=await self.create_authors(scoped(bundle.authors)),
            citations=await self.create_citations(scoped(bundle.citations)),
            figures=await self.create_figures(scoped(bundle.figures)),
            tables=await self.create_tables(scoped(bundle.tables)),
        )
    
    async def require_generation_job(self, job_id: int) -> GenerationJob:
        job = await self.get_generation_job(job_id)
        if job is None:
            raise RecordNotFoundError("Generation job", job_id)
        return job
    
    async def update_generation_job_progress(
        self,
        job_id: int,
        phase: str,
        percentage: int,
    ) -> GenerationJob:
        """Record the phase being worked on and a rough time estimate in minutes."""
        return await self.update_generation_job(
            job_id,
            status=JobStatus.PROCESSING,
            current_phase=phase,
            progress_percentage=percentage,
            estimated_time_remaining=round((100 - percentage) / 10),
        )
    
    async def complete_generation_job(
        self,
        job_id: int,
        status: JobStatus,
        *,
        novelty_score: float | None = None,
        quality_score: float | None = None,
        error_message: str | None = None,
    ) -> GenerationJob:
        """Move a job to a terminal status."""
        fields: dict[str, Any] = {"status": status, "completed_at": _utc_now()}
        if status == JobStatus.COMPLETED:
            fields["progress_percentage"] = 100
            fields["estimated_time_remaining"] = 0
        if novelty_score is not None:
            fields["novelty_score"] = novelty_score
        if quality_score is not None:
            fields["quality_score"] = quality_score
        if error_message is not None:
            fields["error_message"] = error_message
        return await self.update_generation_job(job_id, **fields)
    
    async def update_revision_request_status(
        self,
        request_id: int,
        status: RevisionStatus,
        new_document_id: int | None = None,
    ) -> RevisionRequest:
        fields: dict[str, Any] = {"status": status}
        if status in (RevisionStatus.COMPLETED, RevisionStatus.FAILED):
            fields["completed_at"] = _utc_now()
        if new_document_id is not None:
            fields["new_document_id"] = new_document_id
        return await self.update_revision_request(request_id, **fields)
