"""In-memory DocumentStore backed by LangGraph's InMemoryStore.

Each record kind lives in its own namespace and is keyed by its integer
id. No operation awaits between reading and writing, so every call is
atomic with respect to other tasks on the event loop.
"""

import itertools
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, TypeVar

from langgraph.store.memory import InMemoryStore
from pydantic import BaseModel

from scholarforge.errors import RecordNotFoundError
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
from scholarforge.store.base import DocumentStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Upper bound for namespace scans; the in-memory store holds test-sized data
SCAN_LIMIT = 10_000


class RecordNamespace(str, Enum):
    """One namespace per record kind."""
    
    GENERATION_JOBS = "generation_jobs"
    DOCUMENTS = "documents"
    AUTHORS = "authors"
    CITATIONS = "citations"
    FIGURES = "figures"
    TABLES = "tables"
    REVISION_REQUESTS = "revision_requests"


class InMemoryDocumentStore(DocumentStore):
    """DocumentStore for tests, examples and single-process use."""
    
    def __init__(self, store: InMemoryStore | None = None):
        self.store = store or InMemoryStore()
        self._ids = {namespace: itertools.count(1) for namespace in RecordNamespace}
    
    # =========================================================================
    # Generic helpers
    # =========================================================================
    
    def _put(self, namespace: RecordNamespace, record: BaseModel) -> None:
        self.store.put((namespace.value,), str(record.id), record.model_dump(mode="json"))
    
    def _insert(self, namespace: RecordNamespace, record: ModelT) -> ModelT:
        created = record.model_copy(update={"id": next(self._ids[namespace])})
        self._put(namespace, created)
        return created
    
    def _get(self, namespace: RecordNamespace, record_id: int, model: type[ModelT]) -> ModelT | None:
        item = self.store.get((namespace.value,), str(record_id))
        return model.model_validate(item.value) if item is not None else None
    
    def _update(
        self,
        namespace: RecordNamespace,
        record_id: int,
        model: type[ModelT],
        kind: str,
        fields: dict[str, Any],
    ) -> ModelT:
        current = self._get(namespace, record_id, model)
        if current is None:
            raise RecordNotFoundError(kind, record_id)
        updated = model.model_validate({
            **current.model_dump(),
            **fields,
            "updated_at": datetime.now(timezone.utc),
        })
        self._put(namespace, updated)
        return updated
    
    def _list_for_document(
        self,
        namespace: RecordNamespace,
        document_id: int,
        model: type[ModelT],
        order_field: str,
    ) -> list[ModelT]:
        items = self.store.search(
            (namespace.value,),
            filter={"document_id": document_id},
            limit=SCAN_LIMIT,
        )
        records = [model.model_validate(item.value) for item in items]
        return sorted(records, key=lambda record: getattr(record, order_field))
    
    # =========================================================================
    # Generation jobs
    # =========================================================================
    
    async def create_generation_job(self, job: GenerationJob) -> GenerationJob:
        return self._insert(RecordNamespace.GENERATION_JOBS, job)
    
    async def get_generation_job(self, job_id: int) -> GenerationJob | None:
        return self._get(RecordNamespace.GENERATION_JOBS, job_id, GenerationJob)
    
    async def update_generation_job(self, job_id: int, **fields: Any) -> GenerationJob:
        return self._update(
            RecordNamespace.GENERATION_JOBS, job_id, GenerationJob, "Generation job", fields
        )
    
    # =========================================================================
    # Documents and dependent rows
    # =========================================================================
    
    async def create_document(self, document: Document) -> Document:
        return self._insert(RecordNamespace.DOCUMENTS, document)
    
    async def get_document(self, document_id: int) -> Document | None:
        return self._get(RecordNamespace.DOCUMENTS, document_id, Document)
    
    async def list_documents_for_job(self, job_id: int) -> list[Document]:
        items = self.store.search(
            (RecordNamespace.DOCUMENTS.value,),
            filter={"job_id": job_id},
            limit=SCAN_LIMIT,
        )
        return sorted(
            (Document.model_validate(item.value) for item in items),
            key=lambda document: document.id,
        )
    
    async def create_authors(self, authors: list[AuthorRecord]) -> list[AuthorRecord]:
        return [self._insert(RecordNamespace.AUTHORS, author) for author in authors]
    
    async def list_authors(self, document_id: int) -> list[AuthorRecord]:
        return self._list_for_document(
            RecordNamespace.AUTHORS, document_id, AuthorRecord, "order_index"
        )
    
    async def create_citations(self, citations: list[CitationRecord]) -> list[CitationRecord]:
        return [self._insert(RecordNamespace.CITATIONS, citation) for citation in citations]
    
    async def list_citations(self, document_id: int) -> list[CitationRecord]:
        return self._list_for_document(
            RecordNamespace.CITATIONS, document_id, CitationRecord, "order_index"
        )
    
    async def create_figures(self, figures: list[FigureRecord]) -> list[FigureRecord]:
        return [self._insert(RecordNamespace.FIGURES, figure) for figure in figures]
    
    async def list_figures(self, document_id: int) -> list[FigureRecord]:
        return self._list_for_document(
            RecordNamespace.FIGURES, document_id, FigureRecord, "position_in_document"
        )
    
    async def create_tables(self, tables: list[TableRecord]) -> list[TableRecord]:
        return [self._insert(RecordNamespace.TABLES, table) for table in tables]
    
    async def list_tables(self, document_id: int) -> list[TableRecord]:
        return self._list_for_document(
            RecordNamespace.TABLES, document_id, TableRecord, "position_in_document"
        )
    
    async def create_document_bundle(self, bundle: DocumentBundle) -> DocumentBundle:
        """Create the document and its rows without yielding to the event loop."""
        document = self._insert(RecordNamespace.DOCUMENTS, bundle.document)
        
        def insert_all(namespace: RecordNamespace, records: list[ModelT]) -> list[ModelT]:
            return [
                self._insert(namespace, record.model_copy(update={"document_id": document.id}))
                for record in records
            ]
        
        created = DocumentBundle(
            document=document,
            authors=insert_all(RecordNamespace.AUTHORS, bundle.authors),
            citations=insert_all(RecordNamespace.CITATIONS, bundle.citations),
            figures=insert_all(RecordNamespace.FIGURES, bundle.figures),
            tables=insert_all(RecordNamespace.TABLES, bundle.tables),
        )
        logger.debug(
            f"Stored document {document.id} with {len(created.citations)} citations, "
            f"{len(created.figures)} figures, {len(created.tables)} tables"
        )
        return created
    
    # =========================================================================
    # Revision requests
    # =========================================================================
    
    async def create_revision_request(self, request: RevisionRequest) -> RevisionRequest:
        return self._insert(RecordNamespace.REVISION_REQUESTS, request)
    
    async def get_revision_request(self, request_id: int) -> RevisionRequest | None:
        return self._get(RecordNamespace.REVISION_REQUESTS, request_id, RevisionRequest)
    
    async def update_revision_request(self, request_id: int, **fields: Any) -> RevisionRequest:
        return self._update(
            RecordNamespace.REVISION_REQUESTS, request_id, RevisionRequest, "Revision request", fields
        )
