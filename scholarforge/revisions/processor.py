"""Revision processing for stored documents.

A revision request rewrites an existing document under preservation
flags and stores the result as a brand-new document; the source document
is never modified.
"""

import logging
import re

from scholarforge.content.normalize import compute_word_count
from scholarforge.content.scoring import assess_quality
from scholarforge.errors import RevisionError
from scholarforge.llm import ModelGateway
from scholarforge.state.enums import NoveltyClassification, RevisionStatus
from scholarforge.state.models import (
    AuthorRecord,
    CitationRecord,
    Document,
    RevisionRequest,
)
from scholarforge.store import DocumentStore

logger = logging.getLogger(__name__)

ABSTRACT_PATTERN = re.compile(
    r"(^|\n)##\s+Abstract\s*\n([\s\S]*?)(\n##\s+|\n#\s+|$)",
    re.IGNORECASE,
)

# Citations listed in the prompt when they are to be preserved
MAX_PROMPT_CITATIONS = 100


def extract_abstract(markdown: str) -> str:
    """Body of the ``## Abstract`` section, or an empty string.

    Examples:
        >>> extract_abstract("## Abstract\\n\\nShort.\\n\\n## Introduction\\nText")
        'Short.'
    """
    match = ABSTRACT_PATTERN.search(markdown)
    return match.group(2).strip() if match else ""


def preservation_notes(request: RevisionRequest, word_count: int) -> str:
    notes = [
        "- Preserve the main argument structure and section ordering."
        if request.preserve_argument
        else "- You may restructure the argument if needed.",
        "- Preserve figure/table references and numbering."
        if request.preserve_figures
        else "- You may modify figure/table references.",
        "- Preserve the existing citation keys and selection; keep [refX] markers consistent."
        if request.preserve_citations
        else "- You may adjust citations.",
        f"- Keep total length within ±10% of ~{word_count} words."
        if request.preserve_word_count
        else "- You may change overall length as needed.",
    ]
    return "\n".join(notes)


def build_revision_prompt(
    request: RevisionRequest,
    document: Document,
    citations: list[CitationRecord],
) -> str:
    """Prompt for one revision.

    The citation list is included only when citations are preserved.
    """
    word_count = document.word_count or compute_word_count(document.content)

    citation_block = ""
    if request.preserve_citations and citations:
        lines = "\n".join(
            f"[{c.citation_key}] {c.title}" + (f" ({c.year})" if c.year else "")
            for c in citations[:MAX_PROMPT_CITATIONS]
        )
        citation_block = f"Available citations (keep keys if preserving citations):\n{lines}\n"

    return f"""You are a senior academic editor.

Task: apply a document revision request.

Revision type: {request.revision_type.value}
Instructions:
{request.instructions}

Constraints:
{preservation_notes(request, word_count)}

{citation_block}
Output requirements:
- Return a single markdown document.
- Use '##' section headings.
- Include an '## Abstract' section.
- Use [refX] citations where appropriate.

Original document:
{document.content}
"""


class RevisionProcessor:
    """
    Apply revision requests to stored documents.

    ``process`` is safe to run as a detached task: every failure is logged
    and recorded on the revision request instead of being raised.
    """

    def __init__(self, store: DocumentStore, gateway: ModelGateway):
        self.store = store
        self.gateway = gateway

    async def process(self, request_id: int) -> int | None:
        """
        Process one revision request.

        Args:
            request_id: Id of a pending revision request.

        Returns:
            Id of the new document, or None if the revision failed.
        """
        try:
            await self.store.update_revision_request_status(request_id, RevisionStatus.PROCESSING)
            new_document_id = await self._revise(request_id)
            await self.store.update_revision_request_status(
                request_id, RevisionStatus.COMPLETED, new_document_id=new_document_id
            )
        except Exception as e:
            logger.error(f"Revision request {request_id} failed: {e}")
            await self._mark_failed(request_id)
            return None

        logger.info(f"Revision request {request_id} completed as document {new_document_id}")
        return new_document_id

    async def _mark_failed(self, request_id: int) -> None:
        try:
            request = await self.store.get_revision_request(request_id)
            if request is None:
                logger.warning(f"Revision request {request_id} does not exist; nothing to mark failed")
                return
            await self.store.update_revision_request_status(request_id, RevisionStatus.FAILED)
        except Exception as e:
            logger.exception(f"Could not mark revision request {request_id} failed: {e}")

    async def _revise(self, request_id: int) -> int:
        request = await self.store.get_revision_request(request_id)
        if request is None:
            raise RevisionError("Revision request not found", request_id=request_id)

        original = await self.store.get_document(request.document_id)
        if original is None:
            raise RevisionError(
                f"Source document {request.document_id} not found", request_id=request_id
            )

        authors = await self.store.list_authors(original.id)
        citations = await self.store.list_citations(original.id)

        response = await self.gateway.invoke(
            [{"role": "user", "content": build_revision_prompt(request, original, citations)}]
        )
        revised = response.text
        if not revised.strip():
            raise RevisionError("Model returned an empty revision", request_id=request_id)

        quality_score, _ = await assess_quality(
            self.gateway, revised, fallback=original.quality_score
        )

        document = await self.store.create_document(Document(
            job_id=original.job_id,
            title=original.title,
            abstract=extract_abstract(revised) or original.abstract or "",
            content=revised,
            keywords=original.keywords,
            document_type=original.document_type,
            word_count=compute_word_count(revised),
            citation_style=original.citation_style,
            novelty_score=original.novelty_score,
            novelty_classification=(
                NoveltyClassification.from_score(original.novelty_score).value
                if original.novelty_score is not None
                else None
            ),
            quality_score=quality_score,
        ))

        await self.store.create_authors([
            AuthorRecord(
                document_id=document.id,
                name=author.name,
                affiliation=author.affiliation,
                email=author.email,
                orcid=author.orcid,
                is_corresponding=author.is_corresponding,
                order_index=index,
            )
            for index, author in enumerate(authors, start=1)
        ])

        if request.preserve_citations:
            await self.store.create_citations([
                citation.model_copy(update={
                    "id": None,
                    "document_id": document.id,
                    "order_index": index,
                })
                for index, citation in enumerate(citations, start=1)
            ])

        return document.id
