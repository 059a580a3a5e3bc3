#!/usr/bin/env python3
"""
Basic Generation Example

Submits one generation job, polls it to completion, requests a revision
and exports both versions. Runs fully offline: the model gateway is in
mock mode and, without a Semantic Scholar key, references fall back to
placeholders.

Usage:
    LLM_MODE=mock python examples/basic_generation.py
"""

import asyncio
import logging
import os
import sys
import tempfile

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from scholarforge.config import Settings
from scholarforge.export import export_document, write_export
from scholarforge.pipeline import GenerationService
from scholarforge.state import AuthorInput, GenerationRequest, JobStatus
from scholarforge.store import InMemoryDocumentStore


async def wait_for_job(service: GenerationService, job_id: int):
    """Poll a job until it reaches a terminal status."""
    last_phase = None
    while True:
        job = await service.get_job(job_id)
        if job.current_phase != last_phase:
            print(f"  {job.progress_percentage:3d}%  {job.current_phase or 'queued'}")
            last_phase = job.current_phase
        if job.status.is_terminal:
            return job
        await asyncio.sleep(0.05)


async def main():
    """Run a generation and a revision in mock mode."""
    print("=" * 60)
    print("ScholarForge - Basic Generation Example")
    print("=" * 60)

    config = Settings(
        llm_mode="mock",
        semantic_scholar_api_key="",
        enforce_word_count=False,
    )
    service = GenerationService.from_settings(InMemoryDocumentStore(), config)

    request = GenerationRequest(
        document_type="journal_article",
        title="Graph Neural Networks for Traffic Forecasting",
        research_domain="Computer Science",
        subdomain="Machine Learning",
        target_word_count=1500,
        num_figures=1,
        num_tables=1,
        num_references=6,
        citation_style="IEEE",
        authors=[
            AuthorInput(name="Ada Lovelace", affiliation="Analytical Engines Ltd", is_corresponding=True),
            AuthorInput(name="Charles Babbage", affiliation="Difference Works"),
        ],
    )

    print("\n[Generation]")
    job_id = await service.submit_generation(request)
    job = await wait_for_job(service, job_id)
    await service.drain()

    if job.status != JobStatus.COMPLETED:
        print(f"Generation failed: {job.error_message}")
        return

    print(f"Novelty score: {job.novelty_score}")
    print(f"Quality score: {job.quality_score}")

    document = (await service.store.list_documents_for_job(job_id))[0]
    print(f"Document {document.id}: {document.word_count} words")

    print("\n[Revision]")
    request_id = await service.submit_revision(
        document.id,
        "targeted_edit",
        "Tighten the introduction and state the contribution up front.",
    )
    await service.drain()
    revision = await service.get_revision_request(request_id)
    print(f"Revision status: {revision.status.value}")

    print("\n[Export]")
    output_dir = tempfile.mkdtemp(prefix="scholarforge-")
    for document_id in filter(None, [document.id, revision.new_document_id]):
        stored = await service.store.get_document(document_id)
        authors = await service.store.list_authors(document_id)
        citations = await service.store.list_citations(document_id)
        for export_format in ("markdown", "latex"):
            result = export_document(export_format, stored, authors, citations)
            path = write_export(result, os.path.join(output_dir, str(document_id)))
            print(f"  {path}")

    print("\n" + "=" * 60)
    print("Done")
    print("=" * 60)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    asyncio.run(main())
