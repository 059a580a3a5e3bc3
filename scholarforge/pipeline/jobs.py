"""Background job service for generation and revision requests.

Submissions return an id immediately; the work runs as a detached asyncio
task and callers poll the stored job or revision request for progress.
"""

import asyncio
import logging
from typing import Any, Coroutine

from scholarforge.config import Settings, settings as default_settings
from scholarforge.errors import InvalidStateError, RecordNotFoundError
from scholarforge.llm import ModelGateway
from scholarforge.literature import LiteratureClient
from scholarforge.pipeline.orchestrator import GenerationPipeline
from scholarforge.revisions import RevisionProcessor
from scholarforge.state.enums import JobStatus, RevisionType
from scholarforge.state.models import GenerationJob, GenerationRequest, RevisionRequest
from scholarforge.store import DocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Cancelled by user"


class GenerationService:
    """Entry point for submitting, cancelling and polling background work.

    Cancellation does not interrupt a running phase. The job is marked
    failed immediately, and whichever write lands last determines the
    stored status.
    """

    def __init__(
        self,
        store: DocumentStore,
        gateway: ModelGateway,
        literature: LiteratureClient | None,
        *,
        enforce_word_count: bool = True,
    ):
        self.store = store
        self.pipeline = GenerationPipeline(
            gateway,
            literature,
            store,
            enforce_word_count=enforce_word_count,
        )
        self.revisions = RevisionProcessor(store, gateway)
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls,
        store: DocumentStore | None = None,
        config: Settings | None = None,
    ) -> "GenerationService":
        """Build a service with one gateway and one literature client."""
        config = config or default_settings
        for problem in config.validate():
            logger.warning(f"Configuration: {problem}")
        return cls(
            store or InMemoryDocumentStore(),
            ModelGateway.from_settings(config),
            LiteratureClient.from_settings(config),
            enforce_word_count=config.enforce_word_count,
        )

    def _spawn(self, coroutine: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.create_task(coroutine, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # =========================================================================
    # Generation
    # =========================================================================

    async def submit_generation(
        self,
        request: GenerationRequest,
        user_id: int | None = None,
    ) -> int:
        """Create a queued job and start the pipeline in the background.

        Returns:
            The new job id.
        """
        job = await self.store.create_generation_job(
            GenerationJob(user_id=user_id, status=JobStatus.QUEUED, request=request)
        )
        logger.info(f"Queued generation job {job.id}: '{request.title[:80]}'")
        self._spawn(self.pipeline.run(job.id, request), name=f"generation-{job.id}")
        return job.id

    async def cancel_generation(self, job_id: int) -> GenerationJob:
        """Mark a job failed with a cancellation message.

        Raises:
            RecordNotFoundError: Unknown job
            InvalidStateError: Job already completed or failed
        """
        job = await self.store.require_generation_job(job_id)
        if job.status.is_terminal:
            raise InvalidStateError(
                "Cannot cancel completed or failed job",
                details={"job_id": job_id, "status": job.status.value},
            )
        logger.info(f"Cancelling generation job {job_id}")
        return await self.store.complete_generation_job(
            job_id, JobStatus.FAILED, error_message=CANCELLED_MESSAGE
        )

    async def get_job(self, job_id: int) -> GenerationJob:
        return await self.store.require_generation_job(job_id)

    # =========================================================================
    # Revisions
    # =========================================================================

    async def submit_revision(
        self,
        document_id: int,
        revision_type: RevisionType | str,
        instructions: str,
        *,
        preserve_argument: bool = True,
        preserve_figures: bool = True,
        preserve_word_count: bool = False,
        preserve_citations: bool = True,
        user_id: int | None = None,
    ) -> int:
        """Create a pending revision request and process it in the background.

        Raises:
            RecordNotFoundError: Unknown document
        """
        if await self.store.get_document(document_id) is None:
            raise RecordNotFoundError("Document", document_id)

        request = await self.store.create_revision_request(RevisionRequest(
            document_id=document_id,
            user_id=user_id,
            revision_type=RevisionType(revision_type),
            instructions=instructions,
            preserve_argument=preserve_argument,
            preserve_figures=preserve_figures,
            preserve_word_count=preserve_word_count,
            preserve_citations=preserve_citations,
        ))
        self._spawn(self.revisions.process(request.id), name=f"revision-{request.id}")
        return request.id

    async def get_revision_request(self, request_id: int) -> RevisionRequest:
        request = await self.store.get_revision_request(request_id)
        if request is None:
            raise RecordNotFoundError("Revision request", request_id)
        return request

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def pending_tasks(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every background task started so far."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
