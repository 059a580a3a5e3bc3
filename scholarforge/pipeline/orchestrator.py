"""Generation pipeline assembly.

The seven phases are compiled into a linear LangGraph ``StateGraph``. The
graph state carries the per-run ``GenerationContext``; every node reports
progress, runs its phase and wraps any failure as a ``PhaseError``.

    LITERATURE REVIEW → NOVELTY ASSESSMENT → ARGUMENT ARCHITECTURE
        → SECTION WRITING → FIGURE GENERATION → INTERNAL REVIEW
        → FINAL ASSEMBLY
"""

import logging
from dataclasses import dataclass
from typing import Any, TypedDict

from langgraph.graph import END, START, StateGraph

from scholarforge.errors import PhaseError
from scholarforge.llm import ModelGateway
from scholarforge.literature import LiteratureClient
from scholarforge.pipeline.phases import (
    PhaseFn,
    PhaseServices,
    argument_architecture,
    figure_generation,
    final_assembly,
    internal_review,
    literature_review,
    novelty_assessment,
    section_writing,
)
from scholarforge.state.enums import JobStatus
from scholarforge.state.models import GenerationContext, GenerationRequest
from scholarforge.store import DocumentStore

logger = logging.getLogger(__name__)


# =============================================================================
# Phase list
# =============================================================================


@dataclass(frozen=True)
class PhaseSpec:
    """A named phase with its share of total progress."""

    name: str
    weight: int
    execute: PhaseFn

    @property
    def node_name(self) -> str:
        return self.name.lower().replace(" ", "_")


PHASES: tuple[PhaseSpec, ...] = (
    PhaseSpec("Literature Review", 15, literature_review),
    PhaseSpec("Novelty Assessment", 10, novelty_assessment),
    PhaseSpec("Argument Architecture", 15, argument_architecture),
    PhaseSpec("Section Writing", 40, section_writing),
    PhaseSpec("Figure Generation", 10, figure_generation),
    PhaseSpec("Internal Review", 5, internal_review),
    PhaseSpec("Final Assembly", 5, final_assembly),
)


def phase_start_percentages(phases: tuple[PhaseSpec, ...] = PHASES) -> dict[str, int]:
    """Cumulative weight of the phases before each phase."""
    starts = {}
    total = 0
    for phase in phases:
        starts[phase.name] = total
        total += phase.weight
    return starts


class PipelineState(TypedDict):
    """Graph state: the context of exactly one run."""

    context: GenerationContext


# =============================================================================
# Pipeline
# =============================================================================


class GenerationPipeline:
    """Runs the generation phases for one job at a time per call.

    A pipeline instance is reusable and safe to share between concurrent
    runs; all run state lives in the ``GenerationContext`` created by
    ``run``.
    """

    def __init__(
        self,
        gateway: ModelGateway,
        literature: LiteratureClient | None,
        store: DocumentStore,
        *,
        enforce_word_count: bool = True,
        phases: tuple[PhaseSpec, ...] = PHASES,
    ):
        self.services = PhaseServices(
            gateway=gateway,
            literature=literature,
            store=store,
            enforce_word_count=enforce_word_count,
        )
        self.store = store
        self.phases = phases
        self.graph = self._build_graph()

    def _make_node(self, phase: PhaseSpec, start: int):
        async def node(state: PipelineState) -> dict[str, Any]:
            ctx = state["context"]

            async def report(fraction: float) -> None:
                percentage = start + round(fraction * phase.weight)
                await self.store.update_generation_job_progress(ctx.job_id, phase.name, percentage)

            logger.info(f"Job {ctx.job_id}: starting phase '{phase.name}' ({start}%)")
            await report(0)
            try:
                await phase.execute(ctx, self.services, report)
            except Exception as e:
                raise PhaseError(phase.name, str(e)) from e
            return {"context": ctx}

        return node

    def _build_graph(self):
        workflow = StateGraph(PipelineState)
        starts = phase_start_percentages(self.phases)

        previous = START
        for phase in self.phases:
            workflow.add_node(phase.node_name, self._make_node(phase, starts[phase.name]))
            workflow.add_edge(previous, phase.node_name)
            previous = phase.node_name
        workflow.add_edge(previous, END)

        return workflow.compile()

    async def run(self, job_id: int, request: GenerationRequest) -> GenerationContext | None:
        """Run every phase for ``job_id``.

        Never raises: a failing phase marks the job ``failed`` with the
        phase-prefixed message.

        Returns:
            The final context, or None if the run failed.
        """
        ctx = GenerationContext(job_id=job_id, request=request)
        try:
            final_state = await self.graph.ainvoke({"context": ctx})
        except PhaseError as e:
            logger.error(f"Generation job {job_id} failed: {e.message}")
            await self.store.complete_generation_job(
                job_id, JobStatus.FAILED, error_message=e.message
            )
            return None
        except Exception as e:
            logger.exception(f"Generation job {job_id} failed outside a phase")
            await self.store.complete_generation_job(
                job_id, JobStatus.FAILED, error_message=str(e) or "Unknown error"
            )
            return None

        logger.info(f"Generation job {job_id} completed")
        return final_state["context"]
