"""Generation phases.

Each phase is an async function ``(ctx, services, progress)`` that mutates
the per-run ``GenerationContext``. Phases never catch their own failures;
the orchestrator wraps any exception with the phase name.
"""

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from scholarforge.citations import CitationManager, bind_citations, citation_record_from_binding
from scholarforge.citations.reference_list import build_references_section
from scholarforge.content import (
    adjust_body_to_target_word_count,
    build_figures_markdown,
    build_tables_markdown,
    clean_section_body,
    compute_word_count,
    ensure_math_derivation,
    plan_figures,
    plan_tables,
    table_to_csv,
    table_to_html,
)
from scholarforge.content.scoring import assess_quality, clamp_number
from scholarforge.errors import ScholarForgeError
from scholarforge.llm import (
    FIGURES_TABLES_PLAN_SCHEMA,
    NOVELTY_ASSESSMENT_SCHEMA,
    ModelGateway,
)
from scholarforge.literature import LiteratureClient
from scholarforge.pipeline import prompts
from scholarforge.pipeline.templates import default_outline, default_section
from scholarforge.state.enums import JobStatus, NoveltyClassification, SECTION_ORDER
from scholarforge.state.models import (
    AuthorRecord,
    Document,
    DocumentBundle,
    FigureRecord,
    GenerationContext,
    LiteratureRecord,
    TableRecord,
)
from scholarforge.store import DocumentStore

logger = logging.getLogger(__name__)

NOVELTY_FALLBACK = 0.6
QUALITY_FALLBACK = 80


@dataclass
class PhaseServices:
    """Collaborators shared by every phase of a run."""

    gateway: ModelGateway
    literature: LiteratureClient | None
    store: DocumentStore
    enforce_word_count: bool = True


# Sub-progress callback: receives the completed fraction of the current phase
ProgressCallback = Callable[[float], Awaitable[None]]

PhaseFn = Callable[[GenerationContext, PhaseServices, ProgressCallback], Awaitable[None]]


# =============================================================================
# Literature Review
# =============================================================================


def _placeholder_records(start: int, count: int, reason: str) -> list[LiteratureRecord]:
    return [LiteratureRecord.placeholder(start + i, reason) for i in range(count)]


async def literature_review(
    ctx: GenerationContext,
    services: PhaseServices,
    progress: ProgressCallback,
) -> None:
    """Find literature for the topic and bind it to ``ref1..refN``.

    The result always holds exactly ``num_references`` bindings; shortfalls
    and backend failures are filled with placeholder records.
    """
    requested = max(0, ctx.request.num_references)
    topic = ctx.request.topic

    try:
        if services.literature is None:
            raise ScholarForgeError("No literature client configured")
        key_papers = await services.literature.extract_key_papers(topic, max(requested, 1))
    except Exception as e:
        logger.warning(
            f"Literature lookup failed for job {ctx.job_id}; using placeholder references: {e}"
        )
        ctx.literature = []
        ctx.citations = bind_citations(
            _placeholder_records(1, requested, "Semantic Scholar unavailable")
        )
        return

    literature = key_papers.unique()[:requested]
    if len(literature) < requested:
        logger.info(
            f"Only {len(literature)} of {requested} references found; padding with placeholders"
        )
        literature += _placeholder_records(
            len(literature) + 1,
            requested - len(literature),
            "insufficient Semantic Scholar results",
        )

    ctx.literature = literature
    ctx.citations = bind_citations(literature)


# =============================================================================
# Novelty Assessment
# =============================================================================


async def novelty_assessment(
    ctx: GenerationContext,
    services: PhaseServices,
    progress: ProgressCallback,
) -> None:
    response = await services.gateway.invoke(
        [{"role": "user", "content": prompts.novelty_prompt(ctx)}],
        output_schema=NOVELTY_ASSESSMENT_SCHEMA,
    )
    assessment = response.parse_json() or {}

    ctx.novelty_score = clamp_number(assessment.get("score"), NOVELTY_FALLBACK, 0, 1)
    ctx.novelty_classification = NoveltyClassification.from_score(ctx.novelty_score).value
    reasoning = assessment.get("reasoning")
    ctx.novelty_reasoning = reasoning if isinstance(reasoning, str) else None


# =============================================================================
# Argument Architecture
# =============================================================================


async def argument_architecture(
    ctx: GenerationContext,
    services: PhaseServices,
    progress: ProgressCallback,
) -> None:
    response = await services.gateway.invoke(
        [{"role": "user", "content": prompts.outline_prompt(ctx)}]
    )
    outline = response.text
    if not outline.strip():
        logger.warning(f"Empty outline for job {ctx.job_id}; using template outline")
        outline = default_outline(ctx.request)
    ctx.outline = outline


# =============================================================================
# Section Writing
# =============================================================================


def section_word_budget(target_word_count: int) -> int:
    return round(target_word_count / len(SECTION_ORDER))


async def section_writing(
    ctx: GenerationContext,
    services: PhaseServices,
    progress: ProgressCallback,
) -> None:
    """Write every section in order and clean each body as it arrives."""
    request = ctx.request
    max_ref = len(ctx.citations)
    budget = section_word_budget(request.target_word_count)

    for index, section in enumerate(SECTION_ORDER):
        await progress(index / len(SECTION_ORDER))

        response = await services.gateway.invoke(
            [{"role": "user", "content": prompts.section_prompt(ctx, section, budget)}]
        )
        raw = response.text
        if not raw.strip():
            logger.warning(f"Empty '{section}' for job {ctx.job_id}; using fallback template")
            raw = default_section(section, request)

        cleaned = clean_section_body(raw, section, max_ref)
        if cleaned.strip():
            ctx.sections[section] = ensure_math_derivation(section, cleaned, request, max_ref)
        else:
            ctx.sections[section] = default_section(section, request)


# =============================================================================
# Figure Generation
# =============================================================================


async def figure_generation(
    ctx: GenerationContext,
    services: PhaseServices,
    progress: ProgressCallback,
) -> None:
    num_figures = max(0, ctx.request.num_figures)
    num_tables = max(0, ctx.request.num_tables)
    if num_figures == 0 and num_tables == 0:
        ctx.figure_plans = []
        ctx.table_plans = []
        return

    response = await services.gateway.invoke(
        [{"role": "user", "content": prompts.figures_tables_prompt(ctx)}],
        output_schema=FIGURES_TABLES_PLAN_SCHEMA,
    )
    plan = response.parse_json() or {}

    ctx.figure_plans = plan_figures(plan.get("figures"), num_figures, ctx.request.title)
    ctx.table_plans = plan_tables(plan.get("tables"), num_tables, ctx.request.title)


# =============================================================================
# Internal Review
# =============================================================================


async def internal_review(
    ctx: GenerationContext,
    services: PhaseServices,
    progress: ProgressCallback,
) -> None:
    full_document = "\n\n".join(ctx.sections.values())
    ctx.quality_score, ctx.quality_feedback = await assess_quality(
        services.gateway, full_document, fallback=QUALITY_FALLBACK
    )


# =============================================================================
# Final Assembly
# =============================================================================


def assemble_body(ctx: GenerationContext) -> str:
    """Sections in canonical order, each under exactly one ``##`` heading."""
    max_ref = len(ctx.citations)
    blocks = []
    for section in SECTION_ORDER:
        content = ctx.sections.get(section) or default_section(section, ctx.request)
        blocks.append(f"## {section}\n\n{clean_section_body(content, section, max_ref)}")
    return "\n\n".join(blocks).strip()


def build_bundle(ctx: GenerationContext, content: str) -> DocumentBundle:
    request = ctx.request
    document = Document(
        job_id=ctx.job_id,
        title=request.title,
        abstract=(ctx.sections.get("Abstract") or "").strip(),
        content=content,
        keywords=[k for k in (request.research_domain, request.subdomain) if k],
        document_type=request.document_type,
        word_count=compute_word_count(content),
        citation_style=request.citation_style,
        novelty_score=ctx.novelty_score,
        novelty_classification=NoveltyClassification.from_score(ctx.novelty_score).value,
        quality_score=ctx.quality_score,
    )
    authors = [
        AuthorRecord(
            name=author.name,
            affiliation=author.affiliation,
            email=author.email or None,
            orcid=author.orcid or None,
            is_corresponding=author.is_corresponding,
            order_index=index,
        )
        for index, author in enumerate(request.authors, start=1)
    ]
    citations = [
        citation_record_from_binding(binding, request.citation_style, index)
        for index, binding in enumerate(ctx.citations, start=1)
    ]
    figures = [
        FigureRecord(
            figure_number=plan.figure_number,
            figure_type=plan.figure_type,
            caption=plan.caption,
            image_url="",
            generation_method="planned",
            alt_text=plan.alt_text,
            position_in_document=index,
        )
        for index, plan in enumerate(ctx.figure_plans, start=1)
    ]
    tables = [
        TableRecord(
            table_number=plan.table_number,
            caption=plan.caption,
            html_content=table_to_html(plan.columns, plan.rows),
            csv_data=table_to_csv(plan.columns, plan.rows),
            column_headers=plan.columns,
            position_in_document=index,
        )
        for index, plan in enumerate(ctx.table_plans, start=1)
    ]
    return DocumentBundle(
        document=document,
        authors=authors,
        citations=citations,
        figures=figures,
        tables=tables,
    )


async def final_assembly(
    ctx: GenerationContext,
    services: PhaseServices,
    progress: ProgressCallback,
) -> None:
    """Assemble, style and persist the document, then complete the job."""
    request = ctx.request
    manager = CitationManager(ctx.citations)

    body = await adjust_body_to_target_word_count(
        assemble_body(ctx),
        request.target_word_count,
        len(ctx.citations),
        services.gateway,
        enabled=services.enforce_word_count,
    )

    unresolved = manager.unresolved_keys(body)
    if unresolved:
        logger.warning(f"Job {ctx.job_id}: dropping citation keys without a reference: {unresolved}")
        body = manager.strip_unresolved(body)

    content = "\n\n".join(
        block
        for block in (
            manager.render(body, request.citation_style),
            build_figures_markdown(ctx.figure_plans),
            build_tables_markdown(ctx.table_plans),
            build_references_section(manager.bindings, request.citation_style),
        )
        if block
    ).strip()

    stored = await services.store.create_document_bundle(build_bundle(ctx, content))
    ctx.document_id = stored.document.id
    logger.info(
        f"Job {ctx.job_id}: stored document {ctx.document_id} "
        f"({stored.document.word_count} words, {len(stored.citations)} references)"
    )

    await services.store.complete_generation_job(
        ctx.job_id,
        JobStatus.COMPLETED,
        novelty_score=ctx.novelty_score,
        quality_score=ctx.quality_score,
    )
