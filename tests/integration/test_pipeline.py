"""End-to-end tests for the generation pipeline with a scripted model."""

import asyncio
import json
import re

import httpx
import pytest

from scholarforge.citations.reference_list import NO_REFERENCES_PLACEHOLDER
from scholarforge.content import compute_word_count
from scholarforge.errors import ConfigurationError, LiteratureSearchError, LLMInvocationError
from scholarforge.llm import ModelGateway
from scholarforge.literature import LiteratureClient
from scholarforge.pipeline import PHASES, GenerationPipeline, phase_start_percentages
from scholarforge.pipeline.templates import FALLBACK_NOTICE
from scholarforge.state.enums import JobStatus, SECTION_ORDER
from scholarforge.state.models import GenerationJob


async def run_pipeline(store, gateway, literature, request, *, enforce_word_count=False):
    job = await store.create_generation_job(GenerationJob(request=request))
    pipeline = GenerationPipeline(
        gateway, literature, store, enforce_word_count=enforce_word_count
    )
    ctx = await pipeline.run(job.id, request)
    return job.id, ctx


def references_lines(content: str) -> list[str]:
    block = content.split("## References\n\n", 1)[1]
    return [line for line in block.splitlines() if line.strip()]


def heading_count(content: str, section: str) -> int:
    return len(re.findall(rf"^## {re.escape(section)}$", content, re.MULTILINE))


# =============================================================================
# Happy path
# =============================================================================


class TestPipelineCompletes:
    """A full run stores one document and completes the job."""

    @pytest.mark.asyncio
    async def test_document_and_job(self, store, gateway, literature, sample_request):
        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        job = await store.get_generation_job(job_id)
        assert job.status == JobStatus.COMPLETED
        assert job.progress_percentage == 100
        assert job.estimated_time_remaining == 0
        assert job.completed_at is not None
        assert job.novelty_score == 0.72
        assert job.quality_score == 86
        assert job.error_message is None

        documents = await store.list_documents_for_job(job_id)
        assert len(documents) == 1
        document = documents[0]
        assert document.id == ctx.document_id
        assert document.title == sample_request.title
        assert document.citation_style == "APA7"
        assert document.novelty_classification == "moderate"
        assert document.quality_score == 86
        assert document.keywords == ["Computer Science", "Machine Learning"]
        assert document.word_count == compute_word_count(document.content)
        assert document.abstract.startswith("This abstract of Graph Neural Networks")

    @pytest.mark.asyncio
    async def test_every_section_once_in_order(self, store, gateway, literature, sample_request):
        _, ctx = await run_pipeline(store, gateway, literature, sample_request)
        content = (await store.get_document(ctx.document_id)).content

        for section in SECTION_ORDER:
            assert heading_count(content, section) == 1, section
        positions = [content.index(f"## {section}\n") for section in SECTION_ORDER]
        assert positions == sorted(positions)
        assert content.index("## Conclusion") < content.index("## References")

        # Duplicated section titles from the model are stripped
        assert "## Introduction\n\nThis introduction of" in content

    @pytest.mark.asyncio
    async def test_references_padded_to_request(self, store, gateway, literature, sample_request):
        _, ctx = await run_pipeline(store, gateway, literature, sample_request)
        document = await store.get_document(ctx.document_id)

        lines = references_lines(document.content)
        assert len(lines) == 5
        assert all(line.startswith("- ") for line in lines)
        assert lines[0] == "- Bing Yu (2018). Spatio-Temporal Graph Convolution. IJCAI."
        assert "Placeholder reference 4 (insufficient Semantic Scholar results)" in lines[3]

        citations = await store.list_citations(document.id)
        assert [c.citation_key for c in citations] == ["ref1", "ref2", "ref3", "ref4", "ref5"]
        assert citations[0].doi == "10.24963/ijcai.2018/505"
        assert set(citations[0].formatted_citations) == {"APA7"}
        assert literature.calls == [("Computer Science Machine Learning", 5)]

    @pytest.mark.asyncio
    async def test_apa_in_text_citations(self, store, gateway, literature, sample_request):
        _, ctx = await run_pipeline(store, gateway, literature, sample_request)
        content = (await store.get_document(ctx.document_id)).content

        assert "graph models (Yu, 2018) and prior work (Li & Yu, 2018)." in content
        assert "[ref" not in content
        assert "[1]" not in content

    @pytest.mark.asyncio
    async def test_ieee_in_text_citations(self, store, gateway, literature, sample_request):
        request = sample_request.model_copy(update={"citation_style": "IEEE"})
        _, ctx = await run_pipeline(store, gateway, literature, request)
        content = (await store.get_document(ctx.document_id)).content

        assert "graph models [1] and prior work [2]." in content
        assert "[ref" not in content
        lines = references_lines(content)
        assert [line.split(".")[0] for line in lines] == ["1", "2", "3", "4", "5"]

    @pytest.mark.asyncio
    async def test_authors_stored_in_order(self, store, gateway, literature, sample_request):
        _, ctx = await run_pipeline(store, gateway, literature, sample_request)

        authors = await store.list_authors(ctx.document_id)
        assert [a.name for a in authors] == ["Ada Lovelace", "Charles Babbage"]
        assert [a.order_index for a in authors] == [1, 2]
        assert authors[0].is_corresponding is True

    @pytest.mark.asyncio
    async def test_model_calls(self, store, gateway, literature, sample_request):
        await run_pipeline(store, gateway, literature, sample_request)

        assert gateway.kinds() == [
            "novelty",
            "outline",
            *(f"section:{section}" for section in SECTION_ORDER),
            "quality",
        ]
        section_prompt = gateway.prompt_for("section:Introduction")
        assert "~171 words" in section_prompt
        assert "[ref1] Spatio-Temporal Graph Convolution (2018)" in section_prompt

    @pytest.mark.asyncio
    async def test_progress_reported(self, store, gateway, literature, sample_request):
        job_id, _ = await run_pipeline(store, gateway, literature, sample_request)

        progress = [(phase, pct) for jid, phase, pct in store.progress if jid == job_id]
        percentages = [pct for _, pct in progress]
        assert progress[0] == ("Literature Review", 0)
        assert percentages == sorted(percentages)

        starts = phase_start_percentages()
        for phase in PHASES:
            assert (phase.name, starts[phase.name]) in progress
        assert ("Section Writing", 46) in progress
        assert progress[-1] == ("Final Assembly", 95)


class TestFiguresAndTables:
    """Figure and table counts match the request exactly."""

    @pytest.mark.asyncio
    async def test_padded_counts(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({
            "figures_tables": json.dumps({
                "figures": [
                    {"figureType": "plot", "caption": "Forecast error by horizon", "altText": "Line chart"},
                ],
                "tables": [
                    {"caption": "Benchmark results", "columns": ["Model", "MAE"], "rows": [["GCN", "2.1"], ["DCRNN", "2.3"]]},
                    {"caption": "Unrequested", "columns": ["A"], "rows": [["1"]]},
                ],
            }),
        })
        request = sample_request.model_copy(update={"num_figures": 2, "num_tables": 1})

        _, ctx = await run_pipeline(store, gateway, literature, request)
        document = await store.get_document(ctx.document_id)
        content = document.content

        assert "### Figure 1. Forecast error by horizon" in content
        assert f"### Figure 2. Planned figure 2 for {request.title}" in content
        assert "### Figure 3" not in content
        assert "### Table 1. Benchmark results" in content
        assert "Unrequested" not in content
        assert content.index("## Figures") < content.index("## Tables") < content.index("## References")

        figures = await store.list_figures(document.id)
        assert [f.figure_number for f in figures] == ["Figure 1", "Figure 2"]
        assert figures[0].figure_type == "plot"
        assert figures[0].generation_method == "planned"

        tables = await store.list_tables(document.id)
        assert len(tables) == 1
        assert tables[0].column_headers == ["Model", "MAE"]
        assert tables[0].csv_data == "GCN,2.1\nDCRNN,2.3"
        assert "<td>DCRNN</td>" in tables[0].html_content

    @pytest.mark.asyncio
    async def test_no_figures_requested(self, store, gateway, literature, sample_request):
        _, ctx = await run_pipeline(store, gateway, literature, sample_request)
        content = (await store.get_document(ctx.document_id)).content

        assert "## Figures" not in content
        assert "## Tables" not in content
        assert "figures_tables" not in gateway.kinds()
        assert await store.list_figures(ctx.document_id) == []


# =============================================================================
# Fallbacks
# =============================================================================


class TestPipelineFallbacks:
    """Degraded upstream answers still produce a complete document."""

    @pytest.mark.asyncio
    async def test_literature_failure_uses_placeholders(self, make_literature, store, gateway, sample_request):
        literature = make_literature(
            error=LiteratureSearchError("Semantic Scholar API error: 500 Internal Server Error")
        )

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        assert (await store.get_generation_job(job_id)).status == JobStatus.COMPLETED
        assert ctx.literature == []
        lines = references_lines((await store.get_document(ctx.document_id)).content)
        assert len(lines) == 5
        assert all("(Semantic Scholar unavailable)" in line for line in lines)

    @pytest.mark.asyncio
    async def test_missing_literature_key_uses_placeholders(self, make_literature, store, gateway, sample_request):
        literature = make_literature(
            error=ConfigurationError("SEMANTIC_SCHOLAR_API_KEY not configured")
        )

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        assert (await store.get_generation_job(job_id)).status == JobStatus.COMPLETED
        assert len(ctx.citations) == 5

    @pytest.mark.asyncio
    async def test_null_author_names_from_backend(self, store, gateway, sample_request):
        def respond(request):
            return httpx.Response(200, json={"total": 1, "offset": 0, "data": [{
                "paperId": "p-null",
                "title": "Traffic Graphs",
                "year": 2016,
                "authors": [{"authorId": None, "name": None}],
                "venue": None,
                "citationCount": 500,
                "influentialCitationCount": 40,
            }]})

        literature = LiteratureClient(
            api_key="s2-key", min_request_interval=0, transport=httpx.MockTransport(respond)
        )

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        assert (await store.get_generation_job(job_id)).status == JobStatus.COMPLETED
        assert ctx.literature[0].paper_id == "p-null"
        assert ctx.literature[0].authors == ["Unknown"]
        assert len(ctx.citations) == 5

    @pytest.mark.asyncio
    async def test_non_json_backend_body_uses_placeholders(self, store, gateway, sample_request):
        literature = LiteratureClient(
            api_key="s2-key",
            min_request_interval=0,
            transport=httpx.MockTransport(
                lambda request: httpx.Response(200, text="<html>gateway page</html>")
            ),
        )

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        assert (await store.get_generation_job(job_id)).status == JobStatus.COMPLETED
        lines = references_lines((await store.get_document(ctx.document_id)).content)
        assert len(lines) == 5
        assert all("(Semantic Scholar unavailable)" in line for line in lines)

    @pytest.mark.asyncio
    async def test_unexpected_literature_error_uses_placeholders(self, make_literature, store, gateway, sample_request):
        literature = make_literature(error=KeyError("data"))

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        assert (await store.get_generation_job(job_id)).status == JobStatus.COMPLETED
        assert all(binding.paper.is_placeholder for binding in ctx.citations)

    @pytest.mark.asyncio
    async def test_without_literature_client(self, store, gateway, sample_request):
        job_id, ctx = await run_pipeline(store, gateway, None, sample_request)

        assert (await store.get_generation_job(job_id)).status == JobStatus.COMPLETED
        assert all(binding.paper.is_placeholder for binding in ctx.citations)

    @pytest.mark.asyncio
    async def test_unparseable_scores_fall_back(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({"novelty": "very novel", "quality": '{"score": "great"}'})

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        job = await store.get_generation_job(job_id)
        assert job.novelty_score == 0.6
        assert job.quality_score == 80
        assert ctx.novelty_classification == "moderate"

    @pytest.mark.asyncio
    async def test_scores_clamped(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({
            "novelty": json.dumps({"score": 1.4, "classification": "x", "reasoning": "y"}),
            "quality": json.dumps({"score": -5, "feedback": "z"}),
        })

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        job = await store.get_generation_job(job_id)
        assert job.novelty_score == 1
        assert job.quality_score == 0
        assert ctx.novelty_classification == "substantial"

    @pytest.mark.asyncio
    async def test_empty_outline_uses_template(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({"outline": "   "})

        _, ctx = await run_pipeline(store, gateway, literature, sample_request)

        assert ctx.outline.startswith(f"# Outline: {sample_request.title}")
        assert f"# Outline: {sample_request.title}" in gateway.prompt_for("section:Abstract")

    @pytest.mark.asyncio
    async def test_empty_section_uses_template(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({"section:Results": ""})

        _, ctx = await run_pipeline(store, gateway, literature, sample_request)
        content = (await store.get_document(ctx.document_id)).content

        results = content.split("## Results\n\n", 1)[1]
        assert results.startswith(FALLBACK_NOTICE)

    @pytest.mark.asyncio
    async def test_zero_references(self, store, gateway, literature, sample_request):
        request = sample_request.model_copy(update={"num_references": 0})

        _, ctx = await run_pipeline(store, gateway, literature, request)
        content = (await store.get_document(ctx.document_id)).content

        assert content.endswith(f"## References\n\n{NO_REFERENCES_PLACEHOLDER}")
        assert "graph models [1]" in content
        assert "prior work." in content
        assert "(Unknown, n.d.)" not in content
        assert await store.list_citations(ctx.document_id) == []

    @pytest.mark.asyncio
    async def test_unbound_citation_keys_dropped(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({"section:Introduction": "Prior work [ref9] shows this [ref1]."})
        request = sample_request.model_copy(update={"citation_style": "IEEE"})

        _, ctx = await run_pipeline(store, gateway, literature, request)
        content = (await store.get_document(ctx.document_id)).content

        assert "Prior work shows this [1]." in content
        assert "[9]" not in content
        assert len(await store.list_citations(ctx.document_id)) == 5
        assert len(references_lines(content)) == 5


# =============================================================================
# Failures
# =============================================================================


class TestPipelineFailures:
    """A failing phase marks the job failed with the phase name."""

    @pytest.mark.asyncio
    async def test_terminal_model_error_in_section_writing(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({
            "section:Introduction": LLMInvocationError(
                "LLM invoke failed: 400 Bad Request - context too long", status_code=400
            ),
        })

        job_id, ctx = await run_pipeline(store, gateway, literature, sample_request)

        assert ctx is None
        job = await store.get_generation_job(job_id)
        assert job.status == JobStatus.FAILED
        assert job.error_message == "[Section Writing] LLM invoke failed: 400 Bad Request - context too long"
        assert job.current_phase == "Section Writing"
        assert job.completed_at is not None
        assert await store.list_documents_for_job(job_id) == []
        assert "quality" not in gateway.kinds()

    @pytest.mark.asyncio
    async def test_configuration_error_in_novelty(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway({
            "novelty": ConfigurationError("LLM_API_KEY is not configured", setting="LLM_API_KEY"),
        })

        job_id, _ = await run_pipeline(store, gateway, literature, sample_request)

        job = await store.get_generation_job(job_id)
        assert job.status == JobStatus.FAILED
        assert job.error_message == "[Novelty Assessment] LLM_API_KEY is not configured"
        assert job.progress_percentage == 15


# =============================================================================
# Post-processing
# =============================================================================


class TestLengthConvergence:
    """The optional length pass runs once after review."""

    @pytest.mark.asyncio
    async def test_short_body_expanded(self, make_gateway, store, literature, sample_request):
        expanded = "\n\n".join(
            ["## Abstract\n\nExpanded abstract [1]."]
            + [f"## {section}\n\nExpanded." for section in SECTION_ORDER[1:]]
        )
        gateway = make_gateway({"length": expanded}, section_words=20)

        _, ctx = await run_pipeline(
            store, gateway, literature, sample_request, enforce_word_count=True
        )
        content = (await store.get_document(ctx.document_id)).content

        assert gateway.kinds()[-2:] == ["quality", "length"]
        assert "to expand it" in gateway.prompt_for("length")
        assert content.startswith("## Abstract\n\nExpanded abstract (Yu, 2018).")

    @pytest.mark.asyncio
    async def test_rewrite_dropping_headings_ignored(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway(
            {"length": "## Abstract\n\nOnly an abstract survived the rewrite."},
            section_words=20,
        )

        _, ctx = await run_pipeline(
            store, gateway, literature, sample_request, enforce_word_count=True
        )
        content = (await store.get_document(ctx.document_id)).content

        assert "length" in gateway.kinds()
        assert "Only an abstract survived" not in content
        for section in SECTION_ORDER:
            assert heading_count(content, section) == 1

    @pytest.mark.asyncio
    async def test_mock_gateway_with_enforcement(self, store, sample_request):
        gateway = ModelGateway(mode="mock")

        job_id, ctx = await run_pipeline(
            store, gateway, None, sample_request, enforce_word_count=True
        )

        job = await store.get_generation_job(job_id)
        assert job.status == JobStatus.COMPLETED
        content = (await store.get_document(ctx.document_id)).content
        for section in SECTION_ORDER:
            assert heading_count(content, section) == 1
        assert len(references_lines(content)) == sample_request.num_references

    @pytest.mark.asyncio
    async def test_disabled(self, make_gateway, store, literature, sample_request):
        gateway = make_gateway(section_words=20)

        await run_pipeline(store, gateway, literature, sample_request, enforce_word_count=False)

        assert "length" not in gateway.kinds()


class TestMathDerivation:
    """Technical topics get step-by-step math."""

    @pytest.mark.asyncio
    async def test_quartic_oscillator(self, store, gateway, literature, sample_request):
        request = sample_request.model_copy(update={
            "title": "Effective mass effects in a quartic oscillator",
            "research_domain": "Physics",
            "subdomain": "Classical Mechanics",
        })

        _, ctx = await run_pipeline(store, gateway, literature, request)
        content = (await store.get_document(ctx.document_id)).content
        methodology = content.split("## Methodology\n\n", 1)[1].split("## Results", 1)[0]

        assert "\\tag{4}" in methodology
        assert "Math requirements" in gateway.prompt_for("section:Methodology")
        assert "Math requirements" not in gateway.prompt_for("section:Introduction")


class TestConcurrentRuns:
    """Runs sharing one pipeline keep their own state."""

    @pytest.mark.asyncio
    async def test_two_runs(self, store, gateway, literature, sample_request):
        other = sample_request.model_copy(update={"title": "Protein Folding with Transformers"})
        first = await store.create_generation_job(GenerationJob(request=sample_request))
        second = await store.create_generation_job(GenerationJob(request=other))
        pipeline = GenerationPipeline(gateway, literature, store, enforce_word_count=False)

        first_ctx, second_ctx = await asyncio.gather(
            pipeline.run(first.id, sample_request),
            pipeline.run(second.id, other),
        )

        first_doc = await store.get_document(first_ctx.document_id)
        second_doc = await store.get_document(second_ctx.document_id)
        assert first_doc.job_id == first.id
        assert second_doc.job_id == second.id
        assert "Protein Folding" not in first_doc.content
        assert "Graph Neural Networks" not in second_doc.content
        assert len(await store.list_citations(first_doc.id)) == 5
        assert len(await store.list_citations(second_doc.id)) == 5
