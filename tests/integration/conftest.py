"""Fixtures for integration tests.

Provides a scripted model gateway, a fake literature source and a
progress-recording store for end-to-end pipeline tests.
"""

import asyncio
import json
import re
from typing import Any

import pytest

from scholarforge.literature import KeyPapers
from scholarforge.llm.mock import make_mock_result
from scholarforge.llm.models import CompletionResult
from scholarforge.store import InMemoryDocumentStore


# =============================================================================
# Scripted Model Gateway
# =============================================================================


SECTION_PROMPT = re.compile(r'^Write ONLY the body text for the "(?P<section>[^"]+)" section')
TITLE_IN_PROMPT = re.compile(r'titled "(?P<title>[^"]+)"')


def classify_prompt(prompt: str, schema: str | None) -> str:
    """Name the pipeline call a prompt belongs to."""
    if schema == "novelty_assessment":
        return "novelty"
    if schema == "quality_assessment":
        return "quality"
    if schema == "figures_tables_plan":
        return "figures_tables"
    if prompt.startswith("Create a detailed outline"):
        return "outline"
    match = SECTION_PROMPT.match(prompt)
    if match:
        return f"section:{match.group('section')}"
    if prompt.startswith("You are an expert academic editor"):
        return "length"
    if prompt.startswith("You are a senior academic editor"):
        return "revision"
    return "unknown"


def default_section_text(section: str, title: str, words: int) -> str:
    """Section body with a duplicated title, one numeric and one keyed citation."""
    lead = f"{section}\n\nThis {section.lower()} of {title} builds on graph models [1] and prior work [ref2]."
    filler = " ".join(["evidence"] * max(0, words - len(lead.split())))
    return f"{lead} {filler}".strip()


class ScriptedGateway:
    """Model gateway double answering each pipeline call by prompt kind.

    ``responses`` maps a call kind ("novelty", "quality", "outline",
    "section:Introduction", "figures_tables", "length", "revision") to a
    string or an exception. ``pause_on`` makes the matching call wait for
    ``release`` after setting ``entered``.
    """

    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        *,
        section_words: int = 171,
        pause_on: str | None = None,
    ):
        self.responses = {
            "novelty": json.dumps({
                "score": 0.72,
                "classification": "moderate",
                "reasoning": "Combines known components in a new setting.",
            }),
            "quality": json.dumps({"score": 86, "feedback": "Well structured."}),
            "outline": "## Introduction\n- Motivation\n\n## Methodology\n- Design",
            "figures_tables": json.dumps({"figures": [], "tables": []}),
            "length": "",
            "revision": (
                "## Abstract\n\nRevised abstract.\n\n"
                "## Introduction\n\nRevised introduction citing [ref1]."
            ),
        }
        self.responses.update(responses or {})
        self.section_words = section_words
        self.pause_on = pause_on
        self.entered = asyncio.Event()
        self.release = asyncio.Event()
        self.calls: list[tuple[str, str]] = []

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.calls]

    def prompt_for(self, kind: str) -> str:
        return next(prompt for k, prompt in self.calls if k == kind)

    async def invoke(self, messages, **kwargs) -> CompletionResult:
        prompt = messages[-1]["content"]
        schema = (kwargs.get("output_schema") or {}).get("name")
        kind = classify_prompt(prompt, schema)
        self.calls.append((kind, prompt))

        if kind == self.pause_on:
            self.entered.set()
            await self.release.wait()

        response = self.responses.get(kind)
        if isinstance(response, Exception):
            raise response
        if response is None and kind.startswith("section:"):
            title_match = TITLE_IN_PROMPT.search(prompt)
            title = title_match.group("title") if title_match else "this work"
            response = default_section_text(kind.split(":", 1)[1], title, self.section_words)
        return make_mock_result(response or "")


# =============================================================================
# Fake Literature Source
# =============================================================================


class FakeLiterature:
    """Literature client double returning fixed key papers or raising."""

    def __init__(self, papers=None, error: Exception | None = None):
        self.papers = list(papers or [])
        self.error = error
        self.calls: list[tuple[str, int]] = []

    async def extract_key_papers(self, topic: str, count: int = 20) -> KeyPapers:
        self.calls.append((topic, count))
        if self.error is not None:
            raise self.error
        return KeyPapers(
            foundational=self.papers[:1],
            recent=self.papers[1:2],
            high_impact=self.papers[2:],
        )


# =============================================================================
# Store
# =============================================================================


class RecordingStore(InMemoryDocumentStore):
    """In-memory store that also records every progress update."""

    def __init__(self):
        super().__init__()
        self.progress: list[tuple[int, str, int]] = []

    async def update_generation_job_progress(self, job_id, phase, percentage):
        self.progress.append((job_id, phase, percentage))
        return await super().update_generation_job_progress(job_id, phase, percentage)


@pytest.fixture
def gateway() -> ScriptedGateway:
    return ScriptedGateway()


@pytest.fixture
def literature(sample_papers) -> FakeLiterature:
    return FakeLiterature(sample_papers)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def make_gateway():
    """Factory for gateways with custom responses."""
    return ScriptedGateway


@pytest.fixture
def make_literature():
    """Factory for literature doubles."""
    return FakeLiterature
