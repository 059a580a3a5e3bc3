"""Generation pipeline for ScholarForge.

This module provides:
- The ordered phase list and its LangGraph assembly
- GenerationService for background job submission and polling
"""

from scholarforge.pipeline.orchestrator import (
    PHASES,
    GenerationPipeline,
    PhaseSpec,
    phase_start_percentages,
)
from scholarforge.pipeline.phases import PhaseServices
from scholarforge.pipeline.jobs import CANCELLED_MESSAGE, GenerationService

__all__ = [
    "PHASES",
    "GenerationPipeline",
    "PhaseSpec",
    "phase_start_percentages",
    "PhaseServices",
    "CANCELLED_MESSAGE",
    "GenerationService",
]
