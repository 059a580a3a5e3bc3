"""Revision processing for ScholarForge."""

from scholarforge.revisions.processor import (
    RevisionProcessor,
    build_revision_prompt,
    extract_abstract,
)

__all__ = [
    "RevisionProcessor",
    "build_revision_prompt",
    "extract_abstract",
]
