"""Persistence seam for ScholarForge."""

from scholarforge.store.base import DocumentStore
from scholarforge.store.memory import InMemoryDocumentStore, RecordNamespace

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "RecordNamespace",
]
