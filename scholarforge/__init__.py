"""ScholarForge: multi-stage drafting of scholarly documents."""

__version__ = "0.1.0"
