"""Configuration for ScholarForge."""

from scholarforge.config.settings import PROJECT_ROOT, Settings, settings

__all__ = ["PROJECT_ROOT", "Settings", "settings"]
