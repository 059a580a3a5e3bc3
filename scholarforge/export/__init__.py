"""Document export for ScholarForge."""

from scholarforge.export.renderer import (
    ExportResult,
    escape_latex,
    export_document,
    markdown_to_latex,
    sanitize_filename,
    write_export,
)

__all__ = [
    "ExportResult",
    "escape_latex",
    "export_document",
    "markdown_to_latex",
    "sanitize_filename",
    "write_export",
]
