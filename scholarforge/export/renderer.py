"""Textual export of stored documents (markdown and LaTeX)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from scholarforge.state.enums import ExportFormat
from scholarforge.state.models import AuthorRecord, CitationRecord, Document

MARKDOWN_MIME_TYPE = "text/markdown; charset=utf-8"
LATEX_MIME_TYPE = "application/x-tex; charset=utf-8"

_LATEX_REPLACEMENTS = {
    "\\": r"\textbackslash{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
}
_LATEX_SPECIALS = re.compile(r"[\\&%$#_{}~^]")

_HEADING = re.compile(r"^(#{1,6})\s+(.*)$")
_BULLET = re.compile(r"^[-*]\s+(.*)$")
_CITATION_KEY = re.compile(r"\[(ref\d+)\]")


@dataclass(frozen=True)
class ExportResult:
    filename: str
    mime_type: str
    content: str


def sanitize_filename(title: str) -> str:
    """Replace every run of characters outside ``[A-Za-z0-9_-]`` with ``_``."""
    return re.sub(r"[^A-Za-z0-9_-]+", "_", title or "")


def escape_latex(value: str) -> str:
    """Escape LaTeX special characters in one pass (so ``\\`` is not re-escaped)."""
    return _LATEX_SPECIALS.sub(lambda m: _LATEX_REPLACEMENTS[m.group(0)], value or "")


def markdown_to_latex(markdown: str) -> str:
    """Convert headings, bullet lists, text and ``[refN]`` markers to LaTeX."""
    out: list[str] = []
    in_itemize = False

    def close_list() -> None:
        nonlocal in_itemize
        if in_itemize:
            out.append(r"\end{itemize}")
            in_itemize = False

    for raw_line in markdown.split("\n"):
        line = raw_line.rstrip()

        heading = _HEADING.match(line)
        if heading:
            close_list()
            level = len(heading.group(1))
            command = r"\section" if level == 1 else r"\subsection" if level == 2 else r"\subsubsection"
            out.append(f"{command}{{{escape_latex(heading.group(2).strip())}}}")
            continue

        bullet = _BULLET.match(line)
        if bullet:
            if not in_itemize:
                out.append(r"\begin{itemize}")
                in_itemize = True
            out.append(rf"\item {escape_latex(bullet.group(1))}")
            continue

        if not line:
            close_list()
            out.append("")
            continue

        close_list()
        out.append(_CITATION_KEY.sub(r"\\cite{\1}", escape_latex(line)))

    close_list()
    return "\n".join(out)


def _bibliography(citations: list[CitationRecord]) -> str:
    items = []
    for citation in citations:
        year = citation.year if citation.year is not None else ""
        items.append(
            rf"\bibitem{{{citation.citation_key or ''}}} "
            f"{escape_latex(citation.authors_text)}. {escape_latex(citation.title)}. {year}."
        )
    return "\n".join(items)


def render_latex(
    document: Document,
    authors: list[AuthorRecord] | None = None,
    citations: list[CitationRecord] | None = None,
) -> str:
    author_line = r" \and ".join(escape_latex(a.name) for a in authors or [])
    author_command = rf"\author{{{author_line}}}" if author_line else ""

    return (
        "\\documentclass{article}\n"
        "\\usepackage[utf8]{inputenc}\n"
        "\\usepackage{hyperref}\n"
        "\\begin{document}\n"
        f"\\title{{{escape_latex(document.title)}}}\n"
        f"{author_command}\n"
        "\\date{}\n"
        "\\maketitle\n"
        "\n"
        f"{markdown_to_latex(document.content)}\n"
        "\n"
        "\\begin{thebibliography}{99}\n"
        f"{_bibliography(citations or [])}\n"
        "\\end{thebibliography}\n"
        "\\end{document}\n"
    )


def export_document(
    format: ExportFormat | str,
    document: Document,
    authors: list[AuthorRecord] | None = None,
    citations: list[CitationRecord] | None = None,
) -> ExportResult:
    """
    Export a stored document.

    Args:
        format: "markdown" (content verbatim) or "latex".
        document: Document to export.
        authors: Author rows for the LaTeX ``\\author`` line.
        citations: Citation rows for the LaTeX bibliography.

    Returns:
        ExportResult with filename, MIME type and content.
    """
    export_format = ExportFormat(format)
    stem = sanitize_filename(document.title)

    if export_format == ExportFormat.MARKDOWN:
        return ExportResult(f"{stem}.md", MARKDOWN_MIME_TYPE, document.content)

    return ExportResult(f"{stem}.tex", LATEX_MIME_TYPE, render_latex(document, authors, citations))


def write_export(result: ExportResult, output_dir: str | Path) -> Path:
    """Write an export into ``output_dir`` and return the file path."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / result.filename
    path.write_text(result.content, encoding="utf-8")
    return path
