"""Figure and table planning, padding and rendering.

Plans returned by the model are padded or truncated so that the rendered
document always carries exactly the requested number of figures and
tables, numbered from 1. Tables are rendered to markdown for the document
body and to HTML and CSV (via pandas) for the persisted table rows.
"""

import logging
from typing import Any

import pandas as pd

from scholarforge.state.models import FigurePlan, TablePlan

logger = logging.getLogger(__name__)

DEFAULT_TABLE_COLUMNS = ["Metric", "Value"]
DEFAULT_TABLE_ROWS = [["Example", "1"]]


# =============================================================================
# Plan padding
# =============================================================================


def plan_figures(entries: list[Any] | None, count: int, title: str) -> list[FigurePlan]:
    """
    Build exactly ``count`` figure plans from model entries.
    
    Missing entries or fields fall back to synthetic captions.
    
    Args:
        entries: ``figures`` array from the model response (may be None).
        count: Number of figures requested.
        title: Document title used in synthetic captions.
    """
    entries = entries if isinstance(entries, list) else []
    plans = []
    for i in range(max(0, count)):
        entry = entries[i] if i < len(entries) and isinstance(entries[i], dict) else {}
        number = i + 1
        plans.append(FigurePlan(
            figure_number=f"Figure {number}",
            figure_type=str(entry.get("figureType") or "figure"),
            caption=str(entry.get("caption") or f"Planned figure {number} for {title}"),
            alt_text=str(entry.get("altText") or f"Figure {number}"),
        ))
    return plans


def plan_tables(entries: list[Any] | None, count: int, title: str) -> list[TablePlan]:
    """Build exactly ``count`` table plans from model entries."""
    entries = entries if isinstance(entries, list) else []
    plans = []
    for i in range(max(0, count)):
        entry = entries[i] if i < len(entries) and isinstance(entries[i], dict) else {}
        number = i + 1
        
        columns = entry.get("columns")
        if isinstance(columns, list) and columns:
            columns = [str(column) for column in columns]
        else:
            columns = list(DEFAULT_TABLE_COLUMNS)
        
        rows = entry.get("rows")
        if isinstance(rows, list) and rows:
            rows = [
                [str(cell) for cell in row] if isinstance(row, list) else []
                for row in rows
            ]
        else:
            rows = [list(row) for row in DEFAULT_TABLE_ROWS]
        
        plans.append(TablePlan(
            table_number=f"Table {number}",
            caption=str(entry.get("caption") or f"Planned table {number} for {title}"),
            columns=columns,
            rows=rows,
        ))
    return plans


# =============================================================================
# Rendering
# =============================================================================


def _fit_rows(columns: list[str], rows: list[list[str]]) -> list[list[str]]:
    """Pad or truncate each row to the column count."""
    width = len(columns)
    return [(row + [""] * width)[:width] for row in rows]


def table_frame(columns: list[str], rows: list[list[str]]) -> pd.DataFrame:
    return pd.DataFrame(_fit_rows(columns, rows), columns=columns, dtype=str)


def table_to_html(columns: list[str], rows: list[list[str]]) -> str:
    return table_frame(columns, rows).to_html(index=False, classes="table table-striped")


def table_to_csv(columns: list[str], rows: list[list[str]]) -> str:
    """Data rows as CSV, without the header line."""
    csv = table_frame(columns, rows).to_csv(index=False, header=False, lineterminator="\n")
    return csv.rstrip("\n")


def table_to_markdown(columns: list[str], rows: list[list[str]]) -> str:
    header = f"| {' | '.join(columns)} |"
    separator = f"| {' | '.join('---' for _ in columns)} |"
    body = "\n".join(f"| {' | '.join(row)} |" for row in _fit_rows(columns, rows))
    return "\n".join(part for part in (header, separator, body) if part)


def build_figures_markdown(plans: list[FigurePlan]) -> str:
    """
    Render the ``## Figures`` block.
    
    Returns an empty string when there are no figures.
    """
    if not plans:
        return ""
    lines = ["## Figures\n"]
    for figure in plans:
        lines.append(f"### {figure.figure_number}. {figure.caption}")
        lines.append(f"_Type:_ {figure.figure_type}")
        if figure.alt_text.strip():
            lines.append(f"_Alt text:_ {figure.alt_text.strip()}")
        lines.append("")
    return "\n".join(lines)


def build_tables_markdown(plans: list[TablePlan]) -> str:
    """Render the ``## Tables`` block; empty string when there are no tables."""
    if not plans:
        return ""
    lines = ["## Tables\n"]
    for table in plans:
        lines.append(f"### {table.table_number}. {table.caption}\n")
        lines.append(table_to_markdown(table.columns, table.rows))
        lines.append("")
    return "\n".join(lines).strip()
