"""Content normalization for generated documents."""

from scholarforge.content.assets import (
    build_figures_markdown,
    build_tables_markdown,
    plan_figures,
    plan_tables,
    table_to_csv,
    table_to_html,
    table_to_markdown,
)
from scholarforge.content.length import adjust_body_to_target_word_count
from scholarforge.content.math import (
    ensure_math_derivation,
    should_request_step_by_step_math,
)
from scholarforge.content.normalize import (
    clean_section_body,
    compute_word_count,
    normalize_citation_keys,
    strip_leading_headings,
    strip_leading_section_title,
)

__all__ = [
    "build_figures_markdown",
    "build_tables_markdown",
    "plan_figures",
    "plan_tables",
    "table_to_csv",
    "table_to_html",
    "table_to_markdown",
    "adjust_body_to_target_word_count",
    "ensure_math_derivation",
    "should_request_step_by_step_math",
    "clean_section_body",
    "compute_word_count",
    "normalize_citation_keys",
    "strip_leading_headings",
    "strip_leading_section_title",
]
