"""Prompt builders for the generation phases.

Each builder takes the per-run context (or request) and returns a single
user prompt string.
"""

from scholarforge.content.math import MATH_REQUIREMENTS, should_request_step_by_step_math
from scholarforge.state.models import CitationBinding, GenerationContext


def literature_summary(bindings: list[CitationBinding], limit: int = 10) -> str:
    return "\n".join(
        f"- [{b.citation_key}] {b.paper.title} ({b.paper.year})"
        for b in bindings[:limit]
    )


def citations_context(bindings: list[CitationBinding]) -> str:
    """Up to twenty bindings as ``[refN] Title (Year)`` lines."""
    limit = max(5, min(20, len(bindings)))
    return "\n".join(
        f"[{b.citation_key}] {b.paper.title} ({b.paper.year})"
        for b in bindings[:limit]
    )


def novelty_prompt(ctx: GenerationContext) -> str:
    request = ctx.request
    abstract = (
        f"Proposed Abstract:\n{request.abstract_provided}\n\n"
        if request.abstract_provided else ""
    )
    return f"""Given the following research topic and existing literature, assess the novelty potential:

Topic: {request.title}
Domain: {request.domain_label}

Recent Literature:
{literature_summary(ctx.citations)}

{abstract}
Provide a novelty score (0.0-1.0) and classification (incremental/moderate/substantial). Respond in JSON format:
{{"score": 0.85, "classification": "substantial", "reasoning": "..."}}"""


def outline_prompt(ctx: GenerationContext) -> str:
    request = ctx.request
    abstract = f"Abstract: {request.abstract_provided}\n" if request.abstract_provided else ""
    hypotheses = ""
    if request.key_hypotheses:
        hypotheses = "Key Hypotheses:\n" + "\n".join(f"- {h}" for h in request.key_hypotheses) + "\n"
    constraints = ""
    if request.methodology_constraints:
        constraints = (
            "Methodology Constraints:\n"
            + "\n".join(f"- {c}" for c in request.methodology_constraints)
            + "\n"
        )
    journal = f"Target Journal: {request.target_journal}\n" if request.target_journal else ""
    
    return f"""Create a detailed outline for a {request.document_type} titled "{request.title}".

Research Domain: {request.research_domain}
Target Word Count: {request.target_word_count}
{journal}{abstract}{hypotheses}{constraints}
Create a comprehensive outline with:
1. Introduction (background, motivation, research questions)
2. Literature Review (organized by themes)
3. Methodology
4. Results/Findings
5. Discussion
6. Conclusion

Provide the outline in markdown format with section headers and bullet points."""


def section_prompt(ctx: GenerationContext, section: str, word_budget: int) -> str:
    request = ctx.request
    starting_point = ""
    if section == "Abstract" and request.abstract_provided:
        starting_point = f"Use this as a starting point:\n{request.abstract_provided}\n\n"
    math = MATH_REQUIREMENTS if should_request_step_by_step_math(request, section) else ""
    
    return f"""Write ONLY the body text for the "{section}" section of a scholarly {request.document_type} titled "{request.title}".

Outline:
{ctx.outline}

Target word count for this section: ~{word_budget} words

Available citations:
{citations_context(ctx.citations)}

{starting_point}
Constraints:
- Do NOT include any headings (no "##", no numbered titles).
- Do NOT output duplicate section titles.
- Use citation keys in [refX] format ONLY (do not use [1], (1), etc).
- If you mention figures or tables, reference them as "Figure N" / "Table N".
{math}
Write in formal academic style with concrete technical details."""


def figures_tables_prompt(ctx: GenerationContext) -> str:
    request = ctx.request
    return f"""Plan figures and tables for a scholarly {request.document_type} titled "{request.title}".

Constraints:
- Create exactly {request.num_figures} figures and exactly {request.num_tables} tables.
- Keep captions specific to the topic and consistent with the document content.
- Tables should be realistic and compact (2-6 columns, 3-8 rows).

Topic: {request.title}
Domain: {request.domain_label}

Available citations:
{citations_context(ctx.citations) or "(none)"}

Respond with JSON:
{{
  "figures": [{{"figureType":"plot","caption":"...","altText":"..."}}],
  "tables": [{{"caption":"...","columns":["..."],"rows":[["..."]]}}]
}}"""

