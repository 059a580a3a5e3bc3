"""Fallback content used when the model returns nothing usable."""

from scholarforge.state.models import GenerationRequest

FALLBACK_NOTICE = (
    "This section was generated with a fallback template because the LLM "
    "response was unavailable or invalid."
)


def default_outline(request: GenerationRequest) -> str:
    return f"""# Outline: {request.title}

## Abstract
- Summary of problem, approach, results, and contributions

## Introduction
- Background and motivation
- Problem statement and research questions
- Contributions and paper organization

## Literature Review
- Thematic overview of related work
- Gaps and limitations in prior work

## Methodology
- Data/materials
- Experimental/analytical design
- Evaluation metrics and baselines

## Results
- Key findings
- Tables/figures references (if any)

## Discussion
- Interpretation of results
- Limitations and implications

## Conclusion
- Summary
- Future work"""


def default_section(section: str, request: GenerationRequest) -> str:
    """Fallback body for one section.
    
    The Abstract falls back to the user's own abstract when one was given.
    """
    title = request.title
    domain = request.research_domain
    
    if section == "Abstract":
        if request.abstract_provided and request.abstract_provided.strip():
            return request.abstract_provided.strip()
        detail = (
            f"We study {title} in the context of {domain}. We describe the approach, "
            "report key results, and discuss implications."
        )
    elif section == "Introduction":
        detail = (
            f"{title} addresses an important problem in {domain}. We motivate the problem, "
            "summarize prior work, and outline our contributions."
        )
    elif section == "Literature Review":
        detail = (
            f"We summarize relevant literature in {domain} and identify open gaps "
            "that motivate the present work."
        )
    elif section == "Methodology":
        detail = (
            "We describe the methodology, data sources, experimental design, and "
            f"evaluation criteria used to study {title}."
        )
    elif section == "Results":
        detail = f"We report the main findings and quantitative/qualitative results for {title}."
    elif section == "Discussion":
        detail = (
            "We interpret the results, discuss limitations, and contextualize "
            f"implications for {domain}."
        )
    elif section == "Conclusion":
        detail = "We conclude with a summary of contributions and directions for future work."
    else:
        return FALLBACK_NOTICE
    
    return f"{FALLBACK_NOTICE}\n\n{detail}"
