"""Numbered derivation blocks for technical topics.

Methodology and Results sections of technical documents are asked for
step-by-step math. For a few recognized topics a numbered derivation is
injected when the model produced no tagged display equations.
"""

from dataclasses import dataclass
from typing import Callable

from scholarforge.state.models import GenerationRequest

MATH_KEYWORDS = (
    "physics",
    "mathematics",
    "math",
    "engineering",
    "mechanics",
    "dynamics",
    "quantum",
    "oscillator",
    "derivation",
    "equation",
    "model",
)

MATH_SECTIONS = ("Methodology", "Results")

MATH_REQUIREMENTS = """
Math requirements (important):
- Include at least 3 displayed LaTeX equations.
- Number displayed equations using \\tag{1}, \\tag{2}, ...
- Reference them in the prose as Eq. (1), Eq. (2), etc.
- Show at least one step-by-step derivation (not just final formulas).
"""


def topic_haystack(request: GenerationRequest) -> str:
    return f"{request.title} {request.research_domain} {request.subdomain or ''}".lower()


def should_request_step_by_step_math(request: GenerationRequest, section: str) -> bool:
    if section not in MATH_SECTIONS:
        return False
    haystack = topic_haystack(request)
    return any(keyword in haystack for keyword in MATH_KEYWORDS)


QUARTIC_OSCILLATOR_DERIVATION = r"""**Mathematical model and equation of motion.**

We model a 1D quartic oscillator with potential energy
$$
V(x)=\frac{k}{4}x^{4}. \tag{1}
$$
and an effective-mass modification (one convenient parametrization)
$$
m_{\mathrm{eff}}(x)=m\left(1+\alpha x^{2}\right). \tag{2}
$$
The Lagrangian reads
$$
L(x,\dot x)=\frac{1}{2}m\left(1+\alpha x^{2}\right)\dot x^{2}-\frac{k}{4}x^{4}. \tag{3}
$$
Applying the Euler-Lagrange equation and simplifying yields the nonlinear equation of motion
$$
m\left(1+\alpha x^{2}\right)\ddot x + m\alpha x\dot x^{2} + kx^{3}=0. \tag{4}
$$
An associated conserved energy is
$$
E=\frac{1}{2}m\left(1+\alpha x^{2}\right)\dot x^{2}+\frac{k}{4}x^{4}. \tag{5}
$$
For the canonical quartic oscillator (\(\alpha=0\)), the oscillation period scales as \(T\propto A^{-1}\) and the frequency scales as \(\omega(A)\propto A\sqrt{k/m}\) for amplitude \(A\) (derivation via the energy integral)."""


@dataclass(frozen=True)
class DerivationTemplate:
    """A derivation injected into one section for matching topics."""
    
    name: str
    section: str
    matches: Callable[[str], bool]
    body: str


DERIVATION_TEMPLATES: tuple[DerivationTemplate, ...] = (
    DerivationTemplate(
        name="quartic_oscillator",
        section="Methodology",
        matches=lambda haystack: "quartic" in haystack and "oscillator" in haystack,
        body=QUARTIC_OSCILLATOR_DERIVATION,
    ),
)


def find_derivation_template(request: GenerationRequest, section: str) -> DerivationTemplate | None:
    haystack = topic_haystack(request)
    for template in DERIVATION_TEMPLATES:
        if template.section == section and template.matches(haystack):
            return template
    return None


def ensure_math_derivation(
    section: str,
    markdown: str,
    request: GenerationRequest,
    max_ref: int,
) -> str:
    """
    Prepend a numbered derivation for recognized topics.
    
    Text that already contains a ``\\tag{`` is returned unchanged, as is
    empty text. The derivation cites ``[ref1]`` when at least one
    reference exists.
    """
    if not markdown.strip() or "\\tag{" in markdown:
        return markdown
    
    template = find_derivation_template(request, section)
    if template is None:
        return markdown
    
    cite = " [ref1]" if max_ref > 0 else ""
    return f"{template.body}{cite}\n\n\n{markdown}".strip()
