"""Result containers returned by the literature client."""

from pydantic import BaseModel, Field

from scholarforge.state.models import LiteratureRecord


class SearchPage(BaseModel):
    """One page of ``/paper/search`` results."""
    
    total: int = 0
    offset: int = 0
    next: int | None = None
    data: list[LiteratureRecord] = Field(default_factory=list)


class KeyPapers(BaseModel):
    """Foundational, recent and high-impact papers for a topic."""
    
    foundational: list[LiteratureRecord] = Field(default_factory=list)
    recent: list[LiteratureRecord] = Field(default_factory=list)
    high_impact: list[LiteratureRecord] = Field(default_factory=list)
    
    def unique(self) -> list[LiteratureRecord]:
        """All papers in bucket order, first occurrence of each paper id kept."""
        seen: set[str] = set()
        papers = []
        for paper in [*self.foundational, *self.recent, *self.high_impact]:
            if not paper.paper_id or paper.paper_id in seen:
                continue
            seen.add(paper.paper_id)
            papers.append(paper)
        return papers
