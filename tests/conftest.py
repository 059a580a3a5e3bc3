"""Test configuration and fixtures."""

import pytest

from scholarforge.state.models import AuthorInput, GenerationRequest, LiteratureRecord


# Configure pytest-asyncio
pytest_plugins = ['pytest_asyncio']


@pytest.fixture(scope="session")
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def sample_request() -> GenerationRequest:
    """A small journal-article request."""
    return GenerationRequest(
        document_type="journal_article",
        title="Graph Neural Networks for Traffic Forecasting",
        research_domain="Computer Science",
        subdomain="Machine Learning",
        target_word_count=1200,
        num_figures=0,
        num_tables=0,
        num_references=5,
        citation_style="APA7",
        authors=[
            AuthorInput(name="Ada Lovelace", affiliation="Analytical Engines Lab", is_corresponding=True),
            AuthorInput(name="Charles Babbage", affiliation="Difference Engine Institute"),
        ],
    )


@pytest.fixture
def sample_papers() -> list[LiteratureRecord]:
    """Three real-looking literature records."""
    return [
        LiteratureRecord(
            paper_id="p1",
            title="Spatio-Temporal Graph Convolution",
            year=2018,
            authors=["Bing Yu"],
            venue="IJCAI",
            citation_count=2500,
            influential_citation_count=300,
            external_ids={"DOI": "10.24963/ijcai.2018/505"},
        ),
        LiteratureRecord(
            paper_id="p2",
            title="Diffusion Convolutional Recurrent Neural Network",
            year=2018,
            authors=["Yaguang Li", "Rose Yu"],
            venue="ICLR",
            citation_count=2100,
            influential_citation_count=250,
        ),
        LiteratureRecord(
            paper_id="p3",
            title="Graph WaveNet for Deep Spatial-Temporal Graph Modeling",
            year=2019,
            authors=["Zonghan Wu", "Shirui Pan", "Guodong Long"],
            venue="IJCAI",
            citation_count=1500,
            influential_citation_count=200,
        ),
    ]


class SleepRecorder:
    """Drop-in for ``asyncio.sleep`` that records requested delays."""
    
    def __init__(self):
        self.delays: list[float] = []
    
    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()
