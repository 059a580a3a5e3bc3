"""Semantic Scholar client for literature search.

All requests made by one ``LiteratureClient`` share a single request queue
(minimum interval between calls) and a single response cache (keyed by
the full request URL including query parameters). Upstream 429 and 5xx
answers are retried under the shared retry policy; a missing API key is a
configuration error raised before anything is queued.

API documentation: https://api.semanticscholar.org/api-docs/
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

import httpx

from scholarforge.config import Settings, settings as default_settings
from scholarforge.errors import (
    ConfigurationError,
    LiteratureSearchError,
    RateLimitError,
    TransientAPIError,
    create_literature_retry_policy,
    parse_retry_after,
    retry_async,
)
from scholarforge.literature.models import KeyPapers, SearchPage
from scholarforge.literature.throttle import RequestQueue, ResponseCache
from scholarforge.state.models import LiteratureRecord

logger = logging.getLogger(__name__)

SEMANTIC_SCHOLAR_API = "https://api.semanticscholar.org/graph/v1"

PAPER_FIELDS = (
    "paperId,title,abstract,year,authors,venue,citationCount,"
    "influentialCitationCount,fieldsOfStudy,externalIds,url"
)
RECOMMENDATION_FIELDS = (
    "paperId,title,abstract,year,authors,venue,citationCount,fieldsOfStudy,externalIds"
)

USER_AGENT = "scholarforge (+https://api.semanticscholar.org)"


class LiteratureClient:
    """Rate-limited, cached and retrying Semantic Scholar client.

    Construct one instance per process and share it between pipeline runs.
    """

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = SEMANTIC_SCHOLAR_API,
        min_request_interval: float = 1.1,
        cache_ttl: float = 600.0,
        max_retries: int = 5,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.queue = RequestQueue(min_request_interval, clock=clock, sleep=sleep)
        self.cache = ResponseCache(cache_ttl, clock=clock)
        self.retry_policy = create_literature_retry_policy(max_retries)
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, config: Settings | None = None, **overrides: Any) -> "LiteratureClient":
        config = config or default_settings
        kwargs: dict[str, Any] = {
            "api_key": config.semantic_scholar_api_key,
            "base_url": config.semantic_scholar_base_url,
            "min_request_interval": config.semantic_scholar_min_request_interval,
            "cache_ttl": config.semantic_scholar_cache_ttl,
            "max_retries": config.semantic_scholar_max_retries,
            "timeout_seconds": config.semantic_scholar_timeout_seconds,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    # =========================================================================
    # Transport
    # =========================================================================

    def build_url(self, path: str, params: dict[str, Any] | None = None) -> str:
        """Full request URL; also the cache key."""
        return str(httpx.URL(f"{self.base_url}{path}", params=params or {}))

    async def _fetch_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        if not self.api_key:
            raise ConfigurationError(
                "SEMANTIC_SCHOLAR_API_KEY not configured",
                setting="SEMANTIC_SCHOLAR_API_KEY",
            )

        url = self.build_url(path, params)
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug(f"Semantic Scholar cache hit: {url}")
            return cached

        data = await self.queue.run(lambda: self._get_with_retry(url))
        self.cache.set(url, data)
        return data

    async def _get_with_retry(self, url: str) -> Any:
        headers = {
            "x-api-key": self.api_key,
            "accept": "application/json",
            "user-agent": USER_AGENT,
        }

        async with httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self._transport,
        ) as client:

            async def attempt_request(attempt: int) -> Any:
                response = await client.get(url, headers=headers)
                if response.is_success:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise LiteratureSearchError(
                            f"Semantic Scholar returned a non-JSON body: {e}",
                            status_code=response.status_code,
                            response_body=response.text,
                            query=url,
                        ) from e

                body = response.text
                suffix = f" - {body[:500]}" if body else ""
                message = (
                    f"Semantic Scholar API error: {response.status_code} "
                    f"{response.reason_phrase}{suffix}"
                )
                if response.status_code == 429:
                    raise RateLimitError(
                        message,
                        service="semantic_scholar",
                        retry_after=parse_retry_after(response.headers.get("retry-after")),
                        response_body=body,
                    )
                if response.status_code >= 500:
                    raise TransientAPIError(
                        message,
                        service="semantic_scholar",
                        status_code=response.status_code,
                        response_body=body,
                    )
                raise LiteratureSearchError(
                    message,
                    status_code=response.status_code,
                    response_body=body,
                    query=url,
                )

            try:
                return await retry_async(
                    attempt_request,
                    self.retry_policy,
                    sleep=self._sleep,
                    description="Semantic Scholar request",
                )
            except TransientAPIError as e:
                logger.error(f"Semantic Scholar retries exhausted: {e.message[:200]}")
                raise LiteratureSearchError(
                    e.message,
                    status_code=e.status_code,
                    response_body=e.response_body,
                    query=url,
                ) from e
            except httpx.RequestError as e:
                raise LiteratureSearchError(
                    f"Semantic Scholar request failed: {e}",
                    query=url,
                ) from e

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def search_papers(
        self,
        query: str,
        limit: int = 10,
        offset: int = 0,
        year: str | None = None,
        fields_of_study: list[str] | None = None,
    ) -> SearchPage:
        """
        Search for papers by query.

        Args:
            query: Search query text.
            limit: Maximum number of results (the API caps this at 100).
            offset: Result offset for paging.
            year: Year filter such as "2020-2023".
            fields_of_study: Filter like ["Computer Science"].

        Returns:
            SearchPage with parsed LiteratureRecords.
        """
        params: dict[str, Any] = {
            "query": query,
            "limit": str(limit or 10),
            "offset": str(offset or 0),
            "fields": PAPER_FIELDS,
        }
        if year:
            params["year"] = year
        if fields_of_study:
            params["fieldsOfStudy"] = ",".join(fields_of_study)

        data = await self._fetch_json("/paper/search", params)
        return SearchPage(
            total=data.get("total", 0),
            offset=data.get("offset", 0),
            next=data.get("next"),
            data=[LiteratureRecord.from_api(paper) for paper in data.get("data") or []],
        )

    async def get_paper(self, paper_id: str) -> LiteratureRecord:
        data = await self._fetch_json(f"/paper/{paper_id}", {"fields": PAPER_FIELDS})
        return LiteratureRecord.from_api(data)

    async def get_recommendations(self, paper_id: str, limit: int = 10) -> list[LiteratureRecord]:
        """Papers recommended for the given paper."""
        data = await self._fetch_json(
            f"/paper/{paper_id}/recommendations",
            {"limit": str(limit), "fields": RECOMMENDATION_FIELDS},
        )
        return [
            LiteratureRecord.from_api(paper)
            for paper in data.get("recommendedPapers") or []
        ]

    async def find_relevant_literature(
        self,
        research_domain: str,
        subdomain: str | None = None,
        min_citation_count: int | None = None,
        year_range: str | None = None,
        limit: int = 50,
    ) -> list[LiteratureRecord]:
        """
        Search a research domain and rank results by citation count.

        Args:
            research_domain: Domain, also used as the fields-of-study filter.
            subdomain: Optional subdomain appended to the query.
            min_citation_count: Drop papers cited fewer times.
            year_range: Year filter such as "2015-2020".
            limit: Maximum number of results.
        """
        query = f"{research_domain} {subdomain}" if subdomain else research_domain
        page = await self.search_papers(
            query,
            limit=limit,
            year=year_range,
            fields_of_study=[research_domain],
        )

        papers = page.data
        if min_citation_count is not None:
            papers = [p for p in papers if (p.citation_count or 0) >= min_citation_count]

        return sorted(papers, key=lambda p: p.citation_count or 0, reverse=True)

    async def extract_key_papers(self, topic: str, count: int = 20) -> KeyPapers:
        """
        Extract foundational, recent and high-impact papers for a topic.

        Two searches are made: 2010-2019 and the last three years. The
        high-impact bucket is derived from their union. A paper appears in
        at most one bucket (foundational, then recent, then high-impact)
        and each bucket holds at most ``count // 3`` papers.

        Args:
            topic: Search topic.
            count: Results requested per search.

        Returns:
            KeyPapers buckets.
        """
        per_bucket = count // 3

        foundational_page = await self.search_papers(topic, limit=count, year="2010-2019")
        current_year = datetime.now(timezone.utc).year
        recent_page = await self.search_papers(
            topic, limit=count, year=f"{current_year - 3}-{current_year}"
        )

        seen: set[str] = set()

        def take(candidates: list[LiteratureRecord]) -> list[LiteratureRecord]:
            bucket = []
            for paper in candidates:
                if len(bucket) >= per_bucket:
                    break
                if not paper.paper_id or paper.paper_id in seen:
                    continue
                seen.add(paper.paper_id)
                bucket.append(paper)
            return bucket

        foundational = take(sorted(
            (p for p in foundational_page.data if (p.citation_count or 0) > 100),
            key=lambda p: p.citation_count or 0,
            reverse=True,
        ))
        recent = take(sorted(
            recent_page.data,
            key=lambda p: p.year or 0,
            reverse=True,
        ))

        union: dict[str, LiteratureRecord] = {}
        for paper in [*foundational_page.data, *recent_page.data]:
            if paper.paper_id:
                union[paper.paper_id] = paper
        high_impact = take(sorted(
            (p for p in union.values() if (p.influential_citation_count or 0) > 10),
            key=lambda p: p.influential_citation_count or 0,
            reverse=True,
        ))

        logger.info(
            f"Key papers for '{topic[:60]}': {len(foundational)} foundational, "
            f"{len(recent)} recent, {len(high_impact)} high-impact"
        )
        return KeyPapers(foundational=foundational, recent=recent, high_impact=high_impact)
