"""
Timeline page fetching.

``FetchClient`` is the only thing the harvest pipeline knows about the
upstream: a source id and pagination state go in, raw response text comes
out. ``TimelineClient`` is the GraphQL implementation used in production.
Its request shape (headers, form fields, query variables) can be replaced
without touching the pipeline.
"""

import json
import logging
import time
from typing import Any, Protocol

from harvester.config.settings import get_settings
from harvester.errors import FetchFailure
from harvester.ingestion.http_client import HTTPClient, HTTPClientError, RetryConfig
from harvester.sources.schemas import PaginationMode

logger = logging.getLogger(__name__)


class FetchClient(Protocol):
    """Fetches one raw timeline page."""

    async def fetch_page(
        self,
        source_id: str,
        cursor: str | None,
        mode: PaginationMode,
    ) -> str:
        """Return the raw response text or raise FetchFailure."""
        ...


def build_variables(source_id: str, cursor: str | None, page_size: int) -> dict[str, Any]:
    """GraphQL variables for a timeline refetch query."""
    return {
        "UFI2CommentsProvider_commentsKey": "ProfileCometTimelineRoute",
        "count": page_size,
        "cursor": cursor,
        "feedLocation": "TIMELINE",
        "feedbackSource": 0,
        "omitPinnedPost": True,
        "privacySelectorRenderLocation": "COMET_STREAM",
        "renderLocation": "timeline",
        "scale": 1,
        "stream_count": page_size,
        "useDefaultActor": False,
        "id": source_id,
    }


class TimelineClient:
    """
    GraphQL timeline client.

    Usage:
        async with TimelineClient() as client:
            raw = await client.fetch_page("100044", None, PaginationMode.BACKFILLING)
    """

    def __init__(
        self,
        graphql_url: str | None = None,
        doc_id: str | None = None,
        page_size: int | None = None,
        http_client: HTTPClient | None = None,
    ):
        settings = get_settings()

        self._url = graphql_url or settings.graphql_url
        self._doc_id = doc_id or settings.doc_id
        self._friendly_name = settings.friendly_name
        self._page_size = page_size or settings.page_size

        self._http = http_client or HTTPClient(
            retry_config=RetryConfig(
                max_retries=settings.fetch_max_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=settings.fetch_timeout_seconds,
            headers={
                "user-agent": settings.user_agent,
                "accept": "*/*",
                "origin": "https://www.facebook.com",
                "x-fb-friendly-name": settings.friendly_name,
            },
        )

    async def __aenter__(self) -> "TimelineClient":
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    def build_form(self, source_id: str, cursor: str | None) -> dict[str, str]:
        """Form body for one page request."""
        return {
            "fb_api_caller_class": "RelayModern",
            "fb_api_req_friendly_name": self._friendly_name,
            "server_timestamps": "true",
            "doc_id": self._doc_id or "",
            "variables": json.dumps(
                build_variables(source_id, cursor, self._page_size)
            ),
        }

    async def fetch_page(
        self,
        source_id: str,
        cursor: str | None,
        mode: PaginationMode,
    ) -> str:
        """
        Fetch one page of a source's timeline.

        Raises:
            FetchFailure: If the query is not configured, the request fails,
                or the response body is empty
        """
        if not self._doc_id:
            raise FetchFailure("DOC_ID is not configured", source_id=source_id)

        logger.debug(
            f"Fetching {mode.value} page for {source_id} "
            f"(cursor={'set' if cursor else 'none'})"
        )

        start = time.perf_counter()
        try:
            response = await self._http.post_form(
                self._url, data=self.build_form(source_id, cursor)
            )
        except HTTPClientError as e:
            raise FetchFailure(
                f"Timeline request failed: {e}",
                source_id=source_id,
                status_code=e.status_code,
            ) from e

        raw = response.text
        if not raw:
            raise FetchFailure("Timeline response is empty", source_id=source_id)

        logger.debug(
            f"Received {len(raw)} chars for {source_id} "
            f"in {time.perf_counter() - start:.2f}s"
        )
        return raw
