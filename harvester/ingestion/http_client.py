"""
HTTP transport for the timeline client.

Provides:
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async HTTP client with optional retry on transient failures

Retries default to none: a failed fetch ends the pass, and the source's
lease bump is the backoff before the next attempt.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})
RETRYABLE_EXCEPTIONS = (httpx.TimeoutException, httpx.ConnectError, httpx.ReadError)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 0
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        """Backoff in seconds before retry number ``attempt`` (0-indexed)."""
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        """429 and the transient 5xx codes are retried."""
        return status_code in RETRYABLE_STATUS_CODES


class HTTPClientError(Exception):
    """Base exception for HTTP client errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(HTTPClientError):
    """Raised when the upstream keeps answering 429."""

    pass


class HTTPClient:
    """
    Async HTTP client wrapper around httpx.

    Example:
        async with HTTPClient(RetryConfig(max_retries=1)) as client:
            response = await client.post_form(url, data={"doc_id": "123"})
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._headers = dict(headers or {})
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, headers=self._headers)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def post_form(
        self,
        url: str,
        data: dict[str, str],
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        POST an urlencoded form.

        Raises:
            HTTPClientError: On error status or transport failure
            RateLimitError: When rate limited and retries are exhausted
        """
        return await self._request_with_retry("POST", url, data=data, headers=headers)

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        data: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1

        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method, url, data=data, headers=headers
                )
            except RETRYABLE_EXCEPTIONS as e:
                if attempt + 1 < attempts:
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        f"Retryable error {type(e).__name__} for {url}, "
                        f"attempt {attempt + 1}/{attempts}, backing off {backoff:.2f}s"
                    )
                    await asyncio.sleep(backoff)
                    continue
                raise HTTPClientError(
                    f"Request failed after {attempt + 1} attempts: {e}"
                ) from e
            except httpx.HTTPError as e:
                raise HTTPClientError(f"Request failed: {e}") from e

            status = response.status_code
            if self.retry_config.is_retryable_status(status) and attempt + 1 < attempts:
                backoff = self.retry_config.calculate_backoff(attempt)
                logger.warning(
                    f"Retryable status {status} from {url}, "
                    f"attempt {attempt + 1}/{attempts}, backing off {backoff:.2f}s"
                )
                await asyncio.sleep(backoff)
                continue

            if status == 429:
                raise RateLimitError(
                    f"Rate limit exceeded for {url} after {attempt + 1} attempts",
                    status_code=status,
                    response_body=response.text,
                )
            if status >= 400:
                raise HTTPClientError(
                    f"Request failed with status {status}",
                    status_code=status,
                    response_body=response.text,
                )
            return response

        # The loop always returns or raises on its last attempt
        raise HTTPClientError(f"Request failed after {attempts} attempts")
