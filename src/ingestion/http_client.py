"""
HTTP infrastructure layer with retry logic.

Provides:
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async HTTP client with automatic retry and a fixed per-request timeout

Both the source adapters and the document store client go through this
layer, so transport concerns (timeouts, retries, backoff) are separated
from record normalization and upsert logic.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any

import httpx

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; CyberLab/1.0)"


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 2
    max_backoff_seconds: float = 10.0
    base_delay: float = 0.5
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        """
        Calculate backoff duration for a given retry attempt.

        Args:
            attempt: The retry attempt number (0-indexed)

        Returns:
            Backoff duration in seconds with jitter applied
        """
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        """Rate limiting and transient server errors are retried."""
        return status_code in {429, 500, 502, 503, 504}

    def is_retryable_exception(self, exc: Exception) -> bool:
        """Timeouts and connection-level failures are retried."""
        return isinstance(
            exc,
            (
                httpx.TimeoutException,
                httpx.ConnectError,
                httpx.ReadError,
            ),
        )


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
    """Raised when rate limit is hit and all retries exhausted."""

    pass


class HTTPClient:
    """
    Async HTTP client with retry logic.

    Features:
    - Exponential backoff with jitter on retryable errors
    - Automatic retry on 429, 5xx status codes and transport errors
    - Default headers sent with every request (auth, project ids)
    - Context manager for proper resource cleanup

    Example:
        async with HTTPClient(RetryConfig(max_retries=2), timeout=15.0) as client:
            response = await client.get(
                "https://labs.hackthebox.com/api/v4/user/info",
                headers={"Authorization": f"Bearer {token}"},
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 15.0,
        headers: dict[str, str] | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            retry_config: Configuration for retry behavior. Uses defaults if None.
            timeout: Per-request timeout in seconds.
            headers: Headers merged into every request.
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self.default_headers = {"User-Agent": USER_AGENT, **(headers or {})}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=self.default_headers,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform GET request with retry logic.

        Raises:
            HTTPClientError: On non-retryable errors or after retries exhausted
            RateLimitError: When rate limited and retries exhausted
        """
        return await self.request("GET", url, params=params, headers=headers)

    async def post(
        self,
        url: str,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform POST request with retry logic."""
        return await self.request("POST", url, headers=headers, json_body=json_body)

    async def patch(
        self,
        url: str,
        json_body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """Perform PATCH request with retry logic."""
        return await self.request("PATCH", url, headers=headers, json_body=json_body)

    async def request(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Execute HTTP request with retry logic.

        Any status >= 400 that is not retried (or is still failing after
        the last retry) is raised as HTTPClientError with the status code
        and body attached, so callers can branch on 404/409.
        """
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        max_attempts = self.retry_config.max_retries + 1
        last_status_code: int | None = None

        for attempt in range(max_attempts):
            try:
                response = await self._client.request(
                    method,
                    url,
                    params=params,
                    headers=headers,
                    json=json_body,
                )
            except httpx.HTTPError as e:
                if self.retry_config.is_retryable_exception(e) and attempt + 1 < max_attempts:
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        f"Retryable error {type(e).__name__} for {method} {url}, "
                        f"attempt {attempt + 1}/{max_attempts}, "
                        f"backing off {backoff:.2f}s"
                    )
                    await asyncio.sleep(backoff)
                    continue

                raise HTTPClientError(
                    f"Request failed after {attempt + 1} attempts: {type(e).__name__}: {e}",
                    status_code=last_status_code,
                ) from e

            if response.status_code < 400:
                return response

            last_status_code = response.status_code

            if self.retry_config.is_retryable_status(response.status_code):
                if attempt + 1 < max_attempts:
                    backoff = self.retry_config.calculate_backoff(attempt)
                    logger.warning(
                        f"Retryable status {response.status_code} from {method} {url}, "
                        f"attempt {attempt + 1}/{max_attempts}, "
                        f"backing off {backoff:.2f}s"
                    )
                    await asyncio.sleep(backoff)
                    continue

                if response.status_code == 429:
                    raise RateLimitError(
                        f"Rate limit exceeded for {url} after {attempt + 1} attempts",
                        status_code=response.status_code,
                        response_body=response.text,
                    )
                raise HTTPClientError(
                    f"Request failed with status {response.status_code} after {attempt + 1} attempts",
                    status_code=response.status_code,
                    response_body=response.text,
                )

            raise HTTPClientError(
                f"Request failed with status {response.status_code}",
                status_code=response.status_code,
                response_body=response.text,
            )

        # Loop always returns or raises; kept for type checkers
        raise HTTPClientError(
            f"Request failed after {max_attempts} attempts",
            status_code=last_status_code,
        )
