"""
Base adapter interface and shared functionality for source adapters.

Each source adapter implements _fetch_raw() and _transform(). The base
class provides:
- The skip check (missing per-source configuration, before any request)
- Per-item error isolation (a malformed item is dropped, not fatal)
- Translation of transport failures into SourceUnavailable
- Run statistics and logging
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from src.ingestion.errors import ParseError, SkippedSource, SourceError, SourceUnavailable
from src.ingestion.http_client import HTTPClient, HTTPClientError
from src.ingestion.schemas import NewsRecord, PlatformStat

logger = logging.getLogger(__name__)

Record = NewsRecord | PlatformStat


@dataclass
class AdapterStats:
    """Statistics for an adapter run."""

    records_fetched: int = 0
    records_filtered: int = 0
    errors: int = 0
    start_time: float = field(default_factory=time.monotonic)

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.start_time


class BaseAdapter(ABC):
    """
    Abstract base class for source adapters.

    Subclasses must implement:
        - source: Stable source name used in logs and the run summary
        - _fetch_raw(): Async generator yielding raw upstream items
        - _transform(): Convert a raw item to a normalized record

    Subclasses may override skip_reason() to report missing configuration.
    """

    def __init__(self, client: HTTPClient | None = None):
        """
        Args:
            client: Entered HTTPClient shared for the run (None for sources
                that make no requests)
        """
        self._client = client
        self._stats = AdapterStats()

    @property
    @abstractmethod
    def source(self) -> str:
        """Source name, e.g. "news" or "hackthebox"."""
        ...

    @property
    def name(self) -> str:
        """Human-readable adapter name."""
        return f"{self.source}_adapter"

    @property
    def client(self) -> HTTPClient:
        if self._client is None:
            raise RuntimeError(f"{self.name} requires an HTTP client")
        return self._client

    def skip_reason(self) -> str | None:
        """Return why this source cannot run, or None when configured."""
        return None

    @abstractmethod
    async def _fetch_raw(self) -> AsyncIterator[dict[str, Any]]:
        """
        Fetch raw items from the upstream.

        Should raise SourceUnavailable/ParseError for failures of the
        source as a whole. HTTPClientError escaping from here is
        converted to SourceUnavailable by fetch().
        """
        ...

    @abstractmethod
    def _transform(self, raw: dict[str, Any]) -> Record | None:
        """
        Transform one raw item into a normalized record.

        Returns None for items that should be dropped. Exceptions raised
        here only drop the item.
        """
        ...

    async def fetch(self) -> list[Record]:
        """
        Fetch and normalize all records from the source.

        Raises:
            SkippedSource: Required per-source configuration is absent
            SourceUnavailable: Upstream could not be reached
            ParseError: Upstream payload had no recognizable shape
        """
        reason = self.skip_reason()
        if reason:
            raise SkippedSource(self.source, reason)

        self._stats = AdapterStats()
        records: list[Record] = []

        logger.info(f"Starting fetch for {self.name}")

        try:
            async for raw in self._fetch_raw():
                try:
                    record = self._transform(raw)
                except Exception as e:
                    self._stats.errors += 1
                    logger.warning(f"Dropping malformed item in {self.name}: {e}")
                    continue

                if record is None:
                    self._stats.records_filtered += 1
                    continue

                records.append(record)
                self._stats.records_fetched += 1

        except SourceError:
            self._stats.errors += 1
            raise
        except HTTPClientError as e:
            self._stats.errors += 1
            raise SourceUnavailable(self.source, str(e), status_code=e.status_code) from e

        finally:
            logger.info(
                f"{self.name} completed: "
                f"fetched={self._stats.records_fetched}, "
                f"filtered={self._stats.records_filtered}, "
                f"errors={self._stats.errors}, "
                f"elapsed={self._stats.elapsed_seconds:.2f}s"
            )

        return records

    async def get_json(self, url: str, headers: dict[str, str] | None = None) -> Any:
        """
        GET a JSON document.

        Raises:
            HTTPClientError: Transport failure or error status
            ParseError: Body is not JSON
        """
        response = await self.client.get(
            url,
            headers={"Accept": "application/json", **(headers or {})},
        )
        try:
            return response.json()
        except ValueError as e:
            raise ParseError(self.source, f"Non-JSON response from {url}") from e

    @property
    def stats(self) -> AdapterStats:
        """Get current adapter statistics."""
        return self._stats


def clean_text(text: str) -> str:
    """
    Clean text content by removing excessive whitespace and control characters.

    Args:
        text: Raw text content

    Returns:
        Cleaned text
    """
    text = " ".join(text.split())
    text = re.sub(r'[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]', '', text)
    return text.strip()


def truncate(text: str, limit: int) -> str:
    """Cut text to at most `limit` characters."""
    return text if len(text) <= limit else text[:limit].rstrip()
