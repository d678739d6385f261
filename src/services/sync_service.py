"""
Sync service - runs every source once and writes its records.

Sources run sequentially in a fixed order (news, tryhackme, hackthebox,
offsec) so logs and summaries are deterministic. Each source resolves to
exactly one outcome:
- Success: adapter returned records; created/updated/error tallies
- Skipped: per-source configuration absent (never counted as failure)
- Failed: adapter raised, timed out, or the run deadline passed

A failure never stops the remaining sources. The process exit code is
non-zero only when every source failed.
"""

import asyncio
import time
from collections.abc import Sequence
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from src.config.settings import Settings
from src.ingestion.base_adapter import BaseAdapter, Record
from src.ingestion.errors import SkippedSource
from src.ingestion.hackthebox_adapter import HackTheBoxAdapter
from src.ingestion.http_client import HTTPClient, RetryConfig
from src.ingestion.news_adapter import NewsFeedAdapter
from src.ingestion.offsec_adapter import OffSecAdapter
from src.ingestion.schemas import NewsRecord
from src.ingestion.tryhackme_adapter import TryHackMeAdapter
from src.observability.logging import bind_context, clear_context, get_logger
from src.storage.document_store import DocumentStore, StoreError
from src.storage.upsert import UpsertOutcome, upsert

logger = get_logger(__name__)

SOURCE_ORDER = ("news", "tryhackme", "hackthebox", "offsec")

# Write errors logged in full per source; the rest are only counted
MAX_LOGGED_WRITE_ERRORS = 3


class SourceStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Success:
    source: str
    created: int = 0
    updated: int = 0
    errors: int = 0
    status: SourceStatus = field(default=SourceStatus.SUCCESS, init=False)

    @property
    def symbol(self) -> str:
        return "✓"

    @property
    def detail(self) -> str:
        return f"{self.created} created, {self.updated} updated, {self.errors} errors"


@dataclass(frozen=True)
class Skipped:
    source: str
    reason: str
    status: SourceStatus = field(default=SourceStatus.SKIPPED, init=False)

    @property
    def symbol(self) -> str:
        return "⊘"

    @property
    def detail(self) -> str:
        return f"skipped: {self.reason}"


@dataclass(frozen=True)
class Failed:
    source: str
    error: str
    error_type: str = "Exception"
    status: SourceStatus = field(default=SourceStatus.FAILED, init=False)

    @property
    def symbol(self) -> str:
        return "✗"

    @property
    def detail(self) -> str:
        return f"failed: {self.error_type}: {self.error}"


SourceOutcome = Success | Skipped | Failed


@dataclass
class SyncReport:
    """Outcome of one run, rendered as the console summary."""

    outcomes: list[SourceOutcome] = field(default_factory=list)
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None

    def outcome_for(self, source: str) -> SourceOutcome | None:
        for outcome in self.outcomes:
            if outcome.source == source:
                return outcome
        return None

    @property
    def all_failed(self) -> bool:
        return bool(self.outcomes) and all(isinstance(o, Failed) for o in self.outcomes)

    @property
    def exit_code(self) -> int:
        """0 when at least one source succeeded or was skipped, else 1."""
        return 1 if self.all_failed else 0

    def render(self) -> str:
        lines = ["SYNC SUMMARY"]
        width = max((len(o.source) for o in self.outcomes), default=0)
        for outcome in self.outcomes:
            lines.append(f"  {outcome.symbol} {outcome.source.upper():<{width}}  {outcome.detail}")
        lines.append(f"Started at   {self.started_at.isoformat()}")
        if self.finished_at:
            lines.append(f"Completed at {self.finished_at.isoformat()}")
        if self.all_failed:
            lines.append("All syncs failed!")
        return "\n".join(lines)


class SyncService:
    """
    Orchestrates one sync run over all sources.

    Usage:
        async with AppwriteDocumentStore.from_settings(settings) as store:
            report = await SyncService(settings, store).run()
        sys.exit(report.exit_code)
    """

    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        adapters: Sequence[BaseAdapter] | None = None,
        sources: Sequence[str] | None = None,
    ):
        """
        Initialize sync service.

        Args:
            settings: Validated settings
            store: Opened document store
            adapters: Adapters to run (or create from settings)
            sources: Restrict the run to these source names
        """
        self._settings = settings
        self._store = store
        self._adapters = list(adapters) if adapters is not None else None
        self._sources = set(sources) if sources else None

    def _create_adapters(self, client: HTTPClient) -> list[BaseAdapter]:
        """Create adapters in the fixed source order."""
        settings = self._settings
        return [
            NewsFeedAdapter(
                client,
                feed_url=settings.rss_feed_url,
                source_label=settings.rss_source_label,
                url_max_length=settings.news_url_max_length,
            ),
            TryHackMeAdapter(
                client,
                username=settings.thm_username,
                total_users=settings.thm_total_users,
            ),
            HackTheBoxAdapter(
                client,
                username=settings.htb_username,
                user_id=settings.htb_user_id,
                api_token=settings.htb_api_token,
                field_priority=settings.htb_field_priority,
            ),
            OffSecAdapter(
                username=settings.offsec_username,
                rank=settings.offsec_rank,
                pwned=settings.offsec_pwned,
                percentile=settings.offsec_percentile,
            ),
        ]

    def _collection_for(self, record: Record) -> str:
        if isinstance(record, NewsRecord):
            return self._settings.appwrite_collection_id
        return self._settings.appwrite_platform_collection_id

    async def run(self) -> SyncReport:
        """Run every selected source once and return the report."""
        report = SyncReport()
        deadline = time.monotonic() + self._settings.run_deadline_seconds

        logger.info("Sync run started", sources=sorted(self._sources) if self._sources else "all")

        async with AsyncExitStack() as stack:
            adapters = self._adapters
            if adapters is None:
                client = await stack.enter_async_context(
                    HTTPClient(
                        retry_config=RetryConfig(
                            max_retries=self._settings.max_http_retries,
                            max_backoff_seconds=self._settings.max_backoff_seconds,
                        ),
                        timeout=self._settings.http_timeout_seconds,
                    )
                )
                adapters = self._create_adapters(client)

            for adapter in adapters:
                if self._sources is not None and adapter.source not in self._sources:
                    continue

                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    outcome = Failed(adapter.source, "run deadline exceeded", "TimeoutError")
                    logger.error("Source not started", source=adapter.source, reason=outcome.error)
                else:
                    bind_context(source=adapter.source)
                    try:
                        outcome = await self.sync_source(
                            adapter,
                            timeout=min(remaining, self._settings.source_timeout_seconds),
                        )
                    finally:
                        clear_context()

                report.outcomes.append(outcome)

        report.finished_at = datetime.now(timezone.utc)

        logger.info(
            "Sync run finished",
            outcomes={o.source: o.status.value for o in report.outcomes},
            exit_code=report.exit_code,
        )
        return report

    async def sync_source(self, adapter: BaseAdapter, timeout: float | None = None) -> SourceOutcome:
        """
        Fetch one source and upsert its records.

        Every exception from the adapter is contained here; write errors
        are counted per record.
        """
        source = adapter.source
        logger.info("Syncing source", source=source)

        try:
            records = await asyncio.wait_for(adapter.fetch(), timeout=timeout)
        except SkippedSource as e:
            logger.warning("Source skipped", source=source, reason=e.reason)
            return Skipped(source, e.reason)
        except asyncio.TimeoutError:
            logger.error("Source timed out", source=source, timeout_seconds=timeout)
            message = f"timed out after {timeout:.0f}s" if timeout is not None else "timed out"
            return Failed(source, message, "TimeoutError")
        except Exception as e:
            logger.error("Source failed", source=source, error=str(e), error_type=type(e).__name__)
            return Failed(source, str(e), type(e).__name__)

        logger.info("Source fetched", source=source, records=len(records))

        created = updated = errors = 0
        for record in records:
            try:
                result = await upsert(
                    self._store,
                    self._collection_for(record),
                    record.document_id,
                    record.to_store_dict(),
                )
            except StoreError as e:
                errors += 1
                if errors <= MAX_LOGGED_WRITE_ERRORS:
                    logger.error(
                        "Write failed",
                        source=source,
                        document_id=record.document_id,
                        status_code=e.status_code,
                        error=str(e),
                    )
                continue

            if result is UpsertOutcome.CREATED:
                created += 1
            else:
                updated += 1

        logger.info(
            "Source synced",
            source=source,
            created=created,
            updated=updated,
            errors=errors,
        )
        return Success(source, created=created, updated=updated, errors=errors)
