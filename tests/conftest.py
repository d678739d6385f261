"""Pytest fixtures for cyberlab-sync tests."""

from collections.abc import AsyncIterator
from datetime import datetime, timezone
from typing import Any

import pytest

from src.config.settings import Settings
from src.ingestion.base_adapter import BaseAdapter, Record
from src.ingestion.schemas import Category, NewsRecord, PlatformId, PlatformStat, Severity
from src.storage.document_store import MemoryDocumentStore

# Every variable Settings reads, so tests never see the developer's shell config
SYNC_ENV_VARS = (
    "APPWRITE_ENDPOINT",
    "APPWRITE_PROJECT_ID",
    "APPWRITE_API_KEY",
    "APPWRITE_DATABASE_ID",
    "APPWRITE_COLLECTION_ID",
    "APPWRITE_PLATFORM_COLLECTION_ID",
    "RSS_FEED_URL",
    "RSS_SOURCE_LABEL",
    "THM_USERNAME",
    "THM_TOTAL_USERS",
    "HTB_USERNAME",
    "HTB_USER_ID",
    "HTB_API_TOKEN",
    "HTB_FIELD_PRIORITY",
    "OFFSEC_USERNAME",
    "OFFSEC_RANK",
    "OFFSEC_PWNED",
    "OFFSEC_PERCENTILE",
    "ENVIRONMENT",
    "LOG_LEVEL",
)

FEED_URL = "https://feeds.example.com/security.xml"


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove all sync configuration from the environment."""
    for name in SYNC_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def test_settings(clean_env) -> Settings:
    """Settings with the store configured and every platform unconfigured."""
    return Settings(
        _env_file=None,
        appwrite_endpoint="https://cloud.example.com/v1",
        appwrite_project_id="proj",
        appwrite_api_key="secret",
        appwrite_database_id="cyberlab",
        rss_feed_url=FEED_URL,
        max_http_retries=0,
        max_backoff_seconds=0.0,
    )


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def sample_news_record() -> NewsRecord:
    return NewsRecord(
        id="art_0123456789abcdef",
        title="Critical flaw in VPN appliance actively exploited",
        description="Attackers are exploiting CVE-2025-0001.",
        url="https://thehackernews.com/2025/01/vpn-flaw.html",
        source="The Hacker News",
        published_at=datetime(2025, 1, 6, 10, 30, tzinfo=timezone.utc),
        category=Category.CVE,
        severity=Severity.CRITICAL,
    )


@pytest.fixture
def sample_platform_stat() -> PlatformStat:
    return PlatformStat(
        platform=PlatformId.TRYHACKME,
        username="alice",
        rank=25000,
        pwned=142,
        percentile="TOP 1%",
        badges=["webbed", "cat_linux"],
        profile_url="https://tryhackme.com/p/alice",
        updated_at=datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc),
    )


class StubAdapter(BaseAdapter):
    """Adapter returning fixed records, or raising a fixed error, without I/O."""

    def __init__(
        self,
        source: str,
        records: list[Record] | None = None,
        error: Exception | None = None,
        skip: str | None = None,
    ):
        super().__init__(client=None)
        self._source = source
        self._records = records or []
        self._error = error
        self._skip = skip
        self.fetch_calls = 0

    @property
    def source(self) -> str:
        return self._source

    def skip_reason(self) -> str | None:
        return self._skip

    async def _fetch_raw(self) -> AsyncIterator[dict[str, Any]]:
        self.fetch_calls += 1
        if self._error is not None:
            raise self._error
        for record in self._records:
            yield {"record": record}

    def _transform(self, raw: dict[str, Any]) -> Record | None:
        return raw["record"]


@pytest.fixture
def stub_adapter_factory():
    return StubAdapter
