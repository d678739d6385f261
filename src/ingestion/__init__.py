"""Source adapters, record schemas and normalization helpers."""

from src.ingestion.schemas import (
    Category,
    NewsRecord,
    PlatformId,
    PlatformStat,
    Severity,
)

__all__ = [
    "Category",
    "NewsRecord",
    "PlatformId",
    "PlatformStat",
    "Severity",
]
