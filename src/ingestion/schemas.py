"""
Normalized record schemas written to the document store.

CRITICAL: The UI reads these documents by their stored (camelCase) attribute
names. Field aliases below ARE the store contract - do not rename them
without migrating the collections and the read-only fetchers.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 500


def _utc_now() -> datetime:
    """Return current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def _isoformat(value: datetime) -> str:
    """Serialize as UTC ISO-8601 with millisecond precision and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Category(str, Enum):
    """News category, mutually exclusive."""

    CVE = "cve"
    EXPLOIT = "exploit"
    BREACH = "breach"
    GENERAL = "general"


class Severity(str, Enum):
    """News severity, independent of category."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PlatformId(str, Enum):
    """Training platforms synced into the platform stats collection."""

    TRYHACKME = "tryhackme"
    HACKTHEBOX = "hackthebox"
    OFFSEC = "offsec"


class NewsRecord(BaseModel):
    """One ingested article. `id` is derived from the URL and stable across runs."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: str = Field(..., min_length=1, max_length=36, description="Store document id")
    title: str = Field(default="Untitled", max_length=TITLE_MAX_LENGTH)
    description: str = Field(default="", max_length=DESCRIPTION_MAX_LENGTH)
    url: str = Field(..., min_length=1)
    source: str
    published_at: datetime = Field(default_factory=_utc_now, alias="publishedAt")
    category: Category = Category.GENERAL
    severity: Severity = Severity.MEDIUM
    type: str = "article"

    @property
    def document_id(self) -> str:
        return self.id

    def to_store_dict(self) -> dict[str, Any]:
        """Attributes as written to the store (the id travels separately)."""
        data = self.model_dump(by_alias=True, exclude={"id", "published_at"})
        data["publishedAt"] = _isoformat(self.published_at)
        return data


class PlatformStat(BaseModel):
    """
    One profile snapshot for a training platform.

    The platform key doubles as the document id, so each platform has
    exactly one document that every run replaces.
    """

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    platform: PlatformId
    username: str = ""
    rank: int = Field(default=0, ge=0, description="0 means unknown/unranked")
    pwned: int = Field(default=0, ge=0)
    percentile: str = "N/A"
    tier: str = ""
    points: int = Field(default=0, ge=0)
    badges: list[str] = Field(default_factory=list)
    badge_count: int | None = Field(default=None, ge=0, alias="badgeCount")
    profile_url: str = Field(default="", alias="profileUrl")
    updated_at: datetime = Field(default_factory=_utc_now, alias="updatedAt")

    @field_validator("badges")
    @classmethod
    def drop_blank_badges(cls, v: list[str]) -> list[str]:
        return [b for b in (str(x).strip() for x in v) if b]

    @model_validator(mode="after")
    def default_badge_count(self) -> "PlatformStat":
        if self.badge_count is None:
            self.badge_count = len(self.badges)
        return self

    @property
    def document_id(self) -> str:
        return str(self.platform)

    def to_store_dict(self) -> dict[str, Any]:
        """
        Attributes as written to the store.

        `badges` is a string attribute in the collection, so the list
        is stored JSON-encoded.
        """
        data = self.model_dump(by_alias=True, exclude={"updated_at", "badges"})
        data["badges"] = json.dumps(self.badges)
        data["updatedAt"] = _isoformat(self.updated_at)
        return data
