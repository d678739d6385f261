"""
TryHackMe profile adapter.

TryHackMe has no documented API. The public endpoints used by its own
profile pages are probed in order:
- rank:   /api/user/rank/{username}, then /api/v2/public-profile
- rooms:  /api/no-completed-rooms-public/{username} (bare number or object)
- badges: /api/badges/get/{username} (optional, failure means no badges)
"""

import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.errors import ParseError
from src.ingestion.http_client import HTTPClient, HTTPClientError
from src.ingestion.percentile import percentile
from src.ingestion.probes import FieldProbe, ProbeSet, as_int, as_text, unwrap
from src.ingestion.schemas import PlatformId, PlatformStat

logger = logging.getLogger(__name__)

THM_BASE_URL = "https://tryhackme.com"

DEFAULT_PROBES = (
    FieldProbe("rank", ("userRank", "rank", "ranking"), as_int),
    FieldProbe("rooms", ("completedRooms", "completedRoomsNumber", "rooms", "count"), as_int),
    FieldProbe("points", ("points", "score"), as_int),
    FieldProbe("badge_name", ("name", "title"), as_text),
)


class TryHackMeAdapter(BaseAdapter):
    """Platform A: TryHackMe public profile statistics."""

    def __init__(
        self,
        client: HTTPClient,
        username: str | None,
        total_users: int = 3_000_000,
        field_priority: dict[str, list[str]] | None = None,
        base_url: str = THM_BASE_URL,
    ):
        super().__init__(client)
        self._username = (username or "").strip()
        self._total_users = total_users
        self._probes = ProbeSet.build(DEFAULT_PROBES, field_priority)
        self._base_url = base_url.rstrip("/")

    @property
    def source(self) -> str:
        return PlatformId.TRYHACKME.value

    def skip_reason(self) -> str | None:
        if not self._username:
            return "No TryHackMe username provided (set THM_USERNAME)"
        return None

    def rank_endpoints(self) -> list[str]:
        user = quote(self._username, safe="")
        return [
            f"{self._base_url}/api/user/rank/{user}",
            f"{self._base_url}/api/v2/public-profile?username={user}",
        ]

    async def _fetch_raw(self) -> AsyncIterator[dict[str, Any]]:
        user = quote(self._username, safe="")

        rank, profile = await self._fetch_rank()

        rooms_payload = await self.get_json(
            f"{self._base_url}/api/no-completed-rooms-public/{user}"
        )
        badges_payload = await self._fetch_badges(user)

        yield {
            "rank": rank,
            "profile": profile,
            "rooms": rooms_payload,
            "badges": badges_payload,
        }

    async def _fetch_rank(self) -> tuple[int, dict[str, Any]]:
        """
        Probe rank endpoints in priority order.

        Returns:
            (rank, unwrapped payload) from the first endpoint whose payload
            carries a rank field

        Raises:
            HTTPClientError: Every endpoint failed at the transport level
            ParseError: Some endpoint answered, but none with a known shape
        """
        last_error: HTTPClientError | None = None
        answered = False

        for url in self.rank_endpoints():
            try:
                payload = unwrap(await self.get_json(url))
            except HTTPClientError as e:
                logger.warning(f"TryHackMe endpoint failed: {url}: {e}")
                last_error = e
                continue
            except ParseError as e:
                logger.warning(str(e))
                answered = True
                continue

            answered = True
            if isinstance(payload, dict) and any(k in payload for k in self._probes.probes["rank"].keys):
                logger.debug(f"Using TryHackMe endpoint {url}")
                return self._probes.extract("rank", payload, default=0), payload

        if answered or last_error is None:
            raise ParseError(self.source, "No TryHackMe endpoint returned a rank field")
        raise last_error

    async def _fetch_badges(self, user: str) -> Any:
        try:
            return await self.get_json(f"{self._base_url}/api/badges/get/{user}")
        except (HTTPClientError, ParseError) as e:
            logger.warning(f"TryHackMe badges unavailable, continuing without: {e}")
            return []

    def _transform(self, raw: dict[str, Any]) -> PlatformStat:
        rank = raw["rank"]
        pwned = self._parse_rooms(raw["rooms"], raw["profile"])
        badges = self._parse_badges(raw["badges"])

        return PlatformStat(
            platform=PlatformId.TRYHACKME,
            username=self._username,
            rank=rank,
            pwned=pwned,
            percentile=percentile(rank, self._total_users),
            tier="",
            points=self._probes.extract("points", raw["profile"], default=0),
            badges=badges,
            profile_url=f"{self._base_url}/p/{quote(self._username, safe='')}",
        )

    def _parse_rooms(self, payload: Any, profile: dict[str, Any]) -> int:
        """Completed rooms arrive as a bare number, a numeric string or an object."""
        count = as_int(payload)
        if count is None and isinstance(payload, dict):
            count = self._probes.extract("rooms", unwrap(payload))
        if count is None:
            count = self._probes.extract("rooms", profile)
        return count or 0

    def _parse_badges(self, payload: Any) -> list[str]:
        if isinstance(payload, dict):
            payload = payload.get("badges", payload.get("data"))
        if not isinstance(payload, list):
            return []

        names = []
        for badge in payload:
            if isinstance(badge, dict):
                names.append(self._probes.extract("badge_name", badge, default="badge"))
            elif isinstance(badge, str):
                names.append(badge)
        return names
