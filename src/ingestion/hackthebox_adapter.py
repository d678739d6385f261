"""
HackTheBox profile adapter.

The v4 API is served from several hosts whose response shapes differ:
the profile may be wrapped in `profile`, `info` or `data`, or be the bare
object, and field names vary between versions. Candidate endpoints are
tried in a fixed order and the first payload carrying any expected field
wins. Field extraction goes through FieldProbe chains whose key order can
be overridden with HTB_FIELD_PRIORITY.
"""

import logging
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.errors import ParseError, SourceUnavailable
from src.ingestion.http_client import HTTPClient, HTTPClientError
from src.ingestion.probes import FieldProbe, ProbeSet, as_identifier, as_int, as_text, unwrap
from src.ingestion.schemas import PlatformId, PlatformStat

logger = logging.getLogger(__name__)

HTB_PROFILE_URL = "https://labs.hackthebox.com/api/v4/profile/{user_id}"
HTB_USER_INFO_URL = "https://labs.hackthebox.com/api/v4/user/info"
HTB_FALLBACK_URLS = (
    "https://www.hackthebox.com/api/v4/profile/info",
    "https://app.hackthebox.com/api/v4/profile",
    HTB_USER_INFO_URL,
)

DEFAULT_TIER = "Noob"

# `rank` is both a numeric position and a tier name depending on the API
# version; the converters keep the two apart.
DEFAULT_PROBES = (
    FieldProbe("rank", ("ranking", "rank", "global_ranking", "current_rank_position"), as_int),
    FieldProbe("user_owns", ("user_owns", "user_owns_count"), as_int),
    FieldProbe("system_owns", ("system_owns", "system_owns_count"), as_int),
    FieldProbe("challenge_owns", ("challenge_owns", "challenges_owned"), as_int),
    FieldProbe("points", ("points", "score"), as_int),
    FieldProbe("tier", ("rank", "rank_name", "current_rank", "rankName"), as_text),
    FieldProbe("username", ("name", "username", "user_name"), as_text),
    FieldProbe("user_id", ("id", "user_id"), as_identifier),
)


class HackTheBoxAdapter(BaseAdapter):
    """Platform B: HackTheBox profile statistics (bearer token required)."""

    def __init__(
        self,
        client: HTTPClient,
        username: str | None,
        user_id: str | None,
        api_token: str | None,
        field_priority: dict[str, list[str]] | None = None,
    ):
        super().__init__(client)
        self._username = (username or "").strip()
        self._user_id = (user_id or "").strip()
        self._api_token = (api_token or "").strip()
        self._probes = ProbeSet.build(DEFAULT_PROBES, field_priority)

    @property
    def source(self) -> str:
        return PlatformId.HACKTHEBOX.value

    def skip_reason(self) -> str | None:
        if not self._username and not self._user_id:
            return "No HackTheBox username/user id provided (set HTB_USERNAME or HTB_USER_ID)"
        if not self._api_token:
            return "No HackTheBox API token provided (set HTB_API_TOKEN)"
        return None

    def candidate_endpoints(self) -> list[str]:
        """Endpoints in priority order, duplicates removed."""
        primary = (
            HTB_PROFILE_URL.format(user_id=quote(self._user_id, safe=""))
            if self._user_id
            else HTB_USER_INFO_URL
        )
        return list(dict.fromkeys([primary, *HTB_FALLBACK_URLS]))

    async def _fetch_raw(self) -> AsyncIterator[dict[str, Any]]:
        headers = {"Authorization": f"Bearer {self._api_token}"}

        failures: list[str] = []
        answered = False
        last_status: int | None = None

        for url in self.candidate_endpoints():
            try:
                payload = await self.get_json(url, headers=headers)
            except HTTPClientError as e:
                logger.warning(f"HackTheBox endpoint failed: {url}: {e}")
                failures.append(f"{url}: {e}")
                last_status = e.status_code
                continue
            except ParseError as e:
                logger.warning(str(e))
                answered = True
                continue

            answered = True
            info = unwrap(payload)
            if self._probes.matches(info):
                logger.info(f"Using HackTheBox endpoint {url}")
                logger.debug(f"HackTheBox response keys: {', '.join(sorted(info))}")
                yield dict(info)
                return

            logger.warning(f"HackTheBox endpoint {url} returned no expected fields")

        if answered:
            raise ParseError(self.source, "No HackTheBox endpoint returned a recognizable profile")
        raise SourceUnavailable(
            self.source,
            "All HackTheBox API endpoints failed - check your API token",
            status_code=last_status,
        )

    def _transform(self, raw: dict[str, Any]) -> PlatformStat:
        extract = self._probes.extract

        pwned = (
            extract("user_owns", raw, default=0)
            + extract("system_owns", raw, default=0)
            + extract("challenge_owns", raw, default=0)
        )
        tier = extract("tier", raw, default=DEFAULT_TIER)
        username = extract("username", raw, default=self._username or "Unknown")
        user_id = extract("user_id", raw, default=self._user_id)

        if user_id:
            profile_url = f"https://app.hackthebox.com/profile/{user_id}"
        else:
            profile_url = f"https://app.hackthebox.com/users/{quote(username, safe='')}"

        return PlatformStat(
            platform=PlatformId.HACKTHEBOX,
            username=username,
            rank=extract("rank", raw, default=0),
            pwned=pwned,
            # HackTheBox publishes tier names rather than a population size
            percentile=tier,
            tier=tier,
            points=extract("points", raw, default=0),
            badges=[],
            profile_url=profile_url,
        )
