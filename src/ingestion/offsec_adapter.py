"""
OffSec Proving Grounds adapter.

OffSec has no public profile API, so the operator supplies the numbers
(OFFSEC_RANK, OFFSEC_PWNED, OFFSEC_PERCENTILE) and this adapter turns
them into the platform document. No requests are made.
"""

from collections.abc import AsyncIterator
from typing import Any

from src.ingestion.base_adapter import BaseAdapter
from src.ingestion.schemas import PlatformId, PlatformStat

OFFSEC_PORTAL_URL = "https://portal.offsec.com"


class OffSecAdapter(BaseAdapter):
    """Platform C: operator-supplied OffSec statistics."""

    def __init__(
        self,
        username: str | None,
        rank: int = 0,
        pwned: int = 0,
        percentile: str = "ELITE",
    ):
        super().__init__(client=None)
        self._username = (username or "").strip()
        self._rank = rank
        self._pwned = pwned
        self._percentile = percentile

    @property
    def source(self) -> str:
        return PlatformId.OFFSEC.value

    def skip_reason(self) -> str | None:
        if not self._username:
            return "No OffSec username provided (set OFFSEC_USERNAME)"
        if self._rank == 0 and self._pwned == 0:
            return "No OffSec stats configured (set OFFSEC_RANK, OFFSEC_PWNED)"
        return None

    async def _fetch_raw(self) -> AsyncIterator[dict[str, Any]]:
        yield {
            "username": self._username,
            "rank": self._rank,
            "pwned": self._pwned,
            "percentile": self._percentile,
        }

    def _transform(self, raw: dict[str, Any]) -> PlatformStat:
        return PlatformStat(
            platform=PlatformId.OFFSEC,
            username=raw["username"],
            rank=raw["rank"],
            pwned=raw["pwned"],
            percentile=raw["percentile"],
            tier=raw["percentile"],
            points=0,
            badges=[],
            profile_url=OFFSEC_PORTAL_URL,
        )
