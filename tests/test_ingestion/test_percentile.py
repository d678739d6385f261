"""Tests for rank to percentile label conversion."""

import pytest

from src.ingestion.percentile import UNRANKED, percentile

TOTAL = 3_000_000


class TestPercentile:
    """Tests for percentile()."""

    @pytest.mark.parametrize(
        "rank,expected",
        [
            (1, "TOP 1%"),
            (30_000, "TOP 1%"),  # exactly 1.0%
            (30_001, "TOP 5%"),
            (150_000, "TOP 5%"),
            (150_001, "TOP 10%"),
            (300_000, "TOP 10%"),
            (300_001, "TOP 25%"),
            (750_000, "TOP 25%"),
            (900_000, "TOP 30%"),
            (3_000_000, "TOP 100%"),
        ],
    )
    def test_buckets(self, rank, expected):
        assert percentile(rank, TOTAL) == expected

    def test_above_last_bucket_rounds_half_up(self):
        assert percentile(265, 1000) == "TOP 27%"
        assert percentile(375, 1000) == "TOP 38%"
        assert percentile(264, 1000) == "TOP 26%"

    @pytest.mark.parametrize("rank", [0, -1, -30_000])
    def test_unranked(self, rank):
        assert percentile(rank, TOTAL) == UNRANKED == "N/A"

    def test_unknown_population(self):
        assert percentile(100, 0) == "N/A"
