"""Rank to display-tier conversion for platform stats."""

import math

# (upper bound in percent, label); bounds are inclusive on the lower bucket
PERCENTILE_BUCKETS: tuple[tuple[int, str], ...] = (
    (1, "TOP 1%"),
    (5, "TOP 5%"),
    (10, "TOP 10%"),
    (25, "TOP 25%"),
)

UNRANKED = "N/A"


def percentile(rank: int, total_population: int) -> str:
    """
    Map a global rank to a "TOP n%" label.

    Bucket comparisons use integer arithmetic (rank * 100 <= total * bound)
    so that exactly 1.0% is "TOP 1%" regardless of float rounding.

    Args:
        rank: Global rank, 0 or negative when unranked
        total_population: Number of users on the platform

    Returns:
        Label such as "TOP 5%", "TOP 37%" or "N/A"
    """
    if rank <= 0 or total_population <= 0:
        return UNRANKED

    scaled = rank * 100
    for bound, label in PERCENTILE_BUCKETS:
        if scaled <= total_population * bound:
            return label

    # Round half up, matching how the UI formats the same value
    pct = math.floor(scaled / total_population + 0.5)
    return f"TOP {pct}%"
