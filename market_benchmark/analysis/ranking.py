# market_benchmark/analysis/ranking.py

"""Performance scoring and ranking of listings."""

from decimal import Decimal

from market_benchmark.config.settings import Settings
from market_benchmark.models.analysis import RankedListing
from market_benchmark.models.listing import Listing


def performance_score(listing: Listing) -> int:
    """Heuristic 0-100 score from sales volume, rating and price presence.

    ``min(sold * 0.4, 40) + rating * 20 + (30 if priced)``, rounded and
    clamped to 100.
    """
    sold_score = min(listing.sold_count * 0.4, 40.0)
    rating_score = (listing.rating or 0.0) * 20
    price_score = 30 if listing.price > 0 else 0
    return max(0, min(100, round(sold_score + rating_score + price_score)))


def _rank_key(listing: Listing) -> tuple[int, int, str]:
    return (-performance_score(listing), -listing.sold_count, listing.name)


def rank(listings: list[Listing]) -> list[Listing]:
    """Order by score desc, then sold count desc, then name asc."""
    return sorted(listings, key=_rank_key)


def competitive_advantage(listing: Listing, listings: list[Listing]) -> str:
    """Describe how *listing* stands out against the set's averages."""
    if not listings:
        return "balanced performance"
    count = len(listings)
    avg_price = sum((lst.price for lst in listings), Decimal(0)) / count
    avg_sold = sum(lst.sold_count for lst in listings) / count

    advantages: list[str] = []
    if listing.price < avg_price * Decimal("0.8"):
        advantages.append("price advantage")
    if listing.sold_count > avg_sold * 1.5:
        advantages.append("volume advantage")
    if listing.rating is not None and listing.rating >= 4.5:
        advantages.append("quality advantage")

    return ", ".join(advantages) if advantages else "balanced performance"


def top_performers(
    listings: list[Listing],
    size: int = Settings.TOP_PERFORMERS_SIZE,
) -> list[RankedListing]:
    """The first *size* ranked listings, annotated with their advantage."""
    return [
        RankedListing(
            rank=position,
            listing=listing,
            performance_score=performance_score(listing),
            competitive_advantage=competitive_advantage(listing, listings),
        )
        for position, listing in enumerate(rank(listings)[:size], 1)
    ]
