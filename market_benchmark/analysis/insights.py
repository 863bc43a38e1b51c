# market_benchmark/analysis/insights.py

"""Qualitative market insights and prioritized recommendations."""

import logging
from collections import Counter
from decimal import Decimal

from market_benchmark.models.analysis import (
    CategorySales,
    CompetitiveInsights,
    MarketAverages,
    MarketTrends,
    PriceBucket,
    PriceGap,
    PriceStatistics,
    Priority,
    RankedListing,
    Recommendation,
    RecommendationType,
)
from market_benchmark.models.listing import Listing, to_price

logger = logging.getLogger("market_benchmark.insights")

_GAP_THRESHOLD_PCT = 20.0
_MAX_PRICE_GAPS = 5


# ── Market classification ────────────────────────────────


def competition_level(listings: list[Listing]) -> str:
    """``high`` above 50 competitors, ``medium`` above 20, else ``low``."""
    if len(listings) > 50:
        return "high"
    if len(listings) > 20:
        return "medium"
    return "low"


def _average_sold(listings: list[Listing]) -> float:
    if not listings:
        return 0.0
    return sum(lst.sold_count for lst in listings) / len(listings)


def _average_rating(listings: list[Listing]) -> float | None:
    ratings = [lst.rating for lst in listings if lst.rating is not None]
    return sum(ratings) / len(ratings) if ratings else None


def market_maturity(listings: list[Listing]) -> str:
    """Classify demand depth from the average sold count."""
    avg_sold = _average_sold(listings)
    if avg_sold > 100:
        return "mature"
    if avg_sold > 50:
        return "growing"
    return "emerging"


def entry_barriers(listings: list[Listing]) -> str:
    """Crowded, well-rated markets are hard to enter."""
    avg_rating = _average_rating(listings) or 0.0
    if len(listings) > 50 and avg_rating > 4.0:
        return "high"
    if len(listings) > 20:
        return "medium"
    return "low"


def price_gaps(listings: list[Listing]) -> list[PriceGap]:
    """Consecutive observed prices more than 20% apart, best first."""
    prices = sorted(lst.price for lst in listings if lst.price > 0)
    gaps: list[PriceGap] = []
    for lower, upper in zip(prices, prices[1:]):
        gap = upper - lower
        gap_pct = float(gap / lower * 100)
        if gap_pct > _GAP_THRESHOLD_PCT:
            gaps.append(
                PriceGap(
                    lower_price=lower,
                    upper_price=upper,
                    gap_amount=to_price(gap),
                    gap_percentage=round(gap_pct, 1),
                    opportunity_score=round(min(gap_pct / 5, 10.0), 2),
                )
            )
    gaps.sort(key=lambda g: g.opportunity_score, reverse=True)
    return gaps[:_MAX_PRICE_GAPS]


def price_distribution(listings: list[Listing]) -> list[PriceBucket]:
    """Split [min, max] into equal thirds and count listings per band."""
    prices = [lst.price for lst in listings if lst.price > 0]
    if not prices:
        return []
    low, high = min(prices), max(prices)
    step = (high - low) / 3
    first_cut = low + step
    second_cut = low + step * 2

    budget = sum(1 for p in prices if p <= first_cut)
    mid_range = sum(1 for p in prices if first_cut < p <= second_cut)
    premium = len(prices) - budget - mid_range

    return [
        PriceBucket("budget", low, to_price(first_cut), budget),
        PriceBucket(
            "mid_range", to_price(first_cut), to_price(second_cut), mid_range
        ),
        PriceBucket("premium", to_price(second_cut), high, premium),
    ]


def market_trends(listings: list[Listing]) -> MarketTrends:
    """Trending price band, best-selling categories and activity."""
    priced = [lst.price for lst in listings if lst.price > 0]
    avg_price = (
        sum(priced, Decimal(0)) / len(priced) if priced else Decimal(0)
    )
    sales_by_category: Counter[str] = Counter()
    for lst in listings:
        sales_by_category[lst.category] += lst.sold_count

    return MarketTrends(
        trending_price_low=to_price(avg_price * Decimal("0.8")),
        trending_price_high=to_price(avg_price * Decimal("1.2")),
        hot_categories=[
            CategorySales(category, total)
            for category, total in sales_by_category.most_common(3)
        ],
        high_sales_listings=sum(
            1 for lst in listings if lst.sold_count > 50
        ),
        market_activity="high" if len(listings) > 30 else "medium",
    )


# ── Recommendations ──────────────────────────────────────


def _pricing_recommendation(stats: PriceStatistics) -> Recommendation:
    return Recommendation(
        type=RecommendationType.PRICING,
        priority=Priority.HIGH,
        title="Pricing sweet spot",
        description=(
            f"Across {stats.sample_size} listings the average price is "
            f"R$ {stats.average:.2f}; the competitive band (Q1-Q3) is "
            f"R$ {stats.q1:.2f} - R$ {stats.q3:.2f}"
        ),
        action="Position products inside the Q1-Q3 price band",
        confidence=90,
        expected_impact=(
            f"Conversion lift of 15-25% benchmarked on "
            f"{stats.total_sales} observed sales"
        ),
    )


def _benchmark_recommendation(leader: RankedListing) -> Recommendation:
    rating = leader.listing.rating
    rating_text = f"{rating:.1f}" if rating is not None else "n/a"
    return Recommendation(
        type=RecommendationType.BENCHMARKING,
        priority=Priority.HIGH,
        title="Benchmark the market leader",
        description=(
            f'"{leader.listing.name}" leads with '
            f"{leader.listing.sold_count} sales and rating {rating_text}"
        ),
        action=(
            "Study the leader's listing: description, photos, "
            "price and service"
        ),
        confidence=85,
        expected_impact="20-30% improvement in performance score",
    )


def _market_recommendation(
    listings: list[Listing], category: str, maturity: str,
) -> Recommendation:
    return Recommendation(
        type=RecommendationType.MARKET_INSIGHT,
        priority=Priority.MEDIUM,
        title="Current market snapshot",
        description=(
            f"{len(listings)} listings analysed in '{category}'; "
            f"market maturity is {maturity}"
        ),
        action="Align the catalogue with the demand trends identified",
        confidence=80,
        expected_impact="Closer fit with current market demand",
    )


def sort_by_priority(
    recommendations: list[Recommendation],
) -> list[Recommendation]:
    """Stable sort, highest priority first."""
    return sorted(
        recommendations, key=lambda r: r.priority.weight, reverse=True
    )


def generate_insights(
    listings: list[Listing],
    stats: PriceStatistics | None,
    performers: list[RankedListing],
    category: str,
) -> tuple[CompetitiveInsights, list[Recommendation]]:
    """Derive competitive insights and ordered recommendations."""
    maturity = market_maturity(listings)
    avg_rating = _average_rating(listings)
    insights = CompetitiveInsights(
        market_size=len(listings),
        competition_level=competition_level(listings),
        market_maturity=maturity,
        entry_barriers=entry_barriers(listings),
        market_averages=MarketAverages(
            price=stats.average if stats else Decimal("0.00"),
            sales=round(_average_sold(listings), 2),
            rating=round(avg_rating, 2) if avg_rating is not None else None,
        ),
        price_gaps=price_gaps(listings),
    )

    recommendations: list[Recommendation] = []
    if stats is not None:
        recommendations.append(_pricing_recommendation(stats))
    if performers:
        recommendations.append(_benchmark_recommendation(performers[0]))
    recommendations.append(
        _market_recommendation(listings, category, maturity)
    )

    logger.debug(
        "Insights for '%s': competition=%s maturity=%s gaps=%d",
        category,
        insights.competition_level,
        maturity,
        len(insights.price_gaps),
    )
    return insights, sort_by_priority(recommendations)
