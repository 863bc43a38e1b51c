# market_benchmark/analysis/price_statistics.py

"""Distributional price, sales and rating statistics over listings.

Quartiles use a nearest-rank rule on the (n - 1) scale with half-up
rounding, ``index = floor(p * (n - 1) + 0.5)``, so the result is always
an observed price. For prices 100/200/300/400 this gives q1 = 200 and
q3 = 300. Standard deviation is the population form (divide by n).
"""

import math
from decimal import Decimal

from market_benchmark.models.analysis import PriceStatistics
from market_benchmark.models.listing import Listing, to_price


def nearest_rank(sorted_values: list[Decimal], fraction: float) -> Decimal:
    """Observed value at the nearest-rank position for *fraction*."""
    if not sorted_values:
        msg = "nearest_rank needs at least one value"
        raise ValueError(msg)
    index = math.floor(fraction * (len(sorted_values) - 1) + 0.5)
    return sorted_values[index]


def median(sorted_values: list[Decimal]) -> Decimal:
    """Middle value, or the mean of the two central values."""
    if not sorted_values:
        msg = "median needs at least one value"
        raise ValueError(msg)
    mid = len(sorted_values) // 2
    if len(sorted_values) % 2 == 0:
        return (sorted_values[mid - 1] + sorted_values[mid]) / 2
    return sorted_values[mid]


def population_std_dev(values: list[Decimal], mean: Decimal) -> Decimal:
    """Population standard deviation of *values* around *mean*."""
    squared = sum(((v - mean) ** 2 for v in values), Decimal(0))
    return (squared / len(values)).sqrt()


def compute_price_statistics(
    listings: list[Listing],
) -> PriceStatistics | None:
    """Summarise *listings*; ``None`` when no listing has a price > 0."""
    priced = [lst for lst in listings if lst.price > 0]
    if not priced:
        return None

    prices = sorted(lst.price for lst in priced)
    total = len(prices)
    mean = sum(prices, Decimal(0)) / total

    total_sales = sum(lst.sold_count for lst in priced)
    ratings = [lst.rating for lst in priced if lst.rating is not None]

    return PriceStatistics(
        min=prices[0],
        max=prices[-1],
        average=to_price(mean),
        median=to_price(median(prices)),
        q1=nearest_rank(prices, 0.25),
        q3=nearest_rank(prices, 0.75),
        std_dev=to_price(population_std_dev(prices, mean)),
        sample_size=total,
        total_sales=total_sales,
        average_sales=round(total_sales / total, 2),
        average_rating=(
            round(sum(ratings) / len(ratings), 2) if ratings else None
        ),
    )
