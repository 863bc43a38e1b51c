# market_benchmark/services/category_analyzer.py

"""Assembles category analyses and competitor comparisons."""

import asyncio
import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal

from market_benchmark.analysis.insights import (
    generate_insights,
    market_trends,
    price_distribution,
    sort_by_priority,
)
from market_benchmark.analysis.price_statistics import (
    compute_price_statistics,
    median,
)
from market_benchmark.analysis.ranking import top_performers
from market_benchmark.config.logging_config import query_context
from market_benchmark.config.settings import Settings
from market_benchmark.filters.deduplicator import ListingDeduplicator
from market_benchmark.filters.listing_validator import ListingValidator
from market_benchmark.filters.query_planner import QueryPlanner
from market_benchmark.models.analysis import (
    CategoryAnalysisResult,
    CompetitiveAnalysis,
    DataSource,
    PerformanceComparison,
    PriceComparison,
    Priority,
    RankedListing,
    Recommendation,
    RecommendationType,
)
from market_benchmark.models.listing import Listing, to_price
from market_benchmark.scrapers.synthetic_generator import (
    SyntheticListingGenerator,
)
from market_benchmark.services.acquisition import AcquisitionOrchestrator

logger = logging.getLogger("market_benchmark.analyzer")

_ALIGNED_BAND = (Decimal("0.95"), Decimal("1.05"))


def data_source_of(listings: list[Listing]) -> DataSource:
    """Tag a listing set by whether real-tier data contributed."""
    real = sum(1 for lst in listings if lst.is_real)
    if real and real == len(listings):
        return DataSource.MARKETPLACE
    if real:
        return DataSource.MIXED
    return DataSource.SYNTHETIC


def market_position(listings: list[Listing]) -> str:
    """``economy`` / ``intermediate`` / ``premium`` by average price."""
    prices = [lst.price for lst in listings if lst.price > 0]
    if not prices:
        return "economy"
    average = sum(prices, Decimal(0)) / len(prices)
    if average < 300:
        return "economy"
    if average < 800:
        return "intermediate"
    return "premium"


def compare_prices(
    listings: list[Listing], current_price: Decimal,
) -> PriceComparison:
    """Place *current_price* against the competitor median.

    Below 95% of the median is ``below_market``, above 105% is
    ``above_market``, anything in between is ``aligned``.
    """
    prices = sorted(lst.price for lst in listings if lst.price > 0)
    market_median = to_price(median(prices))
    ratio = current_price / market_median
    low, high = _ALIGNED_BAND
    if ratio < low:
        position = "below_market"
    elif ratio > high:
        position = "above_market"
    else:
        position = "aligned"

    return PriceComparison(
        current_price=current_price,
        market_median=market_median,
        price_ratio=round(float(ratio), 3),
        lower_priced_competitors=sum(1 for p in prices if p < current_price),
        higher_priced_competitors=sum(
            1 for p in prices if p > current_price
        ),
        price_position=position,
    )


def compare_performance(listings: list[Listing]) -> PerformanceComparison:
    """Sales and rating yardsticks across *listings*."""
    if not listings:
        return PerformanceComparison(0.0, None, None, None)
    rated = [lst for lst in listings if lst.rating is not None]
    average_rating = (
        round(sum(lst.rating or 0.0 for lst in rated) / len(rated), 1)
        if rated
        else None
    )
    return PerformanceComparison(
        average_sales=round(
            sum(lst.sold_count for lst in listings) / len(listings), 2
        ),
        average_rating=average_rating,
        top_seller=max(listings, key=lambda lst: lst.sold_count),
        highest_rated=(
            max(rated, key=lambda lst: lst.rating or 0.0) if rated else None
        ),
    )


def _competitor_recommendations(
    ranked: list[RankedListing],
    comparison: PriceComparison | None,
) -> list[Recommendation]:
    recommendations: list[Recommendation] = []
    if ranked:
        leader = ranked[0].listing
        recommendations.append(
            Recommendation(
                type=RecommendationType.BENCHMARKING,
                priority=Priority.HIGH,
                title="Study the leading competitor",
                description=(
                    f'"{leader.name}" leads with '
                    f"{leader.sold_count} sales"
                ),
                action=(
                    "Review the leader's strategy to sharpen "
                    "your own listing"
                ),
                confidence=85,
            )
        )
    if comparison is None:
        return recommendations

    advice = {
        "below_market": (
            Priority.MEDIUM,
            "Price below market",
            "Test a gradual increase towards the market median",
        ),
        "above_market": (
            Priority.HIGH,
            "Price above market",
            "Justify the premium with quality signals or move "
            "closer to the median",
        ),
        "aligned": (
            Priority.LOW,
            "Price aligned with market",
            "Compete on rating, shipping and listing quality",
        ),
    }
    priority, title, action = advice[comparison.price_position]
    recommendations.append(
        Recommendation(
            type=RecommendationType.PRICING,
            priority=priority,
            title=title,
            description=(
                f"Your price R$ {comparison.current_price:.2f} against a "
                f"market median of R$ {comparison.market_median:.2f} "
                f"({comparison.lower_priced_competitors} cheaper, "
                f"{comparison.higher_priced_competitors} pricier)"
            ),
            action=action,
            confidence=80,
        )
    )
    return recommendations


class CategoryAnalyzer:
    """Runs the acquisition and analysis pipeline for one request.

    Each call builds its own listing set and result objects; nothing is
    shared between concurrent analyses apart from the browser session
    pool behind the orchestrator.
    """

    def __init__(
        self,
        orchestrator: AcquisitionOrchestrator | None = None,
        planner: type[QueryPlanner] = QueryPlanner,
        pacing_delay: float = Settings.PACING_DELAY,
        generator: SyntheticListingGenerator | None = None,
    ) -> None:
        self.orchestrator = orchestrator or AcquisitionOrchestrator()
        self.planner = planner
        self.pacing_delay = pacing_delay
        self.generator = generator or SyntheticListingGenerator()

    # ── Private helpers ──────────────────────────────────

    @staticmethod
    def _resolve_limit(limit: int | None, default: int) -> int:
        if limit is None:
            return default
        if limit < 1:
            msg = f"limit must be >= 1, got {limit}"
            raise ValueError(msg)
        if limit > Settings.MAX_LIMIT:
            logger.info(
                "Limit %d clamped to %d", limit, Settings.MAX_LIMIT
            )
            return Settings.MAX_LIMIT
        return limit

    async def _harvest(
        self,
        queries: list[str],
        limit: int,
        deadline: float | None,
    ) -> tuple[list[Listing], bool]:
        """Acquire each query in turn; returns (listings, deadline hit)."""
        loop = asyncio.get_running_loop()
        expires_at = loop.time() + deadline if deadline is not None else None
        harvested: list[Listing] = []

        for index, query in enumerate(queries):
            if index and self.pacing_delay > 0:
                pause = self.pacing_delay
                if expires_at is not None:
                    pause = min(pause, max(expires_at - loop.time(), 0.0))
                await asyncio.sleep(pause)

            remaining = (
                expires_at - loop.time() if expires_at is not None else None
            )
            if remaining is not None and remaining <= 0:
                logger.warning(
                    "Deadline reached before query '%s', "
                    "skipping %d remaining",
                    query,
                    len(queries) - index,
                )
                return harvested, True

            cancel = threading.Event()
            try:
                with query_context(query):
                    batch = await asyncio.wait_for(
                        asyncio.to_thread(
                            self.orchestrator.acquire, query, limit, cancel
                        ),
                        timeout=remaining,
                    )
            except asyncio.TimeoutError:
                cancel.set()
                logger.warning(
                    "Deadline reached while acquiring '%s', keeping "
                    "%d harvested listings",
                    query,
                    len(harvested),
                )
                return harvested, True

            logger.info(
                "Query '%s' contributed %d listings", query, len(batch)
            )
            harvested.extend(batch)

        return harvested, False

    def _clean(
        self, listings: list[Listing],
    ) -> tuple[list[Listing], int, int]:
        """Validate then dedupe; returns (listings, invalid, removed)."""
        valid, invalid = ListingValidator.validate(listings)
        unique, removed = ListingDeduplicator.deduplicate(valid)
        return unique, invalid, removed

    def _synthesize(self, query: str, limit: int) -> list[Listing]:
        logger.info(
            "No valid listings for '%s', generating %d synthetic",
            query,
            limit,
        )
        return self.generator.generate(query, limit)

    # ── Category analysis ────────────────────────────────

    async def analyze_category(
        self,
        category: str,
        limit: int | None = None,
        deadline: float | None = None,
    ) -> CategoryAnalysisResult:
        """Benchmark *category* and return a complete analysis.

        *limit* caps listings per planned query (default 20, max 100).
        *deadline* is an overall budget in seconds; when it runs out the
        analysis continues with whatever was harvested so far.
        """
        size = self._resolve_limit(limit, Settings.DEFAULT_LIMIT)
        queries = self.planner.plan(category)[
            : Settings.MAX_QUERIES_PER_CATEGORY
        ]
        if not queries:
            msg = f"Category {category!r} produced no search queries"
            raise ValueError(msg)
        label = " ".join(category.split())

        harvested, deadline_hit = await self._harvest(
            queries, size, deadline
        )
        listings, invalid, removed = self._clean(harvested)
        if not listings:
            listings = self._synthesize(label, size)

        stats = compute_price_statistics(listings)
        performers = top_performers(listings)
        insights, recommendations = generate_insights(
            listings, stats, performers, label
        )

        result = CategoryAnalysisResult(
            category=label,
            total_listings=len(listings),
            generated_at=datetime.now(timezone.utc),
            data_source=data_source_of(listings),
            price_statistics=stats,
            top_performers=performers,
            price_distribution=price_distribution(listings),
            competitive_insights=insights,
            market_trends=market_trends(listings),
            recommendations=recommendations,
            queries=queries,
            duplicates_removed=removed,
            invalid_count=invalid,
            deadline_exceeded=deadline_hit,
        )
        logger.info(
            "Analysis of '%s': %d listings (%s), %d duplicates, "
            "%d invalid",
            label,
            result.total_listings,
            result.data_source.value,
            removed,
            invalid,
        )
        return result

    # ── Competitor analysis ──────────────────────────────

    async def analyze_competitors(
        self,
        product_name: str,
        current_price: Decimal | float | str | None = None,
        limit: int | None = None,
    ) -> CompetitiveAnalysis:
        """Compare one product against competitors found by its name."""
        name = " ".join(product_name.split())
        if not name:
            msg = "product_name must not be blank"
            raise ValueError(msg)
        price = to_price(current_price) if current_price is not None else None
        if price is not None and price < 0:
            msg = f"current_price must be >= 0, got {price}"
            raise ValueError(msg)
        size = self._resolve_limit(limit, Settings.COMPETITOR_LIMIT)

        with query_context(name):
            harvested = await asyncio.to_thread(
                self.orchestrator.acquire, name, size
            )
        competitors, _, _ = self._clean(harvested)
        if not competitors:
            competitors = self._synthesize(name, size)

        ranked = top_performers(competitors)
        comparison = (
            compare_prices(competitors, price) if price is not None else None
        )
        return CompetitiveAnalysis(
            product_name=name,
            current_price=price,
            generated_at=datetime.now(timezone.utc),
            data_source=data_source_of(competitors),
            competitors_found=len(competitors),
            direct_competitors=ranked,
            market_position=market_position(competitors),
            price_comparison=comparison,
            performance_comparison=compare_performance(competitors),
            recommendations=sort_by_priority(
                _competitor_recommendations(ranked, comparison)
            ),
        )
