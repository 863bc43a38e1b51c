# market_benchmark/models/analysis.py

"""Result containers produced by the analysis pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from market_benchmark.models.listing import Listing


class DataSource(str, Enum):
    """Whether real marketplace data contributed to a result."""

    MARKETPLACE = "marketplace"
    MIXED = "mixed"
    SYNTHETIC = "synthetic"


class RecommendationType(str, Enum):
    """Kind of actionable recommendation."""

    PRICING = "pricing"
    BENCHMARKING = "benchmarking"
    MARKET_INSIGHT = "market-insight"


class Priority(str, Enum):
    """Recommendation priority; ``weight`` orders high before low."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def weight(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


@dataclass(frozen=True)
class PriceStatistics:
    """Distributional summary over a listing set's valid prices."""

    min: Decimal
    max: Decimal
    average: Decimal
    median: Decimal
    q1: Decimal
    q3: Decimal
    std_dev: Decimal
    sample_size: int
    total_sales: int
    average_sales: float
    average_rating: float | None


@dataclass(frozen=True)
class RankedListing:
    """A listing placed in the performance ranking."""

    rank: int
    listing: Listing
    performance_score: int
    competitive_advantage: str


@dataclass(frozen=True)
class PriceBucket:
    """One equal-width price band and the listings that fall in it."""

    label: str
    lower: Decimal
    upper: Decimal
    count: int


@dataclass(frozen=True)
class PriceGap:
    """A hole between two consecutive observed prices."""

    lower_price: Decimal
    upper_price: Decimal
    gap_amount: Decimal
    gap_percentage: float
    opportunity_score: float


@dataclass(frozen=True)
class MarketAverages:
    """Mean price, sales and rating across the analysed set."""

    price: Decimal
    sales: float
    rating: float | None


@dataclass(frozen=True)
class CompetitiveInsights:
    """Qualitative read of the competitive landscape."""

    market_size: int
    competition_level: str
    market_maturity: str
    entry_barriers: str
    market_averages: MarketAverages
    price_gaps: list[PriceGap] = field(
        default_factory=lambda: list[PriceGap]()
    )


@dataclass(frozen=True)
class CategorySales:
    """Total units sold for one inferred category."""

    category: str
    total_sales: int


@dataclass(frozen=True)
class MarketTrends:
    """Short-horizon demand signals derived from the listing set."""

    trending_price_low: Decimal
    trending_price_high: Decimal
    hot_categories: list[CategorySales]
    high_sales_listings: int
    market_activity: str


@dataclass(frozen=True)
class Recommendation:
    """One actionable insight."""

    type: RecommendationType
    priority: Priority
    title: str
    description: str
    action: str
    confidence: int
    expected_impact: str = ""


@dataclass(frozen=True)
class CategoryAnalysisResult:
    """Single output of a category analysis run."""

    category: str
    total_listings: int
    generated_at: datetime
    data_source: DataSource
    price_statistics: PriceStatistics | None
    top_performers: list[RankedListing]
    price_distribution: list[PriceBucket]
    competitive_insights: CompetitiveInsights
    market_trends: MarketTrends
    recommendations: list[Recommendation]
    queries: list[str] = field(default_factory=lambda: list[str]())
    duplicates_removed: int = 0
    invalid_count: int = 0
    deadline_exceeded: bool = False


@dataclass(frozen=True)
class PriceComparison:
    """Where an operator's price sits against harvested competitors."""

    current_price: Decimal
    market_median: Decimal
    price_ratio: float
    lower_priced_competitors: int
    higher_priced_competitors: int
    price_position: str


@dataclass(frozen=True)
class PerformanceComparison:
    """Sales and rating yardsticks across competitors."""

    average_sales: float
    average_rating: float | None
    top_seller: Listing | None
    highest_rated: Listing | None


@dataclass(frozen=True)
class CompetitiveAnalysis:
    """Output of a single-product competitor comparison."""

    product_name: str
    current_price: Decimal | None
    generated_at: datetime
    data_source: DataSource
    competitors_found: int
    direct_competitors: list[RankedListing]
    market_position: str
    price_comparison: PriceComparison | None
    performance_comparison: PerformanceComparison
    recommendations: list[Recommendation]
