# market_benchmark/models/listing.py

"""Listing data model for inter-module data flow."""

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from market_benchmark.filters.category_inference import infer_category

CENT = Decimal("0.01")


class SourceTier(str, Enum):
    """Acquisition tier that produced a listing."""

    API = "api"
    DOM = "dom"
    SYNTHETIC = "synthetic"


def to_price(value: Decimal | float | int | str) -> Decimal:
    """Coerce a numeric value to a Decimal rounded to cents.

    Raises :class:`ValueError` for NaN, infinities and magnitudes too
    large to carry cents.
    """
    try:
        amount = Decimal(str(value))
        if not amount.is_finite():
            msg = f"Price must be a finite number, got {value!r}"
            raise ValueError(msg)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        msg = f"Price is not representable in cents: {value!r}"
        raise ValueError(msg) from exc


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Listing:
    """One harvested or synthesized marketplace item.

    Immutable once built. ``rating`` is clamped to [0, 5], with
    non-finite ratings dropped to ``None``, and ``category`` is inferred
    from the name when left empty. A zero price is representable but
    such listings are dropped by
    :class:`~market_benchmark.filters.listing_validator.ListingValidator`
    before statistics and ranking.
    """

    name: str
    price: Decimal
    source_tier: SourceTier
    sold_count: int = 0
    rating: float | None = None
    rating_count: int | None = None
    shop_name: str | None = None
    category: str = ""
    url: str = ""
    harvested_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        name = self.name.strip() if self.name else ""
        if not name:
            msg = "Listing name must be a non-empty string"
            raise ValueError(msg)
        price = to_price(self.price)
        if price < 0:
            msg = f"Listing price must be >= 0, got {price}"
            raise ValueError(msg)
        if self.sold_count < 0:
            msg = f"sold_count must be >= 0, got {self.sold_count}"
            raise ValueError(msg)
        if self.rating_count is not None and self.rating_count < 0:
            msg = f"rating_count must be >= 0, got {self.rating_count}"
            raise ValueError(msg)

        # frozen: normalise through object.__setattr__
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "price", price)
        object.__setattr__(
            self, "source_tier", SourceTier(self.source_tier)
        )
        if self.rating is not None:
            rating = float(self.rating)
            object.__setattr__(
                self,
                "rating",
                min(max(rating, 0.0), 5.0) if math.isfinite(rating) else None,
            )
        if not self.category:
            object.__setattr__(self, "category", infer_category(name))

    @property
    def is_real(self) -> bool:
        """True when the listing came from the live marketplace."""
        return self.source_tier is not SourceTier.SYNTHETIC
