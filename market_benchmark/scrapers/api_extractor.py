# market_benchmark/scrapers/api_extractor.py

"""Parse the marketplace's internal item-list API payload into Listings."""

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, cast

from market_benchmark.config.settings import Settings
from market_benchmark.models.listing import Listing, SourceTier, to_price

logger = logging.getLogger("market_benchmark.api_extractor")


class ApiItemExtractor:
    """Extractor for ``search_items`` JSON responses.

    The payload carries an ``items`` list whose entries are either flat
    item dicts or ``{"item_basic": {...}}`` wrappers. Prices are
    fixed-point integers scaled by ``API_PRICE_SCALE``.
    """

    def __init__(
        self,
        source_tier: SourceTier = SourceTier.API,
        price_scale: int = Settings.API_PRICE_SCALE,
    ) -> None:
        self.source_tier = source_tier
        self.price_scale = Decimal(price_scale)

    @staticmethod
    def has_item_list(payload: object) -> bool:
        """Check the payload has the expected top-level item collection."""
        if not isinstance(payload, dict):
            return False
        items = cast(dict[str, Any], payload).get("items")
        return isinstance(items, list)

    def _scaled_price(self, raw: object) -> Decimal | None:
        """Convert a minor-unit integer price to a Decimal, or None."""
        if raw is None or isinstance(raw, bool):
            return None
        try:
            price = to_price(Decimal(str(raw)) / self.price_scale)
        except (InvalidOperation, ValueError):
            return None
        return price if price > 0 else None

    @staticmethod
    def _as_int(raw: object) -> int:
        try:
            return max(int(cast(Any, raw) or 0), 0)
        except (TypeError, ValueError, OverflowError):
            return 0

    @staticmethod
    def _as_rating(raw: object) -> float | None:
        if isinstance(raw, bool) or not isinstance(raw, (int, float)):
            return None
        try:
            value = float(raw)
        except OverflowError:
            return None
        return value if math.isfinite(value) else None

    def _parse_item(self, entry: dict[str, Any]) -> Listing | None:
        """Convert one API item to a Listing; None if unusable."""
        basic = entry.get("item_basic")
        item: dict[str, Any] = (
            cast(dict[str, Any], basic)
            if isinstance(basic, dict)
            else entry
        )

        name = str(item.get("name") or "").strip()
        if not name:
            return None

        # Price fallback: price_min -> price -> price_before_discount
        price: Decimal | None = None
        for key in ("price_min", "price", "price_before_discount"):
            price = self._scaled_price(item.get(key))
            if price is not None:
                break
        if price is None:
            return None

        sold = self._as_int(
            item.get("sold") or item.get("historical_sold")
        )

        rating: float | None = None
        rating_count: int | None = None
        item_rating = item.get("item_rating")
        if isinstance(item_rating, dict):
            rating_block = cast(dict[str, Any], item_rating)
            rating = self._as_rating(rating_block.get("rating_star"))
            counts = rating_block.get("rating_count")
            if isinstance(counts, list) and counts:
                rating_count = self._as_int(counts[0])

        shop_id = item.get("shopid")
        item_id = item.get("itemid")
        url = (
            f"{Settings.BASE_URL}/product/{shop_id}/{item_id}"
            if shop_id and item_id
            else ""
        )

        return Listing(
            name=name,
            price=price,
            source_tier=self.source_tier,
            sold_count=sold,
            rating=rating,
            rating_count=rating_count,
            shop_name=str(item.get("shop_name") or "") or None,
            url=url,
        )

    def extract(
        self,
        payload: object,
        limit: int | None = None,
    ) -> list[Listing]:
        """Extract listings from a raw API payload.

        Returns an empty list when the payload does not have the
        expected shape. Items with a missing or malformed name or
        price are skipped one by one.
        """
        if not self.has_item_list(payload):
            logger.warning(
                "API payload has no 'items' list (type=%s)",
                type(payload).__name__,
            )
            return []

        raw_items = cast(
            list[Any], cast(dict[str, Any], payload)["items"]
        )
        listings: list[Listing] = []
        skipped = 0
        for entry in raw_items:
            if limit is not None and len(listings) >= limit:
                break
            if not isinstance(entry, dict):
                skipped += 1
                continue
            listing = self._parse_item(cast(dict[str, Any], entry))
            if listing is None:
                skipped += 1
                continue
            listings.append(listing)

        if skipped:
            logger.debug("Skipped %d malformed API items", skipped)
        logger.info("API payload yielded %d listings", len(listings))
        return listings
