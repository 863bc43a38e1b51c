# tests/test_api_extractor.py

"""Tests for ApiItemExtractor against inline search_items payloads."""

import unittest
from decimal import Decimal
from typing import Any

from market_benchmark.models.listing import SourceTier
from market_benchmark.scrapers.api_extractor import ApiItemExtractor


def _item(
    name: str = "Sofá Retrátil 3 Lugares",
    price: object = 129990000,
    **extra: Any,
) -> dict[str, Any]:
    """Build one wrapped search_items entry."""
    basic: dict[str, Any] = {"name": name, "price": price, **extra}
    return {"item_basic": basic}


class TestApiItemExtractor(unittest.TestCase):
    """ApiItemExtractor.extract behaviour."""

    def setUp(self) -> None:
        """Fresh extractor for every test."""
        self.extractor = ApiItemExtractor()

    def test_parses_wrapped_item(self) -> None:
        """A full item_basic entry maps onto every Listing field."""
        payload = {
            "items": [
                _item(
                    sold=152,
                    item_rating={
                        "rating_star": 4.76,
                        "rating_count": [88, 1, 2, 3, 12, 70],
                    },
                    shop_name="Loja Casa",
                    shopid=11,
                    itemid=22,
                )
            ]
        }
        listings = self.extractor.extract(payload)
        self.assertEqual(len(listings), 1)
        lst = listings[0]
        self.assertEqual(lst.name, "Sofá Retrátil 3 Lugares")
        self.assertEqual(lst.price, Decimal("1299.90"))
        self.assertEqual(lst.sold_count, 152)
        self.assertAlmostEqual(lst.rating or 0, 4.76)
        self.assertEqual(lst.rating_count, 88)
        self.assertEqual(lst.shop_name, "Loja Casa")
        self.assertEqual(lst.url, "https://shopee.com.br/product/11/22")
        self.assertEqual(lst.source_tier, SourceTier.API)
        self.assertEqual(lst.category, "Sofás")

    def test_parses_flat_item(self) -> None:
        """Entries without an item_basic wrapper are read directly."""
        payload = {"items": [{"name": "Mesa", "price_min": 50000000}]}
        listings = self.extractor.extract(payload)
        self.assertEqual(listings[0].price, Decimal("500.00"))

    def test_price_fallback_order(self) -> None:
        """price_min wins, then price, then price_before_discount."""
        payload = {
            "items": [
                _item(price=None, price_before_discount=30000000),
                _item(price=20000000, price_min=10000000),
            ]
        }
        prices = [lst.price for lst in self.extractor.extract(payload)]
        self.assertEqual(prices, [Decimal("300.00"), Decimal("100.00")])

    def test_historical_sold_fallback(self) -> None:
        """historical_sold is used when sold is missing."""
        payload = {"items": [_item(historical_sold=40)]}
        self.assertEqual(self.extractor.extract(payload)[0].sold_count, 40)

    def test_missing_rating_stays_unset(self) -> None:
        """Absent rating data leaves rating as None."""
        listing = self.extractor.extract({"items": [_item()]})[0]
        self.assertIsNone(listing.rating)
        self.assertIsNone(listing.rating_count)
        self.assertEqual(listing.sold_count, 0)

    def test_skips_malformed_items(self) -> None:
        """Items without a name or price are skipped individually."""
        payload = {
            "items": [
                _item(name=""),
                _item(price=None),
                _item(price=0),
                "not-a-dict",
                {"item_basic": None, "name": "Cama Box", "price": 90000000},
                _item(name="Cadeira", price="abc"),
            ]
        }
        listings = self.extractor.extract(payload)
        self.assertEqual([lst.name for lst in listings], ["Cama Box"])

    def test_non_finite_prices_skip_only_that_item(self) -> None:
        """NaN, infinite and oversized prices drop only their own item."""
        for bad in (float("nan"), float("inf"), 10**40):
            with self.subTest(price=bad):
                payload = {
                    "items": [
                        _item(name="Mesa de Jantar", price=50000000),
                        _item(name="Cadeira", price=bad),
                    ]
                }
                listings = self.extractor.extract(payload)
                self.assertEqual(
                    [lst.name for lst in listings], ["Mesa de Jantar"]
                )

    def test_non_finite_price_falls_back_to_next_key(self) -> None:
        """A NaN price_min does not hide a usable price."""
        payload = {"items": [_item(price_min=float("nan"))]}
        listing = self.extractor.extract(payload)[0]
        self.assertEqual(listing.price, Decimal("1299.90"))

    def test_non_finite_rating_is_unset(self) -> None:
        """A NaN or infinite rating_star leaves rating as None."""
        for star in (float("nan"), float("inf"), 10**400):
            with self.subTest(star=star):
                payload = {
                    "items": [_item(item_rating={"rating_star": star})]
                }
                listing = self.extractor.extract(payload)[0]
                self.assertIsNone(listing.rating)

    def test_infinite_sold_count_reads_as_zero(self) -> None:
        """An unconvertible sold counter does not drop the item."""
        payload = {"items": [_item(sold=float("inf"))]}
        self.assertEqual(self.extractor.extract(payload)[0].sold_count, 0)

    def test_respects_limit(self) -> None:
        """Extraction stops at *limit* listings."""
        payload = {"items": [_item(name=f"Sofá {i}") for i in range(10)]}
        self.assertEqual(len(self.extractor.extract(payload, 3)), 3)

    def test_wrong_shape_returns_empty(self) -> None:
        """Payloads without an items list yield nothing."""
        for payload in (None, [], {"data": {}}, {"items": None}, "x"):
            with self.subTest(payload=payload):
                self.assertEqual(self.extractor.extract(payload), [])

    def test_has_item_list(self) -> None:
        """has_item_list recognises the expected top-level shape."""
        self.assertTrue(ApiItemExtractor.has_item_list({"items": []}))
        self.assertFalse(ApiItemExtractor.has_item_list({"items": {}}))

    def test_custom_tier_and_scale(self) -> None:
        """Tier and price scale are configurable."""
        extractor = ApiItemExtractor(
            source_tier=SourceTier.DOM, price_scale=100
        )
        listing = extractor.extract({"items": [_item(price=1999)]})[0]
        self.assertEqual(listing.price, Decimal("19.99"))
        self.assertEqual(listing.source_tier, SourceTier.DOM)


if __name__ == "__main__":
    unittest.main()
