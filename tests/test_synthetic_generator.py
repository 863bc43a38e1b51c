# tests/test_synthetic_generator.py

"""Tests for the synthetic fallback listing generator."""

import random
import unittest

from market_benchmark.filters.deduplicator import ListingDeduplicator
from market_benchmark.models.listing import SourceTier
from market_benchmark.scrapers.synthetic_generator import (
    GENERIC_TEMPLATES,
    TEMPLATE_POOLS,
    SyntheticListingGenerator,
    templates_for,
)


class TestTemplatesFor(unittest.TestCase):
    """Template pool selection."""

    def test_keyword_match_is_accent_insensitive(self) -> None:
        """'Sofá' selects the sofa pool."""
        self.assertIs(templates_for("Sofá retrátil"), TEMPLATE_POOLS[0][1])

    def test_generic_fallback(self) -> None:
        """Unmatched queries get the generic templates."""
        self.assertIs(
            templates_for("xyzzy-nonexistent-item"), GENERIC_TEMPLATES
        )

    def test_template_names_are_short(self) -> None:
        """Template names fit well within the dedup name prefix."""
        pools = [pool for _, pool in TEMPLATE_POOLS] + [GENERIC_TEMPLATES]
        for pool in pools:
            for template in pool:
                with self.subTest(name=template.name):
                    self.assertLessEqual(len(template.name), 30)


class TestSyntheticListingGenerator(unittest.TestCase):
    """SyntheticListingGenerator.generate behaviour."""

    def setUp(self) -> None:
        """Seeded generator for reproducible draws."""
        self.generator = SyntheticListingGenerator(random.Random(42))

    def test_exact_count_for_all_limits(self) -> None:
        """Exactly *limit* listings for every limit up to 100."""
        for limit in (0, 1, 7, 20, 100):
            with self.subTest(limit=limit):
                listings = self.generator.generate("sofá", limit)
                self.assertEqual(len(listings), limit)

    def test_listing_invariants(self) -> None:
        """Prices positive, ratings in [0, 5], tier synthetic."""
        for listing in self.generator.generate("poltrona", 50):
            self.assertGreater(listing.price, 0)
            self.assertIsNotNone(listing.rating)
            self.assertGreaterEqual(listing.rating or 0, 0)
            self.assertLessEqual(listing.rating or 0, 5)
            self.assertEqual(listing.source_tier, SourceTier.SYNTHETIC)

    def test_prices_within_template_band(self) -> None:
        """Prices lie in [base, base + variation]."""
        pool = templates_for("mesa")
        for i, listing in enumerate(self.generator.generate("mesa", 15)):
            template = pool[i % len(pool)]
            self.assertGreaterEqual(listing.price, template.base_price)
            self.assertLessEqual(
                listing.price,
                template.base_price + template.price_variation,
            )

    def test_suffix_after_pool_cycles(self) -> None:
        """Names repeat with a 'Modelo N' suffix once the pool cycles."""
        pool = templates_for("cama")
        listings = self.generator.generate("cama", len(pool) + 1)
        self.assertEqual(listings[0].name, pool[0].name)
        self.assertEqual(listings[-1].name, f"{pool[0].name} Modelo 2")

    def test_survives_deduplication(self) -> None:
        """A generated set never collapses under the deduplicator."""
        listings = self.generator.generate("xyzzy", 100)
        kept, removed = ListingDeduplicator.deduplicate(listings)
        self.assertEqual(len(kept), 100)
        self.assertEqual(removed, 0)

    def test_negative_limit_rejected(self) -> None:
        """A negative limit is a contract error."""
        with self.assertRaises(ValueError):
            self.generator.generate("sofá", -1)


if __name__ == "__main__":
    unittest.main()
