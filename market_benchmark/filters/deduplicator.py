# market_benchmark/filters/deduplicator.py

"""Listing deduplication across queries and acquisition tiers."""

import logging
from decimal import ROUND_HALF_UP, Decimal

from market_benchmark.config.settings import Settings
from market_benchmark.models.listing import Listing

logger = logging.getLogger("market_benchmark.filters")


class ListingDeduplicator:
    """Remove duplicate listings by name prefix and rounded price."""

    @staticmethod
    def _normalise_name(name: str) -> str:
        """Lowercase, trim, collapse whitespace and cut to the prefix.

        Tiers truncate long names differently, so only the first
        ``DEDUP_NAME_PREFIX`` characters take part in the key.
        """
        collapsed = " ".join(name.lower().split())
        return collapsed[: Settings.DEDUP_NAME_PREFIX]

    @staticmethod
    def dedup_key(listing: Listing) -> tuple[str, int]:
        """Composite identity of a listing for deduplication."""
        rounded = int(
            Decimal(listing.price).quantize(
                Decimal(1), rounding=ROUND_HALF_UP
            )
        )
        return (
            ListingDeduplicator._normalise_name(listing.name),
            rounded,
        )

    @staticmethod
    def deduplicate(
        listings: list[Listing],
    ) -> tuple[list[Listing], int]:
        """Remove duplicates, keeping the first occurrence.

        Order is stable, so listings harvested by earlier queries win
        on key collision.

        Returns the deduplicated list and the count of removed dupes.
        """
        if not listings:
            return [], 0

        seen: set[tuple[str, int]] = set()
        kept: list[Listing] = []
        removed = 0

        for listing in listings:
            key = ListingDeduplicator.dedup_key(listing)
            if key in seen:
                removed += 1
                continue
            seen.add(key)
            kept.append(listing)

        if removed:
            logger.info(
                "Deduplication removed %d duplicate listings",
                removed,
            )

        return kept, removed
