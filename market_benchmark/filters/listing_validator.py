# market_benchmark/filters/listing_validator.py

"""Listing validation: drop invalid listings before analysis."""

import logging

from market_benchmark.models.listing import Listing

logger = logging.getLogger("market_benchmark.filters")


class ListingValidator:
    """Validate listings and drop those unusable for price comparison."""

    @staticmethod
    def validate(
        listings: list[Listing],
    ) -> tuple[list[Listing], int]:
        """Drop listings with blank names or zero prices.

        Returns the valid listings and the count of dropped items.
        """
        valid: list[Listing] = []
        dropped = 0

        for listing in listings:
            if not listing.name.strip():
                logger.debug(
                    "Dropped listing with empty name (tier=%s)",
                    listing.source_tier.value,
                )
                dropped += 1
                continue
            if listing.price <= 0:
                logger.debug(
                    "Dropped zero-price listing (name=%s, tier=%s)",
                    listing.name,
                    listing.source_tier.value,
                )
                dropped += 1
                continue
            valid.append(listing)

        if dropped:
            logger.info(
                "Validation dropped %d invalid listings", dropped
            )

        return valid, dropped
