# market_benchmark/scrapers/synthetic_generator.py

"""Template-driven synthetic listings for when acquisition yields nothing.

The generated set keeps statistics, ranking and recommendations
exercised when the marketplace is unreachable. Names stay at most 30
characters long so that the cycle suffix survives the deduplicator's
name-prefix key.
"""

import logging
import random
from dataclasses import dataclass
from decimal import Decimal

from market_benchmark.filters.category_inference import fold_text
from market_benchmark.models.listing import Listing, SourceTier, to_price

logger = logging.getLogger("market_benchmark.synthetic")


@dataclass(frozen=True)
class ListingTemplate:
    """Name and price band used to synthesize one kind of listing."""

    name: str
    base_price: Decimal
    price_variation: Decimal


def _t(name: str, base: int, variation: int) -> ListingTemplate:
    return ListingTemplate(name, Decimal(base), Decimal(variation))


# Keyword (accent-folded) -> template pool; first match wins
TEMPLATE_POOLS: list[tuple[str, list[ListingTemplate]]] = [
    (
        "sofa",
        [
            _t("Sofá 3 Lugares Retrátil", 1200, 800),
            _t("Sofá 2 Lugares Compacto", 800, 400),
            _t("Sofá Cama Multifuncional", 1000, 600),
            _t("Sofá de Canto Moderno", 1500, 1000),
            _t("Sofá Chesterfield Clássico", 2000, 1200),
        ],
    ),
    (
        "poltrona",
        [
            _t("Poltrona Reclinável Comfort", 600, 400),
            _t("Poltrona Presidente", 800, 600),
            _t("Poltrona Decorativa Moderna", 400, 300),
            _t("Poltrona Massageadora", 1500, 1000),
            _t("Poltrona Gamer RGB", 1000, 800),
        ],
    ),
    (
        "mesa",
        [
            _t("Mesa de Jantar 6 Lugares", 800, 600),
            _t("Mesa de Centro Vidro", 400, 300),
            _t("Mesa de Escritório", 500, 400),
            _t("Mesa Lateral Decorativa", 200, 150),
            _t("Mesa Dobrável Multiuso", 300, 200),
        ],
    ),
    (
        "cadeira",
        [
            _t("Cadeira de Escritório Ergo", 450, 350),
            _t("Cadeira Gamer Reclinável", 900, 600),
            _t("Cadeira de Jantar Estofada", 250, 150),
            _t("Cadeira Eames Design", 180, 120),
        ],
    ),
    (
        "cama",
        [
            _t("Cama Box Casal", 900, 700),
            _t("Cama Box Solteiro", 600, 400),
            _t("Cama Queen Size Premium", 1600, 1000),
            _t("Bicama Multifuncional", 700, 500),
        ],
    ),
    (
        "guarda",
        [
            _t("Guarda-Roupa 6 Portas", 1100, 700),
            _t("Guarda-Roupa Casal Espelho", 1400, 900),
            _t("Roupeiro Solteiro 3 Portas", 500, 300),
        ],
    ),
]

GENERIC_TEMPLATES: list[ListingTemplate] = [
    _t("Móvel Multifuncional Premium", 800, 600),
    _t("Móvel Compacto Moderno", 500, 400),
    _t("Móvel Decorativo Elegante", 600, 500),
    _t("Móvel Funcional Prático", 400, 300),
    _t("Móvel Design Contemporâneo", 1000, 800),
]


def templates_for(query: str) -> list[ListingTemplate]:
    """Select the template pool whose keyword appears in *query*."""
    folded = fold_text(query)
    for keyword, pool in TEMPLATE_POOLS:
        if keyword in folded:
            return pool
    return GENERIC_TEMPLATES


class SyntheticListingGenerator:
    """Produce plausible listings from keyword-matched templates."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def generate(self, query: str, limit: int) -> list[Listing]:
        """Return exactly *limit* synthetic listings for *query*.

        Templates are used round-robin; once the pool has cycled, a
        ``Modelo N`` suffix keeps names distinct. Prices are drawn from
        ``base + U(0, 1) * variation``.
        """
        if limit < 0:
            msg = f"limit must be >= 0, got {limit}"
            raise ValueError(msg)

        templates = templates_for(query)
        listings: list[Listing] = []
        for i in range(limit):
            template = templates[i % len(templates)]
            cycle = i // len(templates) + 1
            name = (
                template.name
                if cycle == 1
                else f"{template.name} Modelo {cycle}"
            )
            variation = Decimal(str(self._rng.random()))
            listings.append(
                Listing(
                    name=name,
                    price=to_price(
                        template.base_price
                        + variation * template.price_variation
                    ),
                    source_tier=SourceTier.SYNTHETIC,
                    sold_count=self._rng.randint(10, 209),
                    rating=round(self._rng.uniform(3.5, 5.0), 1),
                )
            )

        logger.info(
            "Generated %d synthetic listings for '%s'",
            len(listings),
            query,
        )
        return listings
