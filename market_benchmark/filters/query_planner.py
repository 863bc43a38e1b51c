# market_benchmark/filters/query_planner.py

"""Expand a category or keyword into concrete marketplace search queries."""

import logging

from market_benchmark.config.settings import Settings
from market_benchmark.filters.category_inference import fold_text

logger = logging.getLogger("market_benchmark.query_planner")


class QueryPlanner:
    """Deterministic category → search-phrase lookup."""

    @staticmethod
    def plan(category: str) -> list[str]:
        """Return the ordered search queries for *category*.

        Mapped categories expand to their representative phrases
        (matched case-, accent- and whitespace-insensitively).
        Anything else is searched verbatim. A blank category plans
        to no queries at all.
        """
        cleaned = " ".join(category.split())
        if not cleaned:
            return []

        queries = Settings.CATEGORY_QUERIES.get(fold_text(cleaned))
        if queries:
            logger.debug(
                "Category '%s' planned to %d queries: %s",
                cleaned,
                len(queries),
                queries,
            )
            return list(queries)

        logger.debug(
            "No mapping for '%s', searching it verbatim", cleaned
        )
        return [cleaned]
