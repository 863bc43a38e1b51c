# market_benchmark/services/acquisition.py

"""Tiered acquisition of listings for a single search query.

Tiers run in a fixed cascade: API interception and DOM scraping on one
shared browser session, an optional direct HTTP API fetch, and finally
the synthetic generator. A tier that raises is treated as having found
nothing, so :meth:`AcquisitionOrchestrator.acquire` always returns
listings for a positive limit.
"""

import logging
import threading
import urllib.parse
from typing import Protocol

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from market_benchmark.config.settings import Settings
from market_benchmark.models.listing import Listing
from market_benchmark.scrapers.api_extractor import ApiItemExtractor
from market_benchmark.scrapers.browser_session import (
    BrowserSession,
    SessionFactory,
    open_browser_session,
)
from market_benchmark.scrapers.dom_extractor import DomExtractor
from market_benchmark.scrapers.http_api_scraper import HttpApiScraper
from market_benchmark.scrapers.synthetic_generator import (
    SyntheticListingGenerator,
)

logger = logging.getLogger("market_benchmark.acquisition")

_SCROLL_SCRIPT = "window.scrollTo(0, document.body.scrollHeight)"


class AcquisitionTier(Protocol):
    """One acquisition strategy in the cascade."""

    name: str
    needs_session: bool

    def harvest(
        self,
        query: str,
        limit: int,
        session: BrowserSession | None,
    ) -> list[Listing]: ...


# ── Tiers ────────────────────────────────────────────────


class ApiInterceptionTier:
    """Parse the item-list API response the search page triggers."""

    name = "api"
    needs_session = True

    def __init__(
        self,
        extractor: ApiItemExtractor | None = None,
        wait_timeout: float = Settings.API_WAIT_TIMEOUT,
    ) -> None:
        self.extractor = extractor or ApiItemExtractor()
        self.wait_timeout = wait_timeout

    @staticmethod
    def _is_item_list(url: str) -> bool:
        return Settings.API_RESPONSE_MARKER in url

    def harvest(
        self,
        query: str,
        limit: int,
        session: BrowserSession | None,
    ) -> list[Listing]:
        """Wait for an intercepted ``search_items`` body and parse it."""
        if session is None:
            return []
        payload = session.wait_for_response(
            self._is_item_list, self.wait_timeout
        )
        if payload is None:
            logger.info(
                "No item-list response intercepted for '%s' "
                "within %.0fs",
                query,
                self.wait_timeout,
            )
            return []
        return self.extractor.extract(payload, limit)


class DomScrapingTier:
    """Scrape the rendered search page with the selector cascade."""

    name = "dom"
    needs_session = True

    def __init__(
        self,
        extractor: DomExtractor | None = None,
        settle_timeout: float = Settings.DOM_SETTLE_TIMEOUT,
    ) -> None:
        self.extractor = extractor or DomExtractor()
        self.settle_timeout = settle_timeout

    def harvest(
        self,
        query: str,
        limit: int,
        session: BrowserSession | None,
    ) -> list[Listing]:
        """Let the page settle, trigger lazy loading, then extract."""
        if session is None:
            return []
        self._settle(session)
        session.evaluate(_SCROLL_SCRIPT)
        self._settle(session)
        return self.extractor.extract(session.content(), limit)

    def _settle(self, session: BrowserSession) -> None:
        """Wait for network idle; a busy page is scraped as-is."""
        try:
            session.wait_for_idle(self.settle_timeout)
        except PlaywrightTimeoutError:
            logger.debug(
                "Page not idle after %.0fs, extracting anyway",
                self.settle_timeout,
            )


class HttpApiTier:
    """Direct JSON fetch of the search API, without a browser."""

    name = "http_api"
    needs_session = False

    def harvest(
        self,
        query: str,
        limit: int,
        session: BrowserSession | None,
    ) -> list[Listing]:
        """Query the search API with a fresh HTTP client."""
        return HttpApiScraper().search(query, limit)


class SyntheticTier:
    """Always-succeeding tier backed by the synthetic generator."""

    name = "synthetic"
    needs_session = False

    def __init__(
        self, generator: SyntheticListingGenerator | None = None,
    ) -> None:
        self.generator = generator or SyntheticListingGenerator()

    def harvest(
        self,
        query: str,
        limit: int,
        session: BrowserSession | None,
    ) -> list[Listing]:
        """Generate *limit* template-based listings for *query*."""
        return self.generator.generate(query, limit)


def default_tiers() -> list[AcquisitionTier]:
    """Build the production cascade (HTTP tier only when enabled)."""
    tiers: list[AcquisitionTier] = [
        ApiInterceptionTier(),
        DomScrapingTier(),
    ]
    if Settings.HTTP_TIER_ENABLED:
        tiers.append(HttpApiTier())
    return tiers


# ── Orchestrator ─────────────────────────────────────────


def _cancelled(
    cancel: threading.Event, query: str, tier: AcquisitionTier,
) -> bool:
    if cancel.is_set():
        logger.info(
            "Acquisition of '%s' cancelled before tier '%s'",
            query,
            tier.name,
        )
        return True
    return False


class AcquisitionOrchestrator:
    """Drive one query through the tier cascade.

    Session-bound tiers share a single browser session opened per call
    and closed before the call returns. Tiers that need no session run
    afterwards, and the fallback tier runs only when every other tier
    came back empty.
    """

    def __init__(
        self,
        tiers: list[AcquisitionTier] | None = None,
        fallback: AcquisitionTier | None = None,
        session_factory: SessionFactory | None = None,
        navigation_timeout: float = Settings.NAVIGATION_TIMEOUT,
    ) -> None:
        self.tiers = tiers if tiers is not None else default_tiers()
        self.fallback = fallback or SyntheticTier()
        self.session_factory: SessionFactory = (
            session_factory or open_browser_session
        )
        self.navigation_timeout = navigation_timeout

    @staticmethod
    def search_url(query: str) -> str:
        """Marketplace search page URL for *query*."""
        return Settings.SEARCH_URL.format(
            query=urllib.parse.quote(query)
        )

    def _run_tier(
        self,
        tier: AcquisitionTier,
        query: str,
        limit: int,
        session: BrowserSession | None,
    ) -> list[Listing]:
        """Run one tier, converting any failure into zero listings."""
        try:
            listings = tier.harvest(query, limit, session)
        except Exception as exc:
            logger.warning(
                "Tier '%s' failed for '%s': %s",
                tier.name,
                query,
                exc,
                exc_info=True,
            )
            return []
        logger.info(
            "Tier '%s' yielded %d listings for '%s'",
            tier.name,
            len(listings),
            query,
        )
        return listings[:limit]

    def _run_session_tiers(
        self,
        tiers: list[AcquisitionTier],
        query: str,
        limit: int,
        cancel: threading.Event,
    ) -> list[Listing]:
        """Open a session, navigate, and try each tier on it in order."""
        try:
            with self.session_factory() as session:
                session.navigate(
                    self.search_url(query), self.navigation_timeout
                )
                for tier in tiers:
                    if _cancelled(cancel, query, tier):
                        return []
                    listings = self._run_tier(tier, query, limit, session)
                    if listings:
                        return listings
        except Exception as exc:
            logger.warning(
                "Browser acquisition unavailable for '%s': %s",
                query,
                exc,
                exc_info=True,
            )
        return []

    def acquire(
        self,
        query: str,
        limit: int,
        cancel: threading.Event | None = None,
    ) -> list[Listing]:
        """Return up to *limit* listings for *query*.

        Never raises for environmental failures; only ``limit < 0`` is
        rejected. The result is empty only when *limit* is 0 or when
        *cancel* is set by a caller that stopped waiting, in which case
        no further tier is started and the browser session is released.
        """
        if cancel is None:
            cancel = threading.Event()
        if limit < 0:
            msg = f"limit must be >= 0, got {limit}"
            raise ValueError(msg)
        if limit == 0 or cancel.is_set():
            return []

        session_tiers = [t for t in self.tiers if t.needs_session]
        detached_tiers = [t for t in self.tiers if not t.needs_session]

        listings: list[Listing] = []
        if session_tiers:
            listings = self._run_session_tiers(
                session_tiers, query, limit, cancel
            )

        for tier in detached_tiers:
            if listings or _cancelled(cancel, query, tier):
                return listings
            listings = self._run_tier(tier, query, limit, None)

        if not listings and not _cancelled(cancel, query, self.fallback):
            logger.info(
                "All acquisition tiers empty for '%s', "
                "using '%s' tier",
                query,
                self.fallback.name,
            )
            listings = self._run_tier(self.fallback, query, limit, None)

        return listings
