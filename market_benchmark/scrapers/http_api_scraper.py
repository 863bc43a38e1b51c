# market_benchmark/scrapers/http_api_scraper.py

"""Browser-less acquisition path against the marketplace search API."""

import json
import logging
import time
import urllib.parse
from typing import Any

import cloudscraper  # type: ignore[import-untyped]
from curl_cffi import requests as curl_requests

from market_benchmark.config.settings import Settings
from market_benchmark.models.listing import Listing
from market_benchmark.scrapers.api_extractor import ApiItemExtractor


class HttpApiScraper:
    """Fetch ``search_items`` JSON directly with a browser-like TLS stack.

    Uses curl_cffi impersonation first and cloudscraper as a fallback.
    Rate limiting (403/429) and challenge pages escalate the retry
    delay. Instances are cheap and meant to be built per acquisition.
    """

    # Challenge page markers (checked before keyword scan)
    _CHALLENGE_MARKERS: list[str] = [
        "challenges.cloudflare.com",
        "cdn-cgi/challenge-platform",
        "just a moment",
        "cf-turnstile",
    ]

    def __init__(self, extractor: ApiItemExtractor | None = None) -> None:
        self.logger = logging.getLogger("market_benchmark.http_api")
        self.settings = Settings()
        self.extractor = extractor or ApiItemExtractor()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._current_delay: float = self.settings.REQUEST_DELAY
        self._request_timeout: int = self.settings.REQUEST_TIMEOUT

    def _build_headers(self, query: str) -> dict[str, str]:
        encoded = urllib.parse.quote(query)
        return {
            **self.settings.DEFAULT_HEADERS,
            "Referer": self.settings.SEARCH_URL.format(query=encoded),
        }

    def _validate_text(self, text: str) -> bool:
        """Reject challenge pages and CAPTCHA interstitials."""
        if text.lstrip().startswith(("{", "[")):
            return True
        lower = text.lower()
        for marker in self._CHALLENGE_MARKERS:
            if marker in lower:
                self.logger.warning(
                    "[http_api] Challenge page detected (marker: '%s')",
                    marker,
                )
                return False
        for keyword in self.settings.CAPTCHA_KEYWORDS:
            if keyword in lower:
                self.logger.warning(
                    "[http_api] CAPTCHA keyword '%s' detected", keyword
                )
                return False
        return True

    def _escalate_delay(self) -> None:
        """Double the current delay up to the configured max."""
        max_delay = (
            self.settings.REQUEST_DELAY
            * self.settings.MAX_DELAY_MULTIPLIER
        )
        self._current_delay = min(self._current_delay * 2, max_delay)
        self.logger.warning(
            "[http_api] Rate-limited, delay escalated to %.1fs",
            self._current_delay,
        )

    def _fetch_get(
        self, url: str, headers: dict[str, str],
    ) -> str | None:
        """GET with retries and adaptive delay; returns the body text."""
        for attempt in range(self.settings.MAX_RETRIES):
            try:
                resp = self.session.get(
                    url,
                    headers=headers,
                    timeout=self._request_timeout,
                )
                if resp.status_code == 200:
                    if self._validate_text(resp.text):
                        return resp.text
                    self._escalate_delay()
                    time.sleep(self._current_delay)
                    continue
                self.logger.warning(
                    "[http_api] HTTP %d on attempt %d",
                    resp.status_code,
                    attempt + 1,
                )
                if resp.status_code in (429, 403):
                    self._escalate_delay()
                    time.sleep(self._current_delay)
            except Exception as exc:
                self.logger.warning(
                    "[http_api] Request error on attempt %d: %s",
                    attempt + 1,
                    exc,
                    exc_info=True,
                )
                time.sleep(self._current_delay * (attempt + 1))
        return None

    def _fetch_cloudscraper(
        self, url: str, headers: dict[str, str],
    ) -> str | None:
        """Single cloudscraper attempt used after curl_cffi gives up."""
        try:
            _cs: Any = cloudscraper
            scraper: Any = _cs.create_scraper()
            resp: Any = scraper.get(
                url, headers=headers, timeout=self._request_timeout,
            )
            if resp.status_code == 200:
                text = str(resp.text)
                return text if self._validate_text(text) else None
            self.logger.warning(
                "[http_api] cloudscraper HTTP %d", resp.status_code
            )
        except Exception as exc:
            self.logger.error(
                "[http_api] cloudscraper fallback failed: %s",
                exc,
                exc_info=True,
            )
        return None

    def search(self, query: str, limit: int) -> list[Listing]:
        """Search the marketplace API for *query*, up to *limit* items."""
        url = self.settings.SEARCH_API_URL.format(
            query=urllib.parse.quote(query), limit=limit
        )
        headers = self._build_headers(query)

        text = self._fetch_get(url, headers)
        if text is None:
            self.logger.info(
                "[http_api] curl_cffi exhausted, "
                "falling back to cloudscraper",
            )
            text = self._fetch_cloudscraper(url, headers)
        if text is None:
            return []

        try:
            payload: Any = json.loads(text)
        except json.JSONDecodeError as exc:
            self.logger.warning(
                "[http_api] Response is not JSON: %s", exc
            )
            return []
        return self.extractor.extract(payload, limit)
