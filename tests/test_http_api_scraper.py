# tests/test_http_api_scraper.py

"""Tests for the browser-less HTTP API scraper."""

import json
import unittest
from unittest.mock import MagicMock, patch

from market_benchmark.config.settings import Settings
from market_benchmark.models.listing import SourceTier
from market_benchmark.scrapers.http_api_scraper import HttpApiScraper

SESSION_PATH = (
    "market_benchmark.scrapers.http_api_scraper.curl_requests.Session"
)
CLOUDSCRAPER_PATH = (
    "market_benchmark.scrapers.http_api_scraper.cloudscraper.create_scraper"
)

PAYLOAD = json.dumps(
    {
        "items": [
            {"item_basic": {"name": "Sofá Cama", "price": 99990000}},
            {"item_basic": {"name": "Sofá Canto", "price": 149990000}},
        ]
    }
)


def _resp(status: int, text: str) -> MagicMock:
    """Build a fake HTTP response."""
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    return resp


class TestHttpApiScraper(unittest.TestCase):
    """HttpApiScraper.search behaviour."""

    @patch(SESSION_PATH)
    def test_parses_json_payload(self, mock_session_cls: MagicMock) -> None:
        """A 200 JSON body is handed to the API extractor."""
        mock_session_cls.return_value.get.return_value = _resp(200, PAYLOAD)
        listings = HttpApiScraper().search("sofá", 5)
        self.assertEqual([lst.name for lst in listings],
                         ["Sofá Cama", "Sofá Canto"])
        self.assertTrue(
            all(lst.source_tier is SourceTier.API for lst in listings)
        )

    @patch(SESSION_PATH)
    def test_request_carries_referer(self, mock_session_cls: MagicMock) -> None:
        """Requests send the search page as Referer."""
        get = mock_session_cls.return_value.get
        get.return_value = _resp(200, PAYLOAD)
        HttpApiScraper().search("sofá", 5)
        headers = get.call_args.kwargs["headers"]
        self.assertTrue(headers["Referer"].startswith(Settings.SEARCH_URL[:30]))
        self.assertIn("limit=5", get.call_args.args[0])

    @patch(CLOUDSCRAPER_PATH)
    @patch(SESSION_PATH)
    def test_rate_limit_escalates_then_falls_back(
        self,
        mock_session_cls: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """429s escalate the delay and end in the cloudscraper path."""
        mock_session_cls.return_value.get.return_value = _resp(429, "")
        mock_create.return_value.get.return_value = _resp(200, PAYLOAD)

        scraper = HttpApiScraper()
        listings = scraper.search("sofá", 5)

        self.assertEqual(len(listings), 2)
        self.assertEqual(
            mock_session_cls.return_value.get.call_count,
            Settings.MAX_RETRIES,
        )
        self.assertGreater(scraper._current_delay, Settings.REQUEST_DELAY)
        self.assertLessEqual(
            scraper._current_delay,
            Settings.REQUEST_DELAY * Settings.MAX_DELAY_MULTIPLIER,
        )

    @patch(CLOUDSCRAPER_PATH)
    @patch(SESSION_PATH)
    def test_captcha_page_yields_nothing(
        self,
        mock_session_cls: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Challenge pages on both clients give an empty result."""
        page = "<html>Please verify you are human</html>"
        mock_session_cls.return_value.get.return_value = _resp(200, page)
        mock_create.return_value.get.return_value = _resp(200, page)
        self.assertEqual(HttpApiScraper().search("sofá", 5), [])

    @patch(CLOUDSCRAPER_PATH)
    @patch(SESSION_PATH)
    def test_network_errors_yield_nothing(
        self,
        mock_session_cls: MagicMock,
        mock_create: MagicMock,
    ) -> None:
        """Exceptions on every attempt are absorbed."""
        mock_session_cls.return_value.get.side_effect = ConnectionError("x")
        mock_create.side_effect = RuntimeError("cloudscraper broken")
        self.assertEqual(HttpApiScraper().search("sofá", 5), [])

    @patch(SESSION_PATH)
    def test_non_json_body(self, mock_session_cls: MagicMock) -> None:
        """A 200 body that is not JSON yields nothing."""
        mock_session_cls.return_value.get.return_value = _resp(
            200, "<html><body>ok</body></html>"
        )
        self.assertEqual(HttpApiScraper().search("sofá", 5), [])


if __name__ == "__main__":
    unittest.main()
