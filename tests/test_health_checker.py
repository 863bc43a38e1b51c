# tests/test_health_checker.py

"""Tests for the marketplace health checker service."""

import unittest
from unittest.mock import MagicMock, patch

from market_benchmark.services.health_checker import (
    HealthChecker,
    HealthResult,
    default_targets,
    probe_endpoint,
)

SESSION_PATH = "market_benchmark.services.health_checker.curl_requests.Session"


class TestProbeEndpoint(unittest.TestCase):
    """Tests for the per-endpoint health probe function."""

    @patch(SESSION_PATH)
    def test_ok_status(self, mock_session_cls: MagicMock) -> None:
        """A fast 200 response should return 'ok' status."""
        mock_resp = MagicMock()
        mock_resp.status_code = 200
        mock_session_cls.return_value.get.return_value = mock_resp

        result = probe_endpoint("homepage", "https://shopee.com.br")
        self.assertEqual(result.status, "ok")
        self.assertEqual(result.target, "homepage")
        self.assertGreaterEqual(result.latency_ms, 0)
        mock_session_cls.return_value.close.assert_called_once()

    @patch(SESSION_PATH)
    def test_down_on_http_error(self, mock_session_cls: MagicMock) -> None:
        """A non-200 response should return 'down' status."""
        mock_resp = MagicMock()
        mock_resp.status_code = 403
        mock_session_cls.return_value.get.return_value = mock_resp

        result = probe_endpoint("search_api", "https://shopee.com.br/api")
        self.assertEqual(result.status, "down")
        self.assertIn("403", result.message)

    @patch(SESSION_PATH)
    def test_down_on_exception(self, mock_session_cls: MagicMock) -> None:
        """A network error should return 'down' status."""
        mock_session_cls.return_value.get.side_effect = ConnectionError(
            "Connection refused",
        )
        result = probe_endpoint("homepage", "https://shopee.com.br")
        self.assertEqual(result.status, "down")
        self.assertIn("Connection refused", result.message)
        mock_session_cls.return_value.close.assert_called_once()

    @patch("market_benchmark.services.health_checker.time.monotonic")
    @patch(SESSION_PATH)
    def test_slow_status(
        self,
        mock_session_cls: MagicMock,
        mock_monotonic: MagicMock,
    ) -> None:
        """A 200 slower than five seconds is 'slow'."""
        mock_resp = MagicMock()
        mock_resp.status_code = 200
        mock_session_cls.return_value.get.return_value = mock_resp
        mock_monotonic.side_effect = [100.0] + [106.0] * 5

        result = probe_endpoint("homepage", "https://shopee.com.br")
        self.assertEqual(result.status, "slow")
        self.assertAlmostEqual(result.latency_ms, 6000.0)


class TestHealthChecker(unittest.IsolatedAsyncioTestCase):
    """Tests for the HealthChecker orchestrator."""

    def test_default_targets(self) -> None:
        """The homepage and the search API are probed by default."""
        targets = default_targets()
        self.assertEqual(set(targets), {"homepage", "search_api"})
        self.assertIn("search_items", targets["search_api"])

    @patch("market_benchmark.services.health_checker.probe_endpoint")
    async def test_check_all_returns_all_targets(
        self, mock_probe: MagicMock,
    ) -> None:
        """check_all should return one result per target."""
        mock_probe.return_value = HealthResult(
            target="test",
            status="ok",
            latency_ms=100.0,
            message="",
        )

        checker = HealthChecker()
        results = await checker.check_all()

        self.assertEqual(len(results), len(checker.targets))
        self.assertEqual(mock_probe.call_count, len(checker.targets))


if __name__ == "__main__":
    unittest.main()
