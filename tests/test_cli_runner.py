# tests/test_cli_runner.py

"""Tests for the headless CLI runner."""

import io
import json
import random
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

from market_benchmark.cli.runner import (
    _json_default,
    cli_analyze,
    cli_compete,
    run_health_check,
    to_json,
)
from market_benchmark.models.analysis import DataSource
from market_benchmark.scrapers.synthetic_generator import (
    SyntheticListingGenerator,
)
from market_benchmark.services.category_analyzer import CategoryAnalyzer
from market_benchmark.services.health_checker import HealthResult

ANALYZER_PATH = "market_benchmark.cli.runner.CategoryAnalyzer"


class _EmptyOrchestrator:
    """Orchestrator that never finds anything."""

    def acquire(
        self, query: str, limit: int, cancel: object = None,
    ) -> list[object]:
        return []


def _offline_analyzer() -> CategoryAnalyzer:
    return CategoryAnalyzer(
        orchestrator=_EmptyOrchestrator(),  # type: ignore[arg-type]
        pacing_delay=0,
        generator=SyntheticListingGenerator(random.Random(9)),
    )


class TestJsonEncoding(unittest.TestCase):
    """JSON serialisation of analysis results."""

    def test_default_encoder(self) -> None:
        """Decimals, datetimes and enums get JSON-friendly forms."""
        moment = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        self.assertEqual(_json_default(Decimal("12.50")), 12.5)
        self.assertEqual(
            _json_default(moment), "2026-01-02T03:04:05+00:00"
        )
        self.assertEqual(_json_default(DataSource.MIXED), "mixed")
        with self.assertRaises(TypeError):
            _json_default(object())


class TestCliRunner(unittest.IsolatedAsyncioTestCase):
    """cli_analyze / cli_compete / run_health_check."""

    async def test_to_json_round_trip(self) -> None:
        """A full analysis serialises to a parseable document."""
        result = await _offline_analyzer().analyze_category("sofás", 3)
        doc = json.loads(to_json(result))
        self.assertEqual(doc["data_source"], "synthetic")
        self.assertEqual(doc["total_listings"], 3)
        self.assertIsInstance(doc["price_statistics"]["median"], float)
        self.assertEqual(
            doc["top_performers"][0]["listing"]["source_tier"], "synthetic"
        )

    @patch(ANALYZER_PATH)
    async def test_cli_analyze_json(self, mock_cls: MagicMock) -> None:
        """JSON output goes to stdout with exit code 0."""
        result = await _offline_analyzer().analyze_category("mesas", 2)
        mock_cls.return_value.analyze_category = AsyncMock(
            return_value=result
        )
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = await cli_analyze("mesas", 2, None, "json")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(buffer.getvalue())["category"], "mesas")

    @patch(ANALYZER_PATH)
    async def test_cli_analyze_table(self, mock_cls: MagicMock) -> None:
        """Table output renders without error."""
        result = await _offline_analyzer().analyze_category("camas", 2)
        mock_cls.return_value.analyze_category = AsyncMock(
            return_value=result
        )
        with redirect_stdout(io.StringIO()):
            code = await cli_analyze("camas", 2, None, "table")
        self.assertEqual(code, 0)

    @patch(ANALYZER_PATH)
    async def test_cli_analyze_rejects_bad_input(
        self, mock_cls: MagicMock,
    ) -> None:
        """Contract errors turn into exit code 1."""
        mock_cls.return_value.analyze_category = AsyncMock(
            side_effect=ValueError("limit must be >= 1, got 0")
        )
        self.assertEqual(await cli_analyze("sofás", 0, None, "json"), 1)

    @patch(ANALYZER_PATH)
    async def test_cli_compete(self, mock_cls: MagicMock) -> None:
        """Competitor analysis prints JSON with the price position."""
        result = await _offline_analyzer().analyze_competitors(
            "sofá retrátil", Decimal("10"), 5
        )
        mock_cls.return_value.analyze_competitors = AsyncMock(
            return_value=result
        )
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = await cli_compete("sofá retrátil", "10", 5, "json")
        self.assertEqual(code, 0)
        doc = json.loads(buffer.getvalue())
        self.assertEqual(
            doc["price_comparison"]["price_position"], "below_market"
        )

    @patch("market_benchmark.services.health_checker.HealthChecker")
    async def test_health_check_exit_code(self, mock_cls: MagicMock) -> None:
        """Any endpoint down gives exit code 1."""
        mock_cls.return_value.check_all = AsyncMock(
            return_value=[
                HealthResult("homepage", "ok", 120.0, ""),
                HealthResult("search_api", "down", 0.0, "HTTP 403"),
            ]
        )
        with redirect_stdout(io.StringIO()):
            self.assertEqual(await run_health_check(), 1)


if __name__ == "__main__":
    unittest.main()
