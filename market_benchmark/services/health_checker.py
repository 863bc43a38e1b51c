# market_benchmark/services/health_checker.py

"""Marketplace connectivity health checker."""

import asyncio
import logging
import time
import urllib.parse
from dataclasses import dataclass

from curl_cffi import requests as curl_requests

from market_benchmark.config.settings import Settings

logger = logging.getLogger("market_benchmark.health")

_HEALTH_TIMEOUT = 10  # seconds per probe
_SLOW_THRESHOLD_MS = 5000


@dataclass
class HealthResult:
    """Result of a single endpoint health check."""

    target: str
    status: str  # "ok", "slow", "down"
    latency_ms: float
    message: str


def default_targets() -> dict[str, str]:
    """Endpoints the acquisition tiers depend on."""
    return {
        "homepage": Settings.BASE_URL,
        "search_api": Settings.SEARCH_API_URL.format(
            query=urllib.parse.quote("sofá"), limit=1
        ),
    }


def probe_endpoint(target: str, url: str) -> HealthResult:
    """Probe a single marketplace endpoint for connectivity."""
    session = curl_requests.Session(
        impersonate=Settings.IMPERSONATE_BROWSER
    )
    headers = {**Settings.DEFAULT_HEADERS, "Referer": Settings.BASE_URL}

    start = time.monotonic()
    try:
        resp = session.get(url, headers=headers, timeout=_HEALTH_TIMEOUT)
        elapsed_ms = (time.monotonic() - start) * 1000

        if resp.status_code != 200:
            return HealthResult(
                target=target,
                status="down",
                latency_ms=elapsed_ms,
                message=f"HTTP {resp.status_code}",
            )

        if elapsed_ms > _SLOW_THRESHOLD_MS:
            return HealthResult(
                target=target,
                status="slow",
                latency_ms=elapsed_ms,
                message="High latency",
            )

        return HealthResult(
            target=target,
            status="ok",
            latency_ms=elapsed_ms,
            message="",
        )

    except Exception as exc:
        elapsed_ms = (time.monotonic() - start) * 1000
        return HealthResult(
            target=target,
            status="down",
            latency_ms=elapsed_ms,
            message=str(exc)[:80],
        )
    finally:
        session.close()


class HealthChecker:
    """Runs concurrent health probes against marketplace endpoints."""

    def __init__(self, targets: dict[str, str] | None = None) -> None:
        self.targets = targets or default_targets()

    async def check_all(self) -> list[HealthResult]:
        """Probe every endpoint concurrently."""
        tasks = [
            asyncio.to_thread(probe_endpoint, target, url)
            for target, url in self.targets.items()
        ]
        results: list[HealthResult] = list(await asyncio.gather(*tasks))
        for r in results:
            logger.info(
                "Health check %s: %s (%.0fms) %s",
                r.target,
                r.status,
                r.latency_ms,
                r.message,
            )
        return results
