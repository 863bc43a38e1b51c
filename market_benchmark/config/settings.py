# market_benchmark/config/settings.py

"""Central configuration for the market_benchmark engine."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    """Central configuration for the market_benchmark engine."""

    # --- Marketplace ---
    BASE_URL: str = "https://shopee.com.br"
    SEARCH_URL: str = "https://shopee.com.br/search?keyword={query}"
    SEARCH_API_URL: str = (
        "https://shopee.com.br/api/v4/search/search_items"
        "?by=relevancy&keyword={query}&limit={limit}"
        "&newest=0&order=desc&page_type=search"
    )
    API_RESPONSE_MARKER: str = "search_items"
    API_PRICE_SCALE: int = 100_000     # Minor-unit scale of API prices
    CURRENCY: str = "BRL"

    # --- Acquisition timeouts (seconds) ---
    NAVIGATION_TIMEOUT: float = 30.0
    API_WAIT_TIMEOUT: float = 8.0      # Interception window
    DOM_SETTLE_TIMEOUT: float = 10.0

    # --- Pacing & limits ---
    PACING_DELAY: float = float(os.getenv("MARKET_PACING_DELAY", "1.0"))
    DEFAULT_LIMIT: int = 20
    MAX_LIMIT: int = 100
    COMPETITOR_LIMIT: int = 25
    MAX_QUERIES_PER_CATEGORY: int = 3
    TOP_PERFORMERS_SIZE: int = 10
    DEDUP_NAME_PREFIX: int = 40

    # --- Browser sessions ---
    HEADLESS: bool = _env_flag("MARKET_HEADLESS", True)
    MAX_BROWSER_SESSIONS: int = int(
        os.getenv("MARKET_MAX_BROWSER_SESSIONS", "2")
    )
    SESSION_ACQUIRE_TIMEOUT: float = 60.0
    BROWSER_ARGS: list[str] = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-blink-features=AutomationControlled",
        "--no-first-run",
        "--disable-gpu",
    ]
    USER_AGENTS: list[str] = [
        (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
        (
            "Mozilla/5.0 (X11; Linux x86_64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/131.0.0.0 Safari/537.36"
        ),
    ]
    VIEWPORT: dict[str, int] = {"width": 1920, "height": 1080}
    LOCALE: str = "pt-BR"
    TIMEZONE: str = "America/Sao_Paulo"

    # --- HTTP API tier (opt-in) ---
    HTTP_TIER_ENABLED: bool = _env_flag("MARKET_HTTP_TIER", False)
    REQUEST_TIMEOUT: int = 15
    REQUEST_DELAY: float = 2.0
    MAX_RETRIES: int = 3
    MAX_DELAY_MULTIPLIER: int = 8
    CAPTCHA_KEYWORDS: list[str] = [
        "captcha",
        "verify you are human",
        "unusual traffic",
        "automated requests",
        "/verify/traffic",
    ]
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": "application/json, text/plain, */*",
        "Accept-Language": "pt-BR,pt;q=0.9,en;q=0.8",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "X-Requested-With": "XMLHttpRequest",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = (
        BASE_DIR / "market_benchmark" / "config" / "selectors.json"
    )
    LOGS_DIR: Path = Path(
        os.getenv("MARKET_LOGS_DIR", str(BASE_DIR / "logs"))
    )

    # --- Logging ---
    CONSOLE_LOG_LEVEL: str = os.getenv("MARKET_LOG_LEVEL", "WARNING")
    LOG_KEEP_RUNS: int = int(os.getenv("MARKET_LOG_KEEP_RUNS", "20"))

    # --- Catalogue ---
    CATEGORY_QUERIES: dict[str, list[str]] = {
        "moveis e estofados": [
            "sofá 3 lugares",
            "poltrona reclinável",
            "mesa jantar madeira",
        ],
        "moveis": ["sofá", "poltrona", "mesa jantar"],
        "furniture": ["sofá", "poltrona", "mesa jantar"],
        "sofas": ["sofá 2 lugares", "sofá 3 lugares", "sofá retrátil"],
        "poltronas": ["poltrona reclinável", "poltrona presidente"],
        "mesas": ["mesa jantar", "mesa centro", "mesa escritório"],
        "cadeiras": ["cadeira escritório", "cadeira gamer"],
        "camas": ["cama box", "cama solteiro", "cama casal"],
        "guarda-roupas": ["guarda roupa", "roupeiro"],
        "estantes": ["estante livros", "estante home theater"],
    }
    # Ordered: first matching keyword wins
    CATEGORY_KEYWORDS: list[tuple[str, str]] = [
        ("sofa", "Sofás"),
        ("poltrona", "Poltronas"),
        ("mesa", "Mesas"),
        ("cadeira", "Cadeiras"),
        ("cama", "Camas"),
        ("guarda", "Guarda-roupas"),
        ("roupeiro", "Guarda-roupas"),
        ("estante", "Estantes"),
    ]
    DEFAULT_CATEGORY: str = "Móveis Gerais"
