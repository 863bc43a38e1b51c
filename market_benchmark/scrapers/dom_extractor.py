# market_benchmark/scrapers/dom_extractor.py

"""Extract Listings from rendered search-page markup.

Every field is located through an ordered list of candidate CSS
selectors (current markup first, generic fallbacks last) loaded from
``selectors.json``. Candidates are resolved independently per field, so
drift in one field's markup does not disable the others.
"""

import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from market_benchmark.config.settings import Settings
from market_benchmark.models.listing import Listing, SourceTier, to_price

logger = logging.getLogger("market_benchmark.dom_extractor")

FIELDS: tuple[str, ...] = (
    "item_container",
    "name",
    "price",
    "sold_count",
    "rating",
    "url",
)

_NUMBER_RE = re.compile(r"\d[\d.,\s]*")
_SOLD_RE = re.compile(
    r"(\d+(?:[.,]\d+)*)\s*(mil|k)?", re.IGNORECASE
)
_RATING_RE = re.compile(r"\d+(?:[.,]\d+)?")


def load_selectors(source: str = "shopee") -> dict[str, list[str]]:
    """Load candidate selector lists for *source* from selectors.json."""
    with open(Settings.SELECTORS_PATH, encoding="utf-8") as f:
        all_selectors: dict[str, Any] = json.load(f)
    raw: dict[str, Any] = all_selectors.get(source, {})
    return {
        name: [str(sel) for sel in raw.get(name, [])]
        for name in FIELDS
    }


def _normalise_number(token: str) -> str:
    """Rewrite a locale-formatted number with '.' as decimal point.

    When both separators appear, the right-most one is the decimal
    mark. A lone separator is a thousands mark if it repeats or is
    followed by exactly three digits (``1.299`` / ``1,299``).
    """
    last_dot = token.rfind(".")
    last_comma = token.rfind(",")
    if last_dot >= 0 and last_comma >= 0:
        decimal_mark = "." if last_dot > last_comma else ","
        thousands = "," if decimal_mark == "." else "."
        return token.replace(thousands, "").replace(decimal_mark, ".")
    if last_dot < 0 and last_comma < 0:
        return token
    sep = "," if last_comma >= 0 else "."
    parts = token.split(sep)
    if len(parts) > 2 or len(parts[-1]) == 3:
        return token.replace(sep, "")
    return token.replace(sep, ".")


def parse_price(text: str | None) -> Decimal | None:
    """Parse a price like ``'R$ 1.299,90'`` or ``'$1,299.90'``.

    Only the first number is used, so ranges such as
    ``'R$ 10,00 - R$ 20,00'`` yield the lower bound. Returns ``None``
    for empty, non-numeric or zero prices.
    """
    if not text:
        return None
    match = _NUMBER_RE.search(text)
    if not match:
        return None
    token = re.sub(r"\s", "", match.group()).rstrip(".,")
    try:
        price = to_price(Decimal(_normalise_number(token)))
    except (InvalidOperation, ValueError):
        return None
    return price if price > 0 else None


def parse_sold_count(text: str | None) -> int:
    """Parse sold counters like ``'1,2mil vendidos'`` or ``'2k sold'``."""
    if not text:
        return 0
    match = _SOLD_RE.search(text)
    if not match:
        return 0
    number, multiplier = match.group(1), match.group(2)
    try:
        if multiplier:
            return int(float(number.replace(",", ".")) * 1000)
        return int(re.sub(r"[.,]", "", number))
    except ValueError:
        return 0


def parse_rating(text: str | None) -> float | None:
    """Parse a star rating, clamped to [0, 5]; None when absent."""
    if not text:
        return None
    match = _RATING_RE.search(text)
    if not match:
        return None
    value = float(match.group().replace(",", "."))
    return min(max(value, 0.0), 5.0)


class DomExtractor:
    """Selector-cascade extractor over rendered HTML."""

    def __init__(
        self,
        selectors: dict[str, list[str]] | None = None,
    ) -> None:
        self.selectors = (
            selectors if selectors is not None else load_selectors()
        )

    def _resolve_container(self, soup: BeautifulSoup) -> list[Tag]:
        """Return item containers from the first matching candidate."""
        for selector in self.selectors.get("item_container", []):
            found = soup.select(selector)
            if found:
                logger.debug(
                    "Container selector '%s' matched %d items",
                    selector,
                    len(found),
                )
                return found
        return []

    def _resolve_field(
        self, field_name: str, containers: list[Tag],
    ) -> str | None:
        """Pick the first candidate matching inside any container."""
        for selector in self.selectors.get(field_name, []):
            if any(c.select_one(selector) for c in containers):
                logger.debug(
                    "Field '%s' resolved to selector '%s'",
                    field_name,
                    selector,
                )
                return selector
        return None

    @staticmethod
    def _text(container: Tag, selector: str | None) -> str:
        if selector is None:
            return ""
        el = container.select_one(selector)
        return el.get_text(" ", strip=True) if el else ""

    @staticmethod
    def _name(container: Tag, selector: str | None) -> str:
        """Element text, falling back to its ``title`` attribute."""
        if selector is None:
            return ""
        el = container.select_one(selector)
        if el is None:
            return ""
        text = el.get_text(" ", strip=True)
        if text:
            return text
        title = el.get("title", "")
        return str(title).strip() if title else ""

    @staticmethod
    def _href(container: Tag, selector: str | None) -> str:
        if selector is None:
            return ""
        el = container.select_one(selector)
        raw_href = el.get("href", "") if el else ""
        href = str(raw_href) if raw_href else ""
        return urljoin(Settings.BASE_URL, href) if href else ""

    def extract(
        self,
        rendered_page: str | BeautifulSoup,
        limit: int,
    ) -> list[Listing]:
        """Extract up to *limit* listings from a rendered page.

        An item is emitted only when both a name and a positive,
        parseable price are found. Missing sold counts default to 0
        and missing ratings stay unset.
        """
        if limit <= 0:
            return []
        soup = (
            rendered_page
            if isinstance(rendered_page, BeautifulSoup)
            else BeautifulSoup(rendered_page, "lxml")
        )

        containers = self._resolve_container(soup)
        if not containers:
            logger.warning("No item container selector matched")
            return []

        resolved = {
            name: self._resolve_field(name, containers)
            for name in FIELDS
            if name != "item_container"
        }
        if resolved["name"] is None or resolved["price"] is None:
            logger.warning(
                "Name or price selector unresolved (name=%s, price=%s)",
                resolved["name"],
                resolved["price"],
            )
            return []

        listings: list[Listing] = []
        for container in containers:
            if len(listings) >= limit:
                break
            name = self._name(container, resolved["name"])
            price = parse_price(
                self._text(container, resolved["price"])
            )
            if not name or price is None:
                continue
            listings.append(
                Listing(
                    name=name,
                    price=price,
                    source_tier=SourceTier.DOM,
                    sold_count=parse_sold_count(
                        self._text(container, resolved["sold_count"])
                    ),
                    rating=parse_rating(
                        self._text(container, resolved["rating"])
                    ),
                    url=self._href(container, resolved["url"]),
                )
            )

        logger.info(
            "DOM extraction yielded %d listings from %d containers",
            len(listings),
            len(containers),
        )
        return listings
