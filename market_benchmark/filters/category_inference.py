# market_benchmark/filters/category_inference.py

"""Accent-insensitive text folding and category inference from names."""

import unicodedata

from market_benchmark.config.settings import Settings


def fold_text(text: str) -> str:
    """Lowercase, strip accents and collapse whitespace.

    ``"  Sofá   Retrátil "`` becomes ``"sofa retratil"``.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(
        ch for ch in decomposed if not unicodedata.combining(ch)
    )
    return " ".join(stripped.lower().split())


def infer_category(name: str) -> str:
    """Map a listing name to a catalogue category by keyword."""
    folded = fold_text(name)
    for keyword, category in Settings.CATEGORY_KEYWORDS:
        if keyword in folded:
            return category
    return Settings.DEFAULT_CATEGORY
