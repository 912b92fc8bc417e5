"""Filtering utilities for sentiment ingestion."""

from __future__ import annotations

from typing import Iterable, List, Set

from core.errors import InputValidationError
from services.sentiment.types import NewsItem


def dedupe(items: Iterable[NewsItem]) -> List[NewsItem]:
    """Deduplicate news items by headline text, keeping the first occurrence.

    Symbols attached to later duplicates are merged into the kept item.
    """
    order: List[str] = []
    merged: dict[str, NewsItem] = {}
    for item in items:
        existing = merged.get(item.headline)
        if existing is None:
            order.append(item.headline)
            merged[item.headline] = item
        elif not item.symbols <= existing.symbols:
            merged[item.headline] = NewsItem(
                headline=existing.headline,
                symbols=existing.symbols | item.symbols,
                id=existing.id,
                source=existing.source,
            )
    return [merged[h] for h in order]


def validate_text(text: str, max_length: int) -> str:
    """Return ``text`` unchanged or raise :class:`InputValidationError`."""
    if not isinstance(text, str) or not text.strip():
        raise InputValidationError("text is empty")
    if len(text) > max_length:
        raise InputValidationError(f"text length {len(text)} exceeds {max_length}")
    return text


def symbols_of(items: Iterable[NewsItem]) -> List[str]:
    """Every symbol mentioned across ``items``, in first-seen order."""
    seen: Set[str] = set()
    out: List[str] = []
    for item in items:
        for symbol in sorted(item.symbols):
            if symbol not in seen:
                seen.add(symbol)
                out.append(symbol)
    return out
