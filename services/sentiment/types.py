"""Dataclasses for sentiment processing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Literal, Mapping, Optional

Label = Literal["positive", "negative", "neutral"]
LABELS: tuple[Label, ...] = ("positive", "negative", "neutral")


@dataclass(frozen=True, slots=True)
class NewsItem:
    """Normalized headline from the news feed."""

    headline: str
    symbols: FrozenSet[str] = field(default_factory=frozenset)
    id: Optional[str] = None
    source: str = "alpaca"

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> Optional["NewsItem"]:
        headline = payload.get("headline") or payload.get("title")
        if not isinstance(headline, str):
            return None
        raw_symbols = payload.get("symbols") or []
        symbols = frozenset(str(s).strip().upper() for s in raw_symbols if isinstance(s, str) and s.strip())
        nid = payload.get("id")
        return cls(headline=headline, symbols=symbols, id=str(nid) if nid is not None else None)


@dataclass(frozen=True, slots=True)
class SentimentResult:
    """Model output for one text."""

    label: Label
    confidence: float  # [0, 1]
    model: str = "rule"
    scores: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ScoredItem:
    """A headline paired with its sentiment."""

    item: NewsItem
    result: SentimentResult


@dataclass(frozen=True, slots=True)
class SymbolSentiment:
    symbol: str
    score: float  # [0, 1], 0.5 neutral
    headlines: int
    positive: float
    negative: float


__all__ = ["LABELS", "Label", "NewsItem", "ScoredItem", "SentimentResult", "SymbolSentiment"]
