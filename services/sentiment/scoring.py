"""Aggregation of per-headline sentiment into symbol and market views."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Literal, Sequence

from core.config import SentimentConfig
from services.sentiment.types import ScoredItem, SymbolSentiment

OverallSentiment = Literal["bullish", "bearish", "neutral"]


def _signed(item: ScoredItem) -> tuple[float, float]:
    result = item.result
    if result.label == "positive":
        return result.confidence, 0.0
    if result.label == "negative":
        return 0.0, result.confidence
    return 0.0, 0.0


def symbol_sentiment(symbol: str, items: Sequence[ScoredItem]) -> SymbolSentiment:
    """Score in [0, 1]: ``0.5 + 0.5 * (sum_pos - sum_neg) / n``; neutral counts in ``n``."""

    if not items:
        return SymbolSentiment(symbol=symbol, score=0.5, headlines=0, positive=0.0, negative=0.0)
    positive = negative = 0.0
    for item in items:
        pos, neg = _signed(item)
        positive += pos
        negative += neg
    score = 0.5 + 0.5 * (positive - negative) / len(items)
    return SymbolSentiment(
        symbol=symbol,
        score=max(0.0, min(1.0, score)),
        headlines=len(items),
        positive=positive,
        negative=negative,
    )


def by_symbol(items: Iterable[ScoredItem]) -> Dict[str, SymbolSentiment]:
    grouped: Dict[str, List[ScoredItem]] = defaultdict(list)
    for item in items:
        for symbol in item.item.symbols:
            grouped[symbol].append(item)
    return {symbol: symbol_sentiment(symbol, grouped[symbol]) for symbol in sorted(grouped)}


def overall_sentiment(items: Iterable[ScoredItem], config: SentimentConfig | None = None) -> OverallSentiment:
    """Bullish when positive confidence outweighs negative by the configured ratio."""

    ratio = (config or SentimentConfig()).overall_ratio
    positive = negative = 0.0
    for item in items:
        pos, neg = _signed(item)
        positive += pos
        negative += neg
    if positive > negative * ratio:
        return "bullish"
    if negative > positive * ratio:
        return "bearish"
    return "neutral"


def label_for(score: float) -> OverallSentiment:
    if score > 0.55:
        return "bullish"
    if score < 0.45:
        return "bearish"
    return "neutral"


__all__ = ["OverallSentiment", "by_symbol", "label_for", "overall_sentiment", "symbol_sentiment"]
