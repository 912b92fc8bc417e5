"""One end-to-end analysis batch."""

from __future__ import annotations

import logging
import time
from typing import Iterable, List, Optional, Tuple

from core.cache import TTLCache
from core.errors import FetchExhaustedError
from core.logging import new_trace_id, with_trace
from services.options.universe import eligible_symbols
from services.pipeline.context import PipelineContext
from services.pipeline.orchestrator import FetchOrchestrator
from services.sentiment.filters import dedupe, symbols_of
from services.sentiment.scoring import by_symbol, overall_sentiment
from services.sentiment.types import NewsItem, ScoredItem
from services.signals.portfolio import PortfolioAggregator
from services.signals.types import AnalysisReport, ExecutionMetadata, HeadlineSentiment, TradingSignal

logger = logging.getLogger("optionscout.pipeline")


def _stats(caches: Iterable[TTLCache]) -> Tuple[int, int]:
    hits = misses = 0
    for cache in caches:
        hits += cache.stats.hits
        misses += cache.stats.misses
    return hits, misses


def _rank(signals: Iterable[TradingSignal]) -> List[TradingSignal]:
    return sorted(signals, key=lambda s: (-s.confidence, s.risk_score, s.symbol))


def _headline_rows(scored: Iterable[ScoredItem]) -> List[HeadlineSentiment]:
    return [
        HeadlineSentiment(
            headline=row.item.headline,
            symbols=sorted(row.item.symbols),
            sentiment=row.result.label,
            confidence=row.result.confidence,
        )
        for row in scored
    ]


async def run_batch(
    context: PipelineContext,
    symbols: Optional[Iterable[str]] = None,
    *,
    trace_id: Optional[str] = None,
) -> AnalysisReport:
    """Fetch news, score it, analyse every eligible symbol and aggregate.

    ``symbols`` defaults to every ticker mentioned in the news. A missing
    sentiment backend raises :class:`ModelUnavailableError`; a failed news
    fetch is recorded in ``execution_metadata.errors`` and the batch carries
    on with no headlines.
    """

    trace_id = trace_id or new_trace_id()
    started = time.perf_counter()
    hits_before, misses_before = _stats(context.caches)
    orchestrator = FetchOrchestrator(context, trace_id=trace_id)
    errors: List[str] = []

    await context.ensure_model()

    news: List[NewsItem]
    try:
        news = dedupe(await orchestrator.fetch_news())
    except FetchExhaustedError as exc:
        errors.append(f"news: {exc}")
        news = []

    scored, rejected = await orchestrator.score_headlines(news)
    errors.extend(rejected)
    sentiments = by_symbol(scored)
    overall = overall_sentiment(scored, context.scoring.sentiment)

    requested = list(symbols) if symbols is not None else symbols_of(news)
    eligible, crypto_filtered = eligible_symbols(requested)
    outcomes = await orchestrator.analyze_symbols(eligible, sentiments, overall)

    signals = _rank(o.signal for o in outcomes if o.signal is not None)
    aggregator = PortfolioAggregator(context.scoring.portfolio)
    summary = aggregator.summarize(signals, timestamp=context.clock())
    risk = aggregator.risk_metrics(signals)

    hits_after, misses_after = _stats(context.caches)
    hits, misses = hits_after - hits_before, misses_after - misses_before
    metadata = ExecutionMetadata(
        trace_id=trace_id,
        scoring_version=context.scoring.version,
        processing_time_ms=int((time.perf_counter() - started) * 1000),
        symbols_analyzed=len(eligible),
        options_analyzed=sum(o.options_analyzed for o in outcomes),
        crypto_symbols_filtered=crypto_filtered,
        signals_filtered=sum(1 for o in outcomes if o.filtered),
        api_calls_made=orchestrator.api_calls,
        cache_hit_rate=hits / (hits + misses) if hits + misses else 0.0,
        errors=errors,
    )
    logger.info(
        "batch.complete",
        extra=with_trace(
            {
                "symbols": metadata.symbols_analyzed,
                "signals": len(signals),
                "api_calls": metadata.api_calls_made,
                "elapsed_ms": metadata.processing_time_ms,
            },
            trace_id=trace_id,
        ),
    )
    return AnalysisReport(
        market_summary=summary,
        trading_signals=signals,
        sentiment_analysis=_headline_rows(scored),
        risk_metrics=risk,
        symbol_analyses=[o.analysis for o in outcomes],
        execution_metadata=metadata,
    )


__all__ = ["run_batch"]
