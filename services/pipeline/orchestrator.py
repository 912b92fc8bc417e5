"""Bounded, retrying, cached fan-out over the market-data source.

One task per symbol runs fetch -> select -> metrics -> risk -> signal. Every
outbound attempt holds a slot of a shared semaphore, so at most
``max_concurrency`` fetches are in flight no matter how many symbols queue.
A symbol that fails ends up with an ``error`` string; siblings are untouched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

from core.backoff import backoff_request
from core.errors import InputValidationError, ModelUnavailableError, OptionScoutError
from core.logging import jlog, with_trace
from services.options.chain import OptionsQuery, quotes_from_payload
from services.options.select import OptionAnalysis, OptionSelector
from services.pipeline.context import PipelineContext
from services.sentiment.fetchers import parse_news
from services.sentiment.filters import validate_text
from services.sentiment.scoring import OverallSentiment
from services.sentiment.types import NewsItem, ScoredItem, SentimentResult, SymbolSentiment
from services.signals.synthesizer import SignalSynthesizer
from services.signals.types import OptionAnalysisView, SymbolOptionsAnalysis, TradingSignal

T = TypeVar("T")

logger = logging.getLogger("optionscout.orchestrator")


@dataclass(slots=True)
class SymbolOutcome:
    analysis: SymbolOptionsAnalysis
    signal: Optional[TradingSignal] = None
    filtered: bool = False
    options_analyzed: int = 0


def _view(analysis: OptionAnalysis) -> OptionAnalysisView:
    return OptionAnalysisView(
        contract_type=analysis.contract_type,
        contract_key=analysis.quote.contract_key,
        ask=analysis.quote.ask,
        volume=analysis.quote.volume,
        open_interest=analysis.quote.open_interest,
        option_score=analysis.option_score,
        undervalued_indicators=list(analysis.undervalued_indicators),
    )


class FetchOrchestrator:
    def __init__(self, context: PipelineContext, *, trace_id: Optional[str] = None) -> None:
        self.ctx = context
        self.trace_id = trace_id
        self._gate = asyncio.Semaphore(context.settings.max_concurrency)
        self.selector = OptionSelector(context.scoring.selector)
        self.synthesizer = SignalSynthesizer(context.scoring)
        self.api_calls = 0
        self.in_flight = 0
        self.peak_in_flight = 0

    def options_query(self) -> OptionsQuery:
        return OptionsQuery(feed=self.ctx.settings.options_feed, limit=self.ctx.scoring.selector.query_limit)

    def _count_attempt(self, attempt: int) -> None:
        self.api_calls += 1

    async def _tracked(self, call: Callable[[], Awaitable[T]]) -> T:
        self.in_flight += 1
        self.peak_in_flight = max(self.peak_in_flight, self.in_flight)
        try:
            return await call()
        finally:
            self.in_flight -= 1

    async def _fetch(self, label: str, call: Callable[[], Awaitable[T]]) -> T:
        settings = self.ctx.settings
        return await backoff_request(
            lambda: self._tracked(call),
            max_attempts=settings.max_attempts,
            base_delay=settings.backoff_base,
            timeout=settings.request_timeout,
            label=label,
            sleep=self.ctx.sleep,
            on_attempt=self._count_attempt,
            gate=self._gate,
        )

    async def fetch_news(self) -> List[NewsItem]:
        payload = await self._fetch("news", self.ctx.news_source.fetch_news)
        return parse_news(payload)

    async def fetch_options(self, symbol: str) -> Tuple[Mapping[str, Any], bool]:
        """Return ``(payload, cache_hit)`` for ``symbol``."""

        query = self.options_query()

        async def load() -> Mapping[str, Any]:
            return await self._fetch(
                f"options:{symbol}",
                lambda: self.ctx.options_source.fetch_options(symbol, query),
            )

        return await self.ctx.options_cache.get_or_load(query.cache_key(symbol), load)

    async def _infer(self, texts: Sequence[str]) -> List[SentimentResult]:
        model = self.ctx.sentiment_model
        if model is None or not model.ready:
            raise ModelUnavailableError("sentiment model not initialised")
        loop = asyncio.get_running_loop()
        try:
            results = await asyncio.wait_for(
                loop.run_in_executor(None, model.predict_batch, list(texts)),
                timeout=self.ctx.settings.request_timeout,
            )
        except asyncio.TimeoutError as exc:
            raise ModelUnavailableError("sentiment inference timed out") from exc
        if len(results) != len(texts):
            raise ModelUnavailableError(f"{model.name} returned {len(results)} results for {len(texts)} texts")
        return results

    async def score_headlines(self, items: Sequence[NewsItem]) -> Tuple[List[ScoredItem], List[str]]:
        """Score headlines through the cache; returns ``(scored, rejections)``."""

        max_length = self.ctx.settings.max_text_length
        cache = self.ctx.sentiment_cache
        accepted: List[NewsItem] = []
        rejected: List[str] = []
        for item in items:
            try:
                validate_text(item.headline, max_length)
            except InputValidationError as exc:
                rejected.append(f"headline rejected: {exc}")
                continue
            accepted.append(item)

        known: Dict[str, SentimentResult] = {}
        pending: List[str] = []
        for item in accepted:
            text = item.headline
            if text in known or text in pending:
                continue
            cached = cache.get(text)
            if cached is None:
                pending.append(text)
            else:
                known[text] = cached

        if pending:
            results = await self._infer(pending)
            cache.put_many(zip(pending, results))
            known.update(zip(pending, results))
            jlog("sentiment.scored", scored=len(pending), cached=len(known) - len(pending))

        return [ScoredItem(item=item, result=known[item.headline]) for item in accepted], rejected

    async def analyze_symbol(
        self,
        symbol: str,
        sentiment: SymbolSentiment,
        overall: OverallSentiment,
    ) -> SymbolOutcome:
        try:
            payload, _ = await self.fetch_options(symbol)
            quotes = quotes_from_payload(payload)
            now = self.ctx.clock()
            analysis = self.selector.select(symbol, quotes, sentiment.score, now.date())
            if analysis is None:
                return SymbolOutcome(analysis=SymbolOptionsAnalysis(symbol=symbol, sentiment_score=sentiment.score))
            signal = self.synthesizer.synthesize(
                symbol,
                analysis,
                sentiment.score,
                overall,
                today=now.date(),
                timestamp=now.timestamp(),
            )
            admitted = self.synthesizer.admit(signal)
            return SymbolOutcome(
                analysis=SymbolOptionsAnalysis(
                    symbol=symbol,
                    sentiment_score=sentiment.score,
                    options_analysis=[_view(analysis)],
                ),
                signal=signal if admitted else None,
                filtered=not admitted,
                options_analyzed=1,
            )
        except OptionScoutError as exc:
            error = str(exc)
        except Exception as exc:  # noqa: BLE001 - one symbol must not sink the batch
            logger.exception("symbol.crashed", extra=with_trace({"symbol": symbol}, trace_id=self.trace_id))
            error = f"internal error: {exc}"
        logger.warning("symbol.failed", extra=with_trace({"symbol": symbol, "error": error}, trace_id=self.trace_id))
        return SymbolOutcome(
            analysis=SymbolOptionsAnalysis(symbol=symbol, sentiment_score=sentiment.score, error=error)
        )

    async def analyze_symbols(
        self,
        symbols: Sequence[str],
        sentiments: Mapping[str, SymbolSentiment],
        overall: OverallSentiment,
    ) -> List[SymbolOutcome]:
        """Fan out one task per symbol; cancellation reaches every task."""

        tasks = [
            self.analyze_symbol(
                symbol,
                sentiments.get(symbol)
                or SymbolSentiment(symbol=symbol, score=0.5, headlines=0, positive=0.0, negative=0.0),
                overall,
            )
            for symbol in symbols
        ]
        return list(await asyncio.gather(*tasks))


__all__ = ["FetchOrchestrator", "SymbolOutcome"]
