from __future__ import annotations

import asyncio
from datetime import date

import pytest

from core.errors import ModelUnavailableError
from services.pipeline.orchestrator import FetchOrchestrator
from services.sentiment.types import NewsItem, SentimentResult, SymbolSentiment
from tests.fakes.market import (
    BrokenSentimentModel,
    FakeNewsSource,
    FakeOptionsSource,
    StaticSentimentModel,
    contract,
    snapshot,
)

EXPIRY = date(2025, 4, 4)


def _chain(symbol: str = "XYZ"):
    return {
        contract(symbol, EXPIRY, 50.0): snapshot(1200),
        contract(symbol, EXPIRY, 55.0): snapshot(300),
    }


def _neutral(symbol: str) -> SymbolSentiment:
    return SymbolSentiment(symbol=symbol, score=0.5, headlines=0, positive=0.0, negative=0.0)


def test_options_query_uses_configured_feed_and_limit(make_context) -> None:
    orchestrator = FetchOrchestrator(make_context(options_feed="opra"))
    query = orchestrator.options_query()
    assert query.params() == {"feed": "opra", "limit": 50}


def test_concurrency_never_exceeds_limit(make_context) -> None:
    source = FakeOptionsSource(delay=0.01, default=_chain())
    ctx = make_context(options=source, max_concurrency=10)
    symbols = [f"S{i:02d}" for i in range(50)]

    async def runner():
        orchestrator = FetchOrchestrator(ctx)
        outcomes = await orchestrator.analyze_symbols(symbols, {}, "neutral")
        return orchestrator, outcomes

    orchestrator, outcomes = asyncio.run(runner())
    assert len(outcomes) == 50
    assert all(o.analysis.error is None for o in outcomes)
    assert [o.analysis.symbol for o in outcomes] == symbols
    assert source.peak <= 10
    assert orchestrator.peak_in_flight <= 10
    assert orchestrator.api_calls == 50
    assert sum(source.calls.values()) == 50


def test_failing_symbol_is_isolated(make_context, clock) -> None:
    source = FakeOptionsSource({"GOOD": _chain("GOOD")}, failures={"BAD": 5})
    ctx = make_context(options=source)

    async def runner():
        orchestrator = FetchOrchestrator(ctx)
        outcomes = await orchestrator.analyze_symbols(["BAD", "GOOD"], {}, "neutral")
        return orchestrator, outcomes

    orchestrator, (bad, good) = asyncio.run(runner())
    assert bad.analysis.error is not None
    assert "failed after 3 attempts" in bad.analysis.error
    assert bad.signal is None
    assert bad.options_analyzed == 0
    assert good.analysis.error is None
    assert good.signal is not None
    assert source.calls["BAD"] == 3
    assert orchestrator.api_calls == 4
    assert clock.sleeps == [2.0, 4.0]


def test_transient_failures_recover_after_backoff(make_context, clock) -> None:
    source = FakeOptionsSource({"FLAKY": _chain("FLAKY")}, failures={"FLAKY": 2})
    ctx = make_context(options=source)

    async def runner():
        orchestrator = FetchOrchestrator(ctx)
        return orchestrator, await orchestrator.analyze_symbol("FLAKY", _neutral("FLAKY"), "neutral")

    orchestrator, outcome = asyncio.run(runner())
    assert outcome.analysis.error is None
    assert outcome.options_analyzed == 1
    assert clock.sleeps == [2.0, 4.0]
    assert clock() >= 6.0
    assert orchestrator.api_calls == 3


def test_symbol_without_contracts_has_no_signal(make_context) -> None:
    ctx = make_context(options=FakeOptionsSource())

    async def runner():
        return await FetchOrchestrator(ctx).analyze_symbol("EMPTY", _neutral("EMPTY"), "neutral")

    outcome = asyncio.run(runner())
    assert outcome.analysis.error is None
    assert outcome.analysis.options_analysis == []
    assert outcome.signal is None
    assert not outcome.filtered


def test_options_payload_is_reused_from_cache(make_context) -> None:
    source = FakeOptionsSource({"XYZ": _chain()})
    ctx = make_context(options=source)

    async def runner():
        orchestrator = FetchOrchestrator(ctx)
        first = await orchestrator.fetch_options("XYZ")
        second = await orchestrator.fetch_options("xyz")
        return orchestrator, first, second

    orchestrator, (_, first_hit), (payload, second_hit) = asyncio.run(runner())
    assert (first_hit, second_hit) == (False, True)
    assert len(payload["snapshots"]) == 2
    assert source.calls["XYZ"] == 1
    assert orchestrator.api_calls == 1


def test_concurrent_requests_for_one_symbol_fetch_once(make_context) -> None:
    source = FakeOptionsSource({"XYZ": _chain()}, delay=0.01)
    ctx = make_context(options=source)

    async def runner():
        orchestrator = FetchOrchestrator(ctx)
        await asyncio.gather(*(orchestrator.fetch_options("XYZ") for _ in range(5)))
        return orchestrator

    orchestrator = asyncio.run(runner())
    assert source.calls["XYZ"] == 1
    assert orchestrator.api_calls == 1


def test_news_fetch_retries_then_parses(make_context, clock) -> None:
    news = FakeNewsSource([{"headline": "XYZ beats", "symbols": ["XYZ"]}], failures=1)
    ctx = make_context(news=news)

    async def runner():
        orchestrator = FetchOrchestrator(ctx)
        return orchestrator, await orchestrator.fetch_news()

    orchestrator, items = asyncio.run(runner())
    assert [item.headline for item in items] == ["XYZ beats"]
    assert news.calls == 2
    assert orchestrator.api_calls == 2
    assert clock.sleeps == [2.0]


def test_headlines_are_scored_once_and_cached(make_context) -> None:
    model = StaticSentimentModel({"XYZ beats": SentimentResult(label="positive", confidence=0.9)})
    ctx = make_context(model=model, max_text_length=40)
    items = [
        NewsItem("XYZ beats", frozenset({"XYZ"})),
        NewsItem("XYZ beats", frozenset({"ABC"})),
        NewsItem("Quiet session", frozenset()),
        NewsItem("x" * 41, frozenset({"XYZ"})),
        NewsItem("   ", frozenset({"XYZ"})),
    ]

    async def runner():
        orchestrator = FetchOrchestrator(ctx)
        first = await orchestrator.score_headlines(items)
        second = await orchestrator.score_headlines(items)
        return first, second

    (scored, rejected), (again, _) = asyncio.run(runner())
    assert [row.result.label for row in scored] == ["positive", "positive", "neutral"]
    assert len(rejected) == 2
    assert model.batches == [["XYZ beats", "Quiet session"]]
    assert [row.result for row in again] == [row.result for row in scored]
    assert ctx.sentiment_cache.stats.hits == 2
    assert ctx.sentiment_cache.stats.misses == 2


def test_unready_model_refuses_inference(make_context) -> None:
    ctx = make_context(model=BrokenSentimentModel())

    async def runner():
        return await FetchOrchestrator(ctx).score_headlines([NewsItem("XYZ beats", frozenset({"XYZ"}))])

    with pytest.raises(ModelUnavailableError):
        asyncio.run(runner())
