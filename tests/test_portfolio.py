from __future__ import annotations

import math

import pytest

from services.signals.portfolio import PortfolioAggregator
from services.signals.types import FinancialMetrics, TradingSignal
from tests.fakes.market import PINNED_NOW


def _signal(symbol: str, signal_type: str = "BUY_CALL", confidence: float = 0.6, risk: float = 0.2, **metrics):
    return TradingSignal(
        symbol=symbol,
        signal_type=signal_type,
        confidence=confidence,
        sentiment_score=0.6,
        risk_score=risk,
        expected_return=0.1,
        max_loss=1.0,
        time_horizon="SHORT_TERM",
        contract_key=f"{symbol}250404C00050000",
        entry_price=1.0,
        strike_price=50.0,
        expiration_date="2025-04-04",
        volume=100,
        open_interest=100,
        implied_volatility=0.3,
        delta=0.5,
        gamma=0.01,
        theta=-0.02,
        vega=0.1,
        financial_metrics=FinancialMetrics(**metrics),
    )


def test_empty_batch_summary() -> None:
    agg = PortfolioAggregator()
    summary = agg.summarize([], timestamp=PINNED_NOW)
    assert summary.total_signals == 0
    assert summary.average_confidence == 0.0
    assert summary.market_sentiment == "NEUTRAL"
    assert summary.risk_level == "MEDIUM"
    assert summary.recommended_position_size == 0.0
    assert summary.timestamp == PINNED_NOW.isoformat()

    risk = agg.risk_metrics([])
    assert risk.portfolio_var == 0.0
    assert risk.max_drawdown == 0.0
    assert risk.diversification_score == 0.0
    assert risk.sector_exposure == {}
    assert risk.volatility_regime == "LOW"


def test_counts_and_sentiment_ratio() -> None:
    agg = PortfolioAggregator()
    signals = [_signal("AAPL"), _signal("MSFT"), _signal("XOM", "BUY_PUT", confidence=0.8)]
    summary = agg.summarize(signals, timestamp=PINNED_NOW)
    assert (summary.bullish_signals, summary.bearish_signals) == (2, 1)
    assert summary.high_confidence_signals == 1
    assert summary.average_confidence == pytest.approx(2.0 / 3.0)
    # 2 > 1 * 1.5
    assert summary.market_sentiment == "BULLISH"
    assert agg.market_sentiment(3, 2) == "NEUTRAL"
    assert agg.market_sentiment(1, 2) == "BEARISH"


def test_position_size_scales_with_diversification_and_caps() -> None:
    agg = PortfolioAggregator()
    assert agg.position_size(0.6, 0.2, 1) == pytest.approx(25.0)
    assert agg.position_size(0.6, 0.2, 4) == pytest.approx(0.6 * 0.8 * 100 / 2)
    assert agg.position_size(0.9, 0.5, 1) == pytest.approx(15.0)
    assert agg.position_size(0.9, 0.8, 1) == pytest.approx(10.0)
    assert agg.position_size(0.1, 0.8, 1) == pytest.approx(2.0)


def test_risk_levels() -> None:
    agg = PortfolioAggregator()
    assert agg.risk_level(0.1) == "LOW"
    assert agg.risk_level(0.3) == "MEDIUM"
    assert agg.risk_level(0.7) == "HIGH"


def test_risk_metrics_over_signals() -> None:
    agg = PortfolioAggregator()
    signals = [
        _signal("AAPL", var_95=0.2, max_drawdown=0.3, sharpe_ratio=1.0, volatility=0.3),
        _signal("AAPL", var_95=0.4, max_drawdown=0.5, sharpe_ratio=2.0, volatility=0.5),
        _signal("XOM", var_95=0.0, max_drawdown=0.1, sharpe_ratio=0.0, volatility=0.4),
    ]
    risk = agg.risk_metrics(signals)
    assert risk.portfolio_var == pytest.approx((0.02 + 0.04 + 0.0) / 3)
    assert risk.max_drawdown == pytest.approx(0.5)
    assert risk.sharpe_ratio == pytest.approx(1.0)
    assert risk.diversification_score == pytest.approx(0.5)
    assert risk.sector_exposure == {"ENERGY": 0.5, "TECH": 0.5}
    assert list(risk.sector_exposure) == ["ENERGY", "TECH"]
    assert risk.volatility_regime == "HIGH"


def test_volatility_regimes() -> None:
    agg = PortfolioAggregator()
    assert agg.volatility_regime(0.1) == "LOW"
    assert agg.volatility_regime(0.3) == "NORMAL"
    assert agg.volatility_regime(0.4) == "HIGH"


def test_aggregation_is_idempotent() -> None:
    agg = PortfolioAggregator()
    signals = [_signal("AAPL"), _signal("JPM", "BUY_PUT", confidence=0.4, risk=0.6), _signal("ZZZ")]
    first = (agg.summarize(signals, timestamp=PINNED_NOW), agg.risk_metrics(signals))
    second = (agg.summarize(signals, timestamp=PINNED_NOW), agg.risk_metrics(signals))
    assert first == second
    assert all(math.isfinite(v) for v in first[1].sector_exposure.values())
    assert sum(first[1].sector_exposure.values()) == pytest.approx(1.0)
