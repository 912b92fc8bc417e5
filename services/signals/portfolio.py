"""Batch-level reduction of admitted signals."""

from __future__ import annotations

import math
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, Sequence

import numpy as np

from core.config import PortfolioConfig
from services.risk.sectors import classify_sector
from services.signals.types import MarketSentiment, MarketSummary, RiskLevel, RiskMetrics, TradingSignal, VolatilityRegime


def _mean(values: Sequence[float], default: float = 0.0) -> float:
    if not values:
        return default
    return float(np.mean(np.asarray(values, dtype=np.float64)))


class PortfolioAggregator:
    """Pure functions of the signal list; the only impure input is the timestamp."""

    def __init__(
        self,
        config: PortfolioConfig | None = None,
        *,
        sector_of: Callable[[str], str] = classify_sector,
    ) -> None:
        self.config = config or PortfolioConfig()
        self.sector_of = sector_of

    def risk_level(self, average_risk: float) -> RiskLevel:
        cfg = self.config
        if average_risk < cfg.low_risk:
            return "LOW"
        if average_risk < cfg.medium_risk:
            return "MEDIUM"
        return "HIGH"

    def position_size(self, confidence: float, risk: float, count: int) -> float:
        cfg = self.config
        base = confidence * (1.0 - risk) * 100.0
        diversification = min(1.0 / math.sqrt(count), 1.0) if count > 0 else 1.0
        if risk < cfg.low_risk:
            cap = cfg.low_risk_cap
        elif risk < cfg.medium_risk:
            cap = cfg.medium_risk_cap
        else:
            cap = cfg.high_risk_cap
        return min(base * diversification, cap)

    def market_sentiment(self, bullish: int, bearish: int) -> MarketSentiment:
        ratio = self.config.sentiment_ratio
        if bullish > bearish * ratio:
            return "BULLISH"
        if bearish > bullish * ratio:
            return "BEARISH"
        return "NEUTRAL"

    def summarize(self, signals: Sequence[TradingSignal], *, timestamp: Optional[datetime] = None) -> MarketSummary:
        cfg = self.config
        bullish = sum(1 for s in signals if s.signal_type == "BUY_CALL")
        bearish = sum(1 for s in signals if s.signal_type == "BUY_PUT")
        confidence = _mean([s.confidence for s in signals])
        # neutral risk when there is nothing to judge
        risk = _mean([s.risk_score for s in signals], default=0.5)
        stamp = (timestamp or datetime.now(timezone.utc)).isoformat()
        return MarketSummary(
            total_signals=len(signals),
            bullish_signals=bullish,
            bearish_signals=bearish,
            high_confidence_signals=sum(1 for s in signals if s.confidence > cfg.high_confidence),
            average_confidence=confidence,
            market_sentiment=self.market_sentiment(bullish, bearish),
            risk_level=self.risk_level(risk),
            recommended_position_size=self.position_size(confidence, risk, len(signals)),
            timestamp=stamp,
        )

    def sector_exposure(self, symbols: Sequence[str]) -> Dict[str, float]:
        if not symbols:
            return {}
        counts = Counter(self.sector_of(symbol) for symbol in symbols)
        total = float(len(symbols))
        return {sector: counts[sector] / total for sector in sorted(counts)}

    def volatility_regime(self, average_volatility: float) -> VolatilityRegime:
        cfg = self.config
        if average_volatility < cfg.low_vol_regime:
            return "LOW"
        if average_volatility < cfg.normal_vol_regime:
            return "NORMAL"
        return "HIGH"

    def risk_metrics(self, signals: Sequence[TradingSignal]) -> RiskMetrics:
        symbols = list(dict.fromkeys(s.symbol for s in signals))
        metrics = [s.financial_metrics for s in signals]
        return RiskMetrics(
            portfolio_var=_mean([m.var_95 * s.expected_return for m, s in zip(metrics, signals)]),
            max_drawdown=max((m.max_drawdown for m in metrics), default=0.0),
            sharpe_ratio=_mean([m.sharpe_ratio for m in metrics]),
            diversification_score=1.0 - 1.0 / len(symbols) if len(symbols) > 1 else 0.0,
            sector_exposure=self.sector_exposure(symbols),
            volatility_regime=self.volatility_regime(_mean([m.volatility for m in metrics])),
        )


__all__ = ["PortfolioAggregator"]
