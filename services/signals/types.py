"""Output models of the signal pipeline.

Everything here is immutable once built and serializes straight to the JSON
report handed to callers.
"""

from __future__ import annotations

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SignalType = Literal["BUY_CALL", "BUY_PUT"]
TimeHorizon = Literal["SHORT_TERM", "LEAP"]
RiskLevel = Literal["LOW", "MEDIUM", "HIGH"]
MarketSentiment = Literal["BULLISH", "BEARISH", "NEUTRAL"]
VolatilityRegime = Literal["LOW", "NORMAL", "HIGH"]


def finite_or_zero(value: Any) -> Any:
    if isinstance(value, float) and not math.isfinite(value):
        return 0.0
    return value


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class FinancialMetrics(_Frozen):
    volatility: float = 0.0
    sharpe_ratio: float = 0.0
    sortino_ratio: float = 0.0
    calmar_ratio: float = 0.0
    max_drawdown: float = 0.0
    kelly_fraction: float = Field(default=0.0, ge=0, le=1)
    var_95: float = Field(default=0.0, ge=0)
    expected_shortfall: float = Field(default=0.0, ge=0)
    composite_score: float = 0.0
    expected_return: float = 0.0
    cagr: float = 0.0
    downside_deviation: float = 0.0
    risk_free_rate: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def _finite(cls, value: Any) -> Any:
        return finite_or_zero(value)


class Greeks(_Frozen):
    delta: float = 0.0
    gamma: float = 0.0
    theta: float = 0.0
    vega: float = 0.0

    @field_validator("*", mode="before")
    @classmethod
    def _finite(cls, value: Any) -> Any:
        return finite_or_zero(value)


class TradingSignal(_Frozen):
    symbol: str
    signal_type: SignalType
    confidence: float = Field(ge=0, le=1)
    sentiment_score: float
    risk_score: float = Field(ge=0, le=1)
    expected_return: float
    max_loss: float
    time_horizon: TimeHorizon
    contract_key: str
    entry_price: float
    strike_price: float
    expiration_date: str
    volume: int
    open_interest: int
    open_interest_is_proxy: bool = False
    implied_volatility: float
    iv_is_estimate: bool = False
    delta: float
    gamma: float
    theta: float
    vega: float
    financial_metrics: FinancialMetrics
    reasoning: list[str] = Field(default_factory=list)


class OptionAnalysisView(_Frozen):
    contract_type: Literal["short_term", "leap"]
    contract_key: str
    ask: float
    volume: int
    open_interest: int | None = None
    option_score: float
    undervalued_indicators: list[str] = Field(default_factory=list)


class SymbolOptionsAnalysis(_Frozen):
    symbol: str
    sentiment_score: float
    options_analysis: list[OptionAnalysisView] = Field(default_factory=list)
    error: str | None = None


class HeadlineSentiment(_Frozen):
    headline: str
    symbols: list[str]
    sentiment: str
    confidence: float


class MarketSummary(_Frozen):
    total_signals: int
    bullish_signals: int
    bearish_signals: int
    high_confidence_signals: int
    average_confidence: float
    market_sentiment: MarketSentiment
    risk_level: RiskLevel
    recommended_position_size: float
    timestamp: str


class RiskMetrics(_Frozen):
    portfolio_var: float
    max_drawdown: float
    sharpe_ratio: float
    diversification_score: float
    sector_exposure: dict[str, float]
    volatility_regime: VolatilityRegime


class ExecutionMetadata(_Frozen):
    trace_id: str
    scoring_version: str
    processing_time_ms: int
    symbols_analyzed: int
    options_analyzed: int
    crypto_symbols_filtered: int
    signals_filtered: int
    api_calls_made: int
    cache_hit_rate: float
    errors: list[str] = Field(default_factory=list)


class AnalysisReport(_Frozen):
    market_summary: MarketSummary
    trading_signals: list[TradingSignal]
    sentiment_analysis: list[HeadlineSentiment]
    risk_metrics: RiskMetrics
    symbol_analyses: list[SymbolOptionsAnalysis]
    execution_metadata: ExecutionMetadata


__all__ = [
    "AnalysisReport",
    "ExecutionMetadata",
    "FinancialMetrics",
    "Greeks",
    "HeadlineSentiment",
    "MarketSentiment",
    "MarketSummary",
    "OptionAnalysisView",
    "RiskLevel",
    "RiskMetrics",
    "SignalType",
    "SymbolOptionsAnalysis",
    "TimeHorizon",
    "TradingSignal",
    "VolatilityRegime",
    "finite_or_zero",
]
