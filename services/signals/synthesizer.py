"""Turn a selected contract plus sentiment into a :class:`TradingSignal`."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from core.config import ScoringConfig
from core.logging import jlog
from services.metrics.financial import FinancialMetricsEngine
from services.metrics.greeks import compute_greeks
from services.options.chain import ResolvedContract, resolve_contract
from services.options.select import OptionAnalysis
from services.risk.fundamental import FundamentalRiskAssessor
from services.sentiment.scoring import OverallSentiment
from services.signals.types import FinancialMetrics, SignalType, TradingSignal

logger = logging.getLogger("optionscout.signals")


def _clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return min(max(value, lo), hi)


class SignalSynthesizer:
    def __init__(
        self,
        config: ScoringConfig | None = None,
        *,
        metrics: Optional[FinancialMetricsEngine] = None,
        risk: Optional[FundamentalRiskAssessor] = None,
    ) -> None:
        self.config = config or ScoringConfig()
        self.metrics = metrics or FinancialMetricsEngine(self.config.metrics)
        self.risk = risk or FundamentalRiskAssessor(self.config.fundamental)

    def signal_type(self, sentiment_score: float, overall: OverallSentiment) -> SignalType:
        cfg = self.config.synthesis
        if sentiment_score > cfg.strong_bullish:
            return "BUY_CALL"
        if sentiment_score < cfg.strong_bearish:
            return "BUY_PUT"
        if sentiment_score > cfg.bullish:
            return "BUY_CALL"
        if sentiment_score < cfg.bearish:
            return "BUY_PUT"
        return "BUY_PUT" if overall == "bearish" else "BUY_CALL"

    def liquidity(self, volume: float, open_interest: float, scale: float) -> float:
        return (min(volume / scale, 1.0) + min(open_interest / scale, 1.0)) / 2.0

    def base_confidence(self, sentiment_score: float, option_score: float, composite: float, liquidity: float) -> float:
        cfg = self.config.synthesis
        return _clamp(
            sentiment_score * cfg.sentiment_weight
            + min(option_score / cfg.option_score_scale, 1.0) * cfg.option_weight
            + min(composite / cfg.composite_scale, 1.0) * cfg.composite_weight
            + liquidity * cfg.liquidity_weight
        )

    def penalize(self, confidence: float, fundamental_score: float) -> float:
        for threshold, multiplier in self.config.synthesis.confidence_penalties:
            if fundamental_score > threshold:
                return confidence * multiplier
        return confidence

    def technical_risk(self, iv: float, drawdown: float, liquidity: float, days: float) -> float:
        cfg = self.config.synthesis
        return _clamp(
            min(iv / cfg.risk_iv_scale, 1.0) * cfg.risk_iv_weight
            + min(drawdown / cfg.risk_drawdown_scale, 1.0) * cfg.risk_drawdown_weight
            + (1.0 - liquidity) * cfg.risk_liquidity_weight
            + (1.0 - min(days / cfg.risk_time_horizon_days, 1.0)) * cfg.risk_time_weight
        )

    def option_return(self, contract: ResolvedContract, spot: float, is_call: bool) -> float:
        """Directional return estimate of holding the option itself, in [0, 1]."""
        cfg = self.config.synthesis
        days = contract.days_to_expiry
        if contract.entry_price <= 0 or days <= 0 or spot <= 0:
            return 0.0
        moneyness = spot / contract.strike if contract.strike > 0 else 1.0
        if is_call:
            edge = max(moneyness - cfg.return_moneyness_pivot, 0.0) * cfg.return_moneyness_slope
        else:
            edge = max(cfg.return_moneyness_pivot - moneyness, 0.0) * cfg.return_moneyness_slope
        time_factor = min(days / cfg.return_horizon_days, 1.0)
        liquidity = self.liquidity(contract.volume, contract.open_interest, cfg.return_liquidity_scale)
        vol_factor = min(contract.implied_volatility / cfg.return_iv_reference, cfg.return_iv_cap)
        return _clamp(edge * time_factor * (0.5 + 0.5 * liquidity) * vol_factor)

    def reasoning(
        self,
        overall: OverallSentiment,
        sentiment_score: float,
        risk_reasons: tuple[str, ...],
        metrics: FinancialMetrics,
        volume: int,
        indicators: tuple[str, ...],
    ) -> List[str]:
        cfg = self.config.synthesis
        lines = [f"Sentiment: {overall} (confidence: {sentiment_score:.2f})"]
        lines.extend(risk_reasons[: cfg.max_risk_reasons])
        if metrics.sharpe_ratio > cfg.strong_sharpe:
            lines.append("Strong risk-adjusted returns")
        if volume > cfg.high_volume:
            lines.append("High volume")
        for tag in indicators:
            if tag not in lines:
                lines.append(tag)
        return lines

    def synthesize(
        self,
        symbol: str,
        analysis: OptionAnalysis,
        sentiment_score: float,
        overall: OverallSentiment,
        *,
        today: date,
        timestamp: float,
    ) -> TradingSignal:
        cfg = self.config
        contract = resolve_contract(analysis.quote, today=today, config=cfg.metrics)
        metrics = self.metrics.compute(contract, timestamp=timestamp) or FinancialMetrics()
        fundamental = self.risk.assess(symbol, contract)

        signal_type = self.signal_type(sentiment_score, overall)
        is_call = contract.right == "call" if contract.right is not None else signal_type == "BUY_CALL"
        spot = contract.spot(cfg.metrics)
        greeks = compute_greeks(
            spot,
            contract.strike,
            contract.implied_volatility,
            contract.days_to_expiry,
            is_call,
            cfg.metrics,
        )

        liquidity = self.liquidity(contract.volume, contract.open_interest, cfg.synthesis.liquidity_scale)
        technical = self.technical_risk(contract.implied_volatility, metrics.max_drawdown, liquidity, contract.days_to_expiry)
        risk_score = _clamp(
            technical * cfg.synthesis.technical_weight + fundamental.score * cfg.synthesis.fundamental_weight
        )
        confidence = _clamp(
            self.penalize(
                self.base_confidence(sentiment_score, analysis.option_score, metrics.composite_score, liquidity),
                fundamental.score,
            )
        )

        return TradingSignal(
            symbol=symbol,
            signal_type=signal_type,
            confidence=confidence,
            sentiment_score=sentiment_score,
            risk_score=risk_score,
            expected_return=self.option_return(contract, spot, signal_type == "BUY_CALL"),
            max_loss=contract.entry_price,
            time_horizon="LEAP" if analysis.contract_type == "leap" else "SHORT_TERM",
            contract_key=contract.contract_key,
            entry_price=contract.entry_price,
            strike_price=contract.strike,
            expiration_date=contract.expiration,
            volume=contract.volume,
            open_interest=contract.open_interest,
            open_interest_is_proxy=contract.open_interest_is_proxy,
            implied_volatility=contract.implied_volatility,
            iv_is_estimate=contract.iv_is_estimate,
            delta=greeks.delta,
            gamma=greeks.gamma,
            theta=greeks.theta,
            vega=greeks.vega,
            financial_metrics=metrics,
            reasoning=self.reasoning(
                overall,
                sentiment_score,
                fundamental.reasons,
                metrics,
                contract.volume,
                analysis.undervalued_indicators,
            ),
        )

    def admit(self, signal: TradingSignal) -> bool:
        """Admission gate applied before portfolio aggregation."""
        cfg = self.config.synthesis
        admitted = signal.risk_score < cfg.max_risk_score and signal.confidence > cfg.min_confidence
        if not admitted:
            jlog(
                "signal.filtered",
                symbol=signal.symbol,
                risk=round(signal.risk_score, 4),
                confidence=round(signal.confidence, 4),
            )
        return admitted


__all__ = ["SignalSynthesizer"]
