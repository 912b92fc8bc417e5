"""Risk/return metrics for a single option contract.

The figures are forward-looking estimates built from one snapshot (premium,
implied volatility, time to expiry, moneyness), not statistics over a return
series. Every output is finite; ``compute`` returns ``None`` for a contract
with no premium instead of scoring it.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

from core.config import MetricsConfig
from core.logging import jlog
from services.metrics.rates import daily_rate, risk_free_rate
from services.options.chain import ResolvedContract
from services.signals.types import FinancialMetrics


def _in_band(value: float, band: Tuple[float, float]) -> bool:
    lo, hi = band
    return lo < value < hi


class FinancialMetricsEngine:
    def __init__(self, config: MetricsConfig | None = None) -> None:
        self.config = config or MetricsConfig()

    def effective_strike(self, contract: ResolvedContract) -> float:
        if contract.strike > 0:
            return contract.strike
        return contract.entry_price * self.config.strike_from_premium

    def moneyness(self, spot: float, strike: float) -> float:
        return spot / strike if strike > 0 else 1.0

    def expected_return(self, moneyness: float, iv: float, days: float) -> float:
        cfg = self.config
        if _in_band(moneyness, cfg.near_money_band):
            base = iv * cfg.near_money_multiplier
        elif _in_band(moneyness, cfg.close_money_band):
            base = iv * cfg.close_money_multiplier
        else:
            base = iv * cfg.out_of_money_multiplier
        if days > cfg.leap_days:
            factor = cfg.leap_time_factor
        elif days > cfg.medium_days:
            factor = cfg.medium_time_factor
        else:
            factor = 1.0
        return base * factor

    def volatility(self, iv: float, volume: float) -> float:
        return iv * (1.0 + min(volume / self.config.volume_saturation, 1.0))

    def downside_deviation(self, volatility: float, expected_return: float, days: float) -> float:
        cfg = self.config
        if volatility <= 0:
            return 0.0
        ratio = cfg.downside_base_ratio + min(expected_return * cfg.downside_return_weight, cfg.downside_return_cap)
        time_factor = 1.0 + min(days / 365.0, cfg.downside_time_cap) * cfg.downside_time_weight
        return volatility * ratio * time_factor

    def max_drawdown(self, iv: float, days: float) -> float:
        cfg = self.config
        if days <= 0:
            return cfg.drawdown_unknown_expiry
        horizon = min(days / cfg.drawdown_horizon_days, 1.0)
        base = cfg.drawdown_base + iv * cfg.drawdown_iv_weight
        return base * (1.0 - horizon * cfg.drawdown_time_discount)

    def kelly_fraction(
        self,
        moneyness: float,
        expected_return: float,
        volatility: float,
        entry_price: float,
        volume: float,
        days: float,
    ) -> float:
        cfg = self.config
        if volatility <= 0 or entry_price <= 0:
            return 0.0
        win_prob = cfg.kelly_far_win_probability
        for lo, hi, probability in cfg.kelly_win_buckets:
            if lo < moneyness < hi:
                win_prob = probability
                break
        multiple, offset = cfg.kelly_near_win_multiple if moneyness > cfg.kelly_near_moneyness else cfg.kelly_far_win_multiple
        potential_win = expected_return * multiple + offset
        if potential_win <= 0:
            return 0.0
        # loss normalised to the full premium
        raw = (win_prob * potential_win - (1.0 - win_prob)) / potential_win

        if volume > cfg.kelly_liquid_volume:
            liquidity = 1.0
        elif volume > cfg.kelly_moderate_volume:
            liquidity = cfg.kelly_moderate_liquidity_factor
        else:
            liquidity = cfg.kelly_thin_liquidity_factor
        time_factor = 1.0 if days > cfg.kelly_short_dte_days else cfg.kelly_short_dte_factor

        adjusted = raw * liquidity * time_factor
        if adjusted <= 0:
            return 0.0
        return min(max(adjusted, cfg.kelly_min), cfg.kelly_max)

    def composite_weights(self, volatility: float, days: float) -> Sequence[float]:
        cfg = self.config
        if days > cfg.long_horizon_days:
            return cfg.long_horizon_weights
        if volatility > cfg.high_vol_threshold:
            return cfg.high_vol_weights
        if volatility < cfg.low_vol_threshold:
            return cfg.low_vol_weights
        return cfg.base_weights

    def composite_score(self, sharpe: float, sortino: float, calmar: float, volatility: float, days: float) -> float:
        cfg = self.config
        w_sharpe, w_sortino, w_calmar = self.composite_weights(volatility, days)
        raw = (
            w_sharpe * min(sharpe, cfg.sharpe_cap)
            + w_sortino * min(sortino, cfg.sortino_cap)
            + w_calmar * min(calmar, cfg.calmar_cap)
        )
        return min(raw, cfg.composite_cap)

    def value_at_risk(self, volatility: float, mean_return: float, days: float) -> float:
        """95% VaR as a non-negative fraction of premium."""
        cfg = self.config
        if volatility <= 0 or days <= 0:
            return 0.0
        scaled = volatility * math.sqrt(days / 365.0)
        if mean_return <= 0:
            return cfg.var_no_edge_multiple * scaled
        return abs(min(mean_return - cfg.var_z * scaled, 0.0))

    def expected_shortfall(self, volatility: float, mean_return: float, days: float) -> float:
        cfg = self.config
        var = self.value_at_risk(volatility, mean_return, days)
        return var * (1.0 + min(volatility * cfg.es_vol_weight, cfg.es_extra_cap))

    def compute(self, contract: ResolvedContract, *, timestamp: float) -> Optional[FinancialMetrics]:
        """Metrics for ``contract``; ``None`` when the premium is not positive."""

        cfg = self.config
        entry = contract.entry_price
        if not entry > 0:
            return None

        strike = self.effective_strike(contract)
        spot = contract.spot(cfg, strike=strike)
        moneyness = self.moneyness(spot, strike)
        days = contract.days_to_expiry
        iv = contract.implied_volatility

        expected = self.expected_return(moneyness, iv, days)
        volatility = self.volatility(iv, contract.volume)
        rate = risk_free_rate(timestamp, cfg)
        excess = expected - daily_rate(rate, cfg)
        sharpe = excess / volatility if volatility > 0 else 0.0
        downside = self.downside_deviation(volatility, expected, days)
        sortino = excess / downside if downside > 0 else 0.0
        drawdown = self.max_drawdown(iv, days)
        cagr = expected * cfg.trading_days
        calmar = cagr / drawdown if drawdown > 1e-12 else 0.0
        kelly = self.kelly_fraction(moneyness, expected, volatility, entry, contract.volume, days)
        composite = self.composite_score(sharpe, sortino, calmar, volatility, days)

        metrics = FinancialMetrics(
            volatility=volatility,
            sharpe_ratio=sharpe,
            sortino_ratio=sortino,
            calmar_ratio=calmar,
            max_drawdown=drawdown,
            kelly_fraction=kelly,
            var_95=self.value_at_risk(volatility, expected, days),
            expected_shortfall=self.expected_shortfall(volatility, expected, days),
            composite_score=composite,
            expected_return=expected,
            cagr=cagr,
            downside_deviation=downside,
            risk_free_rate=rate,
        )
        jlog(
            "metrics.computed",
            contract=contract.contract_key,
            moneyness=round(moneyness, 4),
            sharpe=round(metrics.sharpe_ratio, 4),
            composite=round(metrics.composite_score, 4),
        )
        return metrics


__all__ = ["FinancialMetricsEngine"]
