"""Risk-free rate stand-in.

There is no live rate feed: the rate is a fixed base plus a bounded intraday
drift derived from the timestamp, so it is deterministic for a given instant
and can never block or fail.
"""

from __future__ import annotations

from core.config import MetricsConfig

_SECONDS_PER_DAY = 86400


def risk_free_rate(timestamp: float, config: MetricsConfig | None = None) -> float:
    cfg = config or MetricsConfig()
    seconds = int(timestamp) % _SECONDS_PER_DAY
    drift = seconds / _SECONDS_PER_DAY * cfg.risk_free_variation
    return min(max(cfg.base_risk_free + drift, cfg.risk_free_floor), cfg.risk_free_ceiling)


def daily_rate(annual_rate: float, config: MetricsConfig | None = None) -> float:
    return annual_rate / (config or MetricsConfig()).trading_days


__all__ = ["daily_rate", "risk_free_rate"]
