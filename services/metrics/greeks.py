"""Single-point Black-Scholes Greeks.

These are approximate sensitivities for ranking and display, not a pricing
model: there is no dividend yield, theta uses a fixed discount rate and carry,
and the normal CDF comes from the Abramowitz-Stegun erf approximation.
"""

from __future__ import annotations

import math

from core.config import MetricsConfig
from services.signals.types import Greeks

_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911
_SQRT2 = math.sqrt(2.0)
_SQRT_2PI = math.sqrt(2.0 * math.pi)


def erf_approx(x: float) -> float:
    """Abramowitz-Stegun 7.1.26, max absolute error ~1.5e-7."""
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)
    t = 1.0 / (1.0 + _P * x)
    y = 1.0 - (((((_A5 * t + _A4) * t) + _A3) * t + _A2) * t + _A1) * t * math.exp(-x * x)
    return sign * y


def norm_cdf(x: float) -> float:
    return 0.5 * (1.0 + erf_approx(x / _SQRT2))


def norm_pdf(x: float) -> float:
    return math.exp(-0.5 * x * x) / _SQRT_2PI


def compute_greeks(
    spot: float,
    strike: float,
    implied_volatility: float,
    days_to_expiry: float,
    is_call: bool,
    config: MetricsConfig | None = None,
) -> Greeks:
    """Return delta, gamma, theta and vega (per 1% IV); zeros on invalid input."""

    cfg = config or MetricsConfig()
    if days_to_expiry <= 0 or implied_volatility <= 0 or strike <= 0 or spot <= 0:
        return Greeks()

    t = days_to_expiry / 365.0
    sqrt_t = math.sqrt(t)
    sigma = implied_volatility
    d1 = (math.log(spot / strike) + 0.5 * sigma * sigma * t) / (sigma * sqrt_t)
    d2 = d1 - sigma * sqrt_t
    n_d1 = norm_cdf(d1)
    n_d2 = norm_cdf(d2)
    phi_d1 = norm_pdf(d1)

    delta = n_d1 if is_call else n_d1 - 1.0
    gamma = phi_d1 / (spot * sigma * sqrt_t)
    theta = -(spot * phi_d1 * sigma) / (2.0 * sqrt_t) - cfg.greeks_carry * strike * math.exp(
        -cfg.greeks_discount_rate * t
    ) * n_d2
    vega = spot * phi_d1 * sqrt_t / 100.0
    return Greeks(delta=delta, gamma=gamma, theta=theta, vega=vega)


__all__ = ["compute_greeks", "erf_approx", "norm_cdf", "norm_pdf"]
