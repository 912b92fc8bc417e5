"""Configuration for the signal pipeline.

Two layers live here:

* :class:`ScoringConfig` is the single versioned structure holding every
  weight, cap and threshold the scoring stages use. It is a frozen pydantic
  model so tests can pin it or vary one knob with ``model_copy(update=...)``.
* :class:`RuntimeSettings` carries process-level settings (credentials,
  concurrency, timeouts, cache TTLs, sentiment backend) resolved from the
  environment through ``pydantic-settings``.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.errors import ConfigError

SCORING_CONFIG_VERSION = "2025.09-dynamic"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SelectorConfig(_Frozen):
    query_limit: int = 50
    composite_weight: float = 0.3
    volume_divisor: float = 1000.0
    volume_bonus_cap: float = 10.0
    price_bonus_cap: float = 5.0
    short_dte_days: int = 30
    short_dte_penalty: float = 2.0
    long_dte_days: int = 365
    long_dte_penalty: float = 1.0
    sweet_spot_bonus: float = 1.0
    oi_high: int = 1000
    oi_high_bonus: float = 2.0
    oi_medium: int = 100
    oi_medium_bonus: float = 1.0
    oi_low: int = 50
    oi_low_penalty: float = 1.0
    high_volume_indicator: int = 1000
    low_cost_indicator: float = 1.0
    strong_sentiment_indicator: float = 0.7


class MetricsConfig(_Frozen):
    # moneyness buckets for the expected-return base (lo, hi, iv multiplier)
    near_money_band: Tuple[float, float] = (0.9, 1.1)
    near_money_multiplier: float = 0.8
    close_money_band: Tuple[float, float] = (0.8, 1.2)
    close_money_multiplier: float = 0.6
    out_of_money_multiplier: float = 0.3
    leap_days: float = 365.0
    leap_time_factor: float = 1.5
    medium_days: float = 90.0
    medium_time_factor: float = 1.2
    volume_saturation: float = 10000.0
    # risk-free rate stand-in
    base_risk_free: float = 0.045
    risk_free_variation: float = 0.01
    risk_free_floor: float = 0.01
    risk_free_ceiling: float = 0.08
    trading_days: float = 252.0
    # drawdown
    drawdown_base: float = 0.2
    drawdown_iv_weight: float = 0.5
    drawdown_horizon_days: float = 30.0
    drawdown_time_discount: float = 0.3
    drawdown_unknown_expiry: float = 0.3
    # Kelly sizing (lo, hi, win probability) checked in order
    kelly_win_buckets: Tuple[Tuple[float, float, float], ...] = (
        (0.95, 1.05, 0.60),
        (0.85, 1.15, 0.50),
        (0.7, 1.3, 0.40),
    )
    kelly_far_win_probability: float = 0.25
    kelly_near_moneyness: float = 0.9
    kelly_near_win_multiple: Tuple[float, float] = (3.0, 0.5)
    kelly_far_win_multiple: Tuple[float, float] = (5.0, 0.2)
    kelly_liquid_volume: float = 1000.0
    kelly_moderate_volume: float = 500.0
    kelly_moderate_liquidity_factor: float = 0.8
    kelly_thin_liquidity_factor: float = 0.6
    kelly_short_dte_days: float = 30.0
    kelly_short_dte_factor: float = 0.7
    kelly_min: float = 0.02
    kelly_max: float = 0.25
    # composite score
    sharpe_cap: float = 3.0
    sortino_cap: float = 4.0
    calmar_cap: float = 10.0
    composite_cap: float = 5.0
    base_weights: Tuple[float, float, float] = (0.4, 0.4, 0.2)
    high_vol_threshold: float = 0.4
    high_vol_weights: Tuple[float, float, float] = (0.3, 0.5, 0.2)
    low_vol_threshold: float = 0.2
    low_vol_weights: Tuple[float, float, float] = (0.5, 0.3, 0.2)
    long_horizon_days: float = 90.0
    long_horizon_weights: Tuple[float, float, float] = (0.35, 0.35, 0.3)
    # tail risk
    var_z: float = 1.645
    var_no_edge_multiple: float = 2.0
    es_vol_weight: float = 0.5
    es_extra_cap: float = 0.5
    # downside deviation
    downside_base_ratio: float = 0.6
    downside_return_weight: float = 0.3
    downside_return_cap: float = 0.3
    downside_time_cap: float = 0.5
    downside_time_weight: float = 0.2
    # Greeks
    greeks_discount_rate: float = 0.05
    greeks_carry: float = 0.01
    # fallbacks when a quote lacks fields
    iv_estimate_base: float = 0.2
    iv_estimate_time_weight: float = 0.1
    iv_estimate_volume_weight: float = 0.1
    spot_from_strike: float = 0.95
    spot_from_premium: float = 100.0
    strike_from_premium: float = 1.1
    default_days_to_expiry: float = 30.0


class FundamentalConfig(_Frozen):
    severe_price: float = 0.05
    severe_price_penalty: float = 0.3
    low_price: float = 0.10
    low_price_penalty: float = 0.2
    very_low_volume: int = 100
    very_low_volume_penalty: float = 0.25
    low_volume: int = 500
    low_volume_penalty: float = 0.15
    low_open_interest: int = 50
    low_open_interest_penalty: float = 0.2
    extreme_iv: float = 1.0
    extreme_iv_penalty: float = 0.3
    high_iv: float = 0.8
    high_iv_penalty: float = 0.2
    small_cap_floor: float = 50_000_000.0
    small_cap_penalty: float = 0.25
    biotech_penalty: float = 0.3
    small_biotech_penalty: float = 0.2
    energy_penalty: float = 0.15
    materials_penalty: float = 0.2


class SentimentConfig(_Frozen):
    overall_ratio: float = 1.2


class SynthesisConfig(_Frozen):
    strong_bullish: float = 0.9
    bullish: float = 0.7
    strong_bearish: float = 0.2
    bearish: float = 0.4
    sentiment_weight: float = 0.4
    option_weight: float = 0.3
    option_score_scale: float = 10.0
    composite_weight: float = 0.2
    composite_scale: float = 5.0
    liquidity_weight: float = 0.1
    liquidity_scale: float = 10000.0
    # (fundamental risk above, confidence multiplier) checked in order
    confidence_penalties: Tuple[Tuple[float, float], ...] = ((0.7, 0.3), (0.5, 0.6), (0.3, 0.8))
    technical_weight: float = 0.6
    fundamental_weight: float = 0.4
    risk_iv_scale: float = 0.5
    risk_iv_weight: float = 0.4
    risk_drawdown_scale: float = 0.5
    risk_drawdown_weight: float = 0.3
    risk_liquidity_weight: float = 0.2
    risk_time_horizon_days: float = 30.0
    risk_time_weight: float = 0.1
    # admission gate
    max_risk_score: float = 0.9
    min_confidence: float = 0.1
    max_risk_reasons: int = 2
    strong_sharpe: float = 1.0
    high_volume: int = 1000
    # directional expected return of the option itself
    return_moneyness_pivot: float = 0.8
    return_moneyness_slope: float = 0.5
    return_horizon_days: float = 30.0
    return_liquidity_scale: float = 1000.0
    return_iv_reference: float = 0.3
    return_iv_cap: float = 2.0


class PortfolioConfig(_Frozen):
    high_confidence: float = 0.7
    sentiment_ratio: float = 1.5
    low_risk: float = 0.3
    medium_risk: float = 0.7
    low_risk_cap: float = 25.0
    medium_risk_cap: float = 15.0
    high_risk_cap: float = 10.0
    low_vol_regime: float = 0.2
    normal_vol_regime: float = 0.4


class ScoringConfig(_Frozen):
    """Every tunable constant of the scoring pipeline, versioned as one unit."""

    version: str = SCORING_CONFIG_VERSION
    selector: SelectorConfig = Field(default_factory=SelectorConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
    fundamental: FundamentalConfig = Field(default_factory=FundamentalConfig)
    sentiment: SentimentConfig = Field(default_factory=SentimentConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    portfolio: PortfolioConfig = Field(default_factory=PortfolioConfig)


SentimentBackend = Literal["rule", "hf", "onnx"]


class RuntimeSettings(BaseSettings):
    """Process settings read from the environment (and ``.env``)."""

    model_config = SettingsConfigDict(env_prefix="OPTIONSCOUT_", extra="ignore", populate_by_name=True)

    alpaca_key_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("APCA_API_KEY_ID", "ALPACA_API_KEY_ID", "ALPACA_KEY_ID"),
    )
    alpaca_secret_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("APCA_API_SECRET_KEY", "ALPACA_API_SECRET_KEY", "ALPACA_SECRET_KEY"),
    )
    data_url: str = Field(
        default="https://data.alpaca.markets",
        validation_alias=AliasChoices("ALPACA_DATA_URL", "OPTIONSCOUT_DATA_URL"),
    )
    options_feed: str = "indicative"
    news_limit: int = 50
    max_concurrency: int = Field(default=10, ge=1)
    request_timeout: float = Field(default=60.0, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    backoff_base: float = Field(default=2.0, ge=0)
    sentiment_ttl: float = Field(default=300.0, gt=0)
    options_ttl: float = Field(default=180.0, gt=0)
    sweep_interval: float = Field(default=60.0, gt=0)
    sentiment_backend: SentimentBackend = "rule"
    sentiment_model_path: str = Field(
        default="finbert-onnx",
        validation_alias=AliasChoices("SENTIMENT_MODEL_PATH", "OPTIONSCOUT_SENTIMENT_MODEL_PATH"),
    )
    hf_model_name: str = "ProsusAI/finbert"
    sentiment_labels: Tuple[str, ...] = ("positive", "negative", "neutral")
    max_text_length: int = Field(
        default=10000,
        validation_alias=AliasChoices("MAX_TEXT_LENGTH", "OPTIONSCOUT_MAX_TEXT_LENGTH"),
    )
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "OPTIONSCOUT_LOG_LEVEL"))

    def credentials(self) -> Tuple[str, str]:
        """Return ``(key, secret)`` or raise :class:`ConfigError`."""

        if not self.alpaca_key_id or not self.alpaca_secret_key:
            raise ConfigError("APCA_API_KEY_ID / APCA_API_SECRET_KEY missing")
        return self.alpaca_key_id, self.alpaca_secret_key

    def credentials_ok(self) -> bool:
        return bool(self.alpaca_key_id and self.alpaca_secret_key)


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Return cached settings loaded from the environment."""

    return RuntimeSettings()


def _read_config_payload(path: Path) -> Dict[str, Any]:
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read scoring config {path}: {exc}") from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigError(f"scoring config {path} must be a mapping")
    return payload


def load_scoring_config(path: Optional[Path] = None) -> ScoringConfig:
    """Load a :class:`ScoringConfig`, overlaying ``path`` (YAML) on the defaults."""

    if path is None:
        return ScoringConfig()
    try:
        return ScoringConfig.model_validate(_read_config_payload(Path(path)))
    except ValidationError as exc:
        raise ConfigError(f"invalid scoring config {path}: {exc}") from exc


__all__ = [
    "FundamentalConfig",
    "MetricsConfig",
    "PortfolioConfig",
    "RuntimeSettings",
    "SCORING_CONFIG_VERSION",
    "ScoringConfig",
    "SelectorConfig",
    "SentimentConfig",
    "SynthesisConfig",
    "get_settings",
    "load_scoring_config",
]
