"""Non-statistical risk scoring for a symbol/contract pair."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from core.config import FundamentalConfig
from services.options.chain import ResolvedContract
from services.risk import sectors


@dataclass(frozen=True, slots=True)
class FundamentalRisk:
    score: float  # [0, 1]
    reasons: Tuple[str, ...]


class FundamentalRiskAssessor:
    """Additive rule set; each triggered rule contributes a penalty and a reason.

    The open-interest rule reads the resolved contract, so when the feed
    reports no open interest the volume proxy is what gets judged.
    """

    def __init__(self, config: FundamentalConfig | None = None) -> None:
        self.config = config or FundamentalConfig()

    def sector_risk(self, symbol: str) -> Tuple[float, List[str]]:
        cfg = self.config
        score = 0.0
        reasons: List[str] = []
        if sectors.is_biotech(symbol):
            score += cfg.biotech_penalty
            reasons.append("Biotech sector - high regulatory and clinical trial risk")
        if sectors.is_small_biotech(symbol):
            score += cfg.small_biotech_penalty
            reasons.append("Small biotech - extreme volatility and binary outcomes")
        if sectors.is_energy(symbol):
            score += cfg.energy_penalty
            reasons.append("Energy sector - commodity price volatility")
        if sectors.is_materials(symbol):
            score += cfg.materials_penalty
            reasons.append("Materials sector - commodity and economic cycle risk")
        return score, reasons

    def assess(self, symbol: str, contract: ResolvedContract) -> FundamentalRisk:
        cfg = self.config
        score = 0.0
        reasons: List[str] = []

        price = contract.entry_price
        if price < cfg.severe_price:
            score += cfg.severe_price_penalty
            reasons.append("Extremely low price (<$0.05) - high risk of delisting")
        elif price < cfg.low_price:
            score += cfg.low_price_penalty
            reasons.append("Very low price (<$0.10) - penny stock risk")

        if contract.volume < cfg.very_low_volume:
            score += cfg.very_low_volume_penalty
            reasons.append("Very low volume (<100) - execution risk")
        elif contract.volume < cfg.low_volume:
            score += cfg.low_volume_penalty
            reasons.append("Low volume (<500) - liquidity concerns")

        if contract.open_interest < cfg.low_open_interest:
            score += cfg.low_open_interest_penalty
            reasons.append("Very low open interest (<50) - limited liquidity")

        sector_score, sector_reasons = self.sector_risk(symbol)
        score += sector_score
        reasons.extend(sector_reasons)

        iv = contract.implied_volatility
        if iv > cfg.extreme_iv:
            score += cfg.extreme_iv_penalty
            reasons.append("Extreme volatility (>100%) - high risk")
        elif iv > cfg.high_iv:
            score += cfg.high_iv_penalty
            reasons.append("Very high volatility (>80%) - elevated risk")

        if sectors.estimate_market_cap(symbol, price) < cfg.small_cap_floor:
            score += cfg.small_cap_penalty
            reasons.append("Small cap stock (<$50M) - high volatility risk")

        return FundamentalRisk(score=min(max(score, 0.0), 1.0), reasons=tuple(reasons))


__all__ = ["FundamentalRisk", "FundamentalRiskAssessor"]
