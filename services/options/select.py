"""Option contract selection utilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Literal, Mapping, Optional, Tuple

from core.config import SelectorConfig
from core.logging import jlog
from services.options.chain import OptionQuote, days_to_expiry
from services.options.contract_key import ContractKey

ContractSlot = Literal["short_term", "leap"]

logger = logging.getLogger("optionscout.options")


@dataclass(frozen=True, slots=True)
class OptionAnalysis:
    """The contract chosen for a symbol together with its score."""

    contract_type: ContractSlot
    quote: OptionQuote
    contract: ContractKey
    option_score: float
    undervalued_indicators: Tuple[str, ...]


def rank_by_liquidity(quotes: Mapping[str, OptionQuote]) -> List[OptionQuote]:
    """Order quotes by volume descending; the contract key breaks ties."""

    return sorted(quotes.values(), key=lambda q: (-q.volume, q.contract_key))


def candidate_slots(quotes: Mapping[str, OptionQuote]) -> List[Tuple[ContractSlot, OptionQuote]]:
    """Top two quotes by liquidity; later slots are absent, never defaulted.

    The slot names are positional: ``leap`` is simply the runner-up and is not
    guaranteed to expire later than ``short_term``.
    """

    ranked = rank_by_liquidity(quotes)
    slots: Tuple[ContractSlot, ...] = ("short_term", "leap")
    return list(zip(slots, ranked[:2]))


class OptionSelector:
    """Score the two liquidity-ranked candidates and keep the better one."""

    def __init__(self, config: Optional[SelectorConfig] = None) -> None:
        self.config = config or SelectorConfig()

    def score(self, quote: OptionQuote, composite_score: float, today: date) -> float:
        cfg = self.config
        score = composite_score * cfg.composite_weight
        score += min(quote.volume / cfg.volume_divisor, cfg.volume_bonus_cap)
        if quote.ask > 0:
            score += min(1.0 / quote.ask, cfg.price_bonus_cap)

        expiration = quote.expiration_date
        if expiration is not None:
            days, _ = days_to_expiry(expiration, today)
            if days < cfg.short_dte_days:
                score -= cfg.short_dte_penalty
            elif days > cfg.long_dte_days:
                score -= cfg.long_dte_penalty
            else:
                score += cfg.sweet_spot_bonus

        # only reported open interest counts here; the volume proxy would
        # double-count the volume bonus above
        oi = quote.open_interest
        if oi is not None:
            if oi > cfg.oi_high:
                score += cfg.oi_high_bonus
            elif oi > cfg.oi_medium:
                score += cfg.oi_medium_bonus
            elif oi < cfg.oi_low:
                score -= cfg.oi_low_penalty
        return score

    def indicators(self, quote: OptionQuote, composite_score: float) -> Tuple[str, ...]:
        cfg = self.config
        tags: List[str] = []
        if quote.volume > cfg.high_volume_indicator:
            tags.append("High volume")
        if 0 < quote.ask < cfg.low_cost_indicator:
            tags.append("Low cost entry")
        if composite_score > cfg.strong_sentiment_indicator:
            tags.append("Strong sentiment")
        return tuple(tags)

    def select(
        self,
        symbol: str,
        quotes: Mapping[str, OptionQuote],
        composite_score: float,
        today: date,
    ) -> Optional[OptionAnalysis]:
        """Return the higher-scoring slot (ties favour ``short_term``)."""

        best: Optional[OptionAnalysis] = None
        for slot, quote in candidate_slots(quotes):
            analysis = OptionAnalysis(
                contract_type=slot,
                quote=quote,
                contract=quote.contract,
                option_score=self.score(quote, composite_score, today),
                undervalued_indicators=self.indicators(quote, composite_score),
            )
            if best is None or analysis.option_score > best.option_score:
                best = analysis
        if best is None:
            logger.info("options.none", extra={"symbol": symbol})
        else:
            jlog(
                "options.selected",
                symbol=symbol,
                contract=best.quote.contract_key,
                slot=best.contract_type,
                score=round(best.option_score, 4),
                candidates=len(quotes),
            )
        return best


__all__ = ["ContractSlot", "OptionAnalysis", "OptionSelector", "candidate_slots", "rank_by_liquidity"]
