"""Option chain abstractions.

Snapshot payloads are loosely shaped: the same figure can live under several
keys depending on feed and vendor version. Each figure is read through an
ordered list of named extraction strategies and the name of the strategy
that matched is kept, so estimated or substituted values are never silently
mixed with observed ones.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Literal, Mapping, Optional, Protocol, Sequence, Tuple

from core.config import MetricsConfig
from services.options.contract_key import ContractKey, Right, parse_contract_key

Feed = Literal["indicative", "opra"]
Extractor = Callable[[Mapping[str, Any]], Any]


@dataclass(slots=True)
class OptionsQuery:
    """Filters accepted by the options snapshot endpoint."""

    feed: Feed = "indicative"
    limit: int = 100
    type: Optional[Right] = None
    strike_price_gte: Optional[float] = None
    strike_price_lte: Optional[float] = None
    expiration_date: Optional[str] = None
    expiration_date_gte: Optional[str] = None
    expiration_date_lte: Optional[str] = None
    root_symbol: Optional[str] = None
    updated_since: Optional[str] = None
    page_token: Optional[str] = None

    def params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"feed": self.feed}
        if self.type is not None:
            params["type"] = self.type
        params["limit"] = self.limit
        for name in (
            "strike_price_gte",
            "strike_price_lte",
            "expiration_date",
            "expiration_date_gte",
            "expiration_date_lte",
            "root_symbol",
            "updated_since",
            "page_token",
        ):
            value = getattr(self, name)
            if value is not None:
                params[name] = value
        return params

    def cache_key(self, symbol: str) -> Tuple[Any, ...]:
        return (symbol.upper(), *sorted(self.params().items()))


def _path(*keys: str) -> Extractor:
    def extract(snapshot: Mapping[str, Any]) -> Any:
        node: Any = snapshot
        for key in keys:
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
        return node

    return extract


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    return number if math.isfinite(number) else None


def _as_count(value: Any) -> Optional[int]:
    number = _as_float(value)
    if number is None or number < 0 or not number.is_integer():
        return None
    return int(number)


def _first(
    snapshot: Mapping[str, Any],
    strategies: Sequence[Tuple[str, Extractor]],
    coerce: Callable[[Any], Any],
) -> Tuple[Any, Optional[str]]:
    for name, extract in strategies:
        value = coerce(extract(snapshot))
        if value is not None:
            return value, name
    return None, None


ASK_STRATEGIES: Tuple[Tuple[str, Extractor], ...] = (
    ("latestQuote.ap", _path("latestQuote", "ap")),
    ("latestTrade.p", _path("latestTrade", "p")),
)
BID_STRATEGIES: Tuple[Tuple[str, Extractor], ...] = (("latestQuote.bp", _path("latestQuote", "bp")),)
VOLUME_STRATEGIES: Tuple[Tuple[str, Extractor], ...] = (
    ("dailyBar.v", _path("dailyBar", "v")),
    ("volume", _path("volume")),
    ("latestQuote.as", _path("latestQuote", "as")),
)
OPEN_INTEREST_STRATEGIES: Tuple[Tuple[str, Extractor], ...] = (
    ("openInterest", _path("openInterest")),
    ("open_interest", _path("open_interest")),
    ("oi", _path("oi")),
    ("outstanding_contracts", _path("outstanding_contracts")),
)
IV_STRATEGIES: Tuple[Tuple[str, Extractor], ...] = (
    ("impliedVolatility", _path("impliedVolatility")),
    ("implied_volatility", _path("implied_volatility")),
    ("iv", _path("iv")),
)
SPOT_STRATEGIES: Tuple[Tuple[str, Extractor], ...] = (
    ("underlying_price", _path("underlying_price")),
    ("spot_price", _path("spot_price")),
    ("last_price", _path("last_price")),
)
STRIKE_STRATEGIES: Tuple[Tuple[str, Extractor], ...] = (
    ("strike_price", _path("strike_price")),
    ("strike", _path("strike")),
)


@dataclass(frozen=True, slots=True)
class OptionQuote:
    """One contract's snapshot after field extraction."""

    contract_key: str
    ask: float
    bid: Optional[float]
    volume: int
    open_interest: Optional[int]
    implied_volatility: Optional[float]
    underlying_price: Optional[float]
    strike_hint: Optional[float]
    expiration_hint: Optional[str]
    sources: Mapping[str, str] = field(default_factory=dict)

    @property
    def contract(self) -> ContractKey:
        return parse_contract_key(self.contract_key)

    @property
    def expiration_date(self) -> Optional[date]:
        """Expiry from the contract key, else from the snapshot's own field."""

        expiration = self.contract.expiration_date
        if expiration is None and self.expiration_hint:
            try:
                expiration = date.fromisoformat(self.expiration_hint[:10])
            except ValueError:
                expiration = None
        return expiration

    @property
    def effective_open_interest(self) -> Tuple[int, bool]:
        """Return ``(open_interest, is_volume_proxy)``."""

        if self.open_interest is not None:
            return self.open_interest, False
        return self.volume, True


def quote_from_snapshot(contract_key: str, snapshot: Mapping[str, Any]) -> OptionQuote:
    """Normalize one raw snapshot; missing fields fall back to neutral values."""

    sources: Dict[str, str] = {}

    ask, source = _first(snapshot, ASK_STRATEGIES, _as_float)
    sources["ask"] = source or "default"
    bid, source = _first(snapshot, BID_STRATEGIES, _as_float)
    if source:
        sources["bid"] = source
    volume, source = _first(snapshot, VOLUME_STRATEGIES, _as_count)
    sources["volume"] = source or "default"
    open_interest, source = _first(snapshot, OPEN_INTEREST_STRATEGIES, _as_count)
    if source:
        sources["open_interest"] = source
    iv, source = _first(snapshot, IV_STRATEGIES, _as_float)
    if source:
        sources["implied_volatility"] = source
    spot, source = _first(snapshot, SPOT_STRATEGIES, _as_float)
    if source:
        sources["underlying_price"] = source
    strike, _ = _first(snapshot, STRIKE_STRATEGIES, _as_float)
    expiration = snapshot.get("expiration_date")

    return OptionQuote(
        contract_key=contract_key,
        ask=max(ask or 0.0, 0.0),
        bid=bid,
        volume=volume or 0,
        open_interest=open_interest,
        implied_volatility=iv if iv is not None and iv > 0 else None,
        underlying_price=spot if spot is not None and spot > 0 else None,
        strike_hint=strike if strike is not None and strike > 0 else None,
        expiration_hint=expiration if isinstance(expiration, str) and expiration else None,
        sources=sources,
    )


def quotes_from_payload(payload: Mapping[str, Any]) -> Dict[str, OptionQuote]:
    """Normalize a ``{"snapshots": {key: snapshot}}`` response body."""

    snapshots = payload.get("snapshots") if isinstance(payload, Mapping) else None
    if not isinstance(snapshots, Mapping):
        return {}
    return {
        str(key): quote_from_snapshot(str(key), snapshot)
        for key, snapshot in snapshots.items()
        if isinstance(snapshot, Mapping)
    }


def days_to_expiry(expiration: Optional[date], today: date, default: float = 30.0) -> Tuple[float, bool]:
    """Return ``(days, known)``; past or same-day expiries count as one day."""

    if expiration is None:
        return float(default), False
    return float(max((expiration - today).days, 1)), True


def estimate_iv(days: float, volume: int, config: MetricsConfig) -> float:
    return (
        config.iv_estimate_base
        + (days / 365.0) * config.iv_estimate_time_weight
        + min(volume / 10000.0, 1.0) * config.iv_estimate_volume_weight
    )


def estimate_spot(strike: float, entry_price: float, config: MetricsConfig) -> float:
    if strike > 0:
        return strike * config.spot_from_strike
    return entry_price * config.spot_from_premium


@dataclass(frozen=True, slots=True)
class ResolvedContract:
    """A quote with every figure the scoring stages need, fallbacks flagged."""

    contract_key: str
    right: Optional[Right]
    entry_price: float
    bid: Optional[float]
    strike: float
    expiration: str
    days_to_expiry: float
    expiry_known: bool
    volume: int
    open_interest: int
    open_interest_is_proxy: bool
    implied_volatility: float
    iv_is_estimate: bool
    underlying_price: Optional[float]

    def spot(self, config: MetricsConfig, strike: Optional[float] = None) -> float:
        """Observed underlying price, or the strike-based estimate."""

        if self.underlying_price is not None:
            return self.underlying_price
        return estimate_spot(self.strike if strike is None else strike, self.entry_price, config)


def resolve_contract(quote: OptionQuote, *, today: date, config: MetricsConfig) -> ResolvedContract:
    key = quote.contract
    strike = key.strike if key.strike > 0 else (quote.strike_hint or 0.0)
    expiration = quote.expiration_date
    days, known = days_to_expiry(expiration, today, config.default_days_to_expiry)
    open_interest, is_proxy = quote.effective_open_interest
    iv = quote.implied_volatility
    return ResolvedContract(
        contract_key=quote.contract_key,
        right=key.right,
        entry_price=quote.ask,
        bid=quote.bid,
        strike=strike,
        expiration=expiration.isoformat() if expiration else "",
        days_to_expiry=days,
        expiry_known=known,
        volume=quote.volume,
        open_interest=open_interest,
        open_interest_is_proxy=is_proxy,
        implied_volatility=iv if iv is not None else estimate_iv(days, quote.volume, config),
        iv_is_estimate=iv is None,
        underlying_price=quote.underlying_price,
    )


class OptionsSource(Protocol):
    """Interface for fetching raw options snapshots for one underlying."""

    async def fetch_options(self, symbol: str, query: OptionsQuery) -> Mapping[str, Any]:
        """Return the raw ``{"snapshots": {...}}`` payload."""


__all__ = [
    "OptionQuote",
    "OptionsQuery",
    "OptionsSource",
    "ResolvedContract",
    "days_to_expiry",
    "estimate_iv",
    "estimate_spot",
    "quote_from_snapshot",
    "quotes_from_payload",
    "resolve_contract",
]
