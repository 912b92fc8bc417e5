"""Static ticker classification tables.

Two unrelated views live here: keyword buckets used to flag sector risk
(substring match, so ``XOIL`` counts as energy) and exact-ticker sets used
for portfolio sector exposure.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Tuple

BIOTECH_INDICATORS: Tuple[str, ...] = (
    "BIO", "PHARMA", "THERA", "GEN", "CELL", "MED", "CURE", "LIFE", "HEALTH",
    "ATYR", "OSCR", "RCAT", "AREC", "HYLN", "UUUU",
)
SMALL_BIOTECH: FrozenSet[str] = frozenset({"ATYR", "OSCR", "RCAT", "AREC", "HYLN", "UUUU"})
ENERGY_INDICATORS: Tuple[str, ...] = ("OIL", "GAS", "ENERGY", "POWER", "FUEL", "DRILL")
MATERIALS_INDICATORS: Tuple[str, ...] = ("MINING", "METAL", "GOLD", "SILVER", "COPPER", "STEEL")

SECTORS: Dict[str, FrozenSet[str]] = {
    "TECH": frozenset({"AAPL", "MSFT", "GOOGL", "AMZN", "META", "NVDA", "TSLA", "NFLX"}),
    "FINANCE": frozenset({"JPM", "BAC", "WFC", "GS", "MS", "C"}),
    "HEALTHCARE": frozenset({"JNJ", "PFE", "UNH", "ABBV", "MRK", "TMO"}),
    "ENERGY": frozenset({"XOM", "CVX", "COP", "EOG"}),
    "CONSUMER": frozenset({"WMT", "PG", "KO", "PEP"}),
}

# rough share counts for the market-cap estimate
_SHARE_COUNTS: Dict[str, float] = {
    "AAPL": 15_000_000_000.0,
    "MSFT": 15_000_000_000.0,
    "GOOGL": 15_000_000_000.0,
    "AMZN": 15_000_000_000.0,
    "TSLA": 15_000_000_000.0,
    "NIO": 2_000_000_000.0,
    "BAC": 2_000_000_000.0,
}
DEFAULT_SHARE_COUNT = 50_000_000.0


def _contains_any(symbol: str, indicators: Tuple[str, ...]) -> bool:
    return any(indicator in symbol for indicator in indicators)


def is_biotech(symbol: str) -> bool:
    return _contains_any(symbol.upper(), BIOTECH_INDICATORS)


def is_small_biotech(symbol: str) -> bool:
    return symbol.upper() in SMALL_BIOTECH


def is_energy(symbol: str) -> bool:
    return _contains_any(symbol.upper(), ENERGY_INDICATORS)


def is_materials(symbol: str) -> bool:
    return _contains_any(symbol.upper(), MATERIALS_INDICATORS)


def classify_sector(symbol: str) -> str:
    ticker = symbol.upper()
    for sector, members in SECTORS.items():
        if ticker in members:
            return sector
    return "OTHER"


def estimate_market_cap(symbol: str, price: float) -> float:
    return price * _SHARE_COUNTS.get(symbol.upper(), DEFAULT_SHARE_COUNT)


__all__ = [
    "SECTORS",
    "classify_sector",
    "estimate_market_cap",
    "is_biotech",
    "is_energy",
    "is_materials",
    "is_small_biotech",
]
