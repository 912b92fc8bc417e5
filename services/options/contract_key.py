"""Parsing and encoding of compact option contract identifiers.

The canonical layout is ``ROOT + YYMMDD + C|P + STRIKE*1000`` with an
8-digit zero-padded strike (``AAPL240119C00150000``). Keys seen in the wild
also use 6- and 7-digit strikes or drop characters, so parsing walks an
ordered list of layouts and never raises: a key that defeats every strategy
decodes to strike ``0.0`` and an empty expiration string, which callers
treat as "use defaults".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional, Tuple

Right = Literal["call", "put"]

# (trailing width of date+right+strike, trailing width of right+strike)
_DATE_LAYOUTS: Tuple[Tuple[int, int], ...] = ((15, 9), (14, 8), (13, 7), (12, 6))
# strike digit widths tried before the free-form trailing scan
_STRIKE_WIDTHS: Tuple[int, ...] = (8, 7, 6)
_CANONICAL = re.compile(r"^(?P<root>[A-Z0-9.]*?)(?P<date>\d{6})(?P<right>[CP])(?P<strike>\d{6,8})$")


@dataclass(frozen=True, slots=True)
class ContractKey:
    """Decoded view of a contract key; ``strike`` is always ``>= 0``."""

    raw: str
    underlying: str
    expiration: str  # ISO date or "" when unparseable
    strike: float
    right: Optional[Right]

    @property
    def expiration_date(self) -> Optional[date]:
        if not self.expiration:
            return None
        return date.fromisoformat(self.expiration)

    @property
    def parsed(self) -> bool:
        return bool(self.expiration) and self.strike > 0


def _is_digits(text: str) -> bool:
    return bool(text) and text.isascii() and text.isdigit()


def _yymmdd(text: str) -> Optional[Tuple[int, int, int]]:
    """Split six digits into ``(year, month, day)`` if they look like a date."""

    if len(text) != 6 or not _is_digits(text):
        return None
    year, month, day = 2000 + int(text[0:2]), int(text[2:4]), int(text[4:6])
    if not (1 <= month <= 12 and 1 <= day <= 31):
        return None
    return year, month, day


def _to_date(parts: Tuple[int, int, int]) -> Optional[date]:
    try:
        return date(*parts)
    except ValueError:
        return None


def _scale_trailing(value: int) -> float:
    if value > 1_000_000:
        return value / 1000.0
    if value > 10_000:
        return value / 100.0
    return float(value)


def parse_strike(key: str) -> float:
    """Return the strike in dollars, or ``0.0`` when no layout matches."""

    for width in _STRIKE_WIDTHS:
        if len(key) >= width + 7:
            tail = key[-width:]
            if _is_digits(tail):
                return int(tail) / 1000.0

    match = re.search(r"[0-9]+$", key)
    if match is None:
        return 0.0
    return _scale_trailing(int(match.group(0)))


def parse_expiration(key: str) -> Optional[date]:
    """Return the expiration date, or ``None`` when no layout matches.

    The first six digits that pass the month and day range check decide the
    outcome; if they do not form a real calendar date (``240231``) the key
    has no expiration and later layouts are not consulted.
    """

    size = len(key)
    for total, skip in _DATE_LAYOUTS:
        if size >= total:
            parts = _yymmdd(key[size - total : size - skip])
            if parts is not None:
                return _to_date(parts)

    for start in range(0, max(size - 5, 0)):
        parts = _yymmdd(key[start : start + 6])
        if parts is not None:
            return _to_date(parts)
    return None


def parse_right(key: str) -> Optional[Right]:
    match = _CANONICAL.match(key)
    if match is None:
        return None
    return "call" if match.group("right") == "C" else "put"


def _parse_underlying(key: str) -> str:
    match = _CANONICAL.match(key)
    if match is not None:
        return match.group("root")
    lead = re.match(r"^[A-Z.]+", key)
    return lead.group(0) if lead else ""


def parse_contract_key(key: str) -> ContractKey:
    """Decode every component of ``key`` without raising."""

    text = (key or "").strip().upper()
    expiration = parse_expiration(text)
    return ContractKey(
        raw=text,
        underlying=_parse_underlying(text),
        expiration=expiration.isoformat() if expiration else "",
        strike=max(parse_strike(text), 0.0),
        right=parse_right(text),
    )


def decode(key: str) -> Optional[Tuple[date, float]]:
    """Return ``(expiration, strike)`` or ``None`` when unparseable."""

    parsed = parse_contract_key(key)
    expiration = parsed.expiration_date
    if expiration is None or parsed.strike <= 0:
        return None
    return expiration, parsed.strike


def encode(underlying: str, expiration: date, right: Right, strike: float) -> str:
    """Build the canonical 8-digit-strike key."""

    if strike < 0:
        raise ValueError("strike must be non-negative")
    millis = int(round(strike * 1000))
    if millis >= 10**8:
        raise ValueError("strike too large for the canonical layout")
    flag = "C" if right == "call" else "P"
    return f"{underlying.upper()}{expiration:%y%m%d}{flag}{millis:08d}"


__all__ = [
    "ContractKey",
    "Right",
    "decode",
    "encode",
    "parse_contract_key",
    "parse_expiration",
    "parse_right",
    "parse_strike",
]
