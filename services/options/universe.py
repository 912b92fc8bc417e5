"""Eligibility of tickers for option analysis."""

from __future__ import annotations

from typing import Iterable, List, Tuple

CRYPTO_SYMBOLS = frozenset(
    {
        "BTC", "ETH", "BTCUSD", "ETHUSD", "SHIBUSD", "LTCUSD", "ADA", "DOT", "LINK", "UNI",
        "BCH", "LTC", "XRP", "XLM", "EOS", "TRX", "VET", "MATIC", "AVAX", "SOL", "ATOM", "FTM",
        "NEAR", "ALGO", "ICP", "FIL", "THETA", "XTZ", "AAVE", "COMP", "MKR", "SNX", "CRV", "YFI",
        "SUSHI", "1INCH", "BAL", "REN", "ZRX", "BAND", "KNC", "STORJ", "MANA", "SAND", "ENJ", "CHZ",
        "HOT", "DOGE", "SHIB", "BABYDOGE", "SAFEMOON", "ELON", "FLOKI", "PEPE", "BONK", "WIF",
    }
)


def is_crypto_symbol(ticker: str) -> bool:
    return ticker.strip().upper() in CRYPTO_SYMBOLS


def eligible_symbols(tickers: Iterable[str]) -> Tuple[List[str], int]:
    """Upper-case and dedupe ``tickers`` in order, dropping crypto.

    Returns ``(eligible, crypto_filtered)``.
    """

    seen = set()
    eligible: List[str] = []
    crypto = 0
    for raw in tickers:
        ticker = (raw or "").strip().upper()
        if not ticker or ticker in seen:
            continue
        seen.add(ticker)
        if is_crypto_symbol(ticker):
            crypto += 1
            continue
        eligible.append(ticker)
    return eligible, crypto


__all__ = ["CRYPTO_SYMBOLS", "eligible_symbols", "is_crypto_symbol"]
