from __future__ import annotations

from datetime import date

import pytest

from core.config import SelectorConfig
from services.options.chain import quote_from_snapshot, quotes_from_payload
from services.options.select import OptionSelector, candidate_slots, rank_by_liquidity
from services.options.universe import eligible_symbols, is_crypto_symbol
from tests.fakes.market import contract, snapshot

TODAY = date(2025, 1, 2)
EXPIRY = date(2025, 4, 4)


def _quotes(*volumes: int, ask: float = 2.5, **extra):
    payload = {
        contract("XYZ", EXPIRY, 50.0 + 5 * i): snapshot(volume, ask=ask, **extra) for i, volume in enumerate(volumes)
    }
    return quotes_from_payload({"snapshots": payload})


def test_rank_by_liquidity_orders_by_volume_then_key() -> None:
    quotes = _quotes(300, 1200, 300)
    ranked = rank_by_liquidity(quotes)
    assert [q.volume for q in ranked] == [1200, 300, 300]
    assert ranked[1].contract_key < ranked[2].contract_key


def test_candidate_slots_are_positional() -> None:
    slots = candidate_slots(_quotes(5, 50, 500))
    assert [(name, q.volume) for name, q in slots] == [("short_term", 500), ("leap", 50)]
    assert [name for name, _ in candidate_slots(_quotes(7))] == ["short_term"]
    assert candidate_slots({}) == []


def test_score_matches_hand_computation() -> None:
    selector = OptionSelector()
    quotes = _quotes(1200, 300)
    scores = sorted((selector.score(q, 0.6375, TODAY) for q in quotes.values()), reverse=True)
    assert scores == [pytest.approx(2.79125), pytest.approx(1.89125)]


def test_select_prefers_higher_score() -> None:
    analysis = OptionSelector().select("XYZ", _quotes(1200, 300), 0.6375, TODAY)
    assert analysis is not None
    assert analysis.contract_type == "short_term"
    assert analysis.quote.volume == 1200
    assert analysis.option_score == pytest.approx(2.79125)
    assert analysis.undervalued_indicators == ("High volume",)


def test_tie_goes_to_short_term() -> None:
    cfg = SelectorConfig()
    quotes = {
        contract("XYZ", EXPIRY, 50.0): quote_from_snapshot(contract("XYZ", EXPIRY, 50.0), snapshot(400)),
        contract("XYZ", EXPIRY, 55.0): quote_from_snapshot(contract("XYZ", EXPIRY, 55.0), snapshot(400)),
    }
    analysis = OptionSelector(cfg).select("XYZ", quotes, 0.5, TODAY)
    assert analysis is not None
    assert analysis.contract_type == "short_term"
    assert analysis.quote.contract_key == min(quotes)


def test_dte_bands_adjust_score() -> None:
    selector = OptionSelector()
    near = quote_from_snapshot(contract("XYZ", date(2025, 1, 10), 50.0), snapshot(0, ask=2.5))
    sweet = quote_from_snapshot(contract("XYZ", date(2025, 3, 1), 50.0), snapshot(0, ask=2.5))
    far = quote_from_snapshot(contract("XYZ", date(2026, 6, 1), 50.0), snapshot(0, ask=2.5))
    unknown = quote_from_snapshot("UNPARSEABLE", snapshot(0, ask=2.5))
    assert selector.score(near, 0.0, TODAY) == pytest.approx(0.4 - 2.0)
    assert selector.score(sweet, 0.0, TODAY) == pytest.approx(0.4 + 1.0)
    assert selector.score(far, 0.0, TODAY) == pytest.approx(0.4 - 1.0)
    assert selector.score(unknown, 0.0, TODAY) == pytest.approx(0.4)


def test_dte_bands_fall_back_to_snapshot_expiration() -> None:
    selector = OptionSelector()
    sweet = quote_from_snapshot("OPAQUE-1", snapshot(0, ask=2.5, expiration_date="2025-03-01"))
    near = quote_from_snapshot("OPAQUE-2", snapshot(0, ask=2.5, expiration_date="2025-01-10T00:00:00Z"))
    garbled = quote_from_snapshot("OPAQUE-3", snapshot(0, ask=2.5, expiration_date="soon"))
    assert sweet.expiration_date == date(2025, 3, 1)
    assert selector.score(sweet, 0.0, TODAY) == pytest.approx(0.4 + 1.0)
    assert selector.score(near, 0.0, TODAY) == pytest.approx(0.4 - 2.0)
    assert garbled.expiration_date is None
    assert selector.score(garbled, 0.0, TODAY) == pytest.approx(0.4)


def test_reported_open_interest_buckets() -> None:
    selector = OptionSelector()
    key = contract("XYZ", EXPIRY, 50.0)
    base = selector.score(quote_from_snapshot(key, snapshot(0)), 0.0, TODAY)
    high = selector.score(quote_from_snapshot(key, snapshot(0, openInterest=5000)), 0.0, TODAY)
    medium = selector.score(quote_from_snapshot(key, snapshot(0, openInterest=500)), 0.0, TODAY)
    middling = selector.score(quote_from_snapshot(key, snapshot(0, openInterest=75)), 0.0, TODAY)
    low = selector.score(quote_from_snapshot(key, snapshot(0, openInterest=10)), 0.0, TODAY)
    assert high - base == pytest.approx(2.0)
    assert medium - base == pytest.approx(1.0)
    assert middling == pytest.approx(base)
    assert low - base == pytest.approx(-1.0)


def test_bonuses_are_capped() -> None:
    selector = OptionSelector()
    quote = quote_from_snapshot("UNPARSEABLE", snapshot(50_000, ask=0.01))
    assert selector.score(quote, 0.0, TODAY) == pytest.approx(10.0 + 5.0)
    assert selector.indicators(quote, 0.9) == ("High volume", "Low cost entry", "Strong sentiment")


def test_zero_ask_earns_no_price_bonus() -> None:
    quote = quote_from_snapshot("UNPARSEABLE", snapshot(0, ask=0.0))
    assert OptionSelector().score(quote, 0.0, TODAY) == 0.0
    assert OptionSelector().indicators(quote, 0.0) == ()


def test_select_returns_none_without_quotes() -> None:
    assert OptionSelector().select("XYZ", {}, 0.8, TODAY) is None


def test_crypto_symbols_are_filtered_and_counted() -> None:
    eligible, crypto = eligible_symbols(["aapl", "BTC", "ETHUSD", "MSFT", "AAPL", "doge"])
    assert eligible == ["AAPL", "MSFT"]
    assert crypto == 3
    assert is_crypto_symbol("btcusd")
    assert not is_crypto_symbol("TSLA")
