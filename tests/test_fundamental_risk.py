from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from core.config import MetricsConfig
from services.options.chain import quote_from_snapshot, resolve_contract
from services.risk.fundamental import FundamentalRiskAssessor
from services.risk.sectors import classify_sector, estimate_market_cap, is_biotech, is_energy
from tests.fakes.market import contract, snapshot


def _resolved(symbol: str = "XYZ", volume: int = 1200, ask: float = 2.5, **extra):
    key = contract(symbol, date(2025, 4, 4), 50.0)
    return resolve_contract(
        quote_from_snapshot(key, snapshot(volume, ask=ask, **extra)), today=date(2025, 1, 2), config=MetricsConfig()
    )


def test_liquid_ordinary_contract_carries_no_risk() -> None:
    risk = FundamentalRiskAssessor().assess("XYZ", _resolved())
    assert risk.score == 0.0
    assert risk.reasons == ()


def test_penny_illiquid_contract_is_capped_at_one() -> None:
    resolved = _resolved(volume=20, ask=0.03, impliedVolatility=1.5)
    risk = FundamentalRiskAssessor().assess("XYZ", resolved)
    assert risk.score == 1.0
    assert "Extremely low price (<$0.05) - high risk of delisting" in risk.reasons
    assert "Very low volume (<100) - execution risk" in risk.reasons
    assert "Very low open interest (<50) - limited liquidity" in risk.reasons
    assert "Extreme volatility (>100%) - high risk" in risk.reasons
    assert "Small cap stock (<$50M) - high volatility risk" in risk.reasons


def test_volume_proxy_feeds_open_interest_rule() -> None:
    assessor = FundamentalRiskAssessor()
    proxied = assessor.assess("XYZ", _resolved(volume=40))
    reported = assessor.assess("XYZ", _resolved(volume=40, openInterest=5000))
    assert "Very low open interest (<50) - limited liquidity" in proxied.reasons
    assert "Very low open interest (<50) - limited liquidity" not in reported.reasons
    assert proxied.score - reported.score == pytest.approx(0.2)


def test_low_volume_and_high_iv_bands() -> None:
    risk = FundamentalRiskAssessor().assess("XYZ", _resolved(volume=300, impliedVolatility=0.9))
    assert risk.score == pytest.approx(0.15 + 0.2)
    assert risk.reasons == (
        "Low volume (<500) - liquidity concerns",
        "Very high volatility (>80%) - elevated risk",
    )


def test_small_biotech_stacks_sector_penalties() -> None:
    score, reasons = FundamentalRiskAssessor().sector_risk("ATYR")
    assert score == pytest.approx(0.3 + 0.2)
    assert reasons == [
        "Biotech sector - high regulatory and clinical trial risk",
        "Small biotech - extreme volatility and binary outcomes",
    ]


def test_sector_keywords_match_substrings() -> None:
    assert is_biotech("NEWGEN")
    assert is_energy("XOIL")
    assert not is_energy("AAPL")
    assert FundamentalRiskAssessor().sector_risk("GOLDX")[0] == pytest.approx(0.2)


def test_exact_sector_table() -> None:
    assert classify_sector("aapl") == "TECH"
    assert classify_sector("XOM") == "ENERGY"
    assert classify_sector("XYZ") == "OTHER"


def test_market_cap_uses_known_share_counts() -> None:
    assert estimate_market_cap("AAPL", 2.0) == pytest.approx(30_000_000_000.0)
    assert estimate_market_cap("XYZ", 0.5) == pytest.approx(25_000_000.0)
    tiny = replace(_resolved(ask=0.5), entry_price=0.5)
    assert "Small cap stock (<$50M) - high volatility risk" in FundamentalRiskAssessor().assess("XYZ", tiny).reasons
