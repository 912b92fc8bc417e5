"""In-memory doubles for the news/options sources, model and clocks."""

from __future__ import annotations

import asyncio
from collections import Counter
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from core.errors import TransportError
from services.options.chain import OptionsQuery
from services.options.contract_key import encode
from services.sentiment.types import SentimentResult

PINNED_NOW = datetime(2025, 1, 2, 15, 0, tzinfo=timezone.utc)


class FakeClock:
    """Monotonic clock advanced by hand (or by :meth:`sleep`)."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def snapshot(volume: int, /, ask: float = 2.5, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "latestQuote": {"ap": ask, "bp": round(ask - 0.1, 2), "as": 10},
        "dailyBar": {"v": volume},
    }
    payload.update(extra)
    return payload


def contract(symbol: str, expiry: date, strike: float, right: str = "call") -> str:
    return encode(symbol, expiry, right, strike)  # type: ignore[arg-type]


class FakeOptionsSource:
    """Serves canned snapshot payloads and records concurrency."""

    def __init__(
        self,
        payloads: Optional[Mapping[str, Mapping[str, Any]]] = None,
        *,
        delay: float = 0.0,
        failures: Optional[Mapping[str, int]] = None,
        default: Optional[Mapping[str, Any]] = None,
    ) -> None:
        self.payloads = dict(payloads or {})
        self.delay = delay
        self.failures = Counter(failures or {})
        self.default = default
        self.calls: Counter[str] = Counter()
        self.queries: List[OptionsQuery] = []
        self.in_flight = 0
        self.peak = 0

    async def fetch_options(self, symbol: str, query: OptionsQuery) -> Dict[str, Any]:
        self.calls[symbol] += 1
        self.queries.append(query)
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if self.failures[symbol] > 0:
                self.failures[symbol] -= 1
                raise TransportError(f"{symbol}: 503 Service Unavailable", status_code=503)
            payload = self.payloads.get(symbol, self.default)
            if payload is None:
                return {"snapshots": {}}
            return {"snapshots": dict(payload)}
        finally:
            self.in_flight -= 1


class FakeNewsSource:
    def __init__(self, items: Iterable[Mapping[str, Any]] = (), *, failures: int = 0) -> None:
        self.items = [dict(item) for item in items]
        self.failures = failures
        self.calls = 0

    async def fetch_news(self) -> Dict[str, Any]:
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise TransportError("news: 502 Bad Gateway", status_code=502)
        return {"news": list(self.items)}


class StaticSentimentModel:
    """Looks results up by exact text; unknown text is neutral."""

    name = "static"

    def __init__(self, results: Optional[Mapping[str, SentimentResult]] = None, *, ready: bool = True) -> None:
        self.results = dict(results or {})
        self._ready = ready
        self.batches: List[List[str]] = []

    @property
    def ready(self) -> bool:
        return self._ready

    def load(self) -> None:
        self._ready = True

    def predict_batch(self, texts: Sequence[str]) -> List[SentimentResult]:
        self.batches.append(list(texts))
        return [
            self.results.get(text, SentimentResult(label="neutral", confidence=0.5, model=self.name))
            for text in texts
        ]


class BrokenSentimentModel(StaticSentimentModel):
    name = "broken"

    def __init__(self) -> None:
        super().__init__(ready=False)

    def load(self) -> None:
        return None
