"""Explicitly constructed state shared by every task of a batch.

The context owns the TTL caches and the sentiment model handle so nothing in
the pipeline reaches for module-level globals; tests build one with fakes and
a fixed clock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional

from core.backoff import Sleep
from core.cache import TTLCache, sweep_forever
from core.config import RuntimeSettings, ScoringConfig
from core.errors import ModelUnavailableError
from services.market.alpaca_rest import AlpacaRestClient
from services.options.alpaca_chain import AlpacaSnapshotSource
from services.options.chain import OptionsSource
from services.sentiment.api import SentimentModel, build_model
from services.sentiment.fetchers import AlpacaNewsFetcher, NewsSource
from services.sentiment.types import SentimentResult

logger = logging.getLogger("optionscout.pipeline")

WallClock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PipelineContext:
    settings: RuntimeSettings
    scoring: ScoringConfig
    news_source: NewsSource
    options_source: OptionsSource
    sentiment_model: Optional[SentimentModel]
    sentiment_cache: TTLCache[SentimentResult]
    options_cache: TTLCache[Mapping[str, Any]]
    clock: WallClock = utcnow
    sleep: Sleep = asyncio.sleep
    _sweeper: Optional[asyncio.Task] = field(default=None, init=False, repr=False)

    @classmethod
    def build(
        cls,
        settings: RuntimeSettings,
        scoring: Optional[ScoringConfig] = None,
        *,
        news_source: Optional[NewsSource] = None,
        options_source: Optional[OptionsSource] = None,
        sentiment_model: Optional[SentimentModel] = None,
        clock: WallClock = utcnow,
        sleep: Sleep = asyncio.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> "PipelineContext":
        """Wire live Alpaca sources unless fakes are supplied."""

        if news_source is None or options_source is None:
            client = AlpacaRestClient.from_settings(settings)
            news_source = news_source or AlpacaNewsFetcher(client, limit=settings.news_limit)
            options_source = options_source or AlpacaSnapshotSource(client)
        return cls(
            settings=settings,
            scoring=scoring or ScoringConfig(),
            news_source=news_source,
            options_source=options_source,
            sentiment_model=sentiment_model if sentiment_model is not None else build_model(settings),
            sentiment_cache=TTLCache(settings.sentiment_ttl, name="sentiment", clock=monotonic),
            options_cache=TTLCache(settings.options_ttl, name="options", clock=monotonic),
            clock=clock,
            sleep=sleep,
        )

    @property
    def caches(self) -> List[TTLCache]:
        return [self.sentiment_cache, self.options_cache]

    async def ensure_model(self) -> SentimentModel:
        """Load the sentiment backend off the event loop if needed."""

        model = self.sentiment_model
        if model is None:
            raise ModelUnavailableError("no sentiment model configured")
        if not model.ready:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, model.load)
        if not model.ready:
            raise ModelUnavailableError(f"{model.name} failed to initialise")
        return model

    def start_sweeper(self) -> asyncio.Task:
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(sweep_forever(self.caches, self.settings.sweep_interval))
        return self._sweeper

    async def aclose(self) -> None:
        task, self._sweeper = self._sweeper, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "PipelineContext":
        self.start_sweeper()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()


__all__ = ["PipelineContext", "WallClock", "utcnow"]
