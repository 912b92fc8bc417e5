from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import pytest

from core.config import RuntimeSettings, ScoringConfig
from services.pipeline.context import PipelineContext
from tests.fakes.market import PINNED_NOW, FakeClock, FakeNewsSource, FakeOptionsSource, StaticSentimentModel


@pytest.fixture(autouse=True)
def _debug_events():
    # jlog payloads are built only when debug is enabled; exercise that path
    logging.getLogger("optionscout.events").setLevel(logging.DEBUG)
    yield


@pytest.fixture
def settings() -> RuntimeSettings:
    return RuntimeSettings(
        alpaca_key_id="test-key",
        alpaca_secret_key="test-secret",
        max_concurrency=10,
        request_timeout=5.0,
        max_attempts=3,
        backoff_base=2.0,
        sentiment_backend="rule",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_context(settings: RuntimeSettings, clock: FakeClock) -> Callable[..., PipelineContext]:
    def _make(
        *,
        news: Optional[FakeNewsSource] = None,
        options: Optional[FakeOptionsSource] = None,
        model: Any = None,
        scoring: Optional[ScoringConfig] = None,
        **overrides: Any,
    ) -> PipelineContext:
        cfg = settings.model_copy(update=overrides) if overrides else settings
        return PipelineContext.build(
            cfg,
            scoring,
            news_source=news or FakeNewsSource(),
            options_source=options or FakeOptionsSource(),
            sentiment_model=model if model is not None else StaticSentimentModel(),
            clock=lambda: PINNED_NOW,
            sleep=clock.sleep,
            monotonic=clock,
        )

    return _make
