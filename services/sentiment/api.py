"""Public API surface for sentiment consumers."""
from __future__ import annotations

from typing import List, Protocol, Sequence, runtime_checkable

from core.config import RuntimeSettings
from core.errors import ConfigError
from services.sentiment.hf_model import HFSentimentModel
from services.sentiment.onnx_model import OnnxSentimentModel
from services.sentiment.rule_model import RuleSentimentModel
from services.sentiment.types import SentimentResult


@runtime_checkable
class SentimentModel(Protocol):
    """Black-box text -> {label, confidence} classifier."""

    name: str

    @property
    def ready(self) -> bool: ...

    def load(self) -> None: ...

    def predict_batch(self, texts: Sequence[str]) -> List[SentimentResult]: ...


def build_model(settings: RuntimeSettings) -> SentimentModel:
    """Construct (but do not load) the configured backend."""

    backend = settings.sentiment_backend
    if backend == "rule":
        return RuleSentimentModel()
    if backend == "hf":
        return HFSentimentModel(settings.hf_model_name)
    if backend == "onnx":
        return OnnxSentimentModel(settings.sentiment_model_path, labels=settings.sentiment_labels)
    raise ConfigError(f"unknown sentiment backend {backend!r}")


__all__ = ["SentimentModel", "build_model"]
