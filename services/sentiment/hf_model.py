"""Lazy-loading HuggingFace FinBERT sentiment model."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from core.errors import ModelUnavailableError
from services.sentiment.types import LABELS, SentimentResult

logger = logging.getLogger("optionscout.sentiment")


class HFSentimentModel:
    """FinBERT through a ``transformers`` text-classification pipeline."""

    def __init__(self, model_name: str = "ProsusAI/finbert") -> None:
        self.model_name = model_name
        self.name = f"hf:{model_name}"
        self._pipeline: Optional[Any] = None

    @property
    def ready(self) -> bool:
        return self._pipeline is not None

    def load(self) -> None:
        """Load the HF model on first use."""
        if self._pipeline is not None:
            return
        try:
            from transformers import (
                AutoModelForSequenceClassification,
                AutoTokenizer,
                TextClassificationPipeline,
            )
        except ImportError as exc:
            raise ModelUnavailableError("transformers is not installed; install the 'models' extra") from exc

        try:
            tokenizer = AutoTokenizer.from_pretrained(self.model_name)
            model = AutoModelForSequenceClassification.from_pretrained(self.model_name)
            pipeline = TextClassificationPipeline(
                model=model,
                tokenizer=tokenizer,
                top_k=None,
                truncation=True,
            )
        except Exception as exc:
            raise ModelUnavailableError(f"could not load {self.model_name}: {exc}") from exc
        self._pipeline = pipeline
        logger.info("sentiment.model_loaded", extra={"model": self.name})

    def predict_batch(self, texts: Sequence[str]) -> List[SentimentResult]:
        if self._pipeline is None:
            raise ModelUnavailableError(f"{self.name} not initialised")
        if not texts:
            return []
        outputs = self._pipeline(list(texts))
        results: List[SentimentResult] = []
        for scores in outputs:
            score_map: Dict[str, float] = {entry["label"].lower(): float(entry["score"]) for entry in scores}
            label = max(LABELS, key=lambda name: score_map.get(name, 0.0))
            results.append(
                SentimentResult(label=label, confidence=score_map.get(label, 0.0), model=self.name, scores=score_map)
            )
        return results
