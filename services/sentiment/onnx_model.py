"""ONNX runtime wrapper for FinBERT models."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np

from core.errors import ModelUnavailableError
from services.sentiment.types import LABELS, Label, SentimentResult

logger = logging.getLogger("optionscout.sentiment")

_MIN_MODEL_BYTES = 1000
_PROTOBUF_HEADER = 0x08


def validate_model_dir(path: Path) -> Tuple[Path, Path]:
    """Return ``(model.onnx, tokenizer.json)`` or raise :class:`ModelUnavailableError`."""

    model_file = path / "model.onnx"
    tokenizer_file = path / "tokenizer.json"
    if not model_file.is_file():
        raise ModelUnavailableError(f"ONNX model not found at {model_file}")
    if model_file.stat().st_size < _MIN_MODEL_BYTES:
        raise ModelUnavailableError(f"{model_file} is too small to be a valid model")
    with model_file.open("rb") as handle:
        header = handle.read(1)
    if not header or header[0] != _PROTOBUF_HEADER:
        raise ModelUnavailableError(f"{model_file} does not look like an ONNX protobuf")
    if not tokenizer_file.is_file():
        raise ModelUnavailableError(f"tokenizer not found at {tokenizer_file}")
    return model_file, tokenizer_file


def _softmax(values: np.ndarray) -> np.ndarray:
    shifted = values - np.max(values)
    exp_values = np.exp(shifted)
    return exp_values / exp_values.sum(-1, keepdims=True)


class OnnxSentimentModel:
    """FinBERT exported to ONNX, tokenized with the bundled ``tokenizer.json``."""

    def __init__(self, model_path: str, labels: Sequence[str] = LABELS, max_tokens: int = 512) -> None:
        self.path = Path(model_path)
        self.labels: Tuple[Label, ...] = tuple(labels)  # type: ignore[assignment]
        self.max_tokens = max_tokens
        self.name = f"onnx:{self.path.name}"
        self._session: Optional[Any] = None
        self._tokenizer: Optional[Any] = None

    @property
    def ready(self) -> bool:
        return self._session is not None

    def load(self) -> None:
        """Load the ONNX session on first use."""
        if self._session is not None:
            return
        model_file, tokenizer_file = validate_model_dir(self.path)
        try:
            import onnxruntime as ort
            from transformers import PreTrainedTokenizerFast
        except ImportError as exc:
            raise ModelUnavailableError("onnxruntime/transformers not installed; install the 'models' extra") from exc

        # corrupt files surface as runtime-specific exception types
        try:
            tokenizer = PreTrainedTokenizerFast(tokenizer_file=str(tokenizer_file))
            session = ort.InferenceSession(str(model_file), providers=["CPUExecutionProvider"])
        except Exception as exc:
            raise ModelUnavailableError(f"could not load {self.path}: {exc}") from exc
        self._tokenizer, self._session = tokenizer, session
        logger.info("sentiment.model_loaded", extra={"model": self.name})

    def _predict(self, text: str) -> SentimentResult:
        assert self._tokenizer is not None and self._session is not None
        tokens = self._tokenizer(text, return_tensors="np", truncation=True, max_length=self.max_tokens)
        inputs = {
            "input_ids": tokens["input_ids"].astype(np.int64),
            "attention_mask": tokens["attention_mask"].astype(np.int64),
        }
        logits = np.asarray(self._session.run(None, inputs)[0][0], dtype=np.float64)[: len(self.labels)]
        probs = _softmax(logits)
        best = int(np.argmax(probs))
        return SentimentResult(
            label=self.labels[best],
            confidence=float(probs[best]),
            model=self.name,
            scores={label: float(p) for label, p in zip(self.labels, probs)},
        )

    def predict_batch(self, texts: Sequence[str]) -> List[SentimentResult]:
        if self._session is None:
            raise ModelUnavailableError(f"{self.name} not initialised")
        return [self._predict(text) for text in texts]
