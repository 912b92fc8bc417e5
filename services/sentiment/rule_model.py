"""Simple rule-based sentiment scoring."""

from __future__ import annotations

import re
from typing import List, Sequence

from services.sentiment.types import SentimentResult

POS = {
    "beat",
    "beats",
    "surge",
    "surges",
    "soar",
    "soars",
    "upgrade",
    "upgraded",
    "record",
    "strong",
    "profit",
    "raises",
    "growth",
    "win",
    "wins",
    "tops",
    "outperform",
    "bullish",
    "rally",
    "approval",
}

NEG = {
    "miss",
    "misses",
    "fall",
    "falls",
    "downgrade",
    "downgraded",
    "recall",
    "fraud",
    "loss",
    "cut",
    "cuts",
    "probe",
    "lawsuit",
    "reduce",
    "plunge",
    "plunges",
    "slump",
    "bearish",
    "investigation",
    "bankruptcy",
}

_TOKEN = re.compile(r"[A-Za-z]+")


def score_text(text: str) -> float:
    """Score text in [-1, 1] by counting lexicon hits."""
    words = _TOKEN.findall(text.lower())
    pos_hits = sum(1 for word in words if word in POS)
    neg_hits = sum(1 for word in words if word in NEG)
    if pos_hits == neg_hits == 0:
        return 0.0
    raw = (pos_hits - neg_hits) / 4.0
    return max(-1.0, min(1.0, raw))


def infer(text: str) -> SentimentResult:
    """Infer sentiment for a single text using the lexicon."""
    score = score_text(text)
    if score > 0.1:
        label = "positive"
    elif score < -0.1:
        label = "negative"
    else:
        label = "neutral"
    confidence = 1.0 - abs(score) if label == "neutral" else 0.5 + 0.5 * abs(score)
    return SentimentResult(label=label, confidence=confidence, model="rule", scores={"pos_neg": score})


class RuleSentimentModel:
    """Offline lexicon model; always available."""

    name = "rule"

    def load(self) -> None:
        return None

    @property
    def ready(self) -> bool:
        return True

    def predict_batch(self, texts: Sequence[str]) -> List[SentimentResult]:
        return [infer(text) for text in texts]
