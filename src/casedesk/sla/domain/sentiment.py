"""
Sentiment Classifier
====================

Deterministic lexical tone scoring for inbound support messages.

Score starts at zero and moves with each matched term:
- anger term: -1.0
- calm phrase: +0.4
- "!!!" or "?!?!": -0.6
- ":)" +0.3, ":(" -0.3

The result is clamped to [-1, 1] and labelled by threshold.
"""

import re
from dataclasses import dataclass

from casedesk.config import SentimentLabel


ANGER_TERMS = (
    "angry", "furious", "frustrated", "worst", "nonsense", "cheated",
    "wtf", "hate", "mad", "ridiculous", "disgusting", "scam", "fraud",
    "terrible", "immediately",
)

CALM_PHRASES = (
    "please", "thank", "thanks", "could you", "may i", "no hurry",
    "whenever", "take your time", "ok", "cool", "fine",
)

ANGER_WEIGHT = 1.0
CALM_WEIGHT = 0.4
SHOUTING_WEIGHT = 0.6
EMOTICON_WEIGHT = 0.3

ANGRY_THRESHOLD = -0.8
COOL_THRESHOLD = 0.6


def _phrase_pattern(phrase: str) -> re.Pattern:
    # "thank" also covers "thankful"/"thanks"; everything else is a whole word
    words = r"\s+".join(re.escape(w) for w in phrase.split())
    suffix = r"\w*" if phrase == "thank" else r"\b"
    return re.compile(rf"\b{words}{suffix}", re.IGNORECASE)


_ANGER_PATTERNS = [_phrase_pattern(t) for t in ANGER_TERMS]
_CALM_PATTERNS = [_phrase_pattern(p) for p in CALM_PHRASES if p != "thanks"]
_SHOUTING = re.compile(r"!!!|\?!\?!")


@dataclass(frozen=True)
class SentimentResult:
    """Sentiment label with its clamped score."""
    label: str
    score: float


def analyze(text: str) -> SentimentResult:
    """
    Score the tone of a message.

    Each term counts once per message regardless of repetitions.

    Examples:
        analyze("please, no hurry")  -> cool (0.8)
        analyze("this is a scam, fraud, terrible!!!") -> angry (-1.0)
        analyze("ok") -> neutral (0.4)
    """
    text = text or ""
    score = 0.0

    for pattern in _ANGER_PATTERNS:
        if pattern.search(text):
            score -= ANGER_WEIGHT
    for pattern in _CALM_PATTERNS:
        if pattern.search(text):
            score += CALM_WEIGHT
    if _SHOUTING.search(text):
        score -= SHOUTING_WEIGHT
    if ":)" in text:
        score += EMOTICON_WEIGHT
    if ":(" in text:
        score -= EMOTICON_WEIGHT

    score = max(-1.0, min(1.0, round(score, 4)))

    if score <= ANGRY_THRESHOLD:
        label = SentimentLabel.ANGRY
    elif score >= COOL_THRESHOLD:
        label = SentimentLabel.COOL
    else:
        label = SentimentLabel.NEUTRAL

    return SentimentResult(label=label, score=score)
