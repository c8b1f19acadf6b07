# interview_analytics/services/confidence.py
"""Confidence buckets and the answered/unanswered rule.

Accuracy is on a 0-100 scale. Buckets:

    HIGH    accuracy >= 80
    MEDIUM  50 <= accuracy < 80
    LOW     accuracy < 50

Both aggregation levels import these constants and functions; nothing else
should compare accuracy against a threshold.
"""
import math
from dataclasses import dataclass
from enum import Enum

from .errors import InvalidInput

ACCURACY_MIN = 0.0
ACCURACY_MAX = 100.0
HIGH_CONFIDENCE_MIN = 80.0
MEDIUM_CONFIDENCE_MIN = 50.0


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Answered:
    full_answer: str


@dataclass(frozen=True)
class Unanswered:
    reason: str


def checked_accuracy(value) -> float:
    """Return ``value`` as a float, raising InvalidInput outside [0, 100]."""
    if isinstance(value, bool):
        raise InvalidInput(f"accuracy must be a number, got {value!r}")
    try:
        acc = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"accuracy must be a number, got {value!r}")
    if not math.isfinite(acc) or acc < ACCURACY_MIN or acc > ACCURACY_MAX:
        raise InvalidInput(f"accuracy must be between {ACCURACY_MIN:g} and {ACCURACY_MAX:g}, got {value!r}")
    return acc


def classify(accuracy) -> Confidence:
    acc = checked_accuracy(accuracy)
    if acc >= HIGH_CONFIDENCE_MIN:
        return Confidence.HIGH
    if acc >= MEDIUM_CONFIDENCE_MIN:
        return Confidence.MEDIUM
    return Confidence.LOW


def _blank(text) -> bool:
    return not (text or "").strip()


def outcome_of(qa):
    """Answered iff no reason is given and the answer text is non-blank."""
    reason = qa.reason_unanswered or ""
    if _blank(reason) and not _blank(qa.full_answer):
        return Answered(qa.full_answer)
    return Unanswered(reason.strip())


def is_answered(qa) -> bool:
    return isinstance(outcome_of(qa), Answered)


def has_reason(qa) -> bool:
    return not _blank(qa.reason_unanswered)
