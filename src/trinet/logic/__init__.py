"""Three-valued logic and the confidence algebra."""

from trinet.logic.confidence import (
    aggregate_confidence,
    clamp_confidence,
    confidence_and,
    confidence_or,
    is_valid_confidence,
)
from trinet.logic.kleene import (
    TRIT_DTYPE,
    Trit,
    is_valid_trits,
    kleene_and,
    kleene_not,
    kleene_or,
    to_trit,
    trit_and,
    trit_not,
    trit_or,
)

__all__ = [
    "Trit",
    "TRIT_DTYPE",
    "to_trit",
    "trit_and",
    "trit_or",
    "trit_not",
    "kleene_and",
    "kleene_or",
    "kleene_not",
    "is_valid_trits",
    "confidence_and",
    "confidence_or",
    "aggregate_confidence",
    "is_valid_confidence",
    "clamp_confidence",
]
