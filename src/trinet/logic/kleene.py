"""
Kleene strong three-valued logic over the trit encoding.

With FALSE = -1, UNKNOWN = 0 and TRUE = 1:

    AND(a, b) = min(a, b)
    OR(a, b)  = max(a, b)
    NOT(a)    = -a

The scalar functions work on single trits; the kleene_* functions work
elementwise on numpy arrays of any shape.
"""

from enum import IntEnum

import numpy as np


class Trit(IntEnum):
    """A ternary truth value."""
    FALSE = -1
    UNKNOWN = 0
    TRUE = 1

    # Alias used in some of the literature
    MAYBE = 0


TRIT_DTYPE = np.int8
VALID_TRITS = (Trit.FALSE, Trit.UNKNOWN, Trit.TRUE)


def to_trit(value) -> Trit:
    """
    Coerce an integer-like value to a Trit.

    Raises:
        ValueError: If value is not -1, 0 or 1
    """
    try:
        return Trit(int(value))
    except ValueError:
        raise ValueError(f"Not a trit: {value!r}") from None


def trit_and(a, b) -> Trit:
    """Kleene conjunction of two trits."""
    return Trit(min(int(a), int(b)))


def trit_or(a, b) -> Trit:
    """Kleene disjunction of two trits."""
    return Trit(max(int(a), int(b)))


def trit_not(a) -> Trit:
    """Kleene negation."""
    return Trit(-int(a))


def kleene_and(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Elementwise AND (minimum)."""
    return np.minimum(a, b).astype(TRIT_DTYPE)


def kleene_or(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Elementwise OR (maximum)."""
    return np.maximum(a, b).astype(TRIT_DTYPE)


def kleene_not(a: np.ndarray) -> np.ndarray:
    """Elementwise NOT (negation)."""
    return np.negative(a).astype(TRIT_DTYPE)


def is_valid_trits(values: np.ndarray) -> bool:
    """Check that every element is -1, 0 or 1."""
    values = np.asarray(values)
    return bool(np.all((values == -1) | (values == 0) | (values == 1)))
