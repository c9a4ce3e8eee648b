"""
Confidence algebra applied alongside the Kleene operators.

Treating confidences as independent probabilities:

    AND:  C = c_a * c_b
    OR:   C = 1 - (1 - c_a)(1 - c_b)

and for more than two sources (multi-path aggregation):

    C_agg = 1 - Π_i (1 - C_i)

All functions are pure and accept scalars or numpy arrays.
"""

import numpy as np


def confidence_and(c_a, c_b):
    """Confidence of a conjunction."""
    return np.multiply(c_a, c_b)


def confidence_or(c_a, c_b):
    """Confidence of a disjunction (inclusion-exclusion)."""
    return 1.0 - (1.0 - np.asarray(c_a, dtype=np.float64)) * (1.0 - np.asarray(c_b, dtype=np.float64))


def aggregate_confidence(confidences, axis: int = 0):
    """
    Combine several confidence sources.

    Args:
        confidences: Array-like of confidences; sources run along axis
        axis: Axis holding the sources

    Returns:
        1 - prod(1 - c) along axis
    """
    c = np.asarray(confidences, dtype=np.float64)
    return 1.0 - np.prod(1.0 - c, axis=axis)


def is_valid_confidence(confidence) -> bool:
    """True when every confidence is finite and in [0, 1]."""
    c = np.asarray(confidence, dtype=np.float64)
    return bool(np.all(np.isfinite(c)) and np.all((c >= 0.0) & (c <= 1.0)))


def clamp_confidence(confidence):
    """Clip confidences into [0, 1]."""
    return np.clip(confidence, 0.0, 1.0)
