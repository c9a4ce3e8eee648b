"""
Loss functions over confidence-weighted ternary tensors.

Both losses act on the signed strength m = value * confidence, m ∈ [-1, 1],
against a continuous target t:

1. Mean squared error
   L = (1/N) Σ (m_i - t_i)²

2. Cross-entropy, reading (m + 1)/2 as the probability of TRUE
   p_i = (m_i + 1)/2,  q_i = (t_i + 1)/2
   L = -(1/N) Σ [q_i log p_i + (1 - q_i) log(1 - p_i)]

Probabilities are clipped to [eps, 1 - eps] to keep the logarithms finite.
"""

import numpy as np

from trinet.errors import DimensionMismatchError


EPSILON = 1e-7


def signed_strength(values: np.ndarray, confidence: np.ndarray) -> np.ndarray:
    """m = value * confidence as float64."""
    return np.asarray(values, dtype=np.float64) * np.asarray(confidence, dtype=np.float64)


def as_target(target, size: int) -> np.ndarray:
    """
    Flatten and validate a target sequence.

    Raises:
        DimensionMismatchError: If target does not have size elements
        ValueError: If target contains NaN or infinity
    """
    t = np.asarray(target, dtype=np.float64).reshape(-1)
    if t.size != size:
        raise DimensionMismatchError(f"Target has {t.size} elements, tensor has {size}")
    if not np.all(np.isfinite(t)):
        raise ValueError("Target must be finite")
    return t


def to_probability(x: np.ndarray, eps: float = EPSILON) -> np.ndarray:
    """Map [-1, 1] to a clipped probability (x + 1)/2."""
    return np.clip((np.asarray(x, dtype=np.float64) + 1.0) / 2.0, eps, 1.0 - eps)


def mse_loss(strength: np.ndarray, target: np.ndarray) -> float:
    """Mean squared error between strengths and targets."""
    diff = np.asarray(strength, dtype=np.float64) - target
    return float(np.mean(diff * diff))


def cross_entropy_loss(strength: np.ndarray, target: np.ndarray,
                       eps: float = EPSILON) -> float:
    """
    Binary cross-entropy with strengths and targets read as probabilities.

    Raises:
        ValueError: If a target lies outside [-1, 1]
    """
    if np.any((target < -1.0) | (target > 1.0)):
        raise ValueError("Cross-entropy targets must lie in [-1, 1]")
    p = to_probability(strength, eps)
    q = (target + 1.0) / 2.0
    return float(-np.mean(q * np.log(p) + (1.0 - q) * np.log(1.0 - p)))


LOSSES = {
    'mse': mse_loss,
    'cross_entropy': cross_entropy_loss,
}


def compute_loss(strength: np.ndarray, target: np.ndarray, loss: str = 'mse') -> float:
    """
    Evaluate a named loss.

    Args:
        strength: Signed strengths, flat
        target: Targets, flat, same length
        loss: 'mse' or 'cross_entropy'
    """
    try:
        fn = LOSSES[loss]
    except KeyError:
        raise ValueError(f"Unknown loss: {loss}. Choose from {sorted(LOSSES)}") from None
    return fn(strength, target)
