"""
Re-quantization of continuous pre-activations into the ternary domain.

Given thresholds theta_low < theta_high:

    s >= theta_high          -> TRUE
    s <= theta_low           -> FALSE
    theta_low < s < theta_high -> UNKNOWN

Confidence depends only on d, the distance from s to the nearer threshold
(inside the band that is the distance to the closer edge):

    confidence = clamp(base + (1 - base) * d / margin, 0, 1)

so it equals base on a threshold, rises monotonically as s leaves the
ambiguous band (or moves to its centre) and saturates at 1 once d >= margin.
"""

from typing import Optional, Tuple

import numpy as np

from trinet.config import ActivationConfig
from trinet.logic.kleene import TRIT_DTYPE, Trit


def threshold_distance(s: np.ndarray, config: ActivationConfig) -> np.ndarray:
    """Distance from each pre-activation to the nearer threshold."""
    s = np.asarray(s, dtype=np.float64)
    return np.minimum(np.abs(s - config.theta_low), np.abs(s - config.theta_high))


def confidence_curve(distance: np.ndarray, config: ActivationConfig) -> np.ndarray:
    """Monotonic map from threshold distance to confidence in [0, 1]."""
    base = config.base_confidence
    raw = base + (1.0 - base) * np.asarray(distance, dtype=np.float64) / config.margin
    return np.clip(raw, 0.0, 1.0)


def requantize(s: np.ndarray,
               config: Optional[ActivationConfig] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map pre-activations to (values, confidence).

    Args:
        s: Continuous pre-activations, any shape
        config: Thresholds and curve parameters (defaults to ActivationConfig())

    Returns:
        Tuple of (int8 trits, float64 confidences), both shaped like s
    """
    config = config or ActivationConfig()
    s = np.asarray(s, dtype=np.float64)

    values = np.full(s.shape, Trit.UNKNOWN, dtype=TRIT_DTYPE)
    values[s >= config.theta_high] = Trit.TRUE
    values[s <= config.theta_low] = Trit.FALSE

    confidence = confidence_curve(threshold_distance(s, config), config)
    return values, confidence
