"""
Gradients of the losses in loss.functions.

With m = v · c (value times confidence):

∂L_mse/∂m_i = 2 (m_i - t_i) / N

∂L_ce/∂m_i = (p_i - q_i) / (2 N p_i (1 - p_i))
             where p_i = (m_i + 1)/2, q_i = (t_i + 1)/2

The cross-entropy loss clips p to [eps, 1 - eps] and is flat outside that
range, so its gradient is zero there.

The discrete value is not differentiable, so the gradient that reaches the
tensor is the one with respect to confidence:

∂L/∂c_i = v_i · ∂L/∂m_i

which is zero for UNKNOWN elements.
"""

from typing import Dict

import numpy as np

from trinet.loss.functions import EPSILON, as_target, compute_loss, signed_strength, to_probability


def gradient_mse_wrt_strength(strength: np.ndarray, target: np.ndarray) -> np.ndarray:
    """∂L_mse/∂m."""
    n = max(len(strength), 1)
    return 2.0 * (np.asarray(strength, dtype=np.float64) - target) / n


def gradient_cross_entropy_wrt_strength(strength: np.ndarray, target: np.ndarray,
                                        eps: float = EPSILON) -> np.ndarray:
    """∂L_ce/∂m, zero where the loss clips p."""
    n = max(len(strength), 1)
    raw = (np.asarray(strength, dtype=np.float64) + 1.0) / 2.0
    p = to_probability(strength, eps)
    q = (target + 1.0) / 2.0
    grad = (p - q) / (2.0 * n * p * (1.0 - p))
    return np.where((raw < eps) | (raw > 1.0 - eps), 0.0, grad)


_GRADIENTS = {
    'mse': gradient_mse_wrt_strength,
    'cross_entropy': gradient_cross_entropy_wrt_strength,
}


def gradient_wrt_strength(strength: np.ndarray, target: np.ndarray,
                          loss: str = 'mse') -> np.ndarray:
    """Gradient of a named loss with respect to the signed strengths."""
    try:
        fn = _GRADIENTS[loss]
    except KeyError:
        raise ValueError(f"Unknown loss: {loss}. Choose from {sorted(_GRADIENTS)}") from None
    return fn(strength, target)


def gradient_wrt_confidence(values: np.ndarray, grad_strength: np.ndarray) -> np.ndarray:
    """Chain rule through m = v · c: ∂L/∂c = v · ∂L/∂m."""
    return np.asarray(values, dtype=np.float64) * grad_strength


def compute_confidence_gradients(values: np.ndarray, confidence: np.ndarray,
                                 target, loss: str = 'mse') -> Dict:
    """
    Loss and gradients for one tensor's channels.

    Args:
        values: Trits, any shape
        confidence: Confidences, same shape
        target: Target sequence with values.size elements
        loss: 'mse' or 'cross_entropy'

    Returns:
        dict with 'loss' (float), 'grad_strength' and 'grad_confidence'
        (flat float64 arrays)

    Raises:
        DimensionMismatchError: If target length differs from values.size
    """
    values = np.asarray(values).reshape(-1)
    confidence = np.asarray(confidence, dtype=np.float64).reshape(-1)
    t = as_target(target, values.size)

    m = signed_strength(values, confidence)
    loss_value = compute_loss(m, t, loss)
    grad_m = gradient_wrt_strength(m, t, loss)

    return {
        'loss': loss_value,
        'grad_strength': grad_m,
        'grad_confidence': gradient_wrt_confidence(values, grad_m),
    }
