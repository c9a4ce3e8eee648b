"""
Confidence-space update rule for ternary tensors.

Gradient descent runs on confidence, not on the discrete value:

c ← clamp(c - η ∂L/∂c, 0, 1)

Discrete values only change when a confidence crosses a boundary during an
update. With f = UpdatePolicy.flip_floor and raw = c - η ∂L/∂c:

TRUE/FALSE:
    raw <= -f   the implied sign has flipped: v ← -v, c ← clamp(-raw)
    otherwise   c ← clamp(raw)

UNKNOWN (∂L/∂c is zero there):
    η |∂L/∂m| >= f   promote: v ← -sign(∂L/∂m), c ← clamp(η |∂L/∂m|)

With η = 0 the gradient channel is written and nothing else changes.
"""

import logging
from typing import Dict, Optional

import numpy as np

from trinet.config import UpdatePolicy
from trinet.errors import DimensionMismatchError, require
from trinet.logic.kleene import TRIT_DTYPE, Trit
from trinet.loss.gradients import compute_confidence_gradients
from trinet.tensor.ternary import TernaryTensor


logger = logging.getLogger(__name__)


def apply_confidence_update(tensor: TernaryTensor, grad_strength,
                            learning_rate: float,
                            policy: Optional[UpdatePolicy] = None) -> Dict:
    """
    Apply one update step to a tensor in place.

    Writes ∂L/∂c into the gradient channel, then updates confidence and,
    where a boundary is crossed, the discrete value. All new channel contents
    are computed before any of them is written.

    Args:
        tensor: Tensor to update
        grad_strength: ∂L/∂m, tensor.total_size elements
        learning_rate: Step size η >= 0
        policy: Update settings (defaults to UpdatePolicy())

    Returns:
        dict with 'flips' (sign changes), 'promotions' (UNKNOWN -> TRUE/FALSE)
        and 'gradient_norm'

    Raises:
        NullParamError: If tensor is None or destroyed
        DimensionMismatchError: If grad_strength has the wrong size
        ValueError: If learning_rate is negative or not finite
    """
    require(tensor, "tensor").require_alive()
    policy = policy or UpdatePolicy()
    if not np.isfinite(learning_rate) or learning_rate < 0:
        raise ValueError(f"learning_rate must be a finite non-negative number, got {learning_rate}")

    values, confidence, gradient = tensor.flat()
    g_m = np.asarray(grad_strength, dtype=np.float64).reshape(-1)
    if g_m.size != tensor.total_size:
        raise DimensionMismatchError(
            f"Gradient has {g_m.size} elements, tensor has {tensor.total_size}"
        )

    v = values.astype(np.int64)
    g_c = v * g_m

    if learning_rate == 0:
        gradient[:] = g_c
        return {'flips': 0, 'promotions': 0, 'gradient_norm': float(np.linalg.norm(g_c))}

    raw = confidence - learning_rate * g_c
    new_c = np.clip(raw, 0.0, 1.0)
    new_v = v.copy()

    known = v != Trit.UNKNOWN
    flip = known & (raw <= -policy.flip_floor)
    new_v[flip] = -v[flip]
    new_c[flip] = np.clip(-raw[flip], 0.0, 1.0)

    pressure = learning_rate * np.abs(g_m)
    promote = ~known & (pressure >= policy.flip_floor)
    new_v[promote] = -np.sign(g_m[promote])
    new_c[promote] = np.clip(pressure[promote], 0.0, 1.0)

    new_g = g_c.copy()
    if policy.reset_gradient_on_flip:
        new_g[flip | promote] = 0.0

    values[:] = new_v.astype(TRIT_DTYPE)
    confidence[:] = new_c
    gradient[:] = new_g

    n_flips = int(np.count_nonzero(flip))
    n_promotions = int(np.count_nonzero(promote))
    if n_flips or n_promotions:
        logger.debug("Update transitioned %d flips, %d promotions", n_flips, n_promotions)

    return {
        'flips': n_flips,
        'promotions': n_promotions,
        'gradient_norm': float(np.linalg.norm(g_c)),
    }


def compute_gradients(tensor: TernaryTensor, target, learning_rate: float,
                      policy: Optional[UpdatePolicy] = None) -> Dict:
    """
    Compute the loss against target and take one update step.

    Args:
        tensor: Tensor to train
        target: Desired signed strengths, tensor.total_size elements
        learning_rate: Step size η >= 0; 0 leaves every confidence unchanged
        policy: Loss form and transition settings

    Returns:
        dict with 'loss', 'gradient_norm', 'flips' and 'promotions'

    Raises:
        NullParamError: If tensor is None or destroyed
        DimensionMismatchError: If len(target) != tensor.total_size
    """
    require(tensor, "tensor").require_alive()
    policy = policy or UpdatePolicy()

    values, confidence, _ = tensor.flat()
    grads = compute_confidence_gradients(values, confidence, target, policy.loss)
    result = apply_confidence_update(tensor, grads['grad_strength'], learning_rate, policy)
    result['loss'] = grads['loss']
    return result


def compute_gradient_norm(*grads: np.ndarray) -> float:
    """
    Combined magnitude of several gradient arrays.

    ||∇|| = sqrt(Σ_k ||g_k||²)
    """
    return float(np.sqrt(sum(np.linalg.norm(g) ** 2 for g in grads)))
