"""Losses and gradients for confidence-weighted ternary tensors."""

from trinet.loss.functions import (
    LOSSES,
    compute_loss,
    cross_entropy_loss,
    mse_loss,
    signed_strength,
)
from trinet.loss.gradients import (
    compute_confidence_gradients,
    gradient_cross_entropy_wrt_strength,
    gradient_mse_wrt_strength,
    gradient_wrt_confidence,
    gradient_wrt_strength,
)

__all__ = [
    "LOSSES",
    "signed_strength",
    "mse_loss",
    "cross_entropy_loss",
    "compute_loss",
    "gradient_mse_wrt_strength",
    "gradient_cross_entropy_wrt_strength",
    "gradient_wrt_strength",
    "gradient_wrt_confidence",
    "compute_confidence_gradients",
]
