"""Confidence update dynamics."""

from trinet.dynamics.updates import apply_confidence_update, compute_gradient_norm, compute_gradients

__all__ = ["apply_confidence_update", "compute_gradients", "compute_gradient_norm"]
