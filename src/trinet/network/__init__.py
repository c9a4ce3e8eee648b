"""Ternary layers and re-quantization."""

from trinet.network.activation import confidence_curve, requantize, threshold_distance
from trinet.network.layer import TernaryLayer

__all__ = ["TernaryLayer", "requantize", "confidence_curve", "threshold_distance"]
