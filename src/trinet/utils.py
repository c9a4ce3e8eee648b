"""
Utility functions for the ternary engine.

Includes tensor metrics and layer summaries for monitoring training.
"""

from typing import Dict

import numpy as np

from trinet.logic.kleene import Trit
from trinet.network.layer import TernaryLayer
from trinet.tensor.ternary import TernaryTensor


def compute_metrics(tensor: TernaryTensor) -> Dict[str, float]:
    """
    Compute state metrics for one tensor.

    Metrics include:
    - frac_true / frac_false / frac_unknown: share of each trit
    - mean_confidence: average confidence
    - min_confidence: lowest confidence
    - gradient_norm: L2 norm of the gradient channel

    Args:
        tensor: Live tensor

    Returns:
        dict: Computed metrics
    """
    values, confidence, gradient = tensor.flat()
    n = tensor.total_size

    return {
        'frac_true': float(np.count_nonzero(values == Trit.TRUE)) / n,
        'frac_false': float(np.count_nonzero(values == Trit.FALSE)) / n,
        'frac_unknown': float(np.count_nonzero(values == Trit.UNKNOWN)) / n,
        'mean_confidence': float(np.mean(confidence)),
        'min_confidence': float(np.min(confidence)),
        'gradient_norm': float(np.linalg.norm(gradient)),
    }


def summarize_layer(layer: TernaryLayer) -> Dict:
    """
    Metrics for a layer's weight and bias tensors.

    Returns:
        dict: {'input_size', 'output_size', 'weight': {...}, 'bias': {...}}
    """
    return {
        'input_size': layer.input_size,
        'output_size': layer.output_size,
        'weight': compute_metrics(layer.weight),
        'bias': compute_metrics(layer.bias),
    }


def confidence_histogram(tensor: TernaryTensor, num_bins: int = 10) -> Dict:
    """
    Histogram of confidences, split by trit.

    Args:
        tensor: Live tensor
        num_bins: Number of bins over [0, 1]

    Returns:
        dict: 'bin_edges' plus one count array per trit name
    """
    values, confidence, _ = tensor.flat()
    edges = np.linspace(0.0, 1.0, num_bins + 1)
    hist = {'bin_edges': edges}
    for trit in (Trit.FALSE, Trit.UNKNOWN, Trit.TRUE):
        counts, _ = np.histogram(confidence[values == trit], bins=edges)
        hist[trit.name.lower()] = counts
    return hist
