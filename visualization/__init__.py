"""
Visualization tools for the ternary engine.

Static matplotlib plots of training dynamics and confidence distributions.
"""

from visualization.training_plots import (
    plot_loss_evolution,
    plot_training_dashboard,
    plot_confidence_histogram
)

__all__ = [
    'plot_loss_evolution',
    'plot_training_dashboard',
    'plot_confidence_histogram',
]
