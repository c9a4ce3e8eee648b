"""
Training visualization for the ternary engine.

Provides functions to plot loss evolution, gradient norms, value transitions
and per-trit confidence distributions.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import List, Dict, Optional

from trinet.tensor.ternary import TernaryTensor
from trinet.utils import confidence_histogram


TRIT_COLORS = {
    'false': '#C73E1D',
    'unknown': '#8D99AE',
    'true': '#6A994E',
}


def plot_loss_evolution(loss_history: List[float],
                        title: str = "Loss Evolution",
                        figsize: tuple = (10, 6),
                        save_path: Optional[str] = None):
    """
    Plot training loss over time.

    Args:
        loss_history: Loss after every train step
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save figure
    """
    fig, ax = plt.subplots(figsize=figsize)

    steps = np.arange(1, len(loss_history) + 1)

    ax.plot(steps, loss_history, linewidth=2, color='#2E86AB')
    ax.set_xlabel('Train Step', fontsize=12)
    ax.set_ylabel('Loss', fontsize=12)
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.grid(True, alpha=0.3)

    if len(loss_history) > 0:
        ax.annotate(f'Initial: {loss_history[0]:.4f}',
                    xy=(1, loss_history[0]),
                    xytext=(10, 10), textcoords='offset points',
                    fontsize=10, color='green',
                    bbox=dict(boxstyle='round,pad=0.5', facecolor='white', alpha=0.8))
        ax.annotate(f'Final: {loss_history[-1]:.4f}',
                    xy=(len(loss_history), loss_history[-1]),
                    xytext=(-80, 20), textcoords='offset points',
                    fontsize=10, color='red',
                    bbox=dict(boxstyle='round,pad=0.5', facecolor='white', alpha=0.8))

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_training_dashboard(results: List[Dict],
                            figsize: tuple = (14, 8),
                            save_path: Optional[str] = None):
    """
    Dashboard of loss, gradient norm, transitions and output-layer state.

    Args:
        results: Step results from TernaryNetwork.train_step / run_training
        figsize: Figure size
        save_path: Optional path to save figure
    """
    steps = [r['step'] for r in results]
    losses = [r['loss'] for r in results]
    grad_norms = [max(r['gradient_norm'], 1e-12) for r in results]
    flips = [r['flips'] + r['promotions'] for r in results]
    frac_unknown = [r['metrics']['frac_unknown'] for r in results]
    mean_conf = [r['metrics']['mean_confidence'] for r in results]

    fig, axes = plt.subplots(2, 2, figsize=figsize)

    # 1. Loss
    axes[0, 0].plot(steps, losses, linewidth=2, color='#2E86AB')
    axes[0, 0].set_title('Loss', fontsize=11, fontweight='bold')
    axes[0, 0].grid(True, alpha=0.3)

    # 2. Gradient norm (log scale)
    axes[0, 1].semilogy(steps, grad_norms, linewidth=2, color='#A23B72')
    axes[0, 1].set_title('Gradient Norm', fontsize=11, fontweight='bold')
    axes[0, 1].grid(True, alpha=0.3, which='both')

    # 3. Value transitions per step
    axes[1, 0].bar(steps, flips, color='#F18F01')
    axes[1, 0].set_xlabel('Train Step', fontsize=11)
    axes[1, 0].set_title('Value Transitions', fontsize=11, fontweight='bold')
    axes[1, 0].grid(True, alpha=0.3)

    # 4. Output-layer weight state
    axes[1, 1].plot(steps, frac_unknown, linewidth=2, color=TRIT_COLORS['unknown'],
                    label='UNKNOWN fraction')
    axes[1, 1].plot(steps, mean_conf, linewidth=2, color='#2E86AB',
                    label='Mean confidence')
    axes[1, 1].set_ylim([0, 1])
    axes[1, 1].set_xlabel('Train Step', fontsize=11)
    axes[1, 1].set_title('Output Weights', fontsize=11, fontweight='bold')
    axes[1, 1].legend(loc='best', fontsize=9)
    axes[1, 1].grid(True, alpha=0.3)

    plt.suptitle('Ternary Training Dashboard', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig


def plot_confidence_histogram(tensor: TernaryTensor,
                              num_bins: int = 20,
                              title: str = "Confidence by Trit",
                              figsize: tuple = (10, 6),
                              save_path: Optional[str] = None):
    """
    Stacked histogram of confidences for each trit.

    Args:
        tensor: Live tensor (e.g. a layer's weight)
        num_bins: Number of bins over [0, 1]
        title: Plot title
        figsize: Figure size
        save_path: Optional path to save figure
    """
    hist = confidence_histogram(tensor, num_bins=num_bins)
    edges = hist['bin_edges']
    centers = (edges[:-1] + edges[1:]) / 2
    width = edges[1] - edges[0]

    fig, ax = plt.subplots(figsize=figsize)

    bottom = np.zeros(num_bins)
    for name in ('false', 'unknown', 'true'):
        ax.bar(centers, hist[name], width=width * 0.9, bottom=bottom,
               color=TRIT_COLORS[name], label=name.upper())
        bottom = bottom + hist[name]

    ax.set_xlabel('Confidence', fontsize=12)
    ax.set_ylabel('Count', fontsize=12)
    ax.set_xlim([0, 1])
    ax.set_title(title, fontsize=14, fontweight='bold')
    ax.legend(loc='best', fontsize=10)
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')

    return fig
