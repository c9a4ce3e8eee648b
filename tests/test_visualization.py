"""
Smoke tests for the training plots.
"""

import matplotlib
matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pytest

from trinet import EngineConfig, TernaryNetwork
from visualization import plot_confidence_histogram, plot_loss_evolution, plot_training_dashboard


@pytest.fixture
def trained():
    with TernaryNetwork(EngineConfig(seed=1)) as net:
        net.add_layer(4, input_size=2)
        net.add_layer(1)
        results = net.run_training([[1, 0], [-1, 1]], [[1.0], [-1.0]],
                                   epochs=3, learning_rate=0.1, verbose=False)
        yield net, results


class TestPlots:
    """Test figures are produced and saved."""

    def test_loss_evolution(self, trained, tmp_path):
        net, _ = trained
        path = tmp_path / "loss.png"

        fig = plot_loss_evolution(net.loss_history, save_path=str(path))

        assert path.exists()
        plt.close(fig)

    def test_dashboard(self, trained):
        _, results = trained
        fig = plot_training_dashboard(results)
        assert len(fig.axes) == 4
        plt.close(fig)

    def test_confidence_histogram(self, trained):
        net, _ = trained
        fig = plot_confidence_histogram(net.layers[0].weight, num_bins=5)
        assert fig is not None
        plt.close(fig)
