"""
Unit tests for tensor metrics and layer summaries.
"""

import numpy as np

from trinet.network import TernaryLayer
from trinet.tensor import TernaryTensor
from trinet.utils import compute_metrics, confidence_histogram, summarize_layer


class TestMetrics:
    """Test per-tensor metrics."""

    def test_compute_metrics(self, pool):
        """Test trit fractions, confidence stats and gradient norm."""
        t = TernaryTensor.from_arrays(pool, (4,), [1, 1, -1, 0], [1.0, 0.5, 0.25, 0.25])
        t.gradient[:] = [3.0, 4.0, 0.0, 0.0]

        metrics = compute_metrics(t)

        assert metrics['frac_true'] == 0.5
        assert metrics['frac_false'] == 0.25
        assert metrics['frac_unknown'] == 0.25
        assert np.isclose(metrics['mean_confidence'], 0.5)
        assert metrics['min_confidence'] == 0.25
        assert np.isclose(metrics['gradient_norm'], 5.0)

    def test_confidence_histogram(self, pool):
        """Test counts are split by trit."""
        t = TernaryTensor.from_arrays(pool, (4,), [1, 1, -1, 0], [0.9, 0.1, 0.6, 0.2])

        hist = confidence_histogram(t, num_bins=2)

        assert list(hist['true']) == [1, 1]
        assert list(hist['false']) == [0, 1]
        assert list(hist['unknown']) == [1, 0]


class TestSummarizeLayer:
    """Test layer summaries."""

    def test_summary(self, pool, entropy):
        """Test sizes and per-tensor metrics."""
        layer = TernaryLayer.create(3, 2, pool, entropy)

        summary = summarize_layer(layer)

        assert summary['input_size'] == 3
        assert summary['output_size'] == 2
        assert summary['weight'] == compute_metrics(layer.weight)
        assert summary['bias'] == compute_metrics(layer.bias)
        for part in ('weight', 'bias'):
            fractions = (summary[part]['frac_true'] + summary[part]['frac_false']
                         + summary[part]['frac_unknown'])
            assert np.isclose(fractions, 1.0)
