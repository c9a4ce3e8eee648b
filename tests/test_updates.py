"""
Unit tests for losses, confidence gradients and the update rule.

Verifies the closed-form gradients, the learning-rate-zero contract and the
value transitions that happen when a confidence crosses zero.
"""

import numpy as np
import pytest

from trinet.config import UpdatePolicy
from trinet.dynamics import apply_confidence_update, compute_gradient_norm, compute_gradients
from trinet.errors import DimensionMismatchError, NullParamError
from trinet.logic import Trit
from trinet.loss import (
    compute_confidence_gradients,
    compute_loss,
    cross_entropy_loss,
    gradient_cross_entropy_wrt_strength,
    mse_loss,
)
from trinet.tensor import TernaryTensor


class TestLosses:
    """Test loss values."""

    def test_mse(self):
        """Test MSE on signed strengths."""
        m = np.array([1.0, -0.5, 0.0, 0.8])
        t = np.zeros(4)
        assert np.isclose(mse_loss(m, t), 0.4725)

    def test_cross_entropy(self):
        """Test cross-entropy with strengths read as probabilities."""
        loss = cross_entropy_loss(np.array([0.5]), np.array([1.0]))
        assert np.isclose(loss, -np.log(0.75))

    def test_cross_entropy_is_finite_at_extremes(self):
        """Test clipping keeps the loss finite."""
        loss = cross_entropy_loss(np.array([-1.0, 1.0]), np.array([1.0, -1.0]))
        assert np.isfinite(loss)

    def test_cross_entropy_rejects_out_of_range_target(self):
        with pytest.raises(ValueError):
            cross_entropy_loss(np.array([0.0]), np.array([2.0]))

    def test_unknown_loss(self):
        with pytest.raises(ValueError):
            compute_loss(np.zeros(2), np.zeros(2), 'hinge')

    def test_cross_entropy_gradient_zero_when_clipped(self):
        """Test the gradient vanishes where the clipped loss is flat."""
        m = np.array([1.0, -1.0, 0.5])
        t = np.array([-1.0, 1.0, 1.0])

        grad = gradient_cross_entropy_wrt_strength(m, t)

        assert grad[0] == 0.0
        assert grad[1] == 0.0
        assert np.isclose(grad[2], -2.0 / 9.0)

    def test_cross_entropy_gradient_finite_difference(self):
        """Test the analytic cross-entropy gradient numerically."""
        m = np.array([0.3, -0.6, 0.1])
        t = np.array([1.0, -0.2, 0.0])
        grad = gradient_cross_entropy_wrt_strength(m, t)

        eps = 1e-6
        for i in range(len(m)):
            plus = m.copy()
            minus = m.copy()
            plus[i] += eps
            minus[i] -= eps
            numeric = (cross_entropy_loss(plus, t) - cross_entropy_loss(minus, t)) / (2 * eps)
            assert np.isclose(grad[i], numeric, rtol=1e-4, atol=1e-8)


class TestConfidenceGradients:
    """Test gradients with respect to confidence."""

    def test_mse_closed_form(self):
        """Test dL/dm = 2(m - t)/N and dL/dc = v dL/dm."""
        values = np.array([1, -1, 0, 1], dtype=np.int8)
        confidence = np.array([1.0, 0.5, 1.0, 0.8])

        grads = compute_confidence_gradients(values, confidence, np.zeros(4), 'mse')

        assert np.isclose(grads['loss'], 0.4725)
        assert np.allclose(grads['grad_strength'], [0.5, -0.25, 0.0, 0.4])
        assert np.allclose(grads['grad_confidence'], [0.5, 0.25, 0.0, 0.4])

    def test_unknown_has_zero_confidence_gradient(self):
        """Test UNKNOWN elements get no confidence gradient."""
        grads = compute_confidence_gradients(np.array([0, 0]), np.array([0.3, 0.9]),
                                             np.array([1.0, -1.0]))
        assert np.all(grads['grad_confidence'] == 0.0)
        assert np.all(grads['grad_strength'] != 0.0)

    def test_target_length_mismatch(self):
        with pytest.raises(DimensionMismatchError):
            compute_confidence_gradients(np.array([1, 0]), np.array([1.0, 1.0]), [0.0])

    def test_non_finite_target(self):
        with pytest.raises(ValueError):
            compute_confidence_gradients(np.array([1]), np.array([1.0]), [np.nan])


class TestZeroLearningRate:
    """Test that a zero step only records gradients."""

    def test_confidences_unchanged(self, pool):
        """Test confidences are bit-for-bit identical after a zero step."""
        t = TernaryTensor.from_arrays(pool, (4,), [1, -1, 0, 1], [0.9, 0.3, 0.5, 0.7])
        values_before = t.values.copy()
        confidence_before = t.confidence.copy()

        result = compute_gradients(t, [1.0, 1.0, 1.0, 1.0], 0.0)

        assert np.array_equal(t.values, values_before)
        assert t.confidence.tobytes() == confidence_before.tobytes()
        assert result['flips'] == 0
        assert result['promotions'] == 0

    def test_gradient_written(self, pool):
        """Test the gradient channel holds dL/dc after a zero step."""
        t = TernaryTensor.from_arrays(pool, (4,), [1, -1, 0, 1], [1.0, 0.5, 1.0, 0.8])

        compute_gradients(t, np.zeros(4), 0.0)

        assert np.allclose(t.gradient, [0.5, 0.25, 0.0, 0.4])


class TestConfidenceUpdate:
    """Test confidence descent and value transitions."""

    def test_plain_descent(self, pool):
        """Test c <- c - lr dL/dc without transitions."""
        t = TernaryTensor.from_arrays(pool, (4,), [1, -1, 0, 1], [1.0, 0.5, 1.0, 0.8])

        result = compute_gradients(t, np.zeros(4), 0.1)

        assert np.isclose(result['loss'], 0.4725)
        assert np.allclose(t.confidence, [0.95, 0.475, 1.0, 0.76])
        assert np.array_equal(t.values, [1, -1, 0, 1])
        assert result['flips'] == 0

    def test_clamped_at_zero_without_flip(self, pool):
        """Test a small overshoot clamps confidence instead of flipping."""
        t = TernaryTensor.from_arrays(pool, (1,), [1], [0.1])

        result = compute_gradients(t, [-1.0], 0.05)

        assert t.values[0] == Trit.TRUE
        assert t.confidence[0] == 0.0
        assert result['flips'] == 0

    def test_flip(self, pool):
        """Test crossing below -flip_floor flips the value."""
        t = TernaryTensor.from_arrays(pool, (1,), [1], [0.1])

        result = compute_gradients(t, [-1.0], 1.0)

        assert t.values[0] == Trit.FALSE
        assert np.isclose(t.confidence[0], 1.0)
        assert np.isclose(t.gradient[0], 2.2)
        assert result['flips'] == 1

    def test_flip_with_gradient_reset(self, pool):
        """Test the gradient of a flipped element is zeroed when configured."""
        t = TernaryTensor.from_arrays(pool, (2,), [1, 1], [0.1, 1.0])
        policy = UpdatePolicy(reset_gradient_on_flip=True)

        compute_gradients(t, [-1.0, 1.0], 1.0, policy)

        assert t.values[0] == Trit.FALSE
        assert t.gradient[0] == 0.0
        assert t.values[1] == Trit.TRUE

    def test_promotion(self, pool):
        """Test enough pressure moves UNKNOWN toward the target sign."""
        t = TernaryTensor.from_arrays(pool, (2,), [0, 0], [1.0, 1.0])

        result = compute_gradients(t, [2.0, -2.0], 0.05)

        # dL/dm = 2(0 - t)/2 = -t
        assert np.array_equal(t.values, [1, -1])
        assert np.allclose(t.confidence, [0.1, 0.1])
        assert result['promotions'] == 2

    def test_no_promotion_below_floor(self, pool):
        """Test weak pressure leaves UNKNOWN untouched."""
        t = TernaryTensor.from_arrays(pool, (1,), [0], [1.0])

        result = compute_gradients(t, [1.0], 0.01)

        assert t.values[0] == Trit.UNKNOWN
        assert t.confidence[0] == 1.0
        assert result['promotions'] == 0

    def test_cross_entropy_update(self, pool):
        """Test a cross-entropy step raises confidence toward the target."""
        t = TernaryTensor.from_arrays(pool, (1,), [1], [0.5])
        policy = UpdatePolicy(loss='cross_entropy')

        result = compute_gradients(t, [1.0], 0.1, policy)

        assert np.isclose(result['loss'], -np.log(0.75))
        assert np.isclose(t.confidence[0], 0.5 + 0.1 * (2.0 / 3.0))

    def test_saturated_cross_entropy_step_is_bounded(self, pool):
        """Test a fully wrong saturated element yields a zero gradient, not a huge one."""
        t = TernaryTensor.from_arrays(pool, (2,), [1, 1], [1.0, 0.5])
        policy = UpdatePolicy(loss='cross_entropy')

        result = compute_gradients(t, [-1.0, 1.0], 0.1, policy)

        assert t.gradient[0] == 0.0
        assert t.confidence[0] == 1.0
        assert result['gradient_norm'] < 1.0

    def test_confidence_stays_in_range(self, pool):
        """Test large random steps keep every confidence in [0, 1]."""
        rng = np.random.RandomState(0)
        n = 200
        t = TernaryTensor.from_arrays(pool, (n,), rng.randint(-1, 2, n), rng.random_sample(n))

        for _ in range(20):
            compute_gradients(t, rng.uniform(-1, 1, n), 5.0)
            assert np.all((t.confidence >= 0.0) & (t.confidence <= 1.0))
            assert np.all(np.isin(t.values, [-1, 0, 1]))

    def test_target_mismatch_changes_nothing(self, pool):
        """Test a wrong target length leaves the tensor alone."""
        t = TernaryTensor.from_arrays(pool, (3,), [1, 0, -1], [0.5, 0.5, 0.5])
        before = t.to_dict()

        with pytest.raises(DimensionMismatchError):
            compute_gradients(t, [1.0, 1.0], 0.1)

        assert np.array_equal(t.confidence, before['confidence'])
        assert np.array_equal(t.gradient, before['gradient'])

    def test_invalid_learning_rate(self, pool):
        t = TernaryTensor.create(pool, (2,))
        with pytest.raises(ValueError):
            apply_confidence_update(t, np.zeros(2), -0.1)
        with pytest.raises(ValueError):
            apply_confidence_update(t, np.zeros(2), float('inf'))

    def test_destroyed_tensor(self, pool):
        t = TernaryTensor.create(pool, (2,))
        t.destroy()
        with pytest.raises(NullParamError):
            compute_gradients(t, [0.0, 0.0], 0.1)


class TestUpdatePolicy:
    """Test policy validation."""

    def test_rejects_unknown_loss(self):
        with pytest.raises(ValueError):
            UpdatePolicy(loss='hinge')

    def test_rejects_bad_floor(self):
        with pytest.raises(ValueError):
            UpdatePolicy(flip_floor=0.0)


def test_gradient_norm():
    """Test combined norm over several arrays."""
    assert np.isclose(compute_gradient_norm(np.array([3.0]), np.array([[4.0]])), 5.0)
