"""
Ternary Layer: one feed-forward transformation with ternary re-quantization.

A layer owns a weight tensor of dims (output_size, input_size) and a bias
tensor of dims (output_size,), both allocated from the same pool. The forward
pass works on signed strengths m = value * confidence:

    s_o = Σ_i m(input_i) · m(weight_o,i) + m(bias_o)

and re-quantizes s through the layer's ActivationConfig. The backward pass
treats re-quantization as the identity (straight-through estimator) and
returns gradients with respect to the signed strengths of the input, the
weights and the bias.
"""

import logging
from typing import Dict, Optional

import numpy as np

from trinet.config import ActivationConfig
from trinet.entropy import EntropySource, draw_uniforms, uniform_to_trit
from trinet.errors import AllocationFailedError, DimensionMismatchError, NullParamError, require
from trinet.memory.pool import Pool
from trinet.network.activation import requantize
from trinet.tensor.backends import get_default_backend
from trinet.tensor.ternary import TernaryTensor


logger = logging.getLogger(__name__)


class TernaryLayer:
    """
    Weight and bias tensors plus re-quantization settings.

    Attributes:
        input_size (int): Width of the last input dimension
        output_size (int): Number of output units
        weight (TernaryTensor): Dims (output_size, input_size)
        bias (TernaryTensor): Dims (output_size,)
        activation (ActivationConfig): Thresholds and confidence curve
        pool (Pool): Pool shared by weight, bias and forward outputs
    """

    def __init__(self, weight: TernaryTensor, bias: TernaryTensor,
                 activation: Optional[ActivationConfig] = None):
        """
        Wrap existing tensors. The layer takes ownership of both.

        Raises:
            NullParamError: If a tensor is None or destroyed
            DimensionMismatchError: If weight/bias dims are inconsistent
        """
        require(weight, "weight").require_alive("weight")
        require(bias, "bias").require_alive("bias")
        if weight.ndims != 2 or bias.ndims != 1 or bias.dims[0] != weight.dims[0]:
            raise DimensionMismatchError(
                f"Expected weight (out, in) and bias (out,), got {weight.dims} and {bias.dims}"
            )
        if weight.pool is not bias.pool:
            raise ValueError("Weight and bias must come from the same pool")

        self.weight = weight
        self.bias = bias
        self.output_size, self.input_size = weight.dims
        self.activation = activation or ActivationConfig()
        self.pool = weight.pool

    @classmethod
    def create(cls, input_size: int, output_size: int, pool: Pool,
               entropy: EntropySource,
               activation: Optional[ActivationConfig] = None) -> "TernaryLayer":
        """
        Allocate and randomly initialize a layer.

        Weights are drawn first (row-major), then biases; each draw is mapped
        to a trit and a confidence by uniform_to_trit().

        Args:
            input_size: Input width
            output_size: Number of output units
            pool: Pool for the weight and bias tensors
            entropy: Source of uniform draws
            activation: Optional re-quantization settings

        Returns:
            TernaryLayer

        Raises:
            NullParamError: If pool or entropy is None
            DimensionMismatchError: If a size is not positive
            AllocationFailedError: If either tensor cannot be allocated
        """
        require(pool, "pool")
        require(entropy, "entropy")

        weight = TernaryTensor.create(pool, (output_size, input_size))
        try:
            bias = TernaryTensor.create(pool, (output_size,))
        except AllocationFailedError:
            weight.destroy()
            raise

        try:
            w_values, w_conf, _ = weight.flat()
            b_values, b_conf, _ = bias.flat()
            w_values[:], w_conf[:] = uniform_to_trit(draw_uniforms(entropy, weight.total_size))
            b_values[:], b_conf[:] = uniform_to_trit(draw_uniforms(entropy, bias.total_size))
        except Exception:
            weight.destroy()
            bias.destroy()
            raise

        logger.debug("Created layer %dx%d", output_size, input_size)
        return cls(weight, bias, activation)

    @property
    def is_alive(self) -> bool:
        return self.weight is not None

    def _require_alive(self):
        if self.weight is None:
            raise NullParamError("Layer has been destroyed")

    def _check_input(self, input: TernaryTensor):
        self._require_alive()
        require(input, "input").require_alive("input")
        if input.dims[-1] != self.input_size:
            raise DimensionMismatchError(
                f"Input last dimension {input.dims[-1]} does not match layer input_size {self.input_size}"
            )

    def output_dims(self, input: TernaryTensor):
        """Dims of the forward output for a given input."""
        return input.dims[:-1] + (self.output_size,)

    def preactivation(self, input: TernaryTensor, backend=None) -> np.ndarray:
        """
        Continuous sums s for every input row.

        Returns:
            np.ndarray: Shape input.dims[:-1] + (output_size,)
        """
        self._check_input(input)
        backend = backend or get_default_backend()

        x = input.strength().reshape(-1, self.input_size)
        w = self.weight.strength()
        b = self.bias.strength()
        s = backend.matvec(x, w, b)
        return s.reshape(self.output_dims(input))

    def forward(self, input: TernaryTensor, out: Optional[TernaryTensor] = None,
                backend=None) -> TernaryTensor:
        """
        Forward pass.

        Args:
            input: Tensor whose last dimension equals input_size
            out: Optional destination with dims output_dims(input); a new
                tensor is allocated from the layer's pool when omitted
            backend: Optional vector backend

        Returns:
            Output tensor holding re-quantized values and confidences

        Raises:
            NullParamError: If input (or out) is None or destroyed
            DimensionMismatchError: On shape mismatch; nothing is modified
            AllocationFailedError: If a new output cannot be allocated
        """
        self._check_input(input)
        out_dims = self.output_dims(input)
        if out is not None:
            out.require_alive("out")
            if out.dims != out_dims:
                raise DimensionMismatchError(f"Output dims {out.dims} do not match {out_dims}")

        s = self.preactivation(input, backend)
        values, confidence = requantize(s, self.activation)

        if out is None:
            out = TernaryTensor.create(self.pool, out_dims)
        out_values, out_conf, _ = out.flat()
        out_values[:] = values.reshape(-1)
        out_conf[:] = confidence.reshape(-1)
        return out

    def backward(self, input: TernaryTensor, grad_output) -> Dict[str, np.ndarray]:
        """
        Straight-through gradients for one forward call.

        Args:
            input: The tensor passed to forward()
            grad_output: dLoss/d(output strength), output_dims(input) elements

        Returns:
            dict with:
                'grad_input':  shape input.dims
                'grad_weight': shape (output_size, input_size)
                'grad_bias':   shape (output_size,)

        Raises:
            DimensionMismatchError: If grad_output has the wrong size
        """
        self._check_input(input)
        x = input.strength().reshape(-1, self.input_size)

        g = np.asarray(grad_output, dtype=np.float64)
        if g.size != x.shape[0] * self.output_size:
            raise DimensionMismatchError(
                f"grad_output has {g.size} elements, expected {x.shape[0] * self.output_size}"
            )
        g = g.reshape(-1, self.output_size)
        w = self.weight.strength()

        return {
            'grad_input': (g @ w).reshape(input.dims),
            'grad_weight': g.T @ x,
            'grad_bias': g.sum(axis=0),
        }

    def destroy(self):
        """Return weight and bias storage to the pool."""
        if self.weight is None:
            return
        self.weight.destroy()
        self.bias.destroy()
        self.weight = None
        self.bias = None

    def __repr__(self):
        if self.weight is None:
            return "TernaryLayer(destroyed)"
        return f"TernaryLayer(input_size={self.input_size}, output_size={self.output_size})"
