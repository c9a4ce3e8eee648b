"""
Ternary Network: orchestrator for a stack of ternary layers.

Ties together one Pool, one entropy source, a vector backend and an ordered
list of TernaryLayers. Training runs forward through the stack, evaluates the
loss on the final output, backpropagates straight-through gradients and then
applies the confidence update rule to every weight and bias tensor.
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from trinet.config import EngineConfig
from trinet.dynamics.updates import apply_confidence_update, compute_gradient_norm
from trinet.entropy import NumpyEntropySource
from trinet.errors import DimensionMismatchError, NullParamError
from trinet.loss.gradients import compute_confidence_gradients
from trinet.memory.pool import Pool
from trinet.network.layer import TernaryLayer
from trinet.storage.serialization import load_layers, save_layers
from trinet.tensor.backends import select_backend
from trinet.tensor.ternary import TernaryTensor
from trinet.utils import compute_metrics


logger = logging.getLogger(__name__)


class TernaryNetwork:
    """
    Feed-forward stack of ternary layers sharing one pool.

    Attributes:
        config: Engine configuration
        pool: Pool owning every layer and intermediate tensor
        entropy: Source of uniform draws for layer initialization
        backend: Vector backend used for all kernels
        layers: Ordered layers, input first
        loss_history: Loss after every train_step
        time_step: Number of completed train steps
    """

    def __init__(self, config: Optional[EngineConfig] = None, entropy=None):
        """
        Initialize an empty network.

        Args:
            config: Engine configuration (defaults to EngineConfig())
            entropy: Optional entropy source; defaults to NumpyEntropySource(config.seed)
        """
        self.config = config or EngineConfig()
        self.pool = Pool(self.config.pool.capacity_bytes, self.config.pool.alignment)
        self.entropy = entropy or NumpyEntropySource(self.config.seed)
        self.backend = select_backend(self.config.backend)
        self.layers: List[TernaryLayer] = []

        # History tracking
        self.loss_history: List[float] = []
        self.metrics_history: List[Dict] = []
        self.time_step = 0

    @property
    def input_size(self) -> Optional[int]:
        return self.layers[0].input_size if self.layers else None

    @property
    def output_size(self) -> Optional[int]:
        return self.layers[-1].output_size if self.layers else None

    def add_layer(self, output_size: int, input_size: Optional[int] = None) -> TernaryLayer:
        """
        Append a freshly initialized layer.

        Args:
            output_size: Units in the new layer
            input_size: Required for the first layer; later layers default to
                the previous layer's output_size

        Raises:
            ValueError: If input_size is missing for the first layer
            DimensionMismatchError: If input_size disagrees with the previous layer
        """
        if input_size is None:
            if not self.layers:
                raise ValueError("input_size is required for the first layer")
            input_size = self.output_size
        elif self.layers and input_size != self.output_size:
            raise DimensionMismatchError(
                f"Layer input_size {input_size} does not match previous output_size {self.output_size}"
            )

        layer = TernaryLayer.create(input_size, output_size, self.pool, self.entropy,
                                    self.config.activation)
        self.layers.append(layer)
        return layer

    def _require_layers(self):
        if not self.layers:
            raise NullParamError("Network has no layers")

    def tensor(self, values, confidence=None) -> TernaryTensor:
        """
        Build an input tensor from arrays.

        Args:
            values: Trits with shape (..., input_size)
            confidence: Optional confidences with the same shape
        """
        values = np.asarray(values)
        return TernaryTensor.from_arrays(self.pool, values.shape, values, confidence)

    def _forward_all(self, input: TernaryTensor) -> List[TernaryTensor]:
        """Forward through every layer; returns [input, out_1, ..., out_L]."""
        activations = [input]
        try:
            for layer in self.layers:
                activations.append(layer.forward(activations[-1], backend=self.backend))
        except Exception:
            for t in activations[1:]:
                t.destroy()
            raise
        return activations

    def forward(self, input: TernaryTensor) -> TernaryTensor:
        """
        Forward pass through the whole stack.

        Intermediate tensors are returned to the pool; the caller owns the
        returned output tensor.
        """
        self._require_layers()
        activations = self._forward_all(input)
        for t in activations[1:-1]:
            t.destroy()
        return activations[-1]

    def predict(self, values, confidence=None) -> Tuple[np.ndarray, np.ndarray]:
        """
        Forward pass on arrays.

        Returns:
            Tuple of (values, confidence) numpy copies of the output
        """
        self._require_layers()
        with self.tensor(values, confidence) as input:
            with self.forward(input) as output:
                return output.values.copy(), output.confidence.copy()

    def train_step(self, input: TernaryTensor, target, learning_rate: float,
                   record_history: bool = True) -> Dict:
        """
        One training step on a batch.

        Args:
            input: Tensor with last dimension equal to the first layer's input_size
            target: Desired output strengths, one per output element
            learning_rate: Step size for the confidence update
            record_history: Whether to store loss and metrics

        Returns:
            dict: step, loss, gradient_norm, flips, promotions, metrics
        """
        self._require_layers()
        policy = self.config.update
        activations = self._forward_all(input)
        try:
            output = activations[-1]
            grads = compute_confidence_gradients(output.values, output.confidence,
                                                 target, policy.loss)

            # Backward pass uses the pre-update weights of every layer
            grad = grads['grad_strength']
            layer_grads = []
            for layer, layer_input in zip(reversed(self.layers), reversed(activations[:-1])):
                back = layer.backward(layer_input, grad)
                layer_grads.append((layer, back))
                grad = back['grad_input']
        finally:
            for t in activations[1:]:
                t.destroy()

        flips = 0
        promotions = 0
        norms = []
        for layer, back in layer_grads:
            for tensor, g in ((layer.weight, back['grad_weight']), (layer.bias, back['grad_bias'])):
                result = apply_confidence_update(tensor, g, learning_rate, policy)
                flips += result['flips']
                promotions += result['promotions']
                norms.append(g)

        grad_norm = compute_gradient_norm(*norms)
        metrics = compute_metrics(self.layers[-1].weight)

        if record_history:
            self.loss_history.append(grads['loss'])
            self.metrics_history.append(metrics)

        self.time_step += 1

        return {
            'step': self.time_step,
            'loss': grads['loss'],
            'gradient_norm': grad_norm,
            'flips': flips,
            'promotions': promotions,
            'metrics': metrics,
        }

    def run_training(self, inputs, targets, epochs: int, learning_rate: float,
                     input_confidence=None, verbose: bool = True,
                     log_interval: int = 100) -> List[Dict]:
        """
        Train on a fixed batch for several epochs.

        Args:
            inputs: Trits with shape (batch, input_size)
            targets: Target strengths with shape (batch, output_size)
            epochs: Number of train steps
            learning_rate: Step size
            input_confidence: Optional confidences for inputs
            verbose: Whether to print progress
            log_interval: Print progress every N epochs

        Returns:
            List of step results
        """
        results = []

        with self.tensor(inputs, input_confidence) as input:
            for epoch in range(epochs):
                step_result = self.train_step(input, targets, learning_rate)
                results.append(step_result)

                if verbose and (epoch + 1) % log_interval == 0:
                    print(f"Epoch {epoch + 1}/{epochs}: "
                          f"loss={step_result['loss']:.6f}, "
                          f"||∇||={step_result['gradient_norm']:.6f}, "
                          f"flips={step_result['flips']}")

        return results

    def get_state(self) -> Dict:
        """
        Snapshot of network state.

        Returns:
            dict: layer shapes, pool usage and training progress
        """
        stats = self.pool.stats()
        return {
            'layers': [(layer.input_size, layer.output_size) for layer in self.layers],
            'pool_bytes_in_use': stats.bytes_in_use,
            'pool_capacity': stats.capacity,
            'time_step': self.time_step,
            'last_loss': self.loss_history[-1] if self.loss_history else None,
        }

    def save(self, path: Union[str, Path]) -> Path:
        """Write all layers to a file."""
        self._require_layers()
        return save_layers(path, self.layers)

    @classmethod
    def load(cls, path: Union[str, Path], config: Optional[EngineConfig] = None) -> "TernaryNetwork":
        """
        Rebuild a network from a file written by save().

        Raises:
            SerializationError: If the file is malformed
            DimensionMismatchError: If consecutive layers do not chain
        """
        network = cls(config)
        try:
            network.layers = load_layers(path, network.pool, network.config.activation)
            for prev, nxt in zip(network.layers, network.layers[1:]):
                if nxt.input_size != prev.output_size:
                    raise DimensionMismatchError(
                        f"Stored layers do not chain: {prev.output_size} -> {nxt.input_size}"
                    )
        except Exception:
            network.close()
            raise
        logger.info("Loaded network with %d layers from %s", len(network.layers), path)
        return network

    def close(self):
        """Destroy every layer and release the pool."""
        for layer in self.layers:
            layer.destroy()
        self.layers = []
        self.pool.destroy()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        shape = " -> ".join(str(n) for n in [self.input_size] + [l.output_size for l in self.layers]) \
            if self.layers else "empty"
        return f"TernaryNetwork({shape}, step={self.time_step})"
