"""
Vector-operation backends.

Every elementwise and reduction kernel used by the batched operators and the
layer forward pass goes through a backend object. Two implementations share
one interface:

    NumpyBackend   vectorised numpy kernels (default)
    ScalarBackend  explicit Python loops, slow but obviously correct

A backend is picked once, by name, with select_backend() or
set_default_backend(); callers never branch on the backend themselves.
All kernels take flat 1-D inputs (matvec takes 2-D) and return new arrays.
"""

import math
from typing import Dict, Sequence

import numpy as np

from trinet.logic.confidence import aggregate_confidence, confidence_and, confidence_or
from trinet.logic.kleene import TRIT_DTYPE, kleene_and, kleene_not, kleene_or


class NumpyBackend:
    """Vectorised kernels."""

    name = "numpy"

    def kleene_and(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return kleene_and(a, b)

    def kleene_or(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return kleene_or(a, b)

    def kleene_not(self, a: np.ndarray) -> np.ndarray:
        return kleene_not(a)

    def kleene_any(self, values: Sequence[np.ndarray]) -> np.ndarray:
        return np.max(np.stack(values), axis=0).astype(TRIT_DTYPE)

    def confidence_and(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.asarray(confidence_and(a, b), dtype=np.float64)

    def confidence_or(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        return np.asarray(confidence_or(a, b), dtype=np.float64)

    def aggregate(self, confidences: Sequence[np.ndarray]) -> np.ndarray:
        return aggregate_confidence(np.stack(confidences), axis=0)

    def matvec(self, x: np.ndarray, w: np.ndarray, b: np.ndarray) -> np.ndarray:
        """
        Batched affine map.

        Args:
            x: Shape (batch, in)
            w: Shape (out, in)
            b: Shape (out,)

        Returns:
            np.ndarray: Shape (batch, out) = x @ w.T + b
        """
        return x @ w.T + b

    def __repr__(self):
        return "NumpyBackend()"


class ScalarBackend:
    """Loop-per-element kernels."""

    name = "scalar"

    def kleene_and(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        out = np.empty(len(a), dtype=TRIT_DTYPE)
        for i in range(len(a)):
            out[i] = min(int(a[i]), int(b[i]))
        return out

    def kleene_or(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        out = np.empty(len(a), dtype=TRIT_DTYPE)
        for i in range(len(a)):
            out[i] = max(int(a[i]), int(b[i]))
        return out

    def kleene_not(self, a: np.ndarray) -> np.ndarray:
        out = np.empty(len(a), dtype=TRIT_DTYPE)
        for i in range(len(a)):
            out[i] = -int(a[i])
        return out

    def kleene_any(self, values: Sequence[np.ndarray]) -> np.ndarray:
        out = np.empty(len(values[0]), dtype=TRIT_DTYPE)
        for i in range(len(out)):
            out[i] = max(int(v[i]) for v in values)
        return out

    def confidence_and(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        out = np.empty(len(a), dtype=np.float64)
        for i in range(len(a)):
            out[i] = float(a[i]) * float(b[i])
        return out

    def confidence_or(self, a: np.ndarray, b: np.ndarray) -> np.ndarray:
        out = np.empty(len(a), dtype=np.float64)
        for i in range(len(a)):
            out[i] = 1.0 - (1.0 - float(a[i])) * (1.0 - float(b[i]))
        return out

    def aggregate(self, confidences: Sequence[np.ndarray]) -> np.ndarray:
        out = np.empty(len(confidences[0]), dtype=np.float64)
        for i in range(len(out)):
            out[i] = 1.0 - math.prod(1.0 - float(c[i]) for c in confidences)
        return out

    def matvec(self, x: np.ndarray, w: np.ndarray, b: np.ndarray) -> np.ndarray:
        batch, n_in = x.shape
        n_out = w.shape[0]
        out = np.zeros((batch, n_out), dtype=np.float64)
        for r in range(batch):
            for o in range(n_out):
                total = float(b[o])
                for i in range(n_in):
                    total += float(x[r, i]) * float(w[o, i])
                out[r, o] = total
        return out

    def __repr__(self):
        return "ScalarBackend()"


_BACKENDS: Dict[str, type] = {
    "numpy": NumpyBackend,
    "scalar": ScalarBackend,
}

_default_backend = NumpyBackend()


def select_backend(name: str):
    """
    Instantiate a backend by name.

    Args:
        name: 'numpy' or 'scalar'

    Raises:
        ValueError: For unknown names
    """
    try:
        return _BACKENDS[name]()
    except KeyError:
        raise ValueError(f"Unknown backend: {name}. Choose from {sorted(_BACKENDS)}") from None


def set_default_backend(name: str):
    """Select the backend used when callers do not pass one."""
    global _default_backend
    _default_backend = select_backend(name)
    return _default_backend


def get_default_backend():
    return _default_backend
