"""
Batched three-valued operators over ternary tensors.

Each operator validates every operand before writing anything, computes the
new value and confidence channels in full, and only then writes them into
out. out may alias any input. out's previous contents are never read and its
gradient channel is left alone.

    batch_and(out, a, b)   values = min(a, b),  confidence = c_a * c_b
    batch_or(out, a, b)    values = max(a, b),  confidence = 1 - (1-c_a)(1-c_b)
    batch_not(out, a)      values = -a,         confidence = c_a
    batch_any(out, ts)     values = max(ts),    confidence = 1 - Π(1 - c_i)
"""

from typing import Sequence

from trinet.errors import DimensionMismatchError, require
from trinet.tensor.backends import get_default_backend
from trinet.tensor.ternary import TernaryTensor, check_same_dims


def _write(out: TernaryTensor, values, confidence):
    out_values, out_confidence, _ = out.flat()
    out_values[:] = values
    out_confidence[:] = confidence


def batch_and(out: TernaryTensor, a: TernaryTensor, b: TernaryTensor,
              backend=None) -> TernaryTensor:
    """
    Elementwise Kleene AND with product confidence.

    Args:
        out: Destination (may alias a or b)
        a, b: Operands; dims must equal out.dims
        backend: Optional backend (defaults to the selected default)

    Returns:
        out

    Raises:
        NullParamError: If any tensor is None or destroyed
        DimensionMismatchError: If dims differ
    """
    check_same_dims(out, a, b)
    backend = backend or get_default_backend()

    a_values, a_conf, _ = a.flat()
    b_values, b_conf, _ = b.flat()
    values = backend.kleene_and(a_values, b_values)
    confidence = backend.confidence_and(a_conf, b_conf)

    _write(out, values, confidence)
    return out


def batch_or(out: TernaryTensor, a: TernaryTensor, b: TernaryTensor,
             backend=None) -> TernaryTensor:
    """
    Elementwise Kleene OR with inclusion-exclusion confidence.

    Same contract as batch_and().
    """
    check_same_dims(out, a, b)
    backend = backend or get_default_backend()

    a_values, a_conf, _ = a.flat()
    b_values, b_conf, _ = b.flat()
    values = backend.kleene_or(a_values, b_values)
    confidence = backend.confidence_or(a_conf, b_conf)

    _write(out, values, confidence)
    return out


def batch_not(out: TernaryTensor, a: TernaryTensor, backend=None) -> TernaryTensor:
    """Elementwise Kleene NOT; confidence is carried over unchanged."""
    check_same_dims(out, a)
    backend = backend or get_default_backend()

    a_values, a_conf, _ = a.flat()
    values = backend.kleene_not(a_values)
    confidence = a_conf.copy()

    _write(out, values, confidence)
    return out


def batch_any(out: TernaryTensor, tensors: Sequence[TernaryTensor],
              backend=None) -> TernaryTensor:
    """
    N-ary OR with multi-path confidence aggregation.

    Args:
        out: Destination (may alias any input)
        tensors: One or more operands with out's dims

    Raises:
        NullParamError: If tensors is None or any tensor is None/destroyed
        DimensionMismatchError: If tensors is empty or dims differ
    """
    require(tensors, "tensors")
    tensors = list(tensors)
    if not tensors:
        raise DimensionMismatchError("batch_any needs at least one input tensor")
    check_same_dims(out, *tensors)
    backend = backend or get_default_backend()

    values = backend.kleene_any([t.flat()[0] for t in tensors])
    confidence = backend.aggregate([t.flat()[1] for t in tensors])

    _write(out, values, confidence)
    return out
