"""Ternary tensors, batched operators and vector backends."""

from trinet.tensor.backends import (
    NumpyBackend,
    ScalarBackend,
    get_default_backend,
    select_backend,
    set_default_backend,
)
from trinet.tensor.ops import batch_and, batch_any, batch_not, batch_or
from trinet.tensor.ternary import (
    MAX_DIMS,
    SIZE_MAX,
    TernaryTensor,
    check_same_dims,
    checked_mul,
    element_count,
    validate_dims,
)

__all__ = [
    "TernaryTensor",
    "MAX_DIMS",
    "SIZE_MAX",
    "check_same_dims",
    "checked_mul",
    "element_count",
    "validate_dims",
    "batch_and",
    "batch_or",
    "batch_not",
    "batch_any",
    "NumpyBackend",
    "ScalarBackend",
    "select_backend",
    "set_default_backend",
    "get_default_backend",
]
