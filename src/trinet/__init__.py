"""
trinet: a three-valued tensor engine for uncertainty-aware learning

Every tensor element carries a discrete Kleene truth value (TRUE, FALSE or
UNKNOWN, encoded as 1, -1, 0), a confidence in [0, 1] and a gradient. The
engine is made of:
- Pool: fixed-capacity aligned arena backing all tensor storage
- TernaryTensor: struct-of-arrays container over up to four dimensions
- Batched operators: Kleene AND/OR/NOT with confidence propagation
- TernaryLayer: weight/bias pair with re-quantizing forward pass
- Update rule: confidence-space gradient descent with value transitions

Layers are persisted in a small fixed-width binary format.
"""

__version__ = "0.1.0"

from trinet.config import ActivationConfig, EngineConfig, PoolConfig, UpdatePolicy
from trinet.dynamics import apply_confidence_update, compute_gradients
from trinet.engine import TernaryNetwork
from trinet.entropy import NumpyEntropySource
from trinet.errors import (
    AllocationFailedError,
    DimensionMismatchError,
    ErrorKind,
    NullParamError,
    SerializationError,
    SizeOverflowError,
    TernaryError,
)
from trinet.logic import Trit
from trinet.memory import Pool
from trinet.network import TernaryLayer
from trinet.storage import deserialize, serialize
from trinet.tensor import TernaryTensor, batch_and, batch_any, batch_not, batch_or

__all__ = [
    "ActivationConfig",
    "EngineConfig",
    "PoolConfig",
    "UpdatePolicy",
    "Trit",
    "Pool",
    "TernaryTensor",
    "batch_and",
    "batch_or",
    "batch_not",
    "batch_any",
    "TernaryLayer",
    "NumpyEntropySource",
    "compute_gradients",
    "apply_confidence_update",
    "serialize",
    "deserialize",
    "TernaryNetwork",
    "ErrorKind",
    "TernaryError",
    "NullParamError",
    "DimensionMismatchError",
    "SizeOverflowError",
    "AllocationFailedError",
    "SerializationError",
]
