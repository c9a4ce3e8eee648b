"""
Ternary Tensor: struct-of-arrays storage for (value, confidence, gradient).

A tensor has up to four dimensions. Its three channels live in one block
taken from a Pool:

    [ values: int8 x n | pad ][ confidence: float64 x n | pad ][ gradient: float64 x n ]

Each channel starts on an alignment boundary. The channels are numpy views
into the pool buffer, so no tensor owns memory of its own. Destroying a
tensor returns its block to the pool; any later access raises NullParamError.
"""

import logging
import operator
from typing import Dict, Optional, Sequence, Tuple

import numpy as np

from trinet.errors import (
    AllocationFailedError,
    DimensionMismatchError,
    NullParamError,
    SizeOverflowError,
    require,
)
from trinet.logic.confidence import is_valid_confidence
from trinet.logic.kleene import TRIT_DTYPE, Trit, is_valid_trits
from trinet.memory.pool import Block, Pool, align_up


logger = logging.getLogger(__name__)

MAX_DIMS = 4
SIZE_MAX = (1 << 64) - 1
CONFIDENCE_DTYPE = np.float64
GRADIENT_DTYPE = np.float64


def checked_mul(a: int, b: int) -> int:
    """
    Multiply two sizes, refusing results beyond the 64-bit size type.

    Raises:
        SizeOverflowError: If a * b > SIZE_MAX
    """
    if a != 0 and b > SIZE_MAX // a:
        raise SizeOverflowError(f"Size product {a} * {b} overflows the size type")
    return a * b


def checked_add(a: int, b: int) -> int:
    """Add two sizes, refusing results beyond the 64-bit size type."""
    if a > SIZE_MAX - b:
        raise SizeOverflowError(f"Size sum {a} + {b} overflows the size type")
    return a + b


def validate_dims(dims: Sequence[int], ndims: Optional[int] = None) -> Tuple[int, ...]:
    """
    Validate a dimension list.

    Args:
        dims: Extents, outermost first
        ndims: Optional explicit rank; must equal len(dims) when given

    Returns:
        Tuple of extents

    Raises:
        NullParamError: If dims is None
        DimensionMismatchError: On rank > 4, rank mismatch, or non-positive extents
    """
    require(dims, "dims")
    try:
        extents = tuple(operator.index(d) for d in dims)
    except TypeError:
        raise DimensionMismatchError(f"Dimensions must be integers, got {dims!r}") from None

    if ndims is None:
        ndims = len(extents)
    if ndims > MAX_DIMS:
        raise DimensionMismatchError(f"At most {MAX_DIMS} dimensions supported, got {ndims}")
    if ndims < 1:
        raise DimensionMismatchError("At least one dimension is required")
    if ndims != len(extents):
        raise DimensionMismatchError(f"ndims={ndims} does not match {len(extents)} extents")
    if any(d <= 0 for d in extents):
        raise DimensionMismatchError(f"All extents must be positive, got {extents}")
    return extents


def element_count(dims: Sequence[int]) -> int:
    """Overflow-checked product of the extents."""
    total = 1
    for d in dims:
        total = checked_mul(total, d)
    return total


def _checked_align(n: int, alignment: int) -> int:
    checked_add(n, alignment - 1)
    return align_up(n, alignment)


def channel_layout(total_size: int, alignment: int) -> Tuple[int, int, int]:
    """
    Byte offsets of the confidence and gradient channels and the block size.

    Returns:
        (confidence_offset, gradient_offset, total_bytes)
    """
    values_bytes = checked_mul(total_size, np.dtype(TRIT_DTYPE).itemsize)
    float_bytes = checked_mul(total_size, np.dtype(CONFIDENCE_DTYPE).itemsize)

    conf_offset = _checked_align(values_bytes, alignment)
    grad_offset = _checked_align(checked_add(conf_offset, float_bytes), alignment)
    total_bytes = checked_add(grad_offset, float_bytes)
    return conf_offset, grad_offset, total_bytes


class TernaryTensor:
    """
    n-dimensional array of (value, confidence, gradient) triples.

    Attributes:
        dims (Tuple[int, ...]): Extents, outermost first
        ndims (int): Rank (1-4)
        total_size (int): Number of elements
        pool (Pool): Pool the storage came from (not owned)
    """

    def __init__(self, pool: Pool, dims: Tuple[int, ...], block: Block,
                 conf_offset: int, grad_offset: int):
        # Use TernaryTensor.create(); this only wires up the views.
        self.pool = pool
        self.dims = dims
        self.ndims = len(dims)
        self.total_size = element_count(dims)
        self._block = block
        self._values = pool.view(block, TRIT_DTYPE, self.total_size, 0)
        self._confidence = pool.view(block, CONFIDENCE_DTYPE, self.total_size, conf_offset)
        self._gradient = pool.view(block, GRADIENT_DTYPE, self.total_size, grad_offset)

    @classmethod
    def create(cls, pool: Pool, dims: Sequence[int], ndims: Optional[int] = None) -> "TernaryTensor":
        """
        Allocate a tensor from a pool.

        All three channels come from a single pool request. Values start as
        UNKNOWN, confidence as 1.0 and gradient as 0.0.

        Args:
            pool: Pool to allocate from
            dims: Extents, outermost first (1-4 of them, all positive)
            ndims: Optional explicit rank

        Returns:
            TernaryTensor

        Raises:
            NullParamError: If pool or dims is None
            DimensionMismatchError: On invalid dims
            SizeOverflowError: If the element or byte count overflows
            AllocationFailedError: If the pool cannot satisfy the request
        """
        require(pool, "pool")
        dims = validate_dims(dims, ndims)
        total = element_count(dims)
        conf_offset, grad_offset, total_bytes = channel_layout(total, pool.alignment)

        if total_bytes > pool.capacity:
            raise AllocationFailedError(
                f"Tensor {dims} needs {total_bytes} bytes, pool capacity is {pool.capacity}"
            )

        block = pool.alloc(total_bytes)
        if block is None:
            raise AllocationFailedError(
                f"Pool cannot provide {total_bytes} bytes for tensor {dims} "
                f"({pool.bytes_in_use} of {pool.capacity} in use)"
            )

        tensor = cls(pool, dims, block, conf_offset, grad_offset)
        tensor._values.fill(Trit.UNKNOWN)
        tensor._confidence.fill(1.0)
        tensor._gradient.fill(0.0)
        return tensor

    @classmethod
    def from_arrays(cls, pool: Pool, dims: Sequence[int], values,
                    confidence=None) -> "TernaryTensor":
        """
        Allocate a tensor and fill it from array-likes.

        Args:
            pool: Pool to allocate from
            dims: Extents
            values: Trits, total_size elements in row-major order
            confidence: Optional confidences (defaults to 1.0)

        Raises:
            DimensionMismatchError: If an array does not have total_size elements
            ValueError: If a value is not a trit or a confidence is outside [0, 1]
        """
        dims = validate_dims(dims)
        total = element_count(dims)

        vals = np.asarray(values).reshape(-1)
        if vals.size != total:
            raise DimensionMismatchError(f"Expected {total} values for {dims}, got {vals.size}")
        if not is_valid_trits(vals):
            raise ValueError("Values must be -1, 0 or 1")

        if confidence is None:
            conf = np.ones(total, dtype=CONFIDENCE_DTYPE)
        else:
            conf = np.asarray(confidence, dtype=CONFIDENCE_DTYPE).reshape(-1)
            if conf.size != total:
                raise DimensionMismatchError(
                    f"Expected {total} confidences for {dims}, got {conf.size}"
                )
            if not is_valid_confidence(conf):
                raise ValueError("Confidences must be finite and in [0, 1]")

        tensor = cls.create(pool, dims)
        tensor._values[:] = vals
        tensor._confidence[:] = conf
        return tensor

    @property
    def is_alive(self) -> bool:
        return self._block is not None

    def require_alive(self, name: str = "tensor") -> "TernaryTensor":
        """Raise NullParamError if this tensor has been destroyed."""
        if self._block is None:
            raise NullParamError(f"{name} has been destroyed")
        return self

    @property
    def values(self) -> np.ndarray:
        """Trit channel, shaped dims (a view into the pool)."""
        self.require_alive()
        return self._values.reshape(self.dims)

    @property
    def confidence(self) -> np.ndarray:
        """Confidence channel, shaped dims."""
        self.require_alive()
        return self._confidence.reshape(self.dims)

    @property
    def gradient(self) -> np.ndarray:
        """Gradient channel, shaped dims."""
        self.require_alive()
        return self._gradient.reshape(self.dims)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.dims

    def flat(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """1-D views of (values, confidence, gradient)."""
        self.require_alive()
        return self._values, self._confidence, self._gradient

    def strength(self) -> np.ndarray:
        """Signed strength value * confidence, shaped dims (a new array)."""
        self.require_alive()
        return (self._values.astype(np.float64) * self._confidence).reshape(self.dims)

    def copy_from(self, other: "TernaryTensor"):
        """
        Copy all three channels from a tensor of identical dims.

        Raises:
            DimensionMismatchError: If dims differ
        """
        require(other, "other").require_alive("other")
        self.require_alive()
        if other.dims != self.dims:
            raise DimensionMismatchError(f"Cannot copy {other.dims} into {self.dims}")
        self._values[:] = other._values
        self._confidence[:] = other._confidence
        self._gradient[:] = other._gradient

    def to_dict(self) -> Dict:
        """Snapshot of the tensor as independent numpy copies."""
        self.require_alive()
        return {
            'dims': self.dims,
            'values': self.values.copy(),
            'confidence': self.confidence.copy(),
            'gradient': self.gradient.copy(),
        }

    def destroy(self):
        """Return the storage block to the pool. Safe to call more than once."""
        if self._block is None:
            return
        if self.pool.is_alive:
            self.pool.free(self._block)
        self._block = None
        self._values = None
        self._confidence = None
        self._gradient = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()

    def __len__(self):
        return self.dims[0]

    def __repr__(self):
        if self._block is None:
            return f"TernaryTensor(dims={self.dims}, destroyed)"
        return f"TernaryTensor(dims={self.dims}, total_size={self.total_size})"


def check_same_dims(*tensors: TernaryTensor):
    """
    Require every tensor to be alive and share the same dims.

    Raises:
        NullParamError: If a tensor is None or destroyed
        DimensionMismatchError: If any dims differ
    """
    for i, t in enumerate(tensors):
        require(t, f"tensor[{i}]").require_alive(f"tensor[{i}]")
    first = tensors[0].dims
    for t in tensors[1:]:
        if t.dims != first:
            raise DimensionMismatchError(f"Shape mismatch: {first} vs {t.dims}")
