"""
Error taxonomy for the ternary engine.

Every failure raised by the engine carries one of five kinds:

- NullParam: a missing or already-destroyed handle was passed in
- DimensionMismatch: shapes, ranks or lengths do not line up
- Overflow: a size computation exceeds the addressable size type
- AllocationFailed: the pool (or the OS behind it) cannot provide memory
- SerializationError: a byte stream is not a valid layer file

The concrete classes also derive from the closest builtin exception so that
callers catching ``ValueError`` or ``MemoryError`` keep working.
"""

from enum import Enum


class ErrorKind(Enum):
    """Kinds of engine failures."""
    NULL_PARAM = "NullParam"
    DIMENSION_MISMATCH = "DimensionMismatch"
    OVERFLOW = "Overflow"
    ALLOCATION_FAILED = "AllocationFailed"
    SERIALIZATION_ERROR = "SerializationError"


class TernaryError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind = None

    def __repr__(self):
        return f"{type(self).__name__}(kind={self.kind.value}, message={str(self)!r})"


class NullParamError(TernaryError, ValueError):
    """Raised when a required handle is None or has been destroyed."""
    kind = ErrorKind.NULL_PARAM


class DimensionMismatchError(TernaryError, ValueError):
    """Raised when tensor shapes, ranks or target lengths disagree."""
    kind = ErrorKind.DIMENSION_MISMATCH


class SizeOverflowError(TernaryError, OverflowError):
    """Raised when an element or byte count overflows the size type."""
    kind = ErrorKind.OVERFLOW


class AllocationFailedError(TernaryError, MemoryError):
    """Raised when a pool cannot satisfy a request."""
    kind = ErrorKind.ALLOCATION_FAILED


class SerializationError(TernaryError, ValueError):
    """Raised when serialized layer data is malformed."""
    kind = ErrorKind.SERIALIZATION_ERROR


def require(obj, name: str):
    """
    Reject a missing handle.

    Args:
        obj: Handle to check
        name: Parameter name used in the error message

    Returns:
        The handle, unchanged

    Raises:
        NullParamError: If obj is None
    """
    if obj is None:
        raise NullParamError(f"{name} must not be None")
    return obj


__all__ = [
    "ErrorKind",
    "TernaryError",
    "NullParamError",
    "DimensionMismatchError",
    "SizeOverflowError",
    "AllocationFailedError",
    "SerializationError",
    "require",
]
