"""
Binary serialization of ternary layers.

Layout (all fixed-width little-endian):

    [magic: 4 bytes "TRIT"][version: u32][layer_count: u32]
    per layer:
        [output_size: u64][input_size: u64]
        [weight values:      int8    x output_size*input_size]
        [weight confidences: float64 x output_size*input_size]
        [bias values:        int8    x output_size]
        [bias confidences:   float64 x output_size]

Weights are stored row-major over (output_size, input_size). Activation
settings are not part of the format; they are supplied when loading.
deserialize() rejects a wrong magic or version, truncated or trailing bytes,
out-of-domain trits and confidences outside [0, 1].
"""

import logging
import struct
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from trinet.config import ActivationConfig
from trinet.errors import SerializationError, TernaryError, require
from trinet.logic.confidence import is_valid_confidence
from trinet.logic.kleene import is_valid_trits
from trinet.memory.pool import Pool
from trinet.network.layer import TernaryLayer
from trinet.tensor.ternary import TernaryTensor


logger = logging.getLogger(__name__)

MAGIC = b"TRIT"
FORMAT_VERSION = 1
FILE_HEADER_STRUCT = struct.Struct("<4sII")
LAYER_HEADER_STRUCT = struct.Struct("<QQ")
VALUE_DTYPE = np.dtype("<i1")
CONFIDENCE_DTYPE = np.dtype("<f8")


def serialize(layers: Sequence[TernaryLayer]) -> bytes:
    """
    Encode layers to bytes.

    Raises:
        NullParamError: If layers (or any layer) is None or destroyed
    """
    require(layers, "layers")
    layers = list(layers)

    parts = [FILE_HEADER_STRUCT.pack(MAGIC, FORMAT_VERSION, len(layers))]
    for i, layer in enumerate(layers):
        require(layer, f"layers[{i}]")._require_alive()
        parts.append(LAYER_HEADER_STRUCT.pack(layer.output_size, layer.input_size))
        for tensor in (layer.weight, layer.bias):
            values, confidence, _ = tensor.flat()
            parts.append(values.astype(VALUE_DTYPE).tobytes())
            parts.append(confidence.astype(CONFIDENCE_DTYPE).tobytes())
    return b"".join(parts)


class _Reader:
    """Bounds-checked cursor over a byte buffer."""

    def __init__(self, data: bytes):
        self.data = memoryview(data)
        self.offset = 0

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def take(self, n: int) -> memoryview:
        if n > self.remaining:
            raise SerializationError(
                f"Truncated input: need {n} bytes at offset {self.offset}, {self.remaining} left"
            )
        chunk = self.data[self.offset:self.offset + n]
        self.offset += n
        return chunk

    def unpack(self, st: struct.Struct):
        return st.unpack(self.take(st.size))

    def array(self, dtype: np.dtype, count: int) -> np.ndarray:
        return np.frombuffer(self.take(count * dtype.itemsize), dtype=dtype)


def _read_tensor(reader: _Reader, pool: Pool, dims, what: str) -> TernaryTensor:
    count = int(np.prod(dims))
    values = reader.array(VALUE_DTYPE, count)
    confidence = reader.array(CONFIDENCE_DTYPE, count)
    if not is_valid_trits(values):
        raise SerializationError(f"{what} values contain non-trit bytes")
    if not is_valid_confidence(confidence):
        raise SerializationError(f"{what} confidences outside [0, 1]")
    return TernaryTensor.from_arrays(pool, dims, values, confidence)


def deserialize(data: bytes, pool: Pool,
                activation: Optional[ActivationConfig] = None) -> List[TernaryLayer]:
    """
    Decode layers, allocating their tensors from pool.

    Args:
        data: Bytes produced by serialize()
        pool: Pool for the new weight and bias tensors
        activation: Re-quantization settings for every loaded layer

    Returns:
        List of TernaryLayer

    Raises:
        NullParamError: If data or pool is None
        SerializationError: On malformed input
        AllocationFailedError: If the pool cannot hold the layers
    """
    require(data, "data")
    require(pool, "pool")
    reader = _Reader(bytes(data))

    if reader.remaining < FILE_HEADER_STRUCT.size:
        raise SerializationError("Truncated input: missing file header")
    magic, version, layer_count = reader.unpack(FILE_HEADER_STRUCT)
    if magic != MAGIC:
        raise SerializationError(f"Bad magic {magic!r}, expected {MAGIC!r}")
    if version != FORMAT_VERSION:
        raise SerializationError(f"Unsupported version {version}, expected {FORMAT_VERSION}")

    per_element = VALUE_DTYPE.itemsize + CONFIDENCE_DTYPE.itemsize
    layers: List[TernaryLayer] = []
    try:
        for i in range(layer_count):
            output_size, input_size = reader.unpack(LAYER_HEADER_STRUCT)
            if output_size == 0 or input_size == 0:
                raise SerializationError(f"Layer {i} has a zero dimension")
            # Check the payload size before allocating anything for it
            needed = (output_size * input_size + output_size) * per_element
            if needed > reader.remaining:
                raise SerializationError(
                    f"Truncated input: layer {i} needs {needed} bytes, {reader.remaining} left"
                )

            weight = _read_tensor(reader, pool, (output_size, input_size), f"Layer {i} weight")
            try:
                bias = _read_tensor(reader, pool, (output_size,), f"Layer {i} bias")
            except TernaryError:
                weight.destroy()
                raise
            layers.append(TernaryLayer(weight, bias, activation))

        if reader.remaining:
            raise SerializationError(f"{reader.remaining} trailing bytes after last layer")
    except TernaryError:
        for layer in layers:
            layer.destroy()
        raise

    logger.debug("Deserialized %d layers", len(layers))
    return layers


def save_layers(path: Union[str, Path], layers: Sequence[TernaryLayer]) -> Path:
    """Serialize layers to a file."""
    path = Path(path)
    path.write_bytes(serialize(layers))
    return path


def load_layers(path: Union[str, Path], pool: Pool,
                activation: Optional[ActivationConfig] = None) -> List[TernaryLayer]:
    """Read layers written by save_layers()."""
    return deserialize(Path(path).read_bytes(), pool, activation)
