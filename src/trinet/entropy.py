"""
Entropy sources for weight initialization.

Layer creation consumes an injected entropy source rather than global random
state. Any object with these two methods qualifies:

    next_uniform() -> float in [0, 1)
    seed(data: bytes) -> None

NumpyEntropySource wraps numpy's RandomState. Uniform draws are mapped into
the ternary domain by uniform_to_trit():

    [0, 1/3)    FALSE     confidence = (1/3 - u) / (1/3)
    [1/3, 2/3)  UNKNOWN   confidence = min(u - 1/3, 2/3 - u) / (1/6)
    [2/3, 1)    TRUE      confidence = (u - 2/3) / (1/3)

i.e. confidence is the distance to the nearest decision boundary, scaled by
the largest distance possible inside that band.
"""

from typing import Optional, Protocol, Tuple

import numpy as np

from trinet.logic.kleene import TRIT_DTYPE, Trit


LOWER_BOUNDARY = 1.0 / 3.0
UPPER_BOUNDARY = 2.0 / 3.0


class EntropySource(Protocol):
    """Capability consumed at layer creation."""

    def next_uniform(self) -> float:
        ...

    def seed(self, data: bytes) -> None:
        ...


class NumpyEntropySource:
    """
    Entropy source backed by numpy.random.RandomState.

    Attributes:
        rng (np.random.RandomState): Underlying generator
    """

    def __init__(self, random_seed: Optional[int] = None):
        """
        Args:
            random_seed: Optional integer seed for reproducibility
        """
        self.rng = np.random.RandomState(random_seed)

    def seed(self, data: bytes) -> None:
        """Reseed from raw bytes (packed into 32-bit words)."""
        data = bytes(data)
        padded = data + b"\x00" * (-len(data) % 4)
        words = np.frombuffer(padded, dtype="<u4") if padded else np.zeros(1, dtype="<u4")
        self.rng = np.random.RandomState(words.astype(np.uint32))

    def next_uniform(self) -> float:
        return float(self.rng.random_sample())

    def uniforms(self, count: int) -> np.ndarray:
        """Draw count uniforms at once."""
        return self.rng.random_sample(count)

    def __repr__(self):
        return "NumpyEntropySource()"


def draw_uniforms(source: EntropySource, count: int) -> np.ndarray:
    """
    Draw count uniforms from any entropy source.

    Uses a bulk uniforms() method when the source has one, otherwise calls
    next_uniform() count times.

    Raises:
        ValueError: If a draw falls outside [0, 1)
    """
    bulk = getattr(source, "uniforms", None)
    if bulk is not None:
        draws = np.asarray(bulk(count), dtype=np.float64).reshape(-1)
    else:
        draws = np.fromiter((source.next_uniform() for _ in range(count)),
                            dtype=np.float64, count=count)
    if draws.size != count or np.any((draws < 0.0) | (draws >= 1.0)):
        raise ValueError("Entropy source must produce floats in [0, 1)")
    return draws


def uniform_to_trit(u: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Map uniform draws to (values, confidence).

    Args:
        u: Draws in [0, 1)

    Returns:
        Tuple of (int8 trits, float64 confidences in [0, 1])
    """
    u = np.asarray(u, dtype=np.float64)

    values = np.full(u.shape, Trit.UNKNOWN, dtype=TRIT_DTYPE)
    values[u < LOWER_BOUNDARY] = Trit.FALSE
    values[u >= UPPER_BOUNDARY] = Trit.TRUE

    band = LOWER_BOUNDARY
    confidence = np.where(
        values == Trit.FALSE,
        (LOWER_BOUNDARY - u) / band,
        np.where(
            values == Trit.TRUE,
            (u - UPPER_BOUNDARY) / band,
            np.minimum(u - LOWER_BOUNDARY, UPPER_BOUNDARY - u) / (band / 2.0),
        ),
    )
    return values, np.clip(confidence, 0.0, 1.0)
