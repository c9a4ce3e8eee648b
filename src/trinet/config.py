"""
Configuration for the ternary engine.

Settings are plain dataclasses that validate themselves on construction.
EngineConfig.from_env() builds a full configuration from TRINET_* environment
variables, loading a .env file first when one is present:

    TRINET_POOL_CAPACITY          pool size in bytes
    TRINET_POOL_ALIGNMENT         block alignment (power of two)
    TRINET_THETA_LOW              lower re-quantization threshold
    TRINET_THETA_HIGH             upper re-quantization threshold
    TRINET_CONFIDENCE_MARGIN      distance at which confidence saturates
    TRINET_BASE_CONFIDENCE        confidence exactly at a threshold
    TRINET_LOSS                   'mse' or 'cross_entropy'
    TRINET_FLIP_FLOOR             boundary for value transitions
    TRINET_RESET_GRADIENT_ON_FLIP reset gradient of transitioned elements
    TRINET_BACKEND                'numpy' or 'scalar'
    TRINET_SEED                   entropy seed (integer)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv


DEFAULT_POOL_CAPACITY = 16 * 1024 * 1024
DEFAULT_ALIGNMENT = 64
LOSS_NAMES = ("mse", "cross_entropy")
BACKEND_NAMES = ("numpy", "scalar")


@dataclass
class PoolConfig:
    """Pool sizing."""
    capacity_bytes: int = DEFAULT_POOL_CAPACITY
    alignment: int = DEFAULT_ALIGNMENT

    def __post_init__(self):
        if self.capacity_bytes <= 0:
            raise ValueError(f"capacity_bytes must be positive, got {self.capacity_bytes}")
        if self.alignment <= 0 or self.alignment & (self.alignment - 1):
            raise ValueError(f"alignment must be a power of two, got {self.alignment}")


@dataclass
class ActivationConfig:
    """
    Re-quantization of a continuous pre-activation into (value, confidence).

    s >= theta_high maps to TRUE, s <= theta_low maps to FALSE, anything in
    between is UNKNOWN. Confidence is base_confidence at a threshold and grows
    linearly with the distance d to the nearer threshold, reaching 1.0 at
    d == margin:

        confidence = clamp(base + (1 - base) * d / margin, 0, 1)

    Attributes:
        theta_low: Lower threshold
        theta_high: Upper threshold
        margin: Distance at which confidence saturates
        base_confidence: Confidence exactly on a threshold
    """
    theta_low: float = -0.5
    theta_high: float = 0.5
    margin: float = 1.0
    base_confidence: float = 0.5

    def __post_init__(self):
        if not self.theta_low < self.theta_high:
            raise ValueError(
                f"theta_low ({self.theta_low}) must be below theta_high ({self.theta_high})"
            )
        if self.margin <= 0:
            raise ValueError(f"margin must be positive, got {self.margin}")
        if not 0.0 <= self.base_confidence <= 1.0:
            raise ValueError(f"base_confidence must be in [0, 1], got {self.base_confidence}")


@dataclass
class UpdatePolicy:
    """
    Confidence update rule settings.

    Attributes:
        loss: Loss form, 'mse' or 'cross_entropy'
        flip_floor: Boundary a confidence must cross for a value transition
        reset_gradient_on_flip: Zero the gradient of elements that transitioned
    """
    loss: str = "mse"
    flip_floor: float = 0.05
    reset_gradient_on_flip: bool = False

    def __post_init__(self):
        if self.loss not in LOSS_NAMES:
            raise ValueError(f"Unknown loss: {self.loss}. Choose from {LOSS_NAMES}")
        if not 0.0 < self.flip_floor <= 1.0:
            raise ValueError(f"flip_floor must be in (0, 1], got {self.flip_floor}")


@dataclass
class EngineConfig:
    """Full engine configuration."""
    pool: PoolConfig = field(default_factory=PoolConfig)
    activation: ActivationConfig = field(default_factory=ActivationConfig)
    update: UpdatePolicy = field(default_factory=UpdatePolicy)
    backend: str = "numpy"
    seed: Optional[int] = None

    def __post_init__(self):
        if self.backend not in BACKEND_NAMES:
            raise ValueError(f"Unknown backend: {self.backend}. Choose from {BACKEND_NAMES}")

    @classmethod
    def from_env(cls, dotenv_path: Optional[Union[str, Path]] = None) -> "EngineConfig":
        """
        Build a configuration from TRINET_* environment variables.

        Args:
            dotenv_path: Optional .env file; defaults to python-dotenv's search

        Returns:
            EngineConfig with unset variables left at their defaults
        """
        load_dotenv(dotenv_path=dotenv_path)

        pool = PoolConfig(
            capacity_bytes=_env_int("TRINET_POOL_CAPACITY", DEFAULT_POOL_CAPACITY),
            alignment=_env_int("TRINET_POOL_ALIGNMENT", DEFAULT_ALIGNMENT),
        )
        activation = ActivationConfig(
            theta_low=_env_float("TRINET_THETA_LOW", -0.5),
            theta_high=_env_float("TRINET_THETA_HIGH", 0.5),
            margin=_env_float("TRINET_CONFIDENCE_MARGIN", 1.0),
            base_confidence=_env_float("TRINET_BASE_CONFIDENCE", 0.5),
        )
        update = UpdatePolicy(
            loss=os.getenv("TRINET_LOSS", "mse"),
            flip_floor=_env_float("TRINET_FLIP_FLOOR", 0.05),
            reset_gradient_on_flip=_env_bool("TRINET_RESET_GRADIENT_ON_FLIP", False),
        )
        seed = os.getenv("TRINET_SEED")

        return cls(
            pool=pool,
            activation=activation,
            update=update,
            backend=os.getenv("TRINET_BACKEND", "numpy"),
            seed=int(seed) if seed not in (None, "") else None,
        )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
