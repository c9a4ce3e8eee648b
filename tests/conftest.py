"""Shared fixtures for the ternary engine tests."""

import pytest

from trinet.entropy import NumpyEntropySource
from trinet.memory import Pool


@pytest.fixture
def pool():
    """A 1 MiB pool, destroyed after the test."""
    p = Pool(1 << 20, alignment=64)
    yield p
    p.destroy()


@pytest.fixture
def entropy():
    """Seeded entropy source."""
    return NumpyEntropySource(random_seed=42)
