"""Pooled storage for ternary tensors."""

from trinet.memory.pool import Block, Pool, PoolStats, align_up

__all__ = ["Pool", "Block", "PoolStats", "align_up"]
