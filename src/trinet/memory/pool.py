"""
Pooled Allocator: a fixed-capacity arena for tensor storage.

The pool reserves one aligned numpy byte region at creation and never grows.
Requests are rounded up to a size class (a power of two, at least one
alignment unit). A bump cursor hands out fresh space; freed blocks go onto a
free list for their size class and are reused before the cursor advances.

Invariant:
    bytes_in_use = (bytes handed out) - (bytes returned) <= capacity

alloc() and free() are serialized by a lock so worker threads can share a
pool. Nothing is ever returned to the OS until the pool itself is destroyed.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from trinet.errors import AllocationFailedError, NullParamError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Block:
    """
    A region handed out by a Pool.

    Attributes:
        offset: Byte offset from the aligned start of the pool region
        size: Bytes requested by the caller
        size_class: Bytes reserved (the size class of the request)
        pool_id: Identity of the owning pool
    """
    offset: int
    size: int
    size_class: int
    pool_id: int


@dataclass(frozen=True)
class PoolStats:
    """Snapshot of pool usage."""
    capacity: int
    alignment: int
    bytes_in_use: int
    block_count: int
    free_blocks: int
    high_water: int


def align_up(n: int, alignment: int) -> int:
    """Round n up to the next multiple of alignment (a power of two)."""
    return (n + alignment - 1) & ~(alignment - 1)


class Pool:
    """
    Fixed-capacity, aligned memory arena.

    Attributes:
        capacity (int): Usable bytes in the region
        alignment (int): Alignment of every block address
        buffer (np.ndarray): Aligned uint8 view of the whole region
    """

    def __init__(self, capacity_bytes: int, alignment: int = 64):
        """
        Reserve the backing region.

        Args:
            capacity_bytes: Usable bytes in the region
            alignment: Block alignment, a power of two

        Raises:
            ValueError: If capacity or alignment are invalid
            AllocationFailedError: If the backing region cannot be reserved
        """
        if capacity_bytes <= 0:
            raise ValueError(f"capacity_bytes must be positive, got {capacity_bytes}")
        if alignment <= 0 or alignment & (alignment - 1):
            raise ValueError(f"alignment must be a power of two, got {alignment}")

        self.capacity = int(capacity_bytes)
        self.alignment = int(alignment)

        try:
            self._raw = np.zeros(self.capacity + self.alignment, dtype=np.uint8)
        except MemoryError as exc:
            raise AllocationFailedError(
                f"Unable to reserve {self.capacity} bytes for pool"
            ) from exc

        # Skip ahead so that offset 0 of the usable region is aligned
        start = (-self._raw.ctypes.data) % self.alignment
        self.buffer = self._raw[start:start + self.capacity]

        self._lock = threading.Lock()
        self._cursor = 0
        self._free_lists: Dict[int, List[int]] = {}
        self._live: Dict[int, Block] = {}
        self._bytes_in_use = 0
        self._high_water = 0
        self._destroyed = False

        logger.debug("Created pool: capacity=%d alignment=%d", self.capacity, self.alignment)

    def size_class(self, size_bytes: int) -> int:
        """
        Size class for a request.

        Args:
            size_bytes: Requested bytes

        Returns:
            int: Smallest power of two >= size_bytes that is a multiple of alignment
        """
        rounded = align_up(max(int(size_bytes), 1), self.alignment)
        return 1 << (rounded - 1).bit_length()

    def alloc(self, size_bytes: int) -> Optional[Block]:
        """
        Hand out an aligned block.

        Args:
            size_bytes: Bytes requested (must be positive)

        Returns:
            Block, or None when the pool cannot satisfy the request

        Raises:
            NullParamError: If the pool has been destroyed
            ValueError: If size_bytes is not positive
        """
        if size_bytes <= 0:
            raise ValueError(f"size_bytes must be positive, got {size_bytes}")

        cls = self.size_class(size_bytes)

        with self._lock:
            self._require_alive()

            free_list = self._free_lists.get(cls)
            if free_list:
                offset = free_list.pop()
            elif self._cursor + cls <= self.capacity:
                offset = self._cursor
                self._cursor += cls
            else:
                logger.debug(
                    "Pool exhausted: requested %d (class %d), in use %d of %d",
                    size_bytes, cls, self._bytes_in_use, self.capacity
                )
                return None

            block = Block(offset=offset, size=int(size_bytes), size_class=cls, pool_id=id(self))
            self._live[offset] = block
            self._bytes_in_use += cls
            self._high_water = max(self._high_water, self._bytes_in_use)

        return block

    def free(self, block: Block):
        """
        Return a block to its size-class free list.

        Args:
            block: Block previously returned by alloc()

        Raises:
            NullParamError: If block is None or the pool has been destroyed
            ValueError: If the block is not live in this pool
        """
        if block is None:
            raise NullParamError("block must not be None")

        with self._lock:
            self._require_alive()

            if block.pool_id != id(self) or self._live.get(block.offset) != block:
                raise ValueError(f"Block at offset {block.offset} is not live in this pool")

            del self._live[block.offset]
            self._free_lists.setdefault(block.size_class, []).append(block.offset)
            self._bytes_in_use -= block.size_class

    def view(self, block: Block, dtype, count: int, byte_offset: int = 0) -> np.ndarray:
        """
        Typed numpy view into a block.

        Args:
            block: Live block
            dtype: numpy dtype of the view
            count: Number of elements
            byte_offset: Offset inside the block

        Returns:
            np.ndarray: 1-D view sharing memory with the pool
        """
        self._require_alive()
        dtype = np.dtype(dtype)
        end = byte_offset + count * dtype.itemsize
        if end > block.size_class:
            raise ValueError(
                f"View of {count} x {dtype} at +{byte_offset} exceeds block of {block.size_class} bytes"
            )
        start = block.offset + byte_offset
        return self.buffer[start:start + count * dtype.itemsize].view(dtype)

    def address(self, block: Block) -> int:
        """Absolute address of a block (alignment-multiple)."""
        self._require_alive()
        return self.buffer.ctypes.data + block.offset

    def stats(self) -> PoolStats:
        """
        Current usage.

        Returns:
            PoolStats: Capacity, bytes in use, live and free block counts
        """
        with self._lock:
            return PoolStats(
                capacity=self.capacity,
                alignment=self.alignment,
                bytes_in_use=self._bytes_in_use,
                block_count=len(self._live),
                free_blocks=sum(len(v) for v in self._free_lists.values()),
                high_water=self._high_water,
            )

    @property
    def bytes_in_use(self) -> int:
        return self._bytes_in_use

    @property
    def is_alive(self) -> bool:
        return not self._destroyed

    def destroy(self):
        """Release the whole region at once. Outstanding blocks become invalid."""
        with self._lock:
            if self._destroyed:
                return
            logger.debug("Destroying pool: %d live blocks, high water %d", len(self._live), self._high_water)
            self._live.clear()
            self._free_lists.clear()
            self._bytes_in_use = 0
            self._cursor = 0
            self.buffer = None
            self._raw = None
            self._destroyed = True

    def _require_alive(self):
        if self._destroyed:
            raise NullParamError("Pool has been destroyed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.destroy()

    def __repr__(self):
        state = "destroyed" if self._destroyed else f"in_use={self._bytes_in_use}"
        return f"Pool(capacity={self.capacity}, alignment={self.alignment}, {state})"
