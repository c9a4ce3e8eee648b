"""
Unit tests for the pooled allocator.

Covers size classes, alignment, exhaustion, free-list reuse and concurrent use.
"""

import threading

import numpy as np
import pytest

from trinet.errors import AllocationFailedError, NullParamError
from trinet.memory import Pool, align_up


class TestPoolCreation:
    """Test pool construction and configuration."""

    def test_initial_stats(self):
        """Test that a fresh pool reports nothing in use."""
        pool = Pool(4096, alignment=64)
        stats = pool.stats()

        assert stats.capacity == 4096
        assert stats.alignment == 64
        assert stats.bytes_in_use == 0
        assert stats.block_count == 0

    def test_buffer_is_aligned(self):
        """Test that the usable region starts on an alignment boundary."""
        for alignment in (8, 64, 256, 4096):
            pool = Pool(8192, alignment=alignment)
            assert pool.buffer.ctypes.data % alignment == 0
            assert len(pool.buffer) == 8192

    def test_rejects_bad_alignment(self):
        """Test that non power-of-two alignments are rejected."""
        with pytest.raises(ValueError):
            Pool(1024, alignment=48)
        with pytest.raises(ValueError):
            Pool(1024, alignment=0)

    def test_rejects_non_positive_capacity(self):
        """Test that empty pools are rejected."""
        with pytest.raises(ValueError):
            Pool(0)

    def test_allocation_failed_is_memory_error(self):
        """Test that AllocationFailedError can be caught as MemoryError."""
        assert issubclass(AllocationFailedError, MemoryError)


class TestSizeClasses:
    """Test rounding of requests to size classes."""

    def test_align_up(self):
        """Test rounding to alignment multiples."""
        assert align_up(0, 64) == 0
        assert align_up(1, 64) == 64
        assert align_up(64, 64) == 64
        assert align_up(65, 64) == 128

    def test_size_class_rounding(self):
        """Test that classes are powers of two of at least one alignment unit."""
        pool = Pool(4096, alignment=64)

        assert pool.size_class(1) == 64
        assert pool.size_class(64) == 64
        assert pool.size_class(65) == 128
        assert pool.size_class(100) == 128
        assert pool.size_class(200) == 256
        assert pool.size_class(1024) == 1024


class TestAllocFree:
    """Test alloc/free semantics."""

    def test_blocks_are_aligned(self):
        """Test that every block address is an alignment multiple."""
        pool = Pool(1 << 16, alignment=64)
        blocks = [pool.alloc(size) for size in (1, 10, 100, 1000, 3)]

        for block in blocks:
            assert block is not None
            assert pool.address(block) % 64 == 0

    def test_alloc_tracks_bytes(self):
        """Test that bytes_in_use counts size-class bytes."""
        pool = Pool(4096, alignment=64)
        a = pool.alloc(100)
        b = pool.alloc(10)

        assert pool.stats().bytes_in_use == 128 + 64
        assert pool.stats().block_count == 2

        pool.free(a)
        pool.free(b)
        assert pool.stats().bytes_in_use == 0
        assert pool.stats().block_count == 0

    def test_exhaustion_returns_none(self):
        """Test that alloc signals failure without growing."""
        pool = Pool(256, alignment=64)

        assert pool.alloc(128) is not None
        assert pool.alloc(128) is not None
        assert pool.alloc(64) is None
        assert pool.stats().bytes_in_use == 256

    def test_free_list_reuse(self):
        """Test that freed blocks are reused for the same size class."""
        pool = Pool(256, alignment=64)
        a = pool.alloc(100)
        pool.alloc(100)
        pool.free(a)

        c = pool.alloc(120)
        assert c is not None
        assert c.offset == a.offset

    def test_blocks_do_not_overlap(self):
        """Test that live blocks occupy disjoint byte ranges."""
        pool = Pool(1 << 14, alignment=64)
        blocks = [pool.alloc(size) for size in (64, 200, 64, 500, 1000)]
        spans = sorted((b.offset, b.offset + b.size_class) for b in blocks)

        for (_, end), (start, _) in zip(spans, spans[1:]):
            assert end <= start

    def test_double_free_rejected(self):
        """Test that freeing a block twice raises."""
        pool = Pool(1024)
        block = pool.alloc(64)
        pool.free(block)

        with pytest.raises(ValueError):
            pool.free(block)

    def test_free_none_rejected(self):
        """Test that free(None) raises NullParamError."""
        pool = Pool(1024)
        with pytest.raises(NullParamError):
            pool.free(None)

    def test_view_shares_memory(self):
        """Test that typed views write through to the pool buffer."""
        pool = Pool(1024, alignment=64)
        block = pool.alloc(64)
        view = pool.view(block, np.float64, 8)
        view[:] = 1.5

        again = pool.view(block, np.float64, 8)
        assert np.all(again == 1.5)

    def test_view_bounds_checked(self):
        """Test that views cannot run past their block."""
        pool = Pool(1024, alignment=64)
        block = pool.alloc(64)
        with pytest.raises(ValueError):
            pool.view(block, np.float64, 9)


class TestPoolLifecycle:
    """Test destruction."""

    def test_destroy_invalidates_pool(self):
        """Test that a destroyed pool refuses further requests."""
        pool = Pool(1024)
        pool.alloc(64)
        pool.destroy()

        assert not pool.is_alive
        with pytest.raises(NullParamError):
            pool.alloc(64)

    def test_destroy_is_idempotent(self):
        """Test that destroying twice is harmless."""
        pool = Pool(1024)
        pool.destroy()
        pool.destroy()

    def test_context_manager(self):
        """Test that leaving a with-block destroys the pool."""
        with Pool(1024) as pool:
            assert pool.alloc(64) is not None
        assert not pool.is_alive


class TestConcurrency:
    """Test alloc/free from several threads."""

    def test_concurrent_alloc_free(self):
        """Test that concurrent use keeps accounting consistent."""
        pool = Pool(1 << 20, alignment=64)
        errors = []
        live_offsets = set()
        lock = threading.Lock()

        def worker(seed):
            rng = np.random.RandomState(seed)
            try:
                for _ in range(200):
                    block = pool.alloc(int(rng.randint(1, 2048)))
                    if block is None:
                        continue
                    with lock:
                        assert block.offset not in live_offsets
                        live_offsets.add(block.offset)
                    with lock:
                        live_offsets.discard(block.offset)
                    pool.free(block)
            except Exception as exc:  # reported by the main thread
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        stats = pool.stats()
        assert stats.bytes_in_use == 0
        assert stats.block_count == 0
        assert stats.high_water <= stats.capacity
