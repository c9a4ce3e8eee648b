"""
Latency benchmarking for the vector backends.

Measures the scalar and numpy backends on the same workloads:
- batch_and over tensors of increasing size
- layer forward passes of increasing width
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import List

import sys
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

import numpy as np

from trinet import NumpyEntropySource, Pool, TernaryLayer, TernaryTensor, batch_and
from trinet.tensor import select_backend


@dataclass
class LatencyMetrics:
    """Timing for one workload on one backend."""
    backend: str
    workload: str
    size: int
    repeats: int
    total_time: float

    @property
    def avg_latency_ms(self) -> float:
        return self.total_time / self.repeats * 1000


def _random_tensor(pool: Pool, dims, rng: np.random.RandomState) -> TernaryTensor:
    n = int(np.prod(dims))
    return TernaryTensor.from_arrays(pool, dims, rng.randint(-1, 2, n), rng.random_sample(n))


def benchmark_batch_and(backend_name: str, size: int, repeats: int,
                        pool: Pool, rng: np.random.RandomState) -> LatencyMetrics:
    backend = select_backend(backend_name)
    a = _random_tensor(pool, (size,), rng)
    b = _random_tensor(pool, (size,), rng)
    out = TernaryTensor.create(pool, (size,))

    start = time.perf_counter()
    for _ in range(repeats):
        batch_and(out, a, b, backend=backend)
    elapsed = time.perf_counter() - start

    for t in (a, b, out):
        t.destroy()
    return LatencyMetrics(backend_name, 'batch_and', size, repeats, elapsed)


def benchmark_forward(backend_name: str, width: int, repeats: int,
                      pool: Pool, rng: np.random.RandomState) -> LatencyMetrics:
    backend = select_backend(backend_name)
    layer = TernaryLayer.create(width, width, pool, NumpyEntropySource(0))
    x = _random_tensor(pool, (4, width), rng)
    out = TernaryTensor.create(pool, (4, width))

    start = time.perf_counter()
    for _ in range(repeats):
        layer.forward(x, out=out, backend=backend)
    elapsed = time.perf_counter() - start

    x.destroy()
    out.destroy()
    layer.destroy()
    return LatencyMetrics(backend_name, 'forward', width, repeats, elapsed)


def run_benchmarks(sizes: List[int] = (64, 1024, 16384),
                   widths: List[int] = (8, 32, 64),
                   repeats: int = 5,
                   verbose: bool = True) -> List[LatencyMetrics]:
    """
    Run every workload on both backends.

    Returns:
        List of LatencyMetrics
    """
    rng = np.random.RandomState(42)
    metrics = []

    with Pool(64 * 1024 * 1024) as pool:
        for name in ('numpy', 'scalar'):
            for size in sizes:
                metrics.append(benchmark_batch_and(name, size, repeats, pool, rng))
            for width in widths:
                metrics.append(benchmark_forward(name, width, repeats, pool, rng))

    if verbose:
        print("=" * 60)
        print(f"{'backend':8s} {'workload':10s} {'size':>8s} {'avg ms':>12s}")
        print("-" * 60)
        for m in metrics:
            print(f"{m.backend:8s} {m.workload:10s} {m.size:8d} {m.avg_latency_ms:12.3f}")
        print("=" * 60)

    return metrics


if __name__ == '__main__':
    run_benchmarks()
