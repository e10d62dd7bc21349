from __future__ import annotations

"""Execution contexts: a parallel map over the index range [0, n).

A kernel is called as ``kernel(start, stop)`` and must return one value per
index in that block. Contexts only decide where blocks run; results are
always read back in index order.
"""

from typing import Callable, Dict, List, Tuple

import numpy as np
from joblib import Parallel, cpu_count, delayed

from .errors import DispatchError

Kernel = Callable[[int, int], np.ndarray]

DEFAULT_BLOCK_SIZE = 256


def split_range(n_items: int, block_size: int) -> List[Tuple[int, int]]:
    if block_size <= 0:
        raise ValueError("block_size must be positive")
    return [(s, min(s + block_size, n_items)) for s in range(0, n_items, block_size)]


class ExecutionContext:
    name = "base"

    def __init__(self, block_size: int = DEFAULT_BLOCK_SIZE) -> None:
        if block_size <= 0:
            raise ValueError("block_size must be positive")
        self.block_size = block_size

    def _dispatch(self, kernel: Kernel, blocks: List[Tuple[int, int]]) -> List[np.ndarray]:
        raise NotImplementedError

    def run(self, kernel: Kernel, n_items: int) -> np.ndarray:
        """Run ``kernel`` over every block and return the n results in order."""
        blocks = split_range(n_items, self.block_size)
        try:
            parts = self._dispatch(kernel, blocks)
        except DispatchError:
            raise
        except Exception as e:
            raise DispatchError(f"{self.name} context failed: {type(e).__name__}: {e}") from e

        if len(parts) != len(blocks):
            raise DispatchError(f"{self.name} context returned {len(parts)} of {len(blocks)} blocks")
        for (start, stop), part in zip(blocks, parts):
            if part is None or len(part) != stop - start:
                raise DispatchError(f"{self.name} context returned an incomplete block [{start}, {stop})")
        if not parts:
            return np.empty(0, dtype=np.int64)
        return np.concatenate(parts)

    def describe(self) -> str:
        return f"{self.name} (block={self.block_size})"


class SerialContext(ExecutionContext):
    name = "serial"

    def _dispatch(self, kernel, blocks):
        return [kernel(start, stop) for start, stop in blocks]


class JoblibContext(ExecutionContext):
    """Blocks run on a joblib worker pool; ``timeout`` bounds each block."""

    def __init__(
        self,
        backend: str = "threading",
        n_jobs: int = -1,
        block_size: int = DEFAULT_BLOCK_SIZE,
        timeout: float | None = None,
    ) -> None:
        super().__init__(block_size)
        self.backend = backend
        self.n_jobs = n_jobs
        self.timeout = timeout
        self.name = "threads" if backend == "threading" else "processes"

    def _dispatch(self, kernel, blocks):
        parallel = Parallel(n_jobs=self.n_jobs, backend=self.backend, timeout=self.timeout)
        return parallel(delayed(kernel)(start, stop) for start, stop in blocks)

    def describe(self) -> str:
        jobs = cpu_count() if self.n_jobs == -1 else self.n_jobs
        deadline = "none" if self.timeout is None else f"{self.timeout:g}s"
        return f"{self.name} (jobs={jobs}, block={self.block_size}, timeout={deadline})"


CONTEXTS: Dict[str, str] = {
    "serial": "single thread, blocks run in order",
    "threads": "joblib thread pool",
    "processes": "joblib process pool (loky)",
}


def get_context(
    name: str = "threads",
    n_jobs: int = -1,
    block_size: int = DEFAULT_BLOCK_SIZE,
    timeout: float | None = None,
) -> ExecutionContext:
    if name == "serial":
        return SerialContext(block_size=block_size)
    if name == "threads":
        return JoblibContext("threading", n_jobs=n_jobs, block_size=block_size, timeout=timeout)
    if name == "processes":
        return JoblibContext("loky", n_jobs=n_jobs, block_size=block_size, timeout=timeout)
    raise ValueError(f"Unknown execution context '{name}'. Choose from: {', '.join(CONTEXTS)}")
