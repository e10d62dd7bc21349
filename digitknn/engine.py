from __future__ import annotations

"""Squared L2 distances from one query to every training vector."""

from functools import partial

import numpy as np
from tqdm import tqdm

from .backends import ExecutionContext, SerialContext
from .errors import DimensionMismatch, DispatchError, EmptyInput
from .store import VALUE_MAX, VALUE_MIN, VectorStore


def distance_block(matrix: np.ndarray, query: np.ndarray, start: int, stop: int) -> np.ndarray:
    """Distances for work items [start, stop), accumulated in int64."""
    diff = matrix[start:stop].astype(np.int64) - query
    return np.einsum("ij,ij->i", diff, diff)


def as_query(query, dim: int) -> np.ndarray:
    q = np.asarray(query)
    if q.ndim != 1:
        q = q.reshape(-1)
    if q.size != dim:
        raise DimensionMismatch(dim, int(q.size))
    if q.dtype.kind == "f":
        if not np.all(np.isfinite(q)) or not np.all(q == np.round(q)):
            raise ValueError("query must contain integer values")
    elif q.dtype.kind not in "iub":
        raise ValueError(f"query must be numeric, got dtype {q.dtype}")
    if q.min() < VALUE_MIN or q.max() > VALUE_MAX:
        raise ValueError(f"query values must lie in [{VALUE_MIN}, {VALUE_MAX}]")
    return q.astype(np.int64)


class DistanceEngine:
    def __init__(
        self,
        store: VectorStore,
        context: ExecutionContext | None = None,
        retries: int = 1,
    ) -> None:
        if store.size == 0:
            raise EmptyInput("training corpus is empty; classification is undefined")
        if retries < 0:
            raise ValueError("retries must be >= 0")
        self.store = store
        self.context = context or SerialContext()
        self.retries = retries

    def compute_distances(self, query) -> np.ndarray:
        q = as_query(query, self.store.dim)
        kernel = partial(distance_block, self.store.matrix, q)

        attempt = 0
        while True:
            try:
                distances = self.context.run(kernel, self.store.size)
                break
            except DispatchError as e:
                if attempt >= self.retries:
                    raise
                attempt += 1
                tqdm.write(f"[warn] {e}; retrying ({attempt}/{self.retries})")

        if distances.shape != (self.store.size,):
            raise DispatchError(f"expected {self.store.size} distances, got shape {distances.shape}")
        return distances.astype(np.int64, copy=False)
