from __future__ import annotations

import time

import numpy as np
import pytest

from digitknn.backends import SerialContext, get_context, split_range
from digitknn.engine import DistanceEngine
from digitknn.errors import DimensionMismatch, DispatchError, EmptyInput
from digitknn.store import VectorStore


def make_store(n: int = 50, dim: int = 784, seed: int = 7) -> VectorStore:
    rng = np.random.default_rng(seed)
    X = rng.integers(0, 256, size=(n, dim))
    y = rng.integers(0, 10, size=n)
    return VectorStore(X, y, dim=dim)


def brute_force(store: VectorStore, query) -> np.ndarray:
    q = np.asarray(query, dtype=np.int64)
    return np.array([int(((store.vector(i).astype(np.int64) - q) ** 2).sum()) for i in range(store.size)])


class FlakyContext(SerialContext):
    """Fails the first ``failures`` dispatches."""

    name = "flaky"

    def __init__(self, failures: int) -> None:
        super().__init__(block_size=16)
        self.failures = failures
        self.calls = 0

    def _dispatch(self, kernel, blocks):
        self.calls += 1
        if self.calls <= self.failures:
            raise OSError("device unavailable")
        return super()._dispatch(kernel, blocks)


class ShortContext(SerialContext):
    name = "short"

    def _dispatch(self, kernel, blocks):
        return super()._dispatch(kernel, blocks)[:-1]


def test_split_range_covers_every_index():
    assert split_range(10, 4) == [(0, 4), (4, 8), (8, 10)]
    assert split_range(0, 4) == []
    with pytest.raises(ValueError):
        split_range(10, 0)


@pytest.mark.parametrize("name", ["serial", "threads"])
def test_distances_match_brute_force(name):
    store = make_store()
    engine = DistanceEngine(store, context=get_context(name, n_jobs=2, block_size=8))
    query = np.random.default_rng(1).integers(0, 256, size=784)
    d = engine.compute_distances(query)
    assert d.shape == (store.size,)
    assert d.dtype == np.int64
    np.testing.assert_array_equal(d, brute_force(store, query))


def test_distances_on_process_pool():
    store = make_store(n=20, dim=16)
    engine = DistanceEngine(store, context=get_context("processes", n_jobs=2, block_size=5))
    query = np.arange(16)
    np.testing.assert_array_equal(engine.compute_distances(query), brute_force(store, query))


def test_distances_non_negative_and_zero_on_self():
    store = make_store()
    engine = DistanceEngine(store)
    d = engine.compute_distances(store.vector(3))
    assert (d >= 0).all()
    assert d[3] == 0


def test_distinct_query_has_positive_minimum():
    store = make_store(n=30, dim=10)
    engine = DistanceEngine(store)
    query = np.full(10, 1000)  # outside the 0..255 pixel range of every stored vector
    assert engine.compute_distances(query).min() > 0


def test_no_overflow_for_extreme_pixels():
    dim = 784
    store = VectorStore(np.full((1, dim), 32767), [0], dim=dim)
    engine = DistanceEngine(store)
    d = engine.compute_distances(np.full(dim, -32768))
    assert d[0] == dim * 65535 ** 2
    assert d[0] > 2 ** 31


def test_dimension_mismatch_never_pads_or_truncates():
    store = make_store(n=5, dim=784)
    engine = DistanceEngine(store)
    with pytest.raises(DimensionMismatch) as excinfo:
        engine.compute_distances(np.zeros(783))
    assert excinfo.value.expected == 784
    assert excinfo.value.got == 783
    with pytest.raises(DimensionMismatch):
        engine.compute_distances(np.zeros(785))
    with pytest.raises(DimensionMismatch):
        engine.compute_distances([])


def test_non_integer_query_rejected():
    store = make_store(n=5, dim=4)
    engine = DistanceEngine(store)
    with pytest.raises(ValueError):
        engine.compute_distances([0.5, 1, 2, 3])
    # whole-number floats are fine
    engine.compute_distances([0.0, 1.0, 2.0, 3.0])


def test_empty_store_rejected():
    store = VectorStore(np.zeros((0, 4)), [], dim=4)
    with pytest.raises(EmptyInput):
        DistanceEngine(store)


def test_dispatch_retried_once():
    store = make_store(n=40, dim=8)
    ctx = FlakyContext(failures=1)
    engine = DistanceEngine(store, context=ctx, retries=1)
    d = engine.compute_distances(store.vector(0))
    assert ctx.calls == 2
    assert d[0] == 0


def test_dispatch_retries_are_bounded():
    store = make_store(n=40, dim=8)
    ctx = FlakyContext(failures=5)
    engine = DistanceEngine(store, context=ctx, retries=1)
    with pytest.raises(DispatchError):
        engine.compute_distances(store.vector(0))
    assert ctx.calls == 2

    ctx = FlakyContext(failures=1)
    engine = DistanceEngine(store, context=ctx, retries=0)
    with pytest.raises(DispatchError):
        engine.compute_distances(store.vector(0))
    assert ctx.calls == 1


def test_incomplete_readback_is_dispatch_error():
    store = make_store(n=40, dim=8)
    engine = DistanceEngine(store, context=ShortContext(block_size=16), retries=0)
    with pytest.raises(DispatchError):
        engine.compute_distances(store.vector(0))


def test_thread_pool_deadline():
    ctx = get_context("threads", n_jobs=2, block_size=1, timeout=0.1)

    def slow_kernel(start, stop):
        time.sleep(1.0)
        return np.zeros(stop - start, dtype=np.int64)

    with pytest.raises(DispatchError):
        ctx.run(slow_kernel, 2)


def test_unknown_context():
    with pytest.raises(ValueError):
        get_context("gpu")


def test_out_of_range_query_rejected_before_accumulating():
    store = VectorStore([[0], [32767]], [1, 2], dim=1)
    engine = DistanceEngine(store)
    # (3037000500 - 0)**2 wraps int64 and would win the argmin
    with pytest.raises(ValueError):
        engine.compute_distances([3037000500])
    with pytest.raises(ValueError):
        engine.compute_distances(np.array([2 ** 63], dtype=np.uint64))
    with pytest.raises(ValueError):
        engine.compute_distances([1e300])
    with pytest.raises(ValueError):
        engine.compute_distances([2 ** 70])
    d = engine.compute_distances([32767])
    assert (d >= 0).all()
    assert d.tolist() == [32767 ** 2, 0]
