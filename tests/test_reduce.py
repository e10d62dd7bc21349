from __future__ import annotations

import numpy as np
import pytest

from digitknn.errors import EmptyInput
from digitknn.reduce import argmin, merge_minima


def test_argmin_ties_resolve_to_lowest_index():
    assert argmin([10, 3, 3]) == 1
    assert argmin([5, 5, 5, 5]) == 0
    assert argmin([9, 4, 7, 4, 4]) == 1


def test_argmin_is_deterministic():
    rng = np.random.default_rng(3)
    d = rng.integers(0, 20, size=1000)  # many ties
    first = argmin(d)
    assert all(argmin(d) == first for _ in range(5))
    assert first == int(np.flatnonzero(d == d.min())[0])


@pytest.mark.parametrize("chunks", [2, 3, 7, 64, 5000])
def test_chunked_argmin_matches_single_scan(chunks):
    rng = np.random.default_rng(chunks)
    d = rng.integers(0, 50, size=1000)
    assert argmin(d, chunks=chunks) == argmin(d)


def test_chunked_argmin_tie_across_chunks():
    d = [8, 8, 2, 9, 9, 2, 9]
    assert argmin(d, chunks=3) == 2


def test_argmin_empty():
    with pytest.raises(EmptyInput):
        argmin([])
    with pytest.raises(EmptyInput):
        argmin(np.array([], dtype=np.int64), chunks=4)


def test_merge_minima():
    assert merge_minima([(5, 10), (3, 7), (3, 2)]) == (3, 2)
    with pytest.raises(EmptyInput):
        merge_minima([])
