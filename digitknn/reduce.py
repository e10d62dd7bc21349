from __future__ import annotations

from typing import Iterable, Tuple

import numpy as np

from .errors import EmptyInput


def merge_minima(partials: Iterable[Tuple[int, int]]) -> Tuple[int, int]:
    """Merge ``(value, index)`` partial minima; equal values keep the lower index."""
    best: Tuple[int, int] | None = None
    for value, index in partials:
        if best is None or (value, index) < best:
            best = (value, index)
    if best is None:
        raise EmptyInput("no partial minima to merge")
    return best


def argmin(distances, chunks: int = 1) -> int:
    """Index of the smallest distance, first occurrence on ties.

    With ``chunks > 1`` each contiguous slice is reduced on its own and the
    partial results are merged, which gives the same index as a single scan.
    """
    d = np.asarray(distances).reshape(-1)
    if d.size == 0:
        raise EmptyInput("cannot take argmin of an empty distance array")
    if chunks <= 1:
        return int(np.argmin(d))

    bounds = np.linspace(0, d.size, min(chunks, d.size) + 1, dtype=np.int64)
    partials = []
    for start, stop in zip(bounds[:-1], bounds[1:]):
        local = int(np.argmin(d[start:stop]))
        partials.append((d[start + local].item(), int(start) + local))
    return merge_minima(partials)[1]
