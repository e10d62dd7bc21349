from __future__ import annotations

"""Training corpus storage and dataset loading.

The corpus lives in one contiguous int32 buffer of N*D values; vector ``i``
occupies ``[i*D, i*D + D)``. Loaders are all-or-nothing: any malformed row
raises LoadError and no partial store is ever returned.
"""

import re
from pathlib import Path
from typing import Iterable, Iterator, List, NamedTuple, Sequence

import numpy as np

from .errors import LoadError
from .paths import PIXEL_COUNT

# Stored values must fit int16 so that D squared differences never overflow int64
VALUE_MIN = -(2 ** 15)
VALUE_MAX = 2 ** 15 - 1
LABEL_MIN = 0
LABEL_MAX = 9

_INT_TOKEN = re.compile(r"[+-]?[0-9]+")


class LabeledExample(NamedTuple):
    label: int
    pixels: np.ndarray


def _as_int_array(values, what: str) -> np.ndarray:
    arr = np.asarray(values)
    if arr.dtype == object or not (
        np.issubdtype(arr.dtype, np.integer) or np.issubdtype(arr.dtype, np.bool_)
    ):
        # Floats are accepted only when they hold whole numbers
        try:
            farr = arr.astype(np.float64)
        except (TypeError, ValueError) as e:
            raise LoadError(f"{what} contains non-numeric values") from e
        if farr.size and not np.all(np.isfinite(farr) & (farr == np.round(farr))):
            raise LoadError(f"{what} contains non-integer values")
        arr = farr
    if arr.size and (arr.min() < VALUE_MIN or arr.max() > VALUE_MAX):
        raise LoadError(f"{what} has values outside [{VALUE_MIN}, {VALUE_MAX}]")
    return arr.astype(np.int32)


class VectorStore:
    """Read-only training corpus: flat pixel buffer plus parallel labels."""

    def __init__(
        self,
        pixels,
        labels,
        dim: int = PIXEL_COUNT,
        expected_size: int | None = None,
    ) -> None:
        if dim <= 0:
            raise LoadError(f"dimension must be positive, got {dim}")
        flat = _as_int_array(pixels, "pixel buffer").reshape(-1)
        labs = _as_int_array(labels, "labels").reshape(-1)

        if flat.size % dim != 0:
            raise LoadError(f"pixel buffer of {flat.size} values is not a multiple of D={dim}")
        n = flat.size // dim
        if labs.size != n:
            raise LoadError(f"{labs.size} labels for {n} vectors")
        if expected_size is not None and n != expected_size:
            raise LoadError(f"expected {expected_size} vectors, got {n}")
        if labs.size and (labs.min() < LABEL_MIN or labs.max() > LABEL_MAX):
            raise LoadError(f"labels must lie in [{LABEL_MIN}, {LABEL_MAX}]")

        self._buffer = np.ascontiguousarray(flat)
        self._labels = np.ascontiguousarray(labs)
        self._buffer.setflags(write=False)
        self._labels.setflags(write=False)
        self._dim = dim

    @classmethod
    def from_examples(
        cls,
        examples: Iterable[LabeledExample],
        dim: int = PIXEL_COUNT,
        expected_size: int | None = None,
    ) -> "VectorStore":
        labels: List = []
        rows: List[np.ndarray] = []
        for i, ex in enumerate(examples):
            row = np.asarray(ex.pixels).reshape(-1)
            if row.size != dim:
                raise LoadError(f"example {i} has {row.size} values, expected {dim}")
            labels.append(ex.label)
            rows.append(row)
        pixels = np.concatenate(rows) if rows else np.empty(0, dtype=np.int32)
        return cls(pixels, np.array(labels), dim=dim, expected_size=expected_size)

    @property
    def size(self) -> int:
        return int(self._labels.size)

    @property
    def dim(self) -> int:
        return self._dim

    @property
    def buffer(self) -> np.ndarray:
        return self._buffer

    @property
    def labels(self) -> np.ndarray:
        return self._labels

    @property
    def matrix(self) -> np.ndarray:
        """(N, D) view over the flat buffer, read-only like the buffer."""
        return self._buffer.reshape(self.size, self._dim)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.size:
            raise IndexError(f"training index {index} out of range [0, {self.size})")

    def vector(self, index: int) -> np.ndarray:
        self._check_index(index)
        start = index * self._dim
        return self._buffer[start:start + self._dim]

    def label(self, index: int) -> int:
        self._check_index(index)
        return int(self._labels[index])

    def examples(self) -> Iterator[LabeledExample]:
        for i in range(self.size):
            yield LabeledExample(self.label(i), self.vector(i))

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"VectorStore(size={self.size}, dim={self._dim})"


def load_csv(
    path: Path,
    dim: int = PIXEL_COUNT,
    expected_size: int | None = None,
    header: bool = True,
) -> List[LabeledExample]:
    """Read ``label,p0,...,p{D-1}`` rows, skipping one header line."""
    path = Path(path)
    if not path.exists():
        raise LoadError(f"Dataset file not found: {path}")

    examples: List[LabeledExample] = []
    try:
        with path.open("r", encoding="utf-8") as fh:
            for lineno, line in enumerate(fh, start=1):
                if header and lineno == 1:
                    continue
                tokens = line.strip().split(",")
                if len(tokens) != dim + 1:
                    raise LoadError(
                        f"{path}:{lineno}: expected {dim + 1} columns (label + {dim} pixels), got {len(tokens) if line.strip() else 0}"
                    )
                tokens = [t.strip() for t in tokens]
                bad = next((t for t in tokens if not _INT_TOKEN.fullmatch(t)), None)
                if bad is not None:
                    raise LoadError(f"{path}:{lineno}: non-integer token {bad!r}")
                values = [int(t) for t in tokens]
                label = values[0]
                if not LABEL_MIN <= label <= LABEL_MAX:
                    raise LoadError(f"{path}:{lineno}: label {label} outside [{LABEL_MIN}, {LABEL_MAX}]")
                pixels = np.array(values[1:], dtype=np.int64)
                if pixels.min() < VALUE_MIN or pixels.max() > VALUE_MAX:
                    raise LoadError(f"{path}:{lineno}: pixel value out of range")
                examples.append(LabeledExample(label, pixels.astype(np.int32)))
    except UnicodeDecodeError as e:
        raise LoadError(f"{path}: not valid UTF-8 text ({e.reason})") from e

    if expected_size is not None and len(examples) != expected_size:
        raise LoadError(f"{path}: expected {expected_size} rows, got {len(examples)}")
    return examples


def save_npz(store: VectorStore, path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(str(path), X=store.matrix, y=store.labels)


def load_npz(
    path: Path,
    dim: int = PIXEL_COUNT,
    expected_size: int | None = None,
) -> VectorStore:
    """Load a corpus cached by ``save_npz``.

    Returns a sealed VectorStore; shape problems raise LoadError.
    """
    path = Path(path)
    if not path.exists():
        raise LoadError(f"Corpus cache not found: {path}. Run 'pack' first.")
    try:
        data = np.load(str(path), allow_pickle=False)
        X = data["X"]
        y = data["y"]
    except (OSError, KeyError, ValueError) as e:
        raise LoadError(f"{path}: unreadable corpus cache ({e})") from e
    if X.ndim != 2 or X.shape[1] != dim:
        raise LoadError(f"{path}: X must have shape (N, {dim}), got {X.shape}")
    return VectorStore(X, y, dim=dim, expected_size=expected_size)


def load_examples(
    path: Path,
    dim: int = PIXEL_COUNT,
    expected_size: int | None = None,
) -> Sequence[LabeledExample]:
    path = Path(path)
    if path.suffix.lower() == ".npz":
        return list(load_npz(path, dim=dim, expected_size=expected_size).examples())
    return load_csv(path, dim=dim, expected_size=expected_size)


def load_store(
    path: Path,
    dim: int = PIXEL_COUNT,
    expected_size: int | None = None,
) -> VectorStore:
    path = Path(path)
    if path.suffix.lower() == ".npz":
        return load_npz(path, dim=dim, expected_size=expected_size)
    examples = load_csv(path, dim=dim, expected_size=expected_size)
    return VectorStore.from_examples(examples, dim=dim, expected_size=expected_size)
