from __future__ import annotations

"""Error kinds raised by the nearest-neighbor core.

Each kind also derives from the builtin exception callers would otherwise
catch, so ``except ValueError`` around a load still works.
"""


class KnnError(Exception):
    """Base class for all classification errors."""

    kind = "KnnError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class LoadError(KnnError, ValueError):
    """Training or query data is malformed or has the wrong size."""

    kind = "LoadError"


class DimensionMismatch(KnnError, ValueError):
    """A query vector does not have exactly D elements."""

    kind = "DimensionMismatch"

    def __init__(self, expected: int, got: int) -> None:
        super().__init__(f"query has {got} values, expected {expected}")
        self.expected = expected
        self.got = got


class EmptyInput(KnnError, RuntimeError):
    kind = "EmptyInput"


class DispatchError(KnnError, RuntimeError):
    """The execution context failed to run or finish a distance computation."""

    kind = "DispatchError"
