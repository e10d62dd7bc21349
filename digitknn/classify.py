from __future__ import annotations

"""1-nearest-neighbor classification and batch evaluation."""

import time
from dataclasses import dataclass, field
from typing import List, NamedTuple, Sequence

from tqdm import tqdm

from .backends import ExecutionContext
from .engine import DistanceEngine
from .errors import DispatchError, EmptyInput
from .reduce import argmin
from .store import LabeledExample, VectorStore

ON_DISPATCH_ERROR = ("abort", "skip")


class Prediction(NamedTuple):
    label: int
    index: int
    distance: int


class QueryResult(NamedTuple):
    position: int
    truth: int
    predicted: int | None
    correct: bool
    skipped: bool = False


@dataclass
class Evaluation:
    results: List[QueryResult] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def correct(self) -> int:
        return sum(1 for r in self.results if r.correct)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def accuracy(self) -> float:
        if not self.results:
            raise EmptyInput("no queries were evaluated")
        return self.correct / self.total

    @property
    def ms_per_query(self) -> float:
        return 1000.0 * self.elapsed / self.total if self.results else 0.0


class Classifier:
    def __init__(
        self,
        store: VectorStore,
        engine: DistanceEngine | None = None,
        context: ExecutionContext | None = None,
        reduce_chunks: int = 1,
    ) -> None:
        self.store = store
        self.engine = engine or DistanceEngine(store, context=context)
        self.reduce_chunks = reduce_chunks

    def classify(self, query) -> Prediction:
        """Label of the training vector closest to ``query``.

        Accepts a LabeledExample (its label is ignored) or a bare pixel vector.
        """
        pixels = query.pixels if isinstance(query, LabeledExample) else query
        distances = self.engine.compute_distances(pixels)
        index = argmin(distances, chunks=self.reduce_chunks)
        return Prediction(self.store.label(index), index, int(distances[index]))

    def evaluate(
        self,
        queries: Sequence[LabeledExample],
        on_dispatch_error: str = "abort",
        progress: bool = False,
    ) -> Evaluation:
        """Classify every query and compare against its ground-truth label.

        A DimensionMismatch always aborts. A DispatchError aborts unless
        ``on_dispatch_error="skip"``, in which case the query counts as
        incorrect and is flagged as skipped.
        """
        if on_dispatch_error not in ON_DISPATCH_ERROR:
            raise ValueError(f"on_dispatch_error must be one of {ON_DISPATCH_ERROR}")
        if len(queries) == 0:
            raise EmptyInput("no queries to evaluate")

        results: List[QueryResult] = []
        start = time.perf_counter()
        for pos, query in enumerate(tqdm(queries, desc="Classifying", unit="img", disable=not progress)):
            truth = int(query.label)
            try:
                pred = self.classify(query)
            except DispatchError as e:
                if on_dispatch_error == "abort":
                    raise
                tqdm.write(f"[skip] query {pos}: {e}")
                results.append(QueryResult(pos, truth, None, False, True))
                continue
            results.append(QueryResult(pos, truth, pred.label, pred.label == truth))
        elapsed = time.perf_counter() - start
        return Evaluation(results=results, elapsed=elapsed)
