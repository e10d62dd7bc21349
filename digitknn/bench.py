from __future__ import annotations

"""Repeated timing runs over the validation set."""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence

from .classify import Classifier
from .store import LabeledExample


@dataclass
class RunStats:
    run: int
    repeats: int
    ms_per_query: float
    average_ms: float
    accuracy: float

    @property
    def percent_done(self) -> float:
        return 100.0 * self.run / self.repeats


@dataclass
class BenchmarkResult:
    runs: List[RunStats] = field(default_factory=list)

    @property
    def average_ms(self) -> float:
        if not self.runs:
            return 0.0
        return sum(r.ms_per_query for r in self.runs) / len(self.runs)

    @property
    def accuracy(self) -> float:
        # Every run classifies the same queries, so the last run is representative
        return self.runs[-1].accuracy if self.runs else 0.0


def benchmark(
    classifier: Classifier,
    queries: Sequence[LabeledExample],
    repeats: int = 10,
    on_run: Optional[Callable[[RunStats], None]] = None,
    on_dispatch_error: str = "abort",
) -> BenchmarkResult:
    if repeats <= 0:
        raise ValueError("repeats must be positive")
    result = BenchmarkResult()
    total_ms = 0.0
    for run in range(1, repeats + 1):
        evaluation = classifier.evaluate(queries, on_dispatch_error=on_dispatch_error)
        total_ms += evaluation.ms_per_query
        stats = RunStats(
            run=run,
            repeats=repeats,
            ms_per_query=evaluation.ms_per_query,
            average_ms=total_ms / run,
            accuracy=evaluation.accuracy,
        )
        result.runs.append(stats)
        if on_run is not None:
            on_run(stats)
    return result
