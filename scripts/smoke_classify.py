#!/usr/bin/env python3
"""
Smoke test for classification (no external I/O).

Creates synthetic 784-pixel images for ten digit classes, builds a corpus,
classifies held-out samples with digitknn.classify.Classifier on a thread
pool, and prints the accuracy.
"""

from __future__ import annotations

import numpy as np

from digitknn.backends import get_context
from digitknn.classify import Classifier
from digitknn.store import LabeledExample, VectorStore


def main() -> None:
    rng = np.random.default_rng(42)
    n_per_class = 20
    dim = 784

    # One random prototype per digit, samples are noisy copies
    prototypes = rng.integers(0, 256, size=(10, dim))
    X, y = [], []
    for label in range(10):
        noise = rng.integers(-20, 21, size=(n_per_class, dim))
        X.append(np.clip(prototypes[label] + noise, 0, 255))
        y.extend([label] * n_per_class)
    X = np.vstack(X)
    y = np.array(y)

    # Shuffle and split
    idx = rng.permutation(len(X))
    X, y = X[idx], y[idx]
    split = int(0.8 * len(X))

    store = VectorStore(X[:split], y[:split], dim=dim)
    classifier = Classifier(store, context=get_context("threads", block_size=32))
    queries = [LabeledExample(int(lab), px) for lab, px in zip(y[split:], X[split:])]

    evaluation = classifier.evaluate(queries)
    print(
        f"Training images: {store.size}  queries={evaluation.total}  "
        f"accuracy={evaluation.accuracy:.3f}  ({evaluation.ms_per_query:.3f} ms/query)"
    )


if __name__ == "__main__":
    main()
