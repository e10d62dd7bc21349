#!/usr/bin/env python3
from __future__ import annotations

"""Write synthetic training/validation CSVs into data/.

Rows follow the dataset format: a header line, then ``label,p0,...,p783``.
Useful for trying the CLI without the real digit samples.
"""

import argparse
from pathlib import Path

import numpy as np

from digitknn.paths import DATA_DIR, PIXEL_COUNT


def write_csv(path: Path, labels: np.ndarray, pixels: np.ndarray) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    header = "label," + ",".join(f"pixel{i}" for i in range(pixels.shape[1]))
    with path.open("w", encoding="utf-8") as fh:
        fh.write(header + "\n")
        for label, row in zip(labels, pixels):
            fh.write(f"{label}," + ",".join(str(int(v)) for v in row) + "\n")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--train", type=int, default=5000, help="Training rows")
    parser.add_argument("--test", type=int, default=500, help="Validation rows")
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args()

    rng = np.random.default_rng(args.seed)
    prototypes = rng.integers(0, 256, size=(10, PIXEL_COUNT))

    def sample(n: int):
        labels = rng.integers(0, 10, size=n)
        noise = rng.integers(-40, 41, size=(n, PIXEL_COUNT))
        return labels, np.clip(prototypes[labels] + noise, 0, 255)

    write_csv(DATA_DIR / "trainingsample.csv", *sample(args.train))
    write_csv(DATA_DIR / "validationsample.csv", *sample(args.test))
    print(f"Wrote {args.train} training and {args.test} validation rows to {DATA_DIR}")


if __name__ == "__main__":
    main()
