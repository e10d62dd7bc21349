from __future__ import annotations

import os
from pathlib import Path

# Project root is the repository root (one level up from this package)
ROOT = Path(__file__).resolve().parent.parent

# Data directory can be redirected for shared datasets
DATA_DIR = Path(os.environ.get("DIGITKNN_DATA_DIR", str(ROOT / "data")))
TRAIN_CSV = DATA_DIR / "trainingsample.csv"
TEST_CSV = DATA_DIR / "validationsample.csv"
CACHE_DIR = DATA_DIR / "cache"
TRAIN_NPZ = CACHE_DIR / "training.npz"

# Reference dataset geometry: 5000 flattened 28x28 digits
PIXEL_COUNT = 784
TRAINING_SET_SIZE = 5000
