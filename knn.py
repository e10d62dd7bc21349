#!/usr/bin/env python3
"""
Handwritten digit recognition by exact nearest-neighbor search.

Each validation image is compared against every training image using the
squared Euclidean distance over its 784 pixels; the label of the closest
training image is the prediction.

Dataset layout (CSV, one header row, then label followed by pixels):
  data/
    trainingsample.csv     # 5000 rows
    validationsample.csv   # 500 rows

Usage:
  # Classify the validation set on a thread pool
  python knn.py classify --backend threads

  # Repeat the run 100 times and report the average time per image
  python knn.py bench --repeats 100

  # Cache the training CSV as a compressed npz
  python knn.py pack

  # List execution contexts
  python knn.py backends
"""

import sys

from digitknn.cli import main

if __name__ == "__main__":
    sys.exit(main())
