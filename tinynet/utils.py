# Copyright (C) 2025 Brantleigh Bunting
# SPDX-License-Identifier: BSL-1.1
#
# Use of this software is governed by the Business Source License
# included in the LICENSE file and at <https://mariadb.com/bsl11>

from typing import Optional

import numpy as np


def make_rng(
    seed: Optional[int] = None, rng: Optional[np.random.Generator] = None
) -> np.random.Generator:
    """Return `rng` if given, otherwise a fresh generator seeded with `seed`."""
    if rng is not None:
        return rng
    return np.random.default_rng(seed)


def shuffled_pairs(X, Y, rng: np.random.Generator):
    """
    Shuffle two equally long sequences with one shared permutation.

    Returns
    -------
    List of (x, y) tuples in shuffled order. The inputs are not modified.
    """
    # Generator.permutation is a Fisher-Yates shuffle
    idx = rng.permutation(len(X))
    return [(X[i], Y[i]) for i in idx]


def one_hot_index(index: int, size: int) -> np.ndarray:
    """Return a length `size` float vector with a single 1 at `index`."""
    if not 0 <= index < size:
        raise IndexError(f"index {index} out of range for size {size}")
    v = np.zeros(size, dtype=float)
    v[index] = 1.0
    return v
