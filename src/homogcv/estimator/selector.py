# Andy Zhao
"""
Pick the single best candidate.

- RANSAC: argmax of inlier counts
- LMedS: argmin of per-candidate median residuals

Ties go to the lowest iteration index in both cases.

Median convention: the LOWER-middle element of the sorted row,

    median = sorted(row)[(N - 1) // 2]

For odd N this is the exact median. For even N it is the smaller of the two
middle residuals (no averaging), so the median is always an observed residual.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

import numpy as np

from .errors import ConfigurationError
from .types import FloatArray

if TYPE_CHECKING:
    from .backend import ParallelPrimitives


def median_index(n: int) -> int:
    """Position of the median in an ascending row of length n."""
    if n < 1:
        raise ConfigurationError("median of an empty row")
    return (n - 1) // 2


def row_medians(errors: FloatArray, *, primitives: "ParallelPrimitives") -> FloatArray:
    """
    Lower-middle median of every row of an (iterations, N) residual matrix.
    """
    if errors.ndim != 2:
        raise ValueError(f"Expected residual matrix (iterations, N), got {errors.shape}")
    ordered = primitives.sort(errors, axis=1)
    return ordered[:, median_index(errors.shape[1])]


def select_ransac(counts: np.ndarray, *, primitives: "ParallelPrimitives") -> Tuple[int, float]:
    """
    Returns (best_iteration, inlier_count).
    """
    if np.size(counts) == 0:
        raise ConfigurationError("Cannot select from zero iterations")
    value, idx = primitives.ireduce(counts, "max")
    return int(idx), float(value)


def select_lmeds(errors: FloatArray, *, primitives: "ParallelPrimitives") -> Tuple[int, float]:
    """
    Returns (best_iteration, median_residual).
    """
    if errors.ndim != 2 or errors.shape[0] == 0:
        raise ConfigurationError("Cannot select from zero iterations")
    medians = row_medians(errors, primitives=primitives)
    value, idx = primitives.ireduce(medians, "min")
    return int(idx), float(value)
