# Andy Zhao
"""
Candidate evaluation: reprojection error of every correspondence under every
candidate.

For candidate H (row of 9) and correspondence (x, y) -> (u, v):

    [x', y', w]^T = H @ [x, y, 1]^T
    e = || (x'/w, y'/w) - (u, v) ||_2

Output per estimator kind:
- RANSAC: inlier count per candidate, e <= threshold
- LMedS: the full (iterations, N) residual matrix (scored later by its median)

Points that land at infinity (|w| < eps) and NaNs get e = +inf, so a
degenerate candidate can never win.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Tuple

import numpy as np

from .config import DEBUG
from .types import Candidates, Coords, CorrespondenceSet, FloatArray

if TYPE_CHECKING:
    from .backend import ParallelPrimitives

logger = logging.getLogger(__name__)


def project_points(H: Candidates, x: Coords, y: Coords) -> Tuple[FloatArray, FloatArray]:
    """
    Apply k homographies (k, 9) to N points. Returns (k, N) x and y.
    """
    H = np.atleast_2d(H)
    if H.shape[-1] != 9:
        raise ValueError(f"Expected candidates of shape (k, 9), got {H.shape}")

    # (k, 1) columns broadcast against (N,) coordinates
    h = [H[:, j:j + 1] for j in range(9)]
    with np.errstate(over="ignore", invalid="ignore", divide="ignore"):
        xw = h[0] * x + h[1] * y + h[2]
        yw = h[3] * x + h[4] * y + h[5]
        w = h[6] * x + h[7] * y + h[8]

        px = xw / w
        py = yw / w

    at_infinity = ~(np.abs(w) >= np.finfo(H.dtype).eps)
    px[at_infinity] = np.inf
    py[at_infinity] = np.inf
    return px, py


def reprojection_errors(H: Candidates, cs: CorrespondenceSet) -> FloatArray:
    """
    Euclidean reprojection error, shape (k, N), in the correspondence precision.
    """
    px, py = project_points(np.asarray(H, dtype=cs.dtype), cs.src_x, cs.src_y)
    with np.errstate(over="ignore", invalid="ignore"):
        err = np.hypot(px - cs.dst_x, py - cs.dst_y)
    err[np.isnan(err)] = np.inf
    return err


def count_inliers(errors: FloatArray, threshold: float, *, primitives: "ParallelPrimitives") -> np.ndarray:
    """
    Number of residuals <= threshold in every row. Shape (k,), int64.
    """
    mask = errors <= errors.dtype.type(threshold)
    return np.asarray(primitives.reduce(mask, "sum", axis=1), dtype=np.int64)


def evaluate_ransac(
        candidates: Candidates,
        cs: CorrespondenceSet,
        *,
        threshold: float,
        chunk_size: int,
        primitives: "ParallelPrimitives",
) -> np.ndarray:
    """
    Inlier count of every candidate against the full correspondence set.

    Candidates are processed chunk_size at a time so the residual scratch is
    at most (chunk_size, N).
    """
    k = candidates.shape[0]
    counts = np.zeros((k,), dtype=np.int64)
    for start in range(0, k, chunk_size):
        stop = min(start + chunk_size, k)
        err = reprojection_errors(candidates[start:stop], cs)
        counts[start:stop] = count_inliers(err, threshold, primitives=primitives)

    if DEBUG:
        logger.debug("ransac evaluate: %d candidates x %d points, max inliers %d",
                     k, cs.n, int(counts.max()) if k else 0)
    return counts


def evaluate_lmeds(
        candidates: Candidates,
        cs: CorrespondenceSet,
        *,
        primitives: "ParallelPrimitives",
) -> FloatArray:
    """
    Full residual matrix (iterations, N); no threshold is applied.
    """
    err = reprojection_errors(candidates, cs)
    if DEBUG:
        logger.debug("lmeds evaluate: residual matrix %s (%s)", err.shape, err.dtype)
    return err
