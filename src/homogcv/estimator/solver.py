# Andy Zhao
"""
Homography solver (DLT), batched over iterations.

We estimate H such that:

    [u, v, 1]^T  ~  H @ [x, y, 1]^T

Each correspondence (x, y) -> (u, v) gives two rows of A h = 0:

    [-x, -y, -1,  0,  0,  0, u*x, u*y, u]
    [ 0,  0,  0, -x, -y, -1, v*x, v*y, v]

With nsamples points A is (2*nsamples x 9). h is the right singular vector
of the smallest singular value; for exactly 4 points that is the null space
of the 8x9 system.

Every iteration is solved independently: sample rows are gathered into a
(iterations, 2*nsamples, 9) stack and one batched SVD solves them all.

Points are Hartley-normalized per sample (centroid at the origin, mean
distance sqrt(2)) before building A, then H is denormalized:

    H = T_dst^-1 @ H_norm @ T_src
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Tuple

import numpy as np

from .config import DEBUG
from .types import Candidates, CorrespondenceSet, FloatArray, SampleIndices

if TYPE_CHECKING:
    from .backend import ParallelPrimitives

logger = logging.getLogger(__name__)


# ---------- Normalization ----------
def normalize_samples(x: FloatArray, y: FloatArray) -> Tuple[FloatArray, FloatArray, FloatArray, FloatArray]:
    """
    Hartley normalization of every sample row.

    x, y: (iterations, nsamples)

    Returns (xn, yn, T, T_inv) with T, T_inv of shape (iterations, 3, 3).
    A sample whose points all coincide keeps scale 1.
    """
    dtype = x.dtype
    eps = np.finfo(dtype).eps

    cx = x.mean(axis=1)
    cy = y.mean(axis=1)
    dx = x - cx[:, None]
    dy = y - cy[:, None]

    mean_dist = np.sqrt(dx * dx + dy * dy).mean(axis=1)
    scale = np.ones_like(mean_dist)
    np.divide(np.sqrt(dtype.type(2.0)), mean_dist, out=scale, where=mean_dist > eps)

    k = x.shape[0]
    T = np.zeros((k, 3, 3), dtype=dtype)
    T[:, 0, 0] = scale
    T[:, 1, 1] = scale
    T[:, 0, 2] = -scale * cx
    T[:, 1, 2] = -scale * cy
    T[:, 2, 2] = 1

    # inverse of a scale + translation is closed form
    T_inv = np.zeros((k, 3, 3), dtype=dtype)
    T_inv[:, 0, 0] = 1 / scale
    T_inv[:, 1, 1] = 1 / scale
    T_inv[:, 0, 2] = cx
    T_inv[:, 1, 2] = cy
    T_inv[:, 2, 2] = 1

    return dx * scale[:, None], dy * scale[:, None], T, T_inv


# ---------- Linear system ----------
def build_linear_systems(
        cs: CorrespondenceSet,
        sample_indices: SampleIndices,
) -> Tuple[FloatArray, FloatArray, FloatArray]:
    """
    Build the stacked DLT systems for every iteration.

    Returns:
    - A: (iterations, 2*nsamples, 9)
    - T_src: (iterations, 3, 3) source normalization
    - T_dst_inv: (iterations, 3, 3) inverse destination normalization
    """
    idx = np.asarray(sample_indices)
    if idx.ndim != 2:
        raise ValueError(f"sample_indices must be (iterations, nsamples), got {idx.shape}")

    # Gather sampled correspondences: each is (iterations, nsamples)
    x, y = cs.src_x[idx], cs.src_y[idx]
    u, v = cs.dst_x[idx], cs.dst_y[idx]

    xn, yn, T_src, _ = normalize_samples(x, y)
    un, vn, _, T_dst_inv = normalize_samples(u, v)

    k, s = idx.shape
    A = np.zeros((k, 2 * s, 9), dtype=cs.dtype)

    # Even rows: x' equation
    A[:, 0::2, 0] = -xn
    A[:, 0::2, 1] = -yn
    A[:, 0::2, 2] = -1
    A[:, 0::2, 6] = un * xn
    A[:, 0::2, 7] = un * yn
    A[:, 0::2, 8] = un

    # Odd rows: y' equation
    A[:, 1::2, 3] = -xn
    A[:, 1::2, 4] = -yn
    A[:, 1::2, 5] = -1
    A[:, 1::2, 6] = vn * xn
    A[:, 1::2, 7] = vn * yn
    A[:, 1::2, 8] = vn

    return A, T_src, T_dst_inv


def normalize_scale(H: Candidates) -> Candidates:
    """
    Divide every row by its 9th coefficient, in place.

    Rows with |h[8]| <= eps (the true H maps the origin to infinity) are left
    as they are: dividing would only amplify noise.
    """
    eps = np.finfo(H.dtype).eps
    h8 = H[:, 8]
    ok = np.abs(h8) > eps
    H[ok] = H[ok] / h8[ok, None]
    return H


# ---------- Solve ----------
def solve_homographies(
        cs: CorrespondenceSet,
        sample_indices: SampleIndices,
        *,
        primitives: "ParallelPrimitives",
) -> Candidates:
    """
    Solve one candidate homography per sample row.

    Returns (iterations, 9) in the correspondence precision. Degenerate
    samples (collinear / repeated points) still produce a row; it simply
    scores badly downstream.
    """
    A, T_src, T_dst_inv = build_linear_systems(cs, sample_indices)

    # Batched SVD; singular values come sorted descending, so the last row
    # of V^T belongs to the smallest one
    _, _, vh = primitives.svd(A)
    H_norm = vh[:, -1, :].reshape(-1, 3, 3)

    H = np.matmul(np.matmul(T_dst_inv, H_norm), T_src).reshape(-1, 9)
    H = np.ascontiguousarray(H, dtype=cs.dtype)
    normalize_scale(H)

    if DEBUG:
        bad = int(np.count_nonzero(~np.isfinite(H).all(axis=1)))
        logger.debug("solved %d candidates (%s), %d non-finite", H.shape[0], H.dtype, bad)
    return H
