# Andy Zhao
"""
Second pass: re-score the winning homography against every correspondence
and produce the final inlier mask.

RANSAC:
    inlier <=> e_i <= inlier_threshold

LMedS (no user threshold): the winning median residual is a robust scale.
With robust_scale, it becomes Rousseeuw's estimate of the noise sigma:

    sigma = 1.4826 * (1 + 5 / (N - nsamples)) * median
    inlier <=> e_i <= 2.5 * max(sigma, min_scale)

1.4826 makes the median of |N(0, sigma)| residuals an unbiased sigma,
(1 + 5 / (N - p)) is the small-sample correction. Without robust_scale:

    inlier <=> e_i <= max(median, min_scale)

min_scale is raised to what the working precision can resolve at the
coordinate magnitude (PRECISION_ULPS * eps(dtype) * max|coord|), so exact
float32 data still classifies every correspondence as an inlier.

A non-finite median gives no inliers. Zero inliers is a valid outcome,
not an error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Tuple

import numpy as np

from .types import CorrespondenceSet, Mask, Mat3x3
from .evaluator import reprojection_errors

if TYPE_CHECKING:
    from .backend import ParallelPrimitives

logger = logging.getLogger(__name__)

# Rousseeuw & Leroy constants
MAD_TO_SIGMA = 1.4826
INLIER_SIGMAS = 2.5

# residuals of an exact model are a few ulps of the largest coordinate
PRECISION_ULPS = 64


def precision_floor(cs: CorrespondenceSet) -> float:
    """Smallest meaningful residual for cs at its working precision."""
    return PRECISION_ULPS * float(np.finfo(cs.dtype).eps) * cs.coordinate_scale()


def _final_mask(
        model: Mat3x3,
        cs: CorrespondenceSet,
        threshold: float,
        primitives: "ParallelPrimitives",
) -> Tuple[Mask, int]:
    err = reprojection_errors(np.asarray(model).reshape(1, 9), cs)[0]
    mask = np.isfinite(err) & (err <= err.dtype.type(threshold))
    count = int(primitives.reduce(mask, "sum"))
    return mask, count


def lmeds_threshold(
        median: float,
        *,
        n: int,
        nsamples: int,
        robust_scale: bool = True,
        min_scale: float = 1e-6,
) -> float:
    """
    Acceptance distance derived from the winning median residual.
    """
    if not robust_scale:
        return max(float(median), float(min_scale))

    dof = n - nsamples
    correction = 1.0 + 5.0 / dof if dof > 0 else 1.0
    sigma = MAD_TO_SIGMA * correction * float(median)
    return INLIER_SIGMAS * max(sigma, float(min_scale))


def refine_ransac(
        model: Mat3x3,
        cs: CorrespondenceSet,
        *,
        threshold: float,
        primitives: "ParallelPrimitives",
) -> Tuple[Mask, int, float]:
    """
    Returns (inlier_mask, num_inliers, threshold).
    """
    mask, count = _final_mask(model, cs, threshold, primitives)
    return mask, count, float(threshold)


def refine_lmeds(
        model: Mat3x3,
        cs: CorrespondenceSet,
        *,
        median: float,
        nsamples: int,
        robust_scale: bool,
        min_scale: float,
        primitives: "ParallelPrimitives",
) -> Tuple[Mask, int, float]:
    """
    Returns (inlier_mask, num_inliers, threshold).

    A non-finite median means the winner sends at least half of the
    correspondences to infinity: no inliers, threshold inf.
    """
    if not np.isfinite(median):
        return np.zeros(cs.n, dtype=bool), 0, float("inf")

    floor = max(float(min_scale), precision_floor(cs))
    thr = lmeds_threshold(median, n=cs.n, nsamples=nsamples, robust_scale=robust_scale, min_scale=floor)
    mask, count = _final_mask(model, cs, thr, primitives)
    return mask, count, thr
