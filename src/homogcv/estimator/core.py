# Andy Zhao
"""
Robust homography estimation driver (RANSAC / LMedS).

Pipeline, each phase completing before the next starts:
1) sample:   (iterations, nsamples) random indices (caller-provided or seeded)
2) solve:    one DLT homography per sample row, batched SVD
3) evaluate: residual of EVERY correspondence under EVERY candidate
4) select:   argmax inliers (RANSAC) / argmin median residual (LMedS)
5) refine:   re-score the winner on all correspondences -> final inlier mask

Candidates are independent of each other, so phases 2-3 run as batched NumPy
over the iterations axis. The same inputs and sample indices always give the
same winner and a bit-identical homography.

Only configuration, resource and backend failures raise. A bad sample is
just a bad candidate, and zero final inliers is a valid result.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

from .backend import ExecutionContext
from .config import DEBUG, EstimatorConfig
from .errors import ConfigurationError
from .sampling import draw_sample_indices
from .types import (
    CorrespondenceSet, EstimatorKind, HomographyResult, Points2D, SampleIndices, MIN_SAMPLES,
)

logger = logging.getLogger(__name__)


# ---------- Input validation ----------
def _check_sample_indices(cs: CorrespondenceSet, sample_indices: SampleIndices) -> np.ndarray:
    idx = np.asarray(sample_indices)
    if idx.ndim != 2:
        raise ConfigurationError(f"sample_indices must be (iterations, nsamples), got shape {idx.shape}")
    if not np.issubdtype(idx.dtype, np.integer):
        raise ConfigurationError(f"sample_indices must be integers, got {idx.dtype}")

    iterations, nsamples = idx.shape
    if iterations < 1:
        raise ConfigurationError("iterations must be >= 1")
    if nsamples < MIN_SAMPLES:
        raise ConfigurationError(f"nsamples must be >= {MIN_SAMPLES}, got {nsamples}")
    if cs.n < nsamples:
        raise ConfigurationError(f"Need at least nsamples={nsamples} correspondences, got {cs.n}")
    if idx.min() < 0 or idx.max() >= cs.n:
        raise ConfigurationError(f"sample_indices must lie in [0, {cs.n})")
    return idx.astype(np.intp, copy=False)


def _check_finite(cs: CorrespondenceSet) -> None:
    for name in ("src_x", "src_y", "dst_x", "dst_y"):
        if not np.isfinite(getattr(cs, name)).all():
            raise ConfigurationError(f"{name} contains NaN/Inf; clean correspondences first")


def _check_out(out: Optional[np.ndarray]) -> None:
    if out is None:
        return
    if not isinstance(out, np.ndarray) or out.size != 9 or out.shape not in ((3, 3), (9,)):
        raise ConfigurationError("out must be a (3,3) or (9,) array")
    if not np.issubdtype(out.dtype, np.floating) or not out.flags.writeable:
        raise ConfigurationError("out must be a writeable floating point array")


def _resolve_config(
        config: Optional[EstimatorConfig],
        **overrides,
) -> EstimatorConfig:
    cfg = config if config is not None else EstimatorConfig()
    changes = {k: v for k, v in overrides.items() if v is not None}
    if not changes:
        return cfg
    try:
        return cfg.with_(**changes)
    except TypeError as e:
        raise ConfigurationError(f"Unknown estimator option in {sorted(changes)}: {e}") from None


# ---------- Entry points ----------
def estimate_homography(
        cs: CorrespondenceSet,
        sample_indices: SampleIndices,
        *,
        inlier_threshold: Optional[float] = None,
        kind: Optional[Union[str, EstimatorKind]] = None,
        config: Optional[EstimatorConfig] = None,
        out: Optional[np.ndarray] = None,
        context: Optional[ExecutionContext] = None,
) -> HomographyResult:
    """
    Estimate the homography src -> dst from caller-provided sample indices.

    Inputs:
    - cs: correspondences (float32 or float64; that precision is used throughout)
    - sample_indices: (iterations, nsamples) indices into cs
    - inlier_threshold, kind: override the matching config fields
    - config: remaining knobs (chunk_size, LMedS scale); iterations and
      nsamples are taken from sample_indices
    - out: optional (3,3) or (9,) array, written once, only on success
    - context: execution context (primitives + kernel cache); a private one
      is created and closed when omitted

    Returns:
    - HomographyResult with the winning model and its final inlier mask.
    """
    idx = _check_sample_indices(cs, sample_indices)
    _check_finite(cs)
    _check_out(out)
    cfg = _resolve_config(
        config,
        inlier_threshold=inlier_threshold,
        kind=kind,
        iterations=idx.shape[0],
        nsamples=idx.shape[1],
    )

    own_context = context is None
    ctx = ExecutionContext() if own_context else context
    try:
        kernels = ctx.kernels(cs.dtype, cfg.kind)

        with ctx.scratch() as scratch:
            # ---------- Solve ----------
            with ctx.phase("solve"):
                scratch["candidates"] = kernels.solve(cs, idx)

            # ---------- Evaluate ----------
            with ctx.phase("evaluate"):
                scratch["scores"] = kernels.evaluate(scratch["candidates"], cs, cfg)

            # ---------- Select ----------
            with ctx.phase("select"):
                best, score = kernels.select(scratch["scores"])

            model = scratch["candidates"][best].reshape(3, 3).copy()

            # ---------- Refine ----------
            with ctx.phase("refine"):
                inliers, num_inliers, threshold = kernels.refine(model, cs, score, cfg)
    finally:
        if own_context:
            ctx.close()

    if num_inliers == 0:
        logger.warning("homography estimate has 0 inliers out of %d correspondences (%s)",
                       cs.n, cfg.kind.value)
    if DEBUG:
        logger.debug("[%s] best iteration=%d score=%g inliers=%d/%d threshold=%g",
                     cfg.kind.value, best, score, num_inliers, cs.n, threshold)

    result = HomographyResult(
        model=model,
        inliers=inliers,
        num_inliers=num_inliers,
        best_iteration=best,
        score=score,
        threshold=threshold,
        kind=cfg.kind,
        iterations=idx.shape[0],
    )

    # Every phase succeeded: publish the model
    if out is not None:
        out[...] = model.reshape(out.shape)
    return result


def find_homography(
        pts0: Points2D,
        pts1: Points2D,
        *,
        config: Optional[EstimatorConfig] = None,
        out: Optional[np.ndarray] = None,
        context: Optional[ExecutionContext] = None,
        **overrides,
) -> HomographyResult:
    """
    Estimate the homography mapping pts0 -> pts1 ((N,2) arrays).

    Sample indices are drawn from config.seed. Keyword overrides
    (kind=..., inlier_threshold=..., iterations=...) replace config fields.

    To size iterations from a target confidence and an expected inlier
    ratio, use sampling.required_iterations:

        n_iter = required_iterations(confidence=0.99, inlier_ratio=0.5)
        res = find_homography(pts0, pts1, iterations=n_iter)

    Example:
        res = find_homography(pts0, pts1, kind="lmeds", iterations=500)
        H, mask = res.model, res.inliers
    """
    cfg = _resolve_config(config, **overrides)
    cs = CorrespondenceSet.from_points(pts0, pts1)
    sample_indices = draw_sample_indices(cs.n, cfg.iterations, cfg.nsamples, seed=cfg.seed)
    return estimate_homography(cs, sample_indices, config=cfg, out=out, context=context)
