# Andy Zhao
"""
Random sample source.

Every iteration gets its own row of `nsamples` indices into the
correspondence set, drawn uniformly from [0, N) without replacement within
the row. Rows are independent of each other. The table is generated once,
before solving, so a fixed seed reproduces a run exactly.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .errors import ConfigurationError
from .types import MIN_SAMPLES, SampleIndices


def draw_sample_indices(
        n: int,
        iterations: int,
        nsamples: int = MIN_SAMPLES,
        *,
        seed: int = 0,
        rng: Optional[np.random.Generator] = None,
) -> SampleIndices:
    """
    Returns an (iterations, nsamples) intp table.

    - n: number of correspondences
    - seed: used only when rng is not given
    """
    if iterations < 1:
        raise ConfigurationError(f"iterations must be >= 1, got {iterations}")
    if nsamples < MIN_SAMPLES:
        raise ConfigurationError(f"nsamples must be >= {MIN_SAMPLES}, got {nsamples}")
    if n < nsamples:
        raise ConfigurationError(f"Need at least nsamples={nsamples} correspondences, got {n}")

    # RNG: reproducible sampling
    if rng is None:
        rng = np.random.default_rng(seed)

    table = np.empty((iterations, nsamples), dtype=np.intp)
    for i in range(iterations):
        table[i] = rng.choice(n, size=nsamples, replace=False)
    return table


def required_iterations(
        *,
        confidence: float,
        inlier_ratio: float,
        sample_size: int = MIN_SAMPLES,
        cap: int = 1_000_000,
) -> int:
    """
    Number of iterations needed so that, with probability >= confidence, at
    least ONE sample is all inliers.

    inlier ratio w, sample size s:
    - P(sample all inliers) = w^s
    - P(no all-inlier sample in k draws) = (1 - w^s)^k
    - k >= log(1 - p) / log(1 - w^s)

    w == 1 -> 1 iteration, w == 0 -> cap.
    """
    p = float(np.clip(confidence, 1e-12, 1.0 - 1e-12))
    w = float(np.clip(inlier_ratio, 0.0, 1.0))
    s = int(sample_size)

    if s <= 0:
        raise ConfigurationError("sample_size must be >= 1")
    if w >= 1.0:
        return 1
    if w <= 0.0:
        return int(cap)

    # If w^s is extremely tiny, log(1 - w^s) is close to 0
    w_to_s = float(np.clip(w ** s, 1e-12, 1.0 - 1e-12))
    k = int(np.ceil(np.log(1.0 - p) / np.log(1.0 - w_to_s)))
    return int(min(max(1, k), cap))
