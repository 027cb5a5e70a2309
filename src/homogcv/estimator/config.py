# Andy Zhao
"""
Estimator configuration.

All knobs of one estimation call live in a frozen dataclass, so a config can
be shared between calls and used as a dict key. `iterations` is the only
runtime vs. robustness knob: there is no early stop.

Set HOMOGCV_DEBUG=1 to get per-phase debug logging.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import os
from typing import Union

from .errors import ConfigurationError
from .types import EstimatorKind, MIN_SAMPLES

DEBUG = os.environ.get("HOMOGCV_DEBUG", "0") == "1"


@dataclass(frozen=True)
class EstimatorConfig:
    """
    Parameters:
    - kind: "ransac" (max inliers under inlier_threshold) or "lmeds" (min median residual)
    - inlier_threshold: RANSAC inlier distance in pixels, residual <= threshold is an inlier
    - iterations: number of candidates sampled, solved and scored
    - nsamples: correspondences per candidate (4 = minimal system)
    - seed: RNG seed for sample indices
    - chunk_size: candidates evaluated per batch in RANSAC mode (bounds scratch memory)
    - robust_scale: LMedS only, turn the winning median into a Rousseeuw sigma
      (1.4826 * (1 + 5 / (N - nsamples)) * median) and accept residuals <= 2.5 * sigma.
      If False, accept residuals <= median.
    - min_scale: LMedS only, lower bound on the acceptance scale so noise-free
      data (median ~ 0) still classifies as inliers
    """
    kind: Union[str, EstimatorKind] = EstimatorKind.RANSAC
    inlier_threshold: float = 3.0
    iterations: int = 1000
    nsamples: int = MIN_SAMPLES
    seed: int = 0
    chunk_size: int = 256
    robust_scale: bool = True
    min_scale: float = 1e-6

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", EstimatorKind.parse(self.kind))
        self.validate()

    def validate(self) -> None:
        if int(self.iterations) < 1:
            raise ConfigurationError(f"iterations must be >= 1, got {self.iterations}")
        if int(self.nsamples) < MIN_SAMPLES:
            raise ConfigurationError(f"nsamples must be >= {MIN_SAMPLES}, got {self.nsamples}")
        if not float(self.inlier_threshold) > 0.0:
            raise ConfigurationError(f"inlier_threshold must be > 0, got {self.inlier_threshold}")
        if int(self.chunk_size) < 1:
            raise ConfigurationError(f"chunk_size must be >= 1, got {self.chunk_size}")
        if float(self.min_scale) < 0.0:
            raise ConfigurationError(f"min_scale must be >= 0, got {self.min_scale}")

    def with_(self, **changes) -> "EstimatorConfig":
        return replace(self, **changes)
