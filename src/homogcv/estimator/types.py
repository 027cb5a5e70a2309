# Andy Zhao

"""
Shared typed primitives for the robust homography estimator.

Defines:
- Typed NumPy aliases for geometry
    - Coordinates are flat 1-D arrays (one per axis), float32 or float64
    - Candidates are stride-9 rows, one per iteration
- EstimatorKind: which robust criterion drives selection
- CorrespondenceSet: the read-only input of one estimation call
- Structured result container (model + inliers + stats)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias, Union

import numpy as np
import numpy.typing as npt

from .errors import ConfigurationError

# ---------- Numpy typing aliases ----------
# Precision is either float32 or float64; everything downstream of the
# correspondences runs in that precision.
FloatArray: TypeAlias = npt.NDArray[np.floating]
BoolArray: TypeAlias = npt.NDArray[np.bool_]
IndexArray: TypeAlias = npt.NDArray[np.intp]

Points2D: TypeAlias = FloatArray        # shape: (N, 2)
Coords: TypeAlias = FloatArray          # shape: (N,)
Mask: TypeAlias = BoolArray             # shape: (N,)
Mat3x3: TypeAlias = FloatArray          # shape: (3, 3)
Candidates: TypeAlias = FloatArray      # shape: (iterations, 9)
SampleIndices: TypeAlias = IndexArray   # shape: (iterations, nsamples)

SUPPORTED_DTYPES = (np.dtype(np.float32), np.dtype(np.float64))

# A homography needs 4 correspondences (8 equations, 8 DOF).
MIN_SAMPLES = 4


class EstimatorKind(str, Enum):
    RANSAC = "ransac"
    LMEDS = "lmeds"

    @classmethod
    def parse(cls, kind: Union[str, "EstimatorKind"]) -> "EstimatorKind":
        if isinstance(kind, EstimatorKind):
            return kind
        try:
            return cls(str(kind).lower())
        except ValueError:
            raise ConfigurationError(f"Unknown estimator kind {kind!r}, expected 'ransac' or 'lmeds'") from None


def working_dtype(*arrays: np.ndarray) -> np.dtype:
    """
    float32 only if every input is float32, otherwise float64.
    """
    if arrays and all(np.asarray(a).dtype == np.float32 for a in arrays):
        return np.dtype(np.float32)
    return np.dtype(np.float64)


# ---------- Correspondences ----------
@dataclass(frozen=True)
class CorrespondenceSet:
    """
    Four equal-length coordinate arrays: src (x, y) -> dst (x, y).

    Arrays are made read-only on construction; nothing in the estimator
    writes to them.
    """
    src_x: Coords
    src_y: Coords
    dst_x: Coords
    dst_y: Coords

    def __post_init__(self) -> None:
        arrays = [self.src_x, self.src_y, self.dst_x, self.dst_y]
        dtype = working_dtype(*arrays)

        converted = []
        for name, a in zip(("src_x", "src_y", "dst_x", "dst_y"), arrays):
            a = np.asarray(a)
            if a.ndim != 1:
                raise ConfigurationError(f"{name} must be 1-D, got shape {a.shape}")
            a = np.array(a, dtype=dtype, copy=True)
            a.setflags(write=False)
            converted.append(a)

        lengths = {a.shape[0] for a in converted}
        if len(lengths) != 1:
            raise ConfigurationError(
                f"Coordinate arrays must have equal length, got {[a.shape[0] for a in converted]}")

        # frozen dataclass: bypass __setattr__ to store the normalized arrays
        for name, a in zip(("src_x", "src_y", "dst_x", "dst_y"), converted):
            object.__setattr__(self, name, a)

    @classmethod
    def from_points(cls, pts0: Points2D, pts1: Points2D) -> "CorrespondenceSet":
        """
        Build from (N,2) source and destination point arrays.
        """
        pts0 = np.asarray(pts0)
        pts1 = np.asarray(pts1)
        if pts0.ndim != 2 or pts0.shape[1] != 2:
            raise ConfigurationError(f"Expected pts0 shape (N,2), got {pts0.shape}")
        if pts0.shape != pts1.shape:
            raise ConfigurationError(f"pts0 and pts1 must have same shape, got {pts0.shape} vs {pts1.shape}")
        return cls(pts0[:, 0], pts0[:, 1], pts1[:, 0], pts1[:, 1])

    @property
    def n(self) -> int:
        return int(self.src_x.shape[0])

    @property
    def dtype(self) -> np.dtype:
        return self.src_x.dtype

    def coordinate_scale(self) -> float:
        """Largest absolute coordinate over all four arrays (0.0 when empty)."""
        if self.n == 0:
            return 0.0
        return float(max(np.abs(a).max() for a in (self.src_x, self.src_y, self.dst_x, self.dst_y)))


# ---------- Estimation output container ----------
# frozen=True means "immutable" after construction
@dataclass(frozen=True)
class HomographyResult:
    model: Mat3x3               # winning 3x3 homography, H[2,2] == 1
    inliers: Mask               # boolean mask of inliers under the winning model
    num_inliers: int            # count of True values in inliers
    best_iteration: int         # index of the winning candidate
    score: float                # RANSAC: inlier count of the winner, LMedS: its median residual
    threshold: float            # distance threshold that produced the inlier mask
    kind: EstimatorKind
    iterations: int             # number of candidates that were scored
