"""
homogcv: robust planar homography estimation (RANSAC / LMedS).
"""
from .estimator import (
    EstimatorKind, EstimatorConfig, CorrespondenceSet, HomographyResult,
    HomographyError, ConfigurationError, ResourceExhaustedError, ExecutionError,
    ExecutionContext, draw_sample_indices, estimate_homography, find_homography,
)

__version__ = "0.1.0"

__all__ = [
    "EstimatorKind", "EstimatorConfig", "CorrespondenceSet", "HomographyResult",
    "HomographyError", "ConfigurationError", "ResourceExhaustedError", "ExecutionError",
    "ExecutionContext", "draw_sample_indices", "estimate_homography", "find_homography",
]
