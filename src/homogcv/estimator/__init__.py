# Andy Zhao
"""
Robust homography estimator package

This module provides:
- Batched DLT homography solving (float32 / float64)
- RANSAC (max inliers) and LMedS (min median residual) selection
- Typed data containers and an error taxonomy
- An execution context owning the parallel primitives and kernel cache
"""

from .types import (
    FloatArray, BoolArray, Points2D, Mask, Mat3x3, Candidates, SampleIndices,
    EstimatorKind, CorrespondenceSet, HomographyResult, MIN_SAMPLES,
)

from .errors import (
    HomographyError, ConfigurationError, ResourceExhaustedError, ExecutionError,
)

from .config import EstimatorConfig

from .backend import (
    ParallelPrimitives, NumpyPrimitives, HomographyKernels, KernelCache, ExecutionContext, build_kernels,
)

from .sampling import draw_sample_indices, required_iterations

from .solver import build_linear_systems, solve_homographies

from .evaluator import project_points, reprojection_errors, count_inliers

from .selector import median_index, row_medians, select_ransac, select_lmeds

from .refiner import lmeds_threshold, refine_ransac, refine_lmeds

from .core import estimate_homography, find_homography

__all__ = [
    "FloatArray", "BoolArray", "Points2D", "Mask", "Mat3x3", "Candidates", "SampleIndices",
    "EstimatorKind", "CorrespondenceSet", "HomographyResult", "MIN_SAMPLES",
    "HomographyError", "ConfigurationError", "ResourceExhaustedError", "ExecutionError",
    "EstimatorConfig",
    "ParallelPrimitives", "NumpyPrimitives", "HomographyKernels", "KernelCache", "ExecutionContext",
    "build_kernels",
    "draw_sample_indices", "required_iterations",
    "build_linear_systems", "solve_homographies",
    "project_points", "reprojection_errors", "count_inliers",
    "median_index", "row_medians", "select_ransac", "select_lmeds",
    "lmeds_threshold", "refine_ransac", "refine_lmeds",
    "estimate_homography", "find_homography",
]
