# Andy Zhao
"""
Execution backend for the estimator.

The estimator is written against a small set of data-parallel primitives:
    - sort:    ascending sort along an axis (stability not required)
    - reduce:  "sum" / "max" along an axis
    - ireduce: "max" / "min" returning (value, index), first index wins on ties
    - svd:     batched singular value decomposition

NumpyPrimitives implements them with vectorized NumPy: every "parallel
thread" of the estimator is one slice along the leading iterations axis.

Specialized kernels (one bundle per precision x estimator kind x backend)
are built on first use and cached in a KernelCache. The cache is owned by an
ExecutionContext, never by module-level state, and is torn down when the
context closes.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from functools import partial
import logging
import time
from typing import Any, Callable, Dict, Iterator, Optional, Protocol, Tuple

import numpy as np

from .config import DEBUG, EstimatorConfig
from .errors import ExecutionError, HomographyError, ResourceExhaustedError
from .evaluator import evaluate_lmeds, evaluate_ransac
from .refiner import refine_lmeds, refine_ransac
from .selector import select_lmeds, select_ransac
from .solver import solve_homographies
from .types import EstimatorKind, SUPPORTED_DTYPES

logger = logging.getLogger(__name__)


# ---------- Primitives ----------
class ParallelPrimitives(Protocol):
    """
    Contract the estimator needs from an execution substrate.
    """
    name: str

    def sort(self, a: np.ndarray, axis: int = -1) -> np.ndarray:
        ...

    def reduce(self, a: np.ndarray, op: str, axis: Optional[int] = None) -> np.ndarray:
        ...

    def ireduce(self, a: np.ndarray, op: str) -> Tuple[Any, int]:
        ...

    def svd(self, a: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        ...


@dataclass(frozen=True)
class NumpyPrimitives:
    name: str = "numpy"

    def sort(self, a: np.ndarray, axis: int = -1) -> np.ndarray:
        return np.sort(a, axis=axis)

    def reduce(self, a: np.ndarray, op: str, axis: Optional[int] = None) -> np.ndarray:
        if op == "sum":
            # bool masks sum to counts
            dtype = np.int64 if a.dtype == np.bool_ else None
            return np.sum(a, axis=axis, dtype=dtype)
        if op == "max":
            return np.max(a, axis=axis)
        raise ValueError(f"Unsupported reduce op {op!r}")

    def ireduce(self, a: np.ndarray, op: str) -> Tuple[Any, int]:
        flat = np.ravel(a)
        if flat.size == 0:
            raise ValueError("ireduce over an empty array")
        # argmax/argmin return the first occurrence of the extreme value
        if op == "max":
            idx = int(np.argmax(flat))
        elif op == "min":
            idx = int(np.argmin(flat))
        else:
            raise ValueError(f"Unsupported ireduce op {op!r}")
        return flat[idx].item(), idx

    def svd(self, a: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        # full_matrices=True: an 8x9 system still yields a 9x9 V^T whose last
        # row spans the null space
        return np.linalg.svd(a, full_matrices=True)


# ---------- Specialized kernels ----------
@dataclass(frozen=True)
class HomographyKernels:
    """
    One specialization of the pipeline for a (precision, kind, backend).

    Uniform signatures so the driver never branches on kind:
    - solve(cs, sample_indices) -> candidates (iterations, 9)
    - evaluate(candidates, cs, config) -> counts (RANSAC) or residual matrix (LMedS)
    - select(evaluated) -> (best_iteration, score)
    - refine(model, cs, score, config) -> (mask, num_inliers, threshold)
    """
    dtype: np.dtype
    kind: EstimatorKind
    backend: str
    eps: float
    solve: Callable
    evaluate: Callable
    select: Callable
    refine: Callable


def _evaluate_ransac(candidates, cs, config: EstimatorConfig, *, primitives):
    return evaluate_ransac(
        candidates, cs,
        threshold=config.inlier_threshold,
        chunk_size=config.chunk_size,
        primitives=primitives,
    )


def _evaluate_lmeds(candidates, cs, config: EstimatorConfig, *, primitives):
    return evaluate_lmeds(candidates, cs, primitives=primitives)


def _refine_ransac(model, cs, score, config: EstimatorConfig, *, primitives):
    return refine_ransac(model, cs, threshold=config.inlier_threshold, primitives=primitives)


def _refine_lmeds(model, cs, score, config: EstimatorConfig, *, primitives):
    return refine_lmeds(
        model, cs,
        median=score,
        nsamples=config.nsamples,
        robust_scale=config.robust_scale,
        min_scale=config.min_scale,
        primitives=primitives,
    )


def build_kernels(dtype: np.dtype, kind: EstimatorKind, primitives: ParallelPrimitives) -> HomographyKernels:
    dtype = np.dtype(dtype)
    if dtype not in SUPPORTED_DTYPES:
        raise ValueError(f"Unsupported precision {dtype}, expected float32 or float64")
    kind = EstimatorKind.parse(kind)

    if kind is EstimatorKind.RANSAC:
        evaluate, select, refine = _evaluate_ransac, select_ransac, _refine_ransac
    else:
        evaluate, select, refine = _evaluate_lmeds, select_lmeds, _refine_lmeds

    return HomographyKernels(
        dtype=dtype,
        kind=kind,
        backend=primitives.name,
        eps=float(np.finfo(dtype).eps),
        solve=partial(solve_homographies, primitives=primitives),
        evaluate=partial(evaluate, primitives=primitives),
        select=partial(select, primitives=primitives),
        refine=partial(refine, primitives=primitives),
    )


CacheKey = Tuple[str, EstimatorKind, str]


class KernelCache:
    """
    Kernels keyed by (precision, kind, backend), built on first use.

    The builder is injectable so tests can count or fake builds.
    """

    def __init__(self, builder: Callable[..., HomographyKernels] = build_kernels) -> None:
        self._builder = builder
        self._entries: Dict[CacheKey, HomographyKernels] = {}
        self.builds = 0

    def get(self, dtype: np.dtype, kind: EstimatorKind, primitives: ParallelPrimitives) -> HomographyKernels:
        key: CacheKey = (np.dtype(dtype).name, EstimatorKind.parse(kind), primitives.name)
        kernels = self._entries.get(key)
        if kernels is None:
            kernels = self._builder(np.dtype(dtype), key[1], primitives)
            self._entries[key] = kernels
            self.builds += 1
            if DEBUG:
                logger.debug("built kernels for %s", key)
        return kernels

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


# ---------- Execution context ----------
class ExecutionContext:
    """
    Owns the primitives and the kernel cache for a series of estimation calls.

        with ExecutionContext() as ctx:
            res = find_homography(pts0, pts1, context=ctx)

    Leaving the context clears the cache.
    """

    def __init__(
            self,
            primitives: Optional[ParallelPrimitives] = None,
            cache: Optional[KernelCache] = None,
    ) -> None:
        self.primitives: ParallelPrimitives = primitives if primitives is not None else NumpyPrimitives()
        self.cache = cache if cache is not None else KernelCache()
        self.closed = False

    def kernels(self, dtype: np.dtype, kind: EstimatorKind) -> HomographyKernels:
        if self.closed:
            raise ExecutionError("ExecutionContext is closed")
        return self.cache.get(dtype, kind, self.primitives)

    @contextmanager
    def scratch(self) -> Iterator[Dict[str, np.ndarray]]:
        """
        Per-call scratch buffers, released on every exit path.
        """
        buffers: Dict[str, np.ndarray] = {}
        try:
            yield buffers
        except MemoryError as exc:
            if isinstance(exc, HomographyError):
                raise
            raise ResourceExhaustedError(f"Could not allocate scratch buffers: {exc}") from exc
        finally:
            buffers.clear()

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        """
        Barrier-delimited phase: maps backend failures onto the error taxonomy.
        """
        start = time.perf_counter()
        try:
            yield
        except HomographyError:
            raise
        except MemoryError as exc:
            raise ResourceExhaustedError(f"{name}: out of memory ({exc})") from exc
        except Exception as exc:
            raise ExecutionError(f"{name} failed on backend {self.primitives.name!r}: {exc}") from exc
        if DEBUG:
            logger.debug("[%s] %s done in %.2f ms", self.primitives.name, name,
                         (time.perf_counter() - start) * 1e3)

    def close(self) -> None:
        self.cache.clear()
        self.closed = True

    def __enter__(self) -> "ExecutionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
