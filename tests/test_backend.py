from __future__ import annotations

import numpy as np
import pytest

from homogcv.estimator import (
    EstimatorKind, ExecutionContext, ExecutionError, KernelCache, NumpyPrimitives,
    ResourceExhaustedError, build_kernels, find_homography,
)


def _points(n=20, seed=0):
    rng = np.random.default_rng(seed)
    pts0 = rng.uniform(0, 200, size=(n, 2))
    return pts0, pts0 + np.array([5.0, -3.0])


def test_ireduce_first_index_wins():
    prims = NumpyPrimitives()

    assert prims.ireduce(np.array([1, 5, 5]), "max") == (5, 1)
    assert prims.ireduce(np.array([2.0, 0.0, 0.0]), "min") == (0.0, 1)


def test_reduce_sum_of_mask_is_count():
    prims = NumpyPrimitives()
    mask = np.array([[True, False, True], [False, False, False]])

    np.testing.assert_array_equal(prims.reduce(mask, "sum", axis=1), [2, 0])
    assert prims.reduce(np.array([3, 9, 1]), "max") == 9


def test_unknown_primitive_op_raises():
    with pytest.raises(ValueError):
        NumpyPrimitives().reduce(np.ones(3), "mean")


def test_kernel_cache_builds_once_per_key():
    ctx = ExecutionContext()

    k1 = ctx.kernels(np.float64, EstimatorKind.RANSAC)
    k2 = ctx.kernels(np.dtype("float64"), "ransac")
    assert k1 is k2
    assert ctx.cache.builds == 1

    ctx.kernels(np.float32, EstimatorKind.RANSAC)
    ctx.kernels(np.float64, EstimatorKind.LMEDS)
    assert ctx.cache.builds == 3
    assert len(ctx.cache) == 3
    assert ("float32", EstimatorKind.RANSAC, "numpy") in ctx.cache


def test_kernels_carry_precision_epsilon():
    k32 = build_kernels(np.float32, EstimatorKind.LMEDS, NumpyPrimitives())
    k64 = build_kernels(np.float64, EstimatorKind.RANSAC, NumpyPrimitives())

    assert k32.eps == pytest.approx(np.finfo(np.float32).eps)
    assert k64.eps == pytest.approx(np.finfo(np.float64).eps)
    assert k32.kind is EstimatorKind.LMEDS


def test_unsupported_precision_is_rejected():
    with pytest.raises(ValueError):
        build_kernels(np.float16, EstimatorKind.RANSAC, NumpyPrimitives())


def test_context_close_tears_down_cache():
    with ExecutionContext() as ctx:
        ctx.kernels(np.float64, EstimatorKind.RANSAC)
        assert len(ctx.cache) == 1

    assert len(ctx.cache) == 0
    with pytest.raises(ExecutionError):
        ctx.kernels(np.float64, EstimatorKind.RANSAC)


def test_injected_cache_is_reused_across_calls():
    calls = []

    def builder(dtype, kind, primitives):
        calls.append((dtype, kind))
        return build_kernels(dtype, kind, primitives)

    pts0, pts1 = _points()
    with ExecutionContext(cache=KernelCache(builder=builder)) as ctx:
        find_homography(pts0, pts1, iterations=10, context=ctx)
        find_homography(pts0, pts1, iterations=10, seed=3, context=ctx)

    assert calls == [(np.dtype(np.float64), EstimatorKind.RANSAC)]


def test_scratch_is_released_on_error():
    ctx = ExecutionContext()
    seen = {}

    with pytest.raises(RuntimeError):
        with ctx.scratch() as scratch:
            scratch["residuals"] = np.zeros((4, 4))
            seen["buffers"] = scratch
            raise RuntimeError("boom")

    assert seen["buffers"] == {}


def test_scratch_maps_memory_error():
    ctx = ExecutionContext()

    with pytest.raises(ResourceExhaustedError):
        with ctx.scratch():
            raise MemoryError("no room")


def test_phase_maps_backend_failure():
    ctx = ExecutionContext()

    with pytest.raises(ExecutionError):
        with ctx.phase("solve"):
            raise np.linalg.LinAlgError("SVD did not converge")
