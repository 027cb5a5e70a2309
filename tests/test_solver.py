from __future__ import annotations

import numpy as np

from homogcv.estimator import (
    CorrespondenceSet, NumpyPrimitives, build_linear_systems, reprojection_errors, solve_homographies,
)


H_TRUE = np.array(
    [[1.05, 0.02, 15.0],
     [-0.01, 0.98, -8.0],
     [1e-4, -5e-5, 1.0]],
    dtype=np.float64,
)


def _project(H, pts):
    ph = np.hstack([pts, np.ones((pts.shape[0], 1))]) @ H.T
    return ph[:, :2] / ph[:, 2:3]


def _make_cs(n=20, seed=0, dtype=np.float64):
    rng = np.random.default_rng(seed)
    pts0 = rng.uniform([0, 0], [640, 480], size=(n, 2))
    pts1 = _project(H_TRUE, pts0)
    return CorrespondenceSet.from_points(pts0.astype(dtype), pts1.astype(dtype))


def test_minimal_four_point_sample_recovers_h():
    pts0 = np.array([[0.0, 0.0], [100.0, 0.0], [100.0, 80.0], [0.0, 80.0]])
    pts1 = _project(H_TRUE, pts0)
    cs = CorrespondenceSet.from_points(pts0, pts1)

    H = solve_homographies(cs, np.array([[0, 1, 2, 3]]), primitives=NumpyPrimitives())

    assert H.shape == (1, 9)
    np.testing.assert_allclose(H[0], H_TRUE.ravel(), rtol=1e-7, atol=1e-9)


def test_overdetermined_sample_recovers_h():
    cs = _make_cs(n=20)
    idx = np.arange(8).reshape(1, 8)

    H = solve_homographies(cs, idx, primitives=NumpyPrimitives())

    np.testing.assert_allclose(H[0], H_TRUE.ravel(), rtol=1e-7, atol=1e-9)


def test_every_candidate_has_unit_last_coefficient():
    cs = _make_cs(n=30)
    rng = np.random.default_rng(1)
    idx = np.stack([rng.choice(30, size=4, replace=False) for _ in range(25)])

    H = solve_homographies(cs, idx, primitives=NumpyPrimitives())

    assert H.shape == (25, 9)
    np.testing.assert_allclose(H[:, 8], 1.0)


def test_linear_system_annihilates_normalized_true_h():
    cs = _make_cs(n=10)
    idx = np.array([[0, 1, 2, 3], [4, 5, 6, 7]])

    A, T_src, T_dst_inv = build_linear_systems(cs, idx)

    assert A.shape == (2, 8, 9)
    for k in range(2):
        H_norm = np.linalg.inv(T_dst_inv[k]) @ H_TRUE @ np.linalg.inv(T_src[k])
        h = H_norm.ravel()
        residual = np.linalg.norm(A[k] @ h) / (np.linalg.norm(A[k]) * np.linalg.norm(h))
        assert residual < 1e-10


def test_float32_precision_is_kept():
    cs = _make_cs(n=20, dtype=np.float32)
    assert cs.dtype == np.float32

    H = solve_homographies(cs, np.array([[0, 5, 10, 15]]), primitives=NumpyPrimitives())

    assert H.dtype == np.float32
    err = reprojection_errors(H, cs)
    assert err.dtype == np.float32
    assert float(err.max()) < 0.25


def test_degenerate_samples_do_not_raise():
    # 4 collinear source points and a repeated point
    pts0 = np.array([[0.0, 0.0], [1.0, 1.0], [2.0, 2.0], [3.0, 3.0], [5.0, 1.0]])
    pts1 = pts0 + 1.0
    cs = CorrespondenceSet.from_points(pts0, pts1)
    idx = np.array([[0, 1, 2, 3], [4, 4, 4, 4]])

    H = solve_homographies(cs, idx, primitives=NumpyPrimitives())

    assert H.shape == (2, 9)
