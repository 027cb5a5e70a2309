from __future__ import annotations

import dataclasses

import numpy as np
import pytest
import cv2

from homogcv.estimator import (
    ConfigurationError, CorrespondenceSet, EstimatorConfig, EstimatorKind,
)
from homogcv.warp import WarpParams, transform_points, warp_image


def test_correspondences_are_read_only_copies():
    x = np.array([1.0, 2.0, 3.0, 4.0])
    cs = CorrespondenceSet(x, x, x, x)

    x[0] = 100.0
    assert cs.src_x[0] == 1.0
    with pytest.raises(ValueError):
        cs.src_x[0] = 5.0


def test_correspondence_precision():
    f32 = np.zeros(4, dtype=np.float32)
    assert CorrespondenceSet(f32, f32, f32, f32).dtype == np.float32
    assert CorrespondenceSet(f32, f32, f32, f32.astype(np.float64)).dtype == np.float64
    assert CorrespondenceSet.from_points(np.zeros((4, 2), dtype=int), np.zeros((4, 2), dtype=int)).dtype == np.float64


def test_from_points_requires_n_by_2():
    with pytest.raises(ConfigurationError):
        CorrespondenceSet.from_points(np.zeros((4, 3)), np.zeros((4, 3)))


def test_estimator_kind_parse():
    assert EstimatorKind.parse("LMEDS") is EstimatorKind.LMEDS
    assert EstimatorKind.parse(EstimatorKind.RANSAC) is EstimatorKind.RANSAC
    with pytest.raises(ConfigurationError):
        EstimatorKind.parse("prosac")


def test_config_is_frozen_and_normalizes_kind():
    cfg = EstimatorConfig(kind="lmeds")

    assert cfg.kind is EstimatorKind.LMEDS
    assert cfg.with_(iterations=5).iterations == 5
    with pytest.raises(dataclasses.FrozenInstanceError):
        cfg.iterations = 10


def test_coordinate_scale():
    cs = CorrespondenceSet(np.array([1.0, -7.5]), np.array([2.0, 3.0]),
                           np.array([0.5, 4.0]), np.array([-1.0, 6.0]))

    assert cs.coordinate_scale() == 7.5
    assert CorrespondenceSet(*(np.zeros(0),) * 4).coordinate_scale() == 0.0


def test_transform_points_matches_homogeneous_projection():
    H = np.array([[1.1, 0.05, 3.0], [0.02, 0.9, -4.0], [1e-3, 2e-4, 1.0]])
    pts = np.array([[0.0, 0.0], [10.0, 20.0], [50.0, -5.0]])

    ph = np.hstack([pts, np.ones((len(pts), 1))]) @ H.T
    expected = ph[:, :2] / ph[:, 2:3]

    np.testing.assert_allclose(transform_points(H, pts), expected, rtol=1e-9)
    assert transform_points(H, np.zeros((0, 2))).shape == (0, 2)


def test_warp_image_translates_pixels():
    img = np.zeros((10, 10), dtype=np.uint8)
    img[3, 2] = 255   # (x=2, y=3)
    H = np.array([[1.0, 0.0, 1.0], [0.0, 1.0, 2.0], [0.0, 0.0, 1.0]])

    out = warp_image(img, H, params=WarpParams(interpolation=cv2.INTER_NEAREST))

    assert out.shape == img.shape
    assert out[5, 3] == 255
    assert int(out.sum()) == 255


def test_warp_image_output_size():
    img = np.ones((8, 12, 3), dtype=np.uint8)

    out = warp_image(img, np.eye(3), size=(20, 16))

    assert out.shape == (16, 20, 3)
