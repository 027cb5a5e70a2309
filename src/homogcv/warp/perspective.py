# Andy Zhao

"""
Apply an estimated homography with OpenCV.

The estimator represents motion as a 3x3 homography (Mat3x3, H[2,2] == 1):
    [u, v, 1]^T ~ H @ [x, y, 1]^T

OpenCV APIs used:
1) cv2.warpPerspective: warp a whole image (expects 3x3)
2) cv2.perspectiveTransform: map individual points (expects (N,1,2))
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import cv2

from ..estimator.types import Mat3x3, Points2D


# ---------- Warp parameters ----------
@dataclass(frozen=True)
class WarpParams:
    """
    Controls how OpenCV fills pixels that map from outside the source image.

    - border_mode: OpenCV border mode constant
        - cv2.BORDER_CONSTANT: fill with border_value
        - cv2.BORDER_REFLECT: mirror reflect at edge
        - cv2.BORDER_REPLICATE: repeat edge pixels
    - border_value: used only with cv2.BORDER_CONSTANT, e.g. (0,0,0) for BGR
    - interpolation:
        - cv2.INTER_LINEAR: good default
        - cv2.INTER_NEAREST: exact pixel values, blocky
        - cv2.INTER_CUBIC: smoother but slower
    """
    border_mode: int = cv2.BORDER_CONSTANT
    border_value: Tuple[int, int, int] = (0, 0, 0)
    interpolation: int = cv2.INTER_LINEAR


def _as_mat3x3(H: Mat3x3) -> np.ndarray:
    H = np.asarray(H, dtype=np.float64)
    if H.size != 9:
        raise ValueError(f"Expected a 3x3 homography, got shape {H.shape}")
    return H.reshape(3, 3)


def warp_image(
    image: np.ndarray,
    H: Mat3x3,
    *,
    params: WarpParams = WarpParams(),
    size: Optional[Tuple[int, int]] = None,
) -> np.ndarray:
    """
    Warp an image (H x W or H x W x C) into the destination frame of H.

    size: output (width, height); defaults to the input size.
    """
    if image is None or image.size == 0:
        return image

    if size is None:
        h, w = image.shape[:2]
        size = (w, h)

    return cv2.warpPerspective(
        image,
        _as_mat3x3(H),
        size,
        flags=params.interpolation,
        borderMode=params.border_mode,
        borderValue=params.border_value,
    )


def transform_points(H: Mat3x3, pts: Points2D) -> Points2D:
    """
    Map (N,2) points through H. Returns (N,2) float64.
    """
    pts = np.asarray(pts, dtype=np.float64)
    if pts.ndim != 2 or pts.shape[1] != 2:
        raise ValueError(f"Expected pts shape (N,2), got {pts.shape}")
    if pts.shape[0] == 0:
        return pts.copy()

    # OpenCV wants (N,1,2)
    out = cv2.perspectiveTransform(pts.reshape(-1, 1, 2), _as_mat3x3(H))
    return out.reshape(-1, 2)
