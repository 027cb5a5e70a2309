"""
Warp package
"""
from .perspective import WarpParams, warp_image, transform_points

__all__ = [
    "WarpParams", "warp_image", "transform_points",
]
