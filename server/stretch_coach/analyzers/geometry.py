"""
Geometry Helpers
================

Joint angle math shared by the pose classifier.
"""

import math

import numpy as np


def as_point(p) -> np.ndarray:
    """Return the (x, y) of a landmark, tuple, list, or array as floats."""
    if hasattr(p, "x") and hasattr(p, "y"):
        return np.array([p.x, p.y], dtype=float)
    return np.asarray(p, dtype=float)[:2]


def angle_at(p1, vertex, p3) -> float:
    """
    Calculate the angle at ``vertex`` formed by three points.

    Args:
        p1: First point [x, y]
        vertex: Middle point (vertex) [x, y]
        p3: Third point [x, y]

    Returns:
        Angle in degrees within [0, 180], or NaN when either arm of the
        angle has zero length.
    """
    v1 = as_point(p1) - as_point(vertex)
    v2 = as_point(p3) - as_point(vertex)

    norm = np.linalg.norm(v1) * np.linalg.norm(v2)
    if norm == 0.0 or not np.isfinite(norm):
        return math.nan

    cosine = np.clip(np.dot(v1, v2) / norm, -1.0, 1.0)
    return float(np.degrees(np.arccos(cosine)))
