"""
Pose Analyzers Module
=====================

Joint angle geometry and rule-based stretch pose classification.
"""

from .geometry import angle_at
from .pose_classifier import (
    Landmark,
    PoseClassifier,
    PoseFeatures,
    PoseVerdict,
    StretchMode,
    classify,
    extract_features,
    frame_from_points,
)

__all__ = [
    "angle_at",
    "Landmark",
    "PoseClassifier",
    "PoseFeatures",
    "PoseVerdict",
    "StretchMode",
    "classify",
    "extract_features",
    "frame_from_points",
]
