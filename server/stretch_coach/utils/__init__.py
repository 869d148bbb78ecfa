"""
Utilities Module
================

Landmark detection adapter and the live session registry.
"""

from .landmark_detector import LandmarkDetector, decode_image, first_body
from .session_registry import SessionRegistry

__all__ = ["LandmarkDetector", "SessionRegistry", "decode_image", "first_body"]
