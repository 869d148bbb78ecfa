"""
Landmark Detector Module
========================

MediaPipe adapter turning a camera image into a landmark frame for the
pose classifier. The model is loaded lazily; any failure to load or run it
is reported as ModelUnavailable so the host can surface it and retry.
"""

import base64
import binascii
import logging
import threading
from typing import List, Optional, Sequence

import cv2
import numpy as np

from config import DetectorConfig

from ..analyzers import Landmark
from ..errors import InvalidFrameError, ModelUnavailable

logger = logging.getLogger(__name__)


def first_body(bodies: Optional[Sequence[Sequence]]) -> list:
    """Reduce a multi-person detection to the first body, or an empty frame."""
    if not bodies:
        return []
    return list(bodies[0])


def decode_image(image_data: str) -> np.ndarray:
    """
    Decode a base64 JPEG/PNG into a BGR image.

    Raises:
        InvalidFrameError: If the payload is not a decodable image
    """
    # Validate base64 data
    if not image_data or len(image_data) < 100:
        raise InvalidFrameError("Invalid image data - too small")
    try:
        img_bytes = base64.b64decode(image_data)
    except (binascii.Error, ValueError) as e:
        raise InvalidFrameError(f"Base64 decode error: {e}") from e

    nparr = np.frombuffer(img_bytes, np.uint8)
    frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if frame is None or frame.size == 0:
        raise InvalidFrameError("Failed to decode image")
    if frame.shape[0] < 10 or frame.shape[1] < 10:
        raise InvalidFrameError("Image too small")
    return frame


class LandmarkDetector:
    """
    Thread-safe wrapper around MediaPipe Pose.

    Usage:
        detector = LandmarkDetector()
        frame = detector.detect(image)   # [] when nobody is visible
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()
        self._pose = None
        self._lock = threading.Lock()

    def _load(self) -> None:
        """Initialize MediaPipe pose detection."""
        try:
            import mediapipe as mp
        except ImportError as e:
            raise ModelUnavailable("MediaPipe is not installed") from e
        try:
            self._pose = mp.solutions.pose.Pose(
                static_image_mode=True,
                model_complexity=self.config.model_complexity,
                min_detection_confidence=self.config.min_detection_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
        except Exception as e:
            logger.error("Pose model initialisation failed: %s", e)
            raise ModelUnavailable(f"Pose model initialisation failed: {e}") from e
        logger.info("Pose model loaded (complexity=%d)", self.config.model_complexity)

    def is_available(self) -> bool:
        """Load the model if needed and report whether it is usable."""
        with self._lock:
            if self._pose is not None:
                return True
            try:
                self._load()
            except ModelUnavailable:
                return False
            return True

    def detect(self, image: np.ndarray) -> List[Landmark]:
        """
        Detect body landmarks in a BGR image.

        Returns:
            33 landmarks of the first detected body, or [] if none

        Raises:
            ModelUnavailable: If the model cannot be loaded or fails
        """
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        rgb.flags.writeable = False
        with self._lock:
            if self._pose is None:
                self._load()
            try:
                results = self._pose.process(rgb)
            except Exception as e:
                logger.error("Pose detection failed: %s", e)
                raise ModelUnavailable(f"Pose detection failed: {e}") from e

        if not results.pose_landmarks:
            return []
        return [
            Landmark(x=lm.x, y=lm.y, z=lm.z, visibility=lm.visibility)
            for lm in results.pose_landmarks.landmark
        ]

    def reset(self) -> None:
        """Drop the loaded model so the next call reinitialises it."""
        with self._lock:
            self._release()

    def close(self) -> None:
        self.reset()

    def _release(self) -> None:
        if self._pose is not None:
            try:
                self._pose.close()
            except Exception as e:
                logger.warning("Error closing pose model: %s", e)
            self._pose = None
