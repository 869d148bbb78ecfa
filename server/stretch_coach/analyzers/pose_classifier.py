"""
Pose Classifier Module
======================

Rule-based stretch pose classification from a single frame of body
landmarks.

Classes:
    StretchMode: Which stretch and side is being evaluated
    Landmark: A normalized body landmark
    PoseFeatures: Joint angles extracted for a mode
    PoseVerdict: Verdict plus the features and a feedback hint
    PoseClassifier: Applies the threshold rules

Usage:
    classifier = PoseClassifier()
    correct = classifier.classify(frame, StretchMode.LEFT_LEG)
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Sequence

from config import ClassifierConfig

from ..errors import InvalidFrameError
from .geometry import angle_at, as_point

logger = logging.getLogger(__name__)

# Full-body models emit this many landmarks per detected person.
NUM_LANDMARKS = 33

NOSE = 0
LEFT_SHOULDER, RIGHT_SHOULDER = 11, 12
LEFT_ELBOW, RIGHT_ELBOW = 13, 14
LEFT_WRIST, RIGHT_WRIST = 15, 16
LEFT_HIP, RIGHT_HIP = 23, 24
LEFT_KNEE, RIGHT_KNEE = 25, 26
LEFT_ANKLE, RIGHT_ANKLE = 27, 28

# Reference rays are built by offsetting a real landmark by one normalized
# unit. The thresholds were tuned against exactly these offsets.
HORIZONTAL_OFFSET = (1.0, 0.0)
VERTICAL_OFFSET = (0.0, -1.0)

NO_BODY_FEEDBACK = "Please make your full body visible"
CORRECT_FEEDBACK = "Good form, hold it"


class StretchMode(Enum):
    """Exercise and side being evaluated."""
    LEFT_LEG = "left_leg"
    RIGHT_LEG = "right_leg"
    LEFT_ARM = "left_arm"
    RIGHT_ARM = "right_arm"

    @property
    def is_leg(self) -> bool:
        return self in (StretchMode.LEFT_LEG, StretchMode.RIGHT_LEG)

    @property
    def is_left(self) -> bool:
        return self in (StretchMode.LEFT_LEG, StretchMode.LEFT_ARM)


@dataclass(frozen=True)
class Landmark:
    """A single landmark in normalized image coordinates."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


@dataclass(frozen=True)
class SideIndices:
    shoulder: int
    elbow: int
    wrist: int
    hip: int
    knee: int
    ankle: int


LEFT_SIDE = SideIndices(LEFT_SHOULDER, LEFT_ELBOW, LEFT_WRIST, LEFT_HIP, LEFT_KNEE, LEFT_ANKLE)
RIGHT_SIDE = SideIndices(RIGHT_SHOULDER, RIGHT_ELBOW, RIGHT_WRIST, RIGHT_HIP, RIGHT_KNEE, RIGHT_ANKLE)


def side_indices(mode: StretchMode) -> SideIndices:
    """Landmark indices for the side a mode evaluates."""
    return LEFT_SIDE if mode.is_left else RIGHT_SIDE


@dataclass
class PoseFeatures:
    """
    Joint angles extracted from one frame.

    Attributes:
        mode (StretchMode): Mode the angles were extracted for
        primary (float): Knee angle (legs) or arm straightness (arms)
        secondary (float): Torso lean (legs) or arm elevation (arms)
    """
    mode: StretchMode
    primary: float
    secondary: float

    def to_dict(self) -> Dict[str, Optional[float]]:
        names = ("knee_angle", "torso_angle") if self.mode.is_leg else ("arm_angle", "arm_elevation")
        return {
            names[0]: _rounded(self.primary),
            names[1]: _rounded(self.secondary),
        }


@dataclass
class PoseVerdict:
    """Verdict for one frame with the features it was derived from."""
    correct: bool
    mode: StretchMode
    features: Optional[PoseFeatures] = None
    feedback: str = ""

    def to_dict(self) -> dict:
        return {
            "correct": self.correct,
            "mode": self.mode.value,
            "angles": self.features.to_dict() if self.features else {},
            "feedback": self.feedback,
        }


def _rounded(value: float) -> Optional[float]:
    # NaN is not valid JSON
    return None if math.isnan(value) else round(value, 1)


def has_body(frame: Optional[Sequence]) -> bool:
    """True when a frame carries a full set of landmarks for one body."""
    return frame is not None and len(frame) >= NUM_LANDMARKS


def frame_from_points(points) -> list:
    """
    Build a frame from a JSON-style landmark list.

    Args:
        points: Sequence of ``{"x": .., "y": ..}`` dicts or ``[x, y]`` pairs

    Returns:
        List of Landmark

    Raises:
        InvalidFrameError: If any entry is not a numeric point
    """
    if points is None:
        return []
    if not isinstance(points, (list, tuple)):
        raise InvalidFrameError("landmarks must be a list")

    frame = []
    for i, p in enumerate(points):
        try:
            if isinstance(p, dict):
                lm = Landmark(
                    x=float(p["x"]),
                    y=float(p["y"]),
                    z=float(p.get("z", 0.0)),
                    visibility=float(p.get("visibility", 1.0)),
                )
            else:
                lm = Landmark(x=float(p[0]), y=float(p[1]))
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise InvalidFrameError(f"landmark {i} is not a point: {p!r}") from e
        if not (math.isfinite(lm.x) and math.isfinite(lm.y)):
            raise InvalidFrameError(f"landmark {i} has non-finite coordinates")
        frame.append(lm)
    return frame


def extract_features(frame: Sequence, mode: StretchMode) -> Optional[PoseFeatures]:
    """
    Compute the two joint angles a mode is judged on.

    Returns:
        PoseFeatures, or None if the frame has no body
    """
    if not has_body(frame):
        return None

    idx = side_indices(mode)
    shoulder = as_point(frame[idx.shoulder])
    hip = as_point(frame[idx.hip])

    if mode.is_leg:
        knee_angle = angle_at(hip, frame[idx.knee], frame[idx.ankle])
        torso_angle = angle_at(shoulder, hip, hip + HORIZONTAL_OFFSET)
        return PoseFeatures(mode, knee_angle, torso_angle)

    wrist = as_point(frame[idx.wrist])
    arm_angle = angle_at(shoulder, frame[idx.elbow], wrist)
    arm_elevation = angle_at(hip, shoulder, wrist + VERTICAL_OFFSET)
    return PoseFeatures(mode, arm_angle, arm_elevation)


class PoseClassifier:
    """
    Threshold rules for the supported stretches.

    The classifier keeps no per-frame state and no current mode: the mode
    is passed in on every call.

    Attributes:
        thresholds (ClassifierConfig): Angle limits in degrees
    """

    def __init__(self, thresholds: Optional[ClassifierConfig] = None):
        self.thresholds = thresholds or ClassifierConfig()

    def evaluate(self, features: Optional[PoseFeatures]) -> bool:
        """Apply the mode's rule. NaN angles fail every comparison."""
        if features is None:
            return False
        t = self.thresholds
        if features.mode.is_leg:
            knee_extended = features.primary >= t.knee_min_angle
            torso_leaning = t.torso_min_angle <= features.secondary <= t.torso_max_angle
            return knee_extended and torso_leaning
        arm_straight = features.primary >= t.arm_min_angle
        arm_elevated = features.secondary >= t.arm_min_elevation
        return arm_straight and arm_elevated

    def classify(self, frame: Sequence, mode: StretchMode) -> bool:
        """
        Decide whether the frame shows the stretch held correctly.

        Args:
            frame: Landmarks of the first detected body, or empty
            mode: Stretch and side to judge

        Returns:
            True if the pose matches the mode's rule
        """
        return self.analyze(frame, mode).correct

    def analyze(self, frame: Sequence, mode: StretchMode) -> PoseVerdict:
        """Classify and keep the angles and a feedback hint for display."""
        features = extract_features(frame, mode)
        if features is None:
            return PoseVerdict(False, mode, None, NO_BODY_FEEDBACK)

        correct = self.evaluate(features)
        logger.debug(
            "%s primary=%.1f secondary=%.1f correct=%s",
            mode.value, features.primary, features.secondary, correct,
        )
        return PoseVerdict(correct, mode, features, self._feedback(features, correct))

    def _feedback(self, features: PoseFeatures, correct: bool) -> str:
        if correct:
            return CORRECT_FEEDBACK
        t = self.thresholds
        if features.mode.is_leg:
            if not features.primary >= t.knee_min_angle:
                return "Straighten your front knee"
            if features.secondary > t.torso_max_angle:
                return "Lean forward from your hips"
            return "Don't lean so far forward"
        if not features.primary >= t.arm_min_angle:
            return "Straighten your arm"
        return "Raise your arm higher"


_default_classifier = PoseClassifier()


def classify(frame: Sequence, mode: StretchMode) -> bool:
    """Classify with the default thresholds."""
    return _default_classifier.classify(frame, mode)
