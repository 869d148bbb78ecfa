"""
Server Configuration
====================

Configuration settings for the stretch coach server.
"""

import logging
import os
import sys
from dataclasses import dataclass
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass
class ServerConfig:
    """Server configuration settings."""
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False
    threaded: bool = True


@dataclass
class ClassifierConfig:
    """Pose classifier thresholds (degrees)."""
    # Hamstring stretch
    knee_min_angle: float = 160.0
    torso_min_angle: float = 30.0
    torso_max_angle: float = 90.0

    # Shoulder flexion
    arm_min_angle: float = 160.0
    arm_min_elevation: float = 80.0


@dataclass
class SessionConfig:
    """Exercise session protocol settings."""
    total_sets: int = 3
    hold_seconds: int = 30
    timed_seconds: int = 5
    tick_interval: float = 1.0


@dataclass
class DetectorConfig:
    """MediaPipe landmark detector settings."""
    min_detection_confidence: float = 0.5
    min_tracking_confidence: float = 0.5
    model_complexity: int = 1


def get_server_config() -> ServerConfig:
    """Get server configuration from environment."""
    return ServerConfig(
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "5000")),
        debug=os.getenv("DEBUG", "false").lower() == "true",
        threaded=True
    )


def get_classifier_config() -> ClassifierConfig:
    """Get classifier thresholds from environment."""
    return ClassifierConfig(
        knee_min_angle=float(os.getenv("KNEE_MIN_ANGLE", "160")),
        torso_min_angle=float(os.getenv("TORSO_MIN_ANGLE", "30")),
        torso_max_angle=float(os.getenv("TORSO_MAX_ANGLE", "90")),
        arm_min_angle=float(os.getenv("ARM_MIN_ANGLE", "160")),
        arm_min_elevation=float(os.getenv("ARM_MIN_ELEVATION", "80"))
    )


def get_session_config() -> SessionConfig:
    """Get session protocol settings from environment."""
    return SessionConfig(
        total_sets=int(os.getenv("TOTAL_SETS", "3")),
        hold_seconds=int(os.getenv("HOLD_SECONDS", "30")),
        timed_seconds=int(os.getenv("TIMED_SECONDS", "5")),
        tick_interval=float(os.getenv("TICK_INTERVAL", "1.0"))
    )


def get_detector_config() -> DetectorConfig:
    """Get landmark detector settings from environment."""
    return DetectorConfig(
        min_detection_confidence=float(os.getenv("MIN_DETECTION_CONFIDENCE", "0.5")),
        min_tracking_confidence=float(os.getenv("MIN_TRACKING_CONFIDENCE", "0.5")),
        model_complexity=int(os.getenv("MODEL_COMPLEXITY", "1"))
    )


def setup_logging(level: str = None) -> None:
    """Configure the root logger once, from LOG_LEVEL unless given."""
    root = logging.getLogger()
    if root.handlers:
        return
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)]
    )
