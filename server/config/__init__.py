"""
Configuration Module
====================
"""

from .settings import (
    ServerConfig,
    ClassifierConfig,
    SessionConfig,
    DetectorConfig,
    get_server_config,
    get_classifier_config,
    get_session_config,
    get_detector_config,
    setup_logging,
)

__all__ = [
    "ServerConfig",
    "ClassifierConfig",
    "SessionConfig",
    "DetectorConfig",
    "get_server_config",
    "get_classifier_config",
    "get_session_config",
    "get_detector_config",
    "setup_logging",
]
