"""
Session Module
==============

Exercise protocol state machine and the live session runner.
"""

from .controller import (
    HAMSTRING_STRETCH,
    PROTOCOLS,
    SHOULDER_FLEXION,
    ExerciseProtocol,
    SessionController,
    SessionPhase,
    SessionState,
    build_protocols,
    get_protocol,
)
from .runner import ExerciseSession, VerdictCell, VerdictEvent

__all__ = [
    "HAMSTRING_STRETCH",
    "PROTOCOLS",
    "SHOULDER_FLEXION",
    "ExerciseProtocol",
    "SessionController",
    "SessionPhase",
    "SessionState",
    "build_protocols",
    "get_protocol",
    "ExerciseSession",
    "VerdictCell",
    "VerdictEvent",
]
