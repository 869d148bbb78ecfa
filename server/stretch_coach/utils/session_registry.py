"""
Session Registry Module
=======================

Thread-safe registry of live exercise sessions, one per exercise.
"""

import logging
import threading
from typing import Dict, Optional

from ..analyzers import PoseClassifier
from ..session import PROTOCOLS, ExerciseProtocol, ExerciseSession, get_protocol

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Manages lazy creation of and access to exercise sessions.

    Usage:
        registry = SessionRegistry()
        session = registry.get("hamstring_stretch")
        registry.close_all()
    """

    def __init__(
        self,
        protocols: Optional[Dict[str, ExerciseProtocol]] = None,
        classifier: Optional[PoseClassifier] = None,
        tick_interval: float = 1.0,
        autostart: bool = True,
    ):
        """
        Initialize the registry.

        Args:
            protocols: Available exercises by name (built-ins if None)
            classifier: Classifier shared by all sessions
            tick_interval: Seconds between session timer ticks
            autostart: Start session threads on creation
        """
        self.protocols = dict(PROTOCOLS if protocols is None else protocols)
        self.classifier = classifier or PoseClassifier()
        self.tick_interval = tick_interval
        self.autostart = autostart
        self._sessions: Dict[str, ExerciseSession] = {}
        self._lock = threading.Lock()

    def get(self, exercise: str) -> ExerciseSession:
        """
        Get or create the session for an exercise.

        Raises:
            UnknownExerciseError: If no such exercise exists
        """
        protocol = get_protocol(exercise, self.protocols)
        with self._lock:
            session = self._sessions.get(exercise)
            if session is None or session.closed:
                session = ExerciseSession(
                    protocol,
                    classifier=self.classifier,
                    tick_interval=self.tick_interval,
                    autostart=self.autostart,
                )
                self._sessions[exercise] = session
                logger.info("Created %s session", exercise)
            return session

    def active(self) -> list:
        """Names of exercises with an open session."""
        with self._lock:
            return [name for name, s in self._sessions.items() if not s.closed]

    def close(self, exercise: str) -> None:
        """Tear down one exercise's session."""
        with self._lock:
            session = self._sessions.pop(exercise, None)
        if session is not None:
            session.close()

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for session in sessions:
            session.close()
