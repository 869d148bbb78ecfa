"""
Session Controller Module
=========================

State machine driving a multi-set, two-sided stretch session from a stream
of pose verdicts and one-second ticks.

Classes:
    ExerciseProtocol: Sides, hold duration and set count of an exercise
    SessionPhase: Coarse phase of a session
    SessionState: Immutable snapshot handed to renderers
    SessionController: The state machine

Usage:
    controller = SessionController(HAMSTRING_STRETCH)
    controller.start()
    controller.on_verdict(True)    # from the frame pipeline
    controller.tick(True)          # once per second
"""

import logging
import queue
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..analyzers import StretchMode
from ..errors import UnknownExerciseError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExerciseProtocol:
    """
    Exercise protocol definition.

    Attributes:
        name (str): Identifier used by the API
        sides (tuple): (first side, second side) as StretchMode
        duration_seconds (int): Countdown length per side
        total_sets (int): Sets before the session completes
    """
    name: str
    sides: Tuple[StretchMode, StretchMode]
    duration_seconds: int
    total_sets: int = 3

    @property
    def first_side(self) -> StretchMode:
        return self.sides[0]

    @property
    def second_side(self) -> StretchMode:
        return self.sides[1]

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "sides": [s.value for s in self.sides],
            "duration_seconds": self.duration_seconds,
            "total_sets": self.total_sets,
        }


# Hold protocol: keep the hamstring stretch for 30s per leg.
HAMSTRING_STRETCH = ExerciseProtocol(
    "hamstring_stretch", (StretchMode.LEFT_LEG, StretchMode.RIGHT_LEG), 30
)
# Timed protocol: 5s shoulder flexion per arm, right arm first.
SHOULDER_FLEXION = ExerciseProtocol(
    "shoulder_flexion", (StretchMode.RIGHT_ARM, StretchMode.LEFT_ARM), 5
)

PROTOCOLS: Dict[str, ExerciseProtocol] = {
    HAMSTRING_STRETCH.name: HAMSTRING_STRETCH,
    SHOULDER_FLEXION.name: SHOULDER_FLEXION,
}


def build_protocols(session_config) -> Dict[str, ExerciseProtocol]:
    """Built-in protocols with durations and set counts from config."""
    return {
        HAMSTRING_STRETCH.name: ExerciseProtocol(
            HAMSTRING_STRETCH.name, HAMSTRING_STRETCH.sides,
            session_config.hold_seconds, session_config.total_sets,
        ),
        SHOULDER_FLEXION.name: ExerciseProtocol(
            SHOULDER_FLEXION.name, SHOULDER_FLEXION.sides,
            session_config.timed_seconds, session_config.total_sets,
        ),
    }


def get_protocol(name: str, protocols: Optional[Dict[str, ExerciseProtocol]] = None) -> ExerciseProtocol:
    """Look up a protocol by name, raising UnknownExerciseError."""
    protocols = PROTOCOLS if protocols is None else protocols
    if not isinstance(name, str) or name not in protocols:
        raise UnknownExerciseError(name)
    return protocols[name]


class SessionPhase(Enum):
    """Session phases."""
    IDLE = "idle"
    RUNNING = "running"
    COUNTING_DOWN = "counting_down"
    PAUSED = "paused"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of a session after a transition."""
    protocol: str
    phase: SessionPhase
    current_set: int
    total_sets: int
    current_side: StretchMode
    timer_seconds: int
    timer_running: bool
    started: bool
    completed: bool

    @property
    def mode(self) -> StretchMode:
        """Mode the classifier must use for the next frame."""
        return self.current_side

    def to_dict(self) -> dict:
        return {
            "protocol": self.protocol,
            "phase": self.phase.value,
            "current_set": self.current_set,
            "total_sets": self.total_sets,
            "current_side": self.current_side.value,
            "timer_seconds": self.timer_seconds,
            "timer_running": self.timer_running,
            "started": self.started,
            "completed": self.completed,
        }


class SessionController:
    """
    Stretch session state machine.

    A correct verdict starts the countdown, an incorrect one freezes it
    where it is. The timer only returns to full length at a side or set
    boundary. Every method returns the resulting snapshot; calls that do
    not apply to the current phase are no-ops.

    Not thread-safe: callers serialize access (see ExerciseSession).
    """

    def __init__(self, protocol: ExerciseProtocol = HAMSTRING_STRETCH):
        self.protocol = protocol
        self._channels: List[queue.Queue] = []
        self._init_state()

    def _init_state(self) -> None:
        self.current_set = 1
        self.current_side = self.protocol.first_side
        self.timer_seconds = self.protocol.duration_seconds
        self.timer_running = False
        self.started = False
        self.completed = False
        self._was_started = False

    # ------------------------------------------------------------------
    # Snapshots and channels
    # ------------------------------------------------------------------

    @property
    def phase(self) -> SessionPhase:
        if self.completed:
            return SessionPhase.COMPLETED
        if self.started:
            return SessionPhase.COUNTING_DOWN if self.timer_running else SessionPhase.RUNNING
        return SessionPhase.PAUSED if self._was_started else SessionPhase.IDLE

    @property
    def mode(self) -> StretchMode:
        return self.current_side

    def snapshot(self) -> SessionState:
        return SessionState(
            protocol=self.protocol.name,
            phase=self.phase,
            current_set=self.current_set,
            total_sets=self.protocol.total_sets,
            current_side=self.current_side,
            timer_seconds=self.timer_seconds,
            timer_running=self.timer_running,
            started=self.started,
            completed=self.completed,
        )

    def subscribe(self, maxsize: int = 16) -> "queue.Queue[SessionState]":
        """Open a channel that receives a snapshot after every transition."""
        channel: "queue.Queue[SessionState]" = queue.Queue(maxsize=maxsize)
        self._channels.append(channel)
        return channel

    def unsubscribe(self, channel: queue.Queue) -> None:
        if channel in self._channels:
            self._channels.remove(channel)

    def _commit(self, before: SessionState) -> SessionState:
        after = self.snapshot()
        if after != before:
            for channel in self._channels:
                put_latest(channel, after)
        return after

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self) -> SessionState:
        """Begin (or resume) the session. The countdown waits for a verdict."""
        before = self.snapshot()
        if self.started or self.completed:
            logger.debug("start ignored in phase %s", before.phase.value)
            return before
        self.started = True
        self._was_started = True
        logger.info("%s started: set %d, %s", self.protocol.name, self.current_set, self.current_side.value)
        return self._commit(before)

    def toggle_start(self) -> SessionState:
        """Switch between running and paused. Pausing keeps all counters."""
        if self.completed:
            logger.debug("toggle ignored: session completed")
            return self.snapshot()
        if not self.started:
            return self.start()
        before = self.snapshot()
        self.started = False
        self.timer_running = False
        logger.info("%s paused at %ds", self.protocol.name, self.timer_seconds)
        return self._commit(before)

    def on_verdict(self, verdict: bool, mode: Optional[StretchMode] = None) -> SessionState:
        """
        Feed the latest pose verdict.

        Args:
            verdict: Whether the pose is currently correct
            mode: Mode the verdict was classified for; verdicts for any
                other mode than the current side are stale and dropped
        """
        before = self.snapshot()
        if not self.started or self.completed:
            return before
        if mode is not None and mode != self.current_side:
            logger.debug("stale verdict for %s dropped (current %s)", mode.value, self.current_side.value)
            return before

        if verdict and not self.timer_running and self.timer_seconds > 0:
            self.timer_running = True
        elif not verdict and self.timer_running:
            # Freeze, don't reset: the remaining time is kept.
            self.timer_running = False
        return self._commit(before)

    def tick(self, latest_verdict: Optional[bool] = None) -> SessionState:
        """
        Consume one second of countdown.

        Args:
            latest_verdict: Most recent verdict available, if any. A False
                value stops the countdown instead of decrementing it.
        """
        if not self.timer_running:
            return self.snapshot()
        if latest_verdict is False:
            return self.on_verdict(False)

        before = self.snapshot()
        self.timer_seconds = max(self.timer_seconds - 1, 0)
        if self.timer_seconds == 0:
            self._advance()
        return self._commit(before)

    def on_timer_expired(self) -> SessionState:
        """Advance to the next side, the next set, or completion."""
        before = self.snapshot()
        if not self.started or self.completed:
            return before
        self._advance()
        return self._commit(before)

    def skip(self) -> SessionState:
        """Treat the current side as finished, whatever the timer shows."""
        return self.on_timer_expired()

    def switch_side(self) -> SessionState:
        """Swap to the other side of the current set with a fresh timer."""
        before = self.snapshot()
        if self.completed:
            return before
        first, second = self.protocol.sides
        self.current_side = second if self.current_side == first else first
        self.timer_seconds = self.protocol.duration_seconds
        self.timer_running = False
        logger.info("%s switched to %s", self.protocol.name, self.current_side.value)
        return self._commit(before)

    def reset(self) -> SessionState:
        """Return a completed session to idle."""
        before = self.snapshot()
        if not self.completed:
            logger.debug("reset ignored in phase %s", before.phase.value)
            return before
        self._init_state()
        logger.info("%s reset", self.protocol.name)
        return self._commit(before)

    def _advance(self) -> None:
        self.timer_running = False
        if self.current_side == self.protocol.first_side:
            self.current_side = self.protocol.second_side
            self.timer_seconds = self.protocol.duration_seconds
        elif self.current_set < self.protocol.total_sets:
            self.current_set += 1
            self.current_side = self.protocol.first_side
            self.timer_seconds = self.protocol.duration_seconds
        else:
            self.completed = True
            self.timer_seconds = 0
            logger.info("%s completed", self.protocol.name)
            return
        logger.info(
            "%s advanced: set %d/%d, %s",
            self.protocol.name, self.current_set, self.protocol.total_sets, self.current_side.value,
        )


def put_latest(channel: queue.Queue, item) -> None:
    """Put without blocking, dropping the oldest item when full."""
    while True:
        try:
            channel.put_nowait(item)
            return
        except queue.Full:
            try:
                channel.get_nowait()
            except queue.Empty:
                pass
