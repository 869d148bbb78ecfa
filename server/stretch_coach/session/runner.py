"""
Exercise Session Runner
=======================

Runs a SessionController against a live frame stream: frames are
classified on a worker thread, the latest verdict is kept in a single
cell, and a one-second timer loop ticks the controller.

Usage:
    session = ExerciseSession(SHOULDER_FLEXION)
    session.controller.start()
    session.submit_frame(frame)    # from the capture pipeline
    state = session.snapshot()
    session.close()
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from ..analyzers import PoseClassifier, PoseVerdict, StretchMode
from .controller import HAMSTRING_STRETCH, ExerciseProtocol, SessionController, SessionState, put_latest

logger = logging.getLogger(__name__)

# A verdict older than this many timer ticks counts as a miss.
VERDICT_TTL_TICKS = 2


@dataclass(frozen=True)
class VerdictEvent:
    """A classified frame, as delivered to UI listeners."""
    verdict: bool
    mode: StretchMode
    frame: Sequence
    timestamp: float
    result: Optional[PoseVerdict] = None
    tick: int = 0


class VerdictCell:
    """Latest verdict, written by the frame worker and read by the timer."""

    def __init__(self):
        self._lock = threading.Lock()
        self._event: Optional[VerdictEvent] = None

    def set(self, event: VerdictEvent) -> None:
        with self._lock:
            self._event = event

    def get(self) -> Optional[VerdictEvent]:
        with self._lock:
            return self._event


class ExerciseSession:
    """
    A live stretch session.

    Attributes:
        controller (SessionController): Protocol state machine
        classifier (PoseClassifier): Threshold rules
        verdicts (VerdictCell): Most recent verdict
        tick_interval (float): Seconds between timer ticks
    """

    def __init__(
        self,
        protocol: ExerciseProtocol = HAMSTRING_STRETCH,
        classifier: Optional[PoseClassifier] = None,
        tick_interval: float = 1.0,
        autostart: bool = True,
    ):
        self.controller = SessionController(protocol)
        self.classifier = classifier or PoseClassifier()
        self.verdicts = VerdictCell()
        self.tick_interval = tick_interval

        # Serializes every controller transition.
        self._lock = threading.Lock()
        self._closed = threading.Event()
        self._ticks = 0
        self._frames: "queue.Queue" = queue.Queue(maxsize=1)
        self._listeners = []
        self._frame_thread: Optional[threading.Thread] = None
        self._timer_thread: Optional[threading.Thread] = None

        if autostart:
            self.open()

    @property
    def protocol(self) -> ExerciseProtocol:
        return self.controller.protocol

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def open(self) -> None:
        """Start the frame worker and the timer loop."""
        if self._frame_thread is not None or self.closed:
            return
        self._frame_thread = threading.Thread(target=self._frame_loop, daemon=True)
        self._timer_thread = threading.Thread(target=self._timer_loop, daemon=True)
        self._frame_thread.start()
        self._timer_thread.start()
        logger.debug("%s session threads started", self.protocol.name)

    def close(self) -> None:
        """Stop both loops. An in-flight classification is discarded."""
        with self._lock:
            if self.closed:
                return
            self._closed.set()
        put_latest(self._frames, None)
        for thread in (self._frame_thread, self._timer_thread):
            if thread is not None and thread is not threading.current_thread():
                thread.join(timeout=2.0)
        self._frame_thread = None
        self._timer_thread = None
        logger.info("%s session closed", self.protocol.name)

    # ------------------------------------------------------------------
    # Outbound channels
    # ------------------------------------------------------------------

    def subscribe_verdicts(self, maxsize: int = 16) -> "queue.Queue[VerdictEvent]":
        """Channel receiving every classified frame."""
        channel: "queue.Queue[VerdictEvent]" = queue.Queue(maxsize=maxsize)
        self._listeners.append(channel)
        return channel

    def subscribe_states(self, maxsize: int = 16) -> "queue.Queue[SessionState]":
        """Channel receiving a snapshot after every transition."""
        with self._lock:
            return self.controller.subscribe(maxsize)

    def snapshot(self) -> SessionState:
        with self._lock:
            return self.controller.snapshot()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    def submit_frame(self, frame: Sequence) -> bool:
        """
        Queue a frame for background classification.

        Only the newest pending frame is kept; older ones are dropped.

        Returns:
            False if the session is closed
        """
        if self.closed:
            return False
        with self._lock:
            mode = self.controller.mode
        put_latest(self._frames, (frame, mode))
        return True

    def process_frame(self, frame: Sequence) -> Optional[PoseVerdict]:
        """Classify a frame on the calling thread and publish the verdict."""
        if self.closed:
            return None
        with self._lock:
            mode = self.controller.mode
        result = self.classifier.analyze(frame, mode)
        self._publish(frame, result)
        return result

    def command(self, name: str) -> SessionState:
        """
        Apply a user command: start, toggle, skip, reset or switch_side.

        Raises:
            ValueError: If the command is unknown
        """
        actions = {
            "start": self.controller.start,
            "toggle": self.controller.toggle_start,
            "skip": self.controller.skip,
            "reset": self.controller.reset,
            "switch_side": self.controller.switch_side,
        }
        if name not in actions:
            raise ValueError(f"Unknown command: {name}")
        with self._lock:
            return actions[name]()

    def step(self) -> SessionState:
        """
        Run one timer tick with the latest verdict, without waiting.

        A verdict that has not been refreshed for VERDICT_TTL_TICKS ticks
        counts as False, so a stalled frame source stops the countdown.
        """
        event = self.verdicts.get()
        latest = event.verdict if event is not None else None
        with self._lock:
            self._ticks += 1
            if event is not None:
                if event.mode != self.controller.mode:
                    latest = None
                elif self._ticks - event.tick > VERDICT_TTL_TICKS:
                    latest = False
            return self.controller.tick(latest)

    # ------------------------------------------------------------------
    # Loops
    # ------------------------------------------------------------------

    def _publish(self, frame: Sequence, result: PoseVerdict) -> None:
        with self._lock:
            if self.closed:
                logger.debug("verdict discarded: session closed")
                return
            event = VerdictEvent(
                result.correct, result.mode, frame, time.monotonic(), result, self._ticks
            )
            self.verdicts.set(event)
            self.controller.on_verdict(result.correct, result.mode)
        for channel in list(self._listeners):
            put_latest(channel, event)

    def _frame_loop(self) -> None:
        while not self.closed:
            try:
                item = self._frames.get(timeout=0.5)
            except queue.Empty:
                continue
            if item is None:
                break
            frame, mode = item
            try:
                result = self.classifier.analyze(frame, mode)
            except Exception:
                logger.exception("classification failed")
                continue
            self._publish(frame, result)

    def _timer_loop(self) -> None:
        while not self._closed.wait(self.tick_interval):
            self.step()
