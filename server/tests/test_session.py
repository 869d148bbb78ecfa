"""
Unit tests for the session state machine and live session runner.
"""

import queue
import threading
import time

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from config import SessionConfig
from stretch_coach.analyzers import Landmark, PoseClassifier, StretchMode
from stretch_coach.errors import UnknownExerciseError
from stretch_coach.session import (
    HAMSTRING_STRETCH,
    SHOULDER_FLEXION,
    ExerciseSession,
    SessionController,
    SessionPhase,
    build_protocols,
    get_protocol,
)
from stretch_coach.utils import SessionRegistry


def make_frame(points):
    frame = [Landmark(0.0, 0.0) for _ in range(33)]
    for idx, (x, y) in points.items():
        frame[idx] = Landmark(x, y)
    return frame


LEFT_HAMSTRING = make_frame({23: (0.5, 0.5), 25: (0.7, 0.5), 27: (0.9, 0.5), 11: (0.7, 0.3)})
RIGHT_HAMSTRING = make_frame({24: (0.5, 0.5), 26: (0.7, 0.5), 28: (0.9, 0.5), 12: (0.7, 0.3)})


def drain(channel):
    items = []
    while True:
        try:
            items.append(channel.get_nowait())
        except queue.Empty:
            return items


def hold(controller, seconds):
    """One correct verdict followed by a tick, once per second."""
    for _ in range(seconds):
        controller.on_verdict(True)
        controller.tick(True)


class TestProtocols:
    """Test suite for protocol definitions."""

    def test_builtin_protocols(self):
        assert HAMSTRING_STRETCH.sides == (StretchMode.LEFT_LEG, StretchMode.RIGHT_LEG)
        assert HAMSTRING_STRETCH.duration_seconds == 30
        assert SHOULDER_FLEXION.first_side == StretchMode.RIGHT_ARM
        assert SHOULDER_FLEXION.duration_seconds == 5
        assert SHOULDER_FLEXION.total_sets == 3

    def test_unknown_protocol(self):
        with pytest.raises(UnknownExerciseError):
            get_protocol("plank")

    @pytest.mark.parametrize("name", [["hamstring_stretch"], None, 3])
    def test_non_string_name(self, name):
        with pytest.raises(UnknownExerciseError):
            get_protocol(name)

    def test_build_from_config(self):
        protocols = build_protocols(SessionConfig(total_sets=2, hold_seconds=20, timed_seconds=4))
        assert protocols["hamstring_stretch"].duration_seconds == 20
        assert protocols["shoulder_flexion"].duration_seconds == 4
        assert protocols["shoulder_flexion"].total_sets == 2


class TestSessionController:
    """Test suite for SessionController transitions."""

    def test_initial_state(self):
        state = SessionController(HAMSTRING_STRETCH).snapshot()
        assert state.phase == SessionPhase.IDLE
        assert state.current_set == 1
        assert state.total_sets == 3
        assert state.current_side == StretchMode.LEFT_LEG
        assert state.timer_seconds == 30
        assert not state.timer_running
        assert not state.started
        assert not state.completed

    def test_verdicts_ignored_before_start(self):
        controller = SessionController(SHOULDER_FLEXION)
        controller.on_verdict(True)
        controller.tick(True)
        assert controller.snapshot().timer_seconds == 5
        assert controller.phase == SessionPhase.IDLE

    def test_start_waits_for_verdict(self):
        controller = SessionController(SHOULDER_FLEXION)
        state = controller.start()
        assert state.phase == SessionPhase.RUNNING
        assert not state.timer_running
        controller.tick()
        assert controller.timer_seconds == 5

    def test_correct_verdict_starts_countdown(self):
        controller = SessionController(SHOULDER_FLEXION)
        controller.start()
        state = controller.on_verdict(True)
        assert state.timer_running
        assert state.phase == SessionPhase.COUNTING_DOWN
        assert controller.tick(True).timer_seconds == 4

    def test_ten_ticks_advance_exactly_once(self):
        controller = SessionController(SHOULDER_FLEXION)
        channel = controller.subscribe(maxsize=64)
        controller.start()
        controller.on_verdict(True)
        for _ in range(10):
            controller.tick(True)

        states = drain(channel)
        assert [s.timer_seconds for s in states[2:7]] == [4, 3, 2, 1, 5]
        sides = [s.current_side for s in states]
        assert sides.count(StretchMode.LEFT_ARM) == 1
        state = controller.snapshot()
        assert state.current_side == StretchMode.LEFT_ARM
        assert state.current_set == 1
        assert state.timer_seconds == 5
        assert not state.timer_running

    def test_break_freezes_timer(self):
        controller = SessionController(HAMSTRING_STRETCH)
        controller.start()
        hold(controller, 12)
        assert controller.timer_seconds == 18

        state = controller.on_verdict(False)
        assert not state.timer_running
        assert state.timer_seconds == 18
        controller.tick()
        assert controller.timer_seconds == 18

        controller.on_verdict(True)
        assert controller.tick(True).timer_seconds == 17

    def test_tick_with_false_verdict_stops_countdown(self):
        controller = SessionController(HAMSTRING_STRETCH)
        controller.start()
        controller.on_verdict(True)
        controller.tick(True)
        state = controller.tick(False)
        assert not state.timer_running
        assert state.timer_seconds == 29

    def test_stale_mode_verdict_ignored(self):
        controller = SessionController(HAMSTRING_STRETCH)
        controller.start()
        controller.on_verdict(True, StretchMode.RIGHT_LEG)
        assert not controller.timer_running
        controller.on_verdict(True, StretchMode.LEFT_LEG)
        assert controller.timer_running

    def test_hold_protocol_scenario(self):
        controller = SessionController(HAMSTRING_STRETCH)
        channel = controller.subscribe(maxsize=512)
        controller.start()

        hold(controller, 30)
        state = controller.snapshot()
        assert (state.current_set, state.current_side) == (1, StretchMode.RIGHT_LEG)
        assert state.timer_seconds == 30

        hold(controller, 30)
        state = controller.snapshot()
        assert (state.current_set, state.current_side) == (2, StretchMode.LEFT_LEG)

        hold(controller, 119)
        assert not controller.completed
        hold(controller, 1)
        assert controller.completed

        completions = [s for s in drain(channel) if s.phase == SessionPhase.COMPLETED]
        assert len(completions) == 1

        before = controller.snapshot()
        hold(controller, 5)
        assert controller.snapshot() == before
        assert controller.snapshot().phase == SessionPhase.COMPLETED

    def test_skip_advances_regardless_of_timer(self):
        controller = SessionController(SHOULDER_FLEXION)
        controller.start()
        controller.on_verdict(True)
        controller.tick(True)
        state = controller.skip()
        assert state.current_side == StretchMode.LEFT_ARM
        assert state.timer_seconds == 5
        assert not state.timer_running

        for _ in range(5):
            controller.skip()
        assert controller.completed
        assert not controller.timer_running

    def test_skip_requires_started(self):
        controller = SessionController(SHOULDER_FLEXION)
        assert controller.skip().current_side == StretchMode.RIGHT_ARM

    def test_toggle_pauses_and_keeps_counters(self):
        controller = SessionController(HAMSTRING_STRETCH)
        controller.toggle_start()
        hold(controller, 40)

        state = controller.toggle_start()
        assert state.phase == SessionPhase.PAUSED
        assert not state.started
        assert not state.timer_running
        assert (state.current_side, state.timer_seconds) == (StretchMode.RIGHT_LEG, 20)

        controller.on_verdict(True)
        controller.tick(True)
        assert controller.timer_seconds == 20

        state = controller.toggle_start()
        assert state.phase == SessionPhase.RUNNING
        assert state.timer_seconds == 20

    def test_switch_side_keeps_set(self):
        controller = SessionController(SHOULDER_FLEXION)
        controller.start()
        controller.skip()
        controller.skip()
        controller.on_verdict(True)
        controller.tick(True)
        state = controller.switch_side()
        assert state.current_set == 2
        assert state.current_side == StretchMode.LEFT_ARM
        assert state.timer_seconds == 5
        assert not state.timer_running

    def test_reset_only_from_completed(self):
        controller = SessionController(SHOULDER_FLEXION)
        controller.start()
        controller.skip()
        state = controller.reset()
        assert state.current_side == StretchMode.LEFT_ARM
        assert state.started

        for _ in range(5):
            controller.skip()
        assert controller.completed
        assert controller.toggle_start().completed

        state = controller.reset()
        assert state.phase == SessionPhase.IDLE
        assert (state.current_set, state.current_side, state.timer_seconds) == (1, StretchMode.RIGHT_ARM, 5)
        assert not state.started
        assert not state.completed

    def test_snapshot_channel_drops_oldest(self):
        controller = SessionController(SHOULDER_FLEXION)
        channel = controller.subscribe(maxsize=2)
        controller.start()
        controller.on_verdict(True)
        controller.tick(True)
        states = drain(channel)
        assert len(states) == 2
        assert states[-1].timer_seconds == 4

        controller.unsubscribe(channel)
        controller.tick(True)
        assert channel.empty()

    def test_state_to_dict(self):
        data = SessionController(HAMSTRING_STRETCH).snapshot().to_dict()
        assert data == {
            "protocol": "hamstring_stretch",
            "phase": "idle",
            "current_set": 1,
            "total_sets": 3,
            "current_side": "left_leg",
            "timer_seconds": 30,
            "timer_running": False,
            "started": False,
            "completed": False,
        }


class TestExerciseSession:
    """Test suite for the live session runner."""

    @pytest.fixture
    def session(self):
        session = ExerciseSession(HAMSTRING_STRETCH, autostart=False)
        yield session
        session.close()

    def test_process_frame_drives_controller(self, session):
        session.command("start")
        result = session.process_frame(LEFT_HAMSTRING)
        assert result.correct
        assert session.snapshot().timer_running

        session.step()
        assert session.snapshot().timer_seconds == 29

        session.process_frame([])
        assert not session.snapshot().timer_running
        session.step()
        assert session.snapshot().timer_seconds == 29

    def test_step_uses_latest_verdict(self, session):
        session.command("start")
        for _ in range(30):
            session.process_frame(LEFT_HAMSTRING)
            session.step()
        state = session.snapshot()
        assert state.current_side == StretchMode.RIGHT_LEG
        assert not state.timer_running

        # Left-leg verdicts are stale once the right leg is up.
        session.step()
        assert session.snapshot().timer_seconds == 30
        assert not session.process_frame(LEFT_HAMSTRING).correct
        assert session.process_frame(RIGHT_HAMSTRING).correct
        assert session.snapshot().timer_running

    def test_verdict_channel(self, session):
        channel = session.subscribe_verdicts()
        session.process_frame(LEFT_HAMSTRING)
        event = channel.get_nowait()
        assert event.verdict is True
        assert event.mode == StretchMode.LEFT_LEG
        assert event.frame is LEFT_HAMSTRING

    def test_state_channel(self, session):
        channel = session.subscribe_states()
        session.command("start")
        assert channel.get_nowait().phase == SessionPhase.RUNNING

    def test_unknown_command(self, session):
        with pytest.raises(ValueError):
            session.command("rewind")

    def test_closed_session_discards_verdicts(self, session):
        session.command("start")
        session.close()
        assert session.process_frame(LEFT_HAMSTRING) is None
        assert session.submit_frame(LEFT_HAMSTRING) is False
        assert session.verdicts.get() is None
        assert not session.snapshot().timer_running

    def test_stalled_frames_freeze_timer(self, session):
        session.command("start")
        session.process_frame(LEFT_HAMSTRING)
        for _ in range(30):
            session.step()
        state = session.snapshot()
        assert state.current_side == StretchMode.LEFT_LEG
        assert state.timer_seconds == 28
        assert not state.timer_running

        # A fresh frame resumes from where the timer stopped.
        session.process_frame(LEFT_HAMSTRING)
        assert session.step().timer_seconds == 27

    def test_in_flight_classification_discarded_on_close(self):
        entered = threading.Event()
        release = threading.Event()

        class BlockingClassifier(PoseClassifier):
            def analyze(self, frame, mode):
                entered.set()
                release.wait(5.0)
                return super().analyze(frame, mode)

        session = ExerciseSession(HAMSTRING_STRETCH, BlockingClassifier(), tick_interval=60.0)
        channel = session.subscribe_verdicts()
        session.command("start")
        worker = session._frame_thread
        assert session.submit_frame(LEFT_HAMSTRING)
        assert entered.wait(2.0)

        closer = threading.Thread(target=session.close)
        closer.start()
        deadline = time.monotonic() + 2.0
        while not session.closed and time.monotonic() < deadline:
            time.sleep(0.005)
        assert session.closed

        release.set()
        closer.join(5.0)
        worker.join(5.0)
        assert not worker.is_alive()
        assert session.verdicts.get() is None
        assert channel.empty()
        assert not session.snapshot().timer_running

    def test_threads_classify_and_tick(self):
        session = ExerciseSession(SHOULDER_FLEXION, tick_interval=0.01)
        try:
            session.command("start")
            frame = make_frame({12: (0.5, 0.4), 14: (0.5, 0.25), 16: (0.5, 0.1), 24: (0.5, 0.7)})
            deadline = time.monotonic() + 2.0
            while time.monotonic() < deadline:
                if session.snapshot().current_side == StretchMode.LEFT_ARM:
                    break
                assert session.submit_frame(frame)
                time.sleep(0.005)
            assert session.snapshot().current_side == StretchMode.LEFT_ARM
        finally:
            session.close()
        assert session._frame_thread is None
        assert session._timer_thread is None


class TestSessionRegistry:
    """Test suite for the session registry."""

    def test_lazy_creation(self):
        registry = SessionRegistry(autostart=False)
        session = registry.get("shoulder_flexion")
        assert registry.get("shoulder_flexion") is session
        assert registry.active() == ["shoulder_flexion"]
        registry.close_all()
        assert session.closed
        assert registry.active() == []

    def test_closed_session_is_replaced(self):
        registry = SessionRegistry(autostart=False)
        first = registry.get("hamstring_stretch")
        registry.close("hamstring_stretch")
        assert registry.get("hamstring_stretch") is not first
        registry.close_all()

    def test_unknown_exercise(self):
        with pytest.raises(UnknownExerciseError):
            SessionRegistry(autostart=False).get("plank")


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
