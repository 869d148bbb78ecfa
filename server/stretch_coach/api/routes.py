"""
API Routes Module
=================

Flask API routes for the stretch coach server.
"""

import logging
from typing import Optional

from flask import render_template_string, request, jsonify

from ..analyzers import PoseClassifier, StretchMode, frame_from_points
from ..errors import InvalidFrameError, ModelUnavailable, UnknownExerciseError
from ..utils import LandmarkDetector, SessionRegistry, decode_image, first_body

logger = logging.getLogger(__name__)

COMMANDS = ("start", "toggle", "skip", "reset", "switch_side")


def _frame_from_payload(data: dict, detector: LandmarkDetector) -> list:
    """
    Extract one landmark frame from a request payload.

    Accepts, in order of preference:
        "landmarks": [{"x": .., "y": ..}, ...]   one body
        "bodies": [[...], [...]]                 first body is used
        "image": "<base64-encoded-jpeg>"         run through the detector
    """
    if "landmarks" in data:
        return frame_from_points(data["landmarks"])
    if "bodies" in data:
        bodies = data["bodies"]
        if not isinstance(bodies, list):
            raise InvalidFrameError("bodies must be a list")
        return frame_from_points(first_body(bodies))
    if "image" in data:
        return detector.detect(decode_image(data["image"]))
    raise InvalidFrameError("No landmarks or image data")


def _parse_mode(value) -> StretchMode:
    try:
        return StretchMode(value)
    except ValueError:
        raise InvalidFrameError(f"Unknown mode: {value!r}") from None


def register_routes(
    app,
    html_template: str,
    registry: Optional[SessionRegistry] = None,
    detector: Optional[LandmarkDetector] = None,
    classifier: Optional[PoseClassifier] = None,
):
    """
    Register all API routes with the Flask app.

    Args:
        app: Flask application instance
        html_template: HTML template string for the index page
        registry: Live session registry (a fresh one if None)
        detector: Landmark detector used for image payloads
        classifier: Classifier for stateless /classify requests
    """
    registry = registry or SessionRegistry(classifier=classifier)
    detector = detector or LandmarkDetector()
    classifier = classifier or registry.classifier

    app.extensions["stretch_coach"] = {"registry": registry, "detector": detector}

    @app.errorhandler(UnknownExerciseError)
    def unknown_exercise(e):
        return jsonify({"error": str(e)}), 404

    @app.errorhandler(InvalidFrameError)
    def invalid_frame(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(ModelUnavailable)
    def model_unavailable(e):
        logger.error("Landmark detector unavailable: %s", e)
        return jsonify({"error": str(e), "retry": True}), 503

    @app.route("/")
    def index():
        """Serve the main web interface."""
        return render_template_string(
            html_template,
            exercises=[p.to_dict() for p in registry.protocols.values()],
        )

    @app.route("/health")
    def health():
        """Health check endpoint."""
        return jsonify({
            "status": "healthy",
            "detector_available": detector.is_available(),
            "active_sessions": registry.active(),
        })

    @app.route("/exercises")
    def exercises():
        """List the available exercise protocols."""
        return jsonify({"exercises": [p.to_dict() for p in registry.protocols.values()]})

    @app.route("/classify", methods=["POST"])
    def classify():
        """
        Classify one frame for an explicit mode, without a session.

        Request JSON:
            {
                "mode": "left_leg" | "right_leg" | "left_arm" | "right_arm",
                "landmarks": [{"x": 0.5, "y": 0.4}, ...]
            }

        Response JSON:
            {"correct": bool, "mode": str, "angles": {...}, "feedback": str}
        """
        data = request.get_json(silent=True)
        if not data or "mode" not in data:
            return jsonify({"error": "No mode given"}), 400
        mode = _parse_mode(data["mode"])
        frame = _frame_from_payload(data, detector)
        return jsonify(classifier.analyze(frame, mode).to_dict())

    @app.route("/process_frame", methods=["POST"])
    def process_frame():
        """
        Classify a frame for a live session and return its state.

        Request JSON:
            {
                "exercise": "hamstring_stretch" | "shoulder_flexion",
                "landmarks": [...] | "bodies": [[...]] | "image": "<base64>"
            }

        Response JSON:
            {"verdict": {...}, "state": {...}}
        """
        data = request.get_json(silent=True)
        if not data:
            return jsonify({"error": "No frame data"}), 400

        session = registry.get(data.get("exercise", "hamstring_stretch"))
        try:
            frame = _frame_from_payload(data, detector)
        except ModelUnavailable:
            # No landmarks this frame: the session sees a miss.
            session.process_frame([])
            raise
        result = session.process_frame(frame)
        if result is None:
            return jsonify({"error": "Session closed"}), 409
        return jsonify({
            "verdict": result.to_dict(),
            "state": session.snapshot().to_dict(),
        })

    @app.route("/session/<exercise>", methods=["GET"])
    def session_state(exercise):
        """Current state snapshot of an exercise session."""
        return jsonify(registry.get(exercise).snapshot().to_dict())

    @app.route("/session/<exercise>", methods=["DELETE"])
    def close_session(exercise):
        """End an exercise session and stop its timer."""
        registry.close(exercise)
        return jsonify({"status": "closed"})

    @app.route("/session/<exercise>/<command>", methods=["POST"])
    def session_command(exercise, command):
        """
        Apply a session command.

        Commands: start, toggle, skip, reset, switch_side
        """
        if command not in COMMANDS:
            return jsonify({"error": f"Unknown command: {command}"}), 404
        state = registry.get(exercise).command(command)
        return jsonify(state.to_dict())

    @app.route("/detector/reset", methods=["POST"])
    def reset_detector():
        """Reinitialise the landmark model after a failure."""
        detector.reset()
        return jsonify({"status": "ok", "available": detector.is_available()})
