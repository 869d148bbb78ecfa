"""
Stretch Coach Server
====================

Main entry point for the Flask server.

Usage:
    python run.py

Or with gunicorn:
    gunicorn -w 1 -b 0.0.0.0:5000 "run:create_app()"
"""

import os
import sys

# Add server source to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from flask import Flask
from config import (
    get_classifier_config,
    get_detector_config,
    get_server_config,
    get_session_config,
    setup_logging,
)
from stretch_coach.analyzers import PoseClassifier
from stretch_coach.api import register_routes
from stretch_coach.session import build_protocols
from stretch_coach.utils import LandmarkDetector, SessionRegistry
from templates.index import HTML_TEMPLATE


def create_app(registry: SessionRegistry = None, detector: LandmarkDetector = None) -> Flask:
    """
    Create the Flask app.

    Args:
        registry: Session registry to serve (built from environment if None)
        detector: Landmark detector for image payloads
    """
    session_config = get_session_config()
    if registry is None:
        registry = SessionRegistry(
            protocols=build_protocols(session_config),
            classifier=PoseClassifier(get_classifier_config()),
            tick_interval=session_config.tick_interval,
        )
    if detector is None:
        detector = LandmarkDetector(get_detector_config())

    app = Flask(__name__)
    app.json.sort_keys = False

    # Register routes
    register_routes(app, HTML_TEMPLATE, registry=registry, detector=detector)
    return app


def main():
    """Main entry point."""
    setup_logging()
    config = get_server_config()
    app = create_app()
    print(f"""
╔══════════════════════════════════════════════════════╗
║          Stretch Coach Server                        ║
╠══════════════════════════════════════════════════════╣
║  Server running at: http://{config.host}:{config.port:<5}              ║
║  Debug mode: {str(config.debug):<5}                               ║
║                                                      ║
║  Endpoints:                                          ║
║    GET  /           - Web interface                  ║
║    GET  /exercises  - Exercise protocols             ║
║    POST /classify   - Stateless pose check           ║
║    POST /process_frame - Session frame processing    ║
║    GET  /session/<exercise> - Session state          ║
║    POST /session/<exercise>/<command> - Commands     ║
║    GET  /health     - Health check                   ║
╚══════════════════════════════════════════════════════╝
    """)
    try:
        app.run(host=config.host, port=config.port, debug=config.debug, threaded=config.threaded)
    finally:
        app.extensions["stretch_coach"]["registry"].close_all()
        app.extensions["stretch_coach"]["detector"].close()


if __name__ == "__main__":
    main()
