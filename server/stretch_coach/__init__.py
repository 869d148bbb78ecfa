"""
Stretch Coach Server
====================

A Flask-based server that checks therapeutic stretches from body landmarks
and runs timed multi-set sessions.

Modules:
    - analyzers: Joint angle geometry and stretch pose classification
    - session: Exercise protocol state machine and live session runner
    - api: Flask API routes and endpoints
    - utils: Landmark detector adapter and session registry
"""

__version__ = "1.0.0"
__author__ = "Stretch Coach Team"
