"""
Errors
======

Exceptions surfaced by the stretch coach. Missing bodies and degenerate
geometry are not errors; they fold into a ``False`` verdict.
"""


class StretchCoachError(Exception):
    """Base class for stretch coach errors."""


class ModelUnavailable(StretchCoachError):
    """The landmark detector could not be loaded or failed on a frame.

    Recoverable: the host should report it and may retry after
    reinitialising the detector.
    """


class UnknownExerciseError(StretchCoachError, KeyError):
    """No exercise protocol is registered under the requested name."""

    def __str__(self):
        return f"Unknown exercise: {self.args[0]!r}" if self.args else "Unknown exercise"


class InvalidFrameError(StretchCoachError, ValueError):
    """A landmark payload could not be parsed into points."""
