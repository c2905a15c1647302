"""Error taxonomy for the planning core.

Only the ``ValueError`` family (``InvalidWindow``, ``InvalidMutation``) and
``InvalidTransition``/``CheckinRequired`` ever reach an HTTP caller. The
oracle and storage errors are raised internally and absorbed by the service
that owns the fallback.
"""
from __future__ import annotations


class InvalidWindow(ValueError):
    """Active window is unusable (start >= end or unparsable times)."""


class InvalidMutation(ValueError):
    """A mutation precondition failed; nothing was applied."""


class OracleUnavailable(RuntimeError):
    """The generative oracle could not be reached, timed out or is not configured."""


class OracleMalformed(RuntimeError):
    """The oracle answered with something that does not fit the expected schema."""


class ConstraintViolation(RuntimeError):
    """An oracle proposal broke a hard scheduling constraint."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class NotFound(LookupError):
    """Id lookup miss inside a plan collection."""


class SerializationError(ValueError):
    """A persisted value could not be decoded."""


class InvalidTransition(RuntimeError):
    """Focus-session transition requested from a state that does not allow it."""


class CheckinRequired(RuntimeError):
    """Today's plan was edited before any energy check-in for the date."""
