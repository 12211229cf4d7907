"""Error taxonomy for the time-entry and payroll hours engine.

Expected outcomes (validation failures, clock conflicts) are surfaced to the
caller as-is and never retried here. Storage failures are wrapped as
UpstreamError by the adapters so the core sees one error type for them.
"""

from __future__ import annotations

from typing import Any


class TimeclockError(Exception):
    """Base class for all engine errors."""

    code = "TIMECLOCK_ERROR"

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        self.message = message
        self.context = context or {}
        super().__init__(message)


class ValidationError(TimeclockError):
    """Raised for malformed batch input or missing required fields."""

    code = "VALIDATION_ERROR"


class ConflictError(TimeclockError):
    """Raised when a clock action does not fit the worker's current state.

    Examples: clocking in twice, clocking out with no open session, or losing
    a concurrent append race for the same worker.
    """

    code = "CONFLICT"


class AuthError(TimeclockError):
    """Raised when the caller identity is missing or malformed."""

    code = "UNAUTHENTICATED"


class UpstreamError(TimeclockError):
    """Raised when the event store or adjustment ledger is unavailable."""

    code = "UPSTREAM_UNAVAILABLE"
