"""
Scheduling error taxonomy.

Every error is a recoverable, user-facing condition. The API layer maps
each kind to an HTTP status (see core.utils.http.api_view_errors).
"""


class SchedulingError(Exception):
    """Base class for scheduling and session-recording errors."""

    code = 'error'
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed or out-of-range input."""

    code = 'invalid'
    status_code = 400


class NotFound(SchedulingError):
    """Referenced schedule, session, center or catalog entry does not exist."""

    code = 'not_found'
    status_code = 404


class Conflict(SchedulingError):
    """The requested transition clashes with the current state."""

    code = 'conflict'
    status_code = 409


class Forbidden(SchedulingError):
    code = 'forbidden'
    status_code = 403
