"""
Weekly Rhythm - Error Types
User-actionable failures raised by the scheduling core and the collaborators around it.
"""


class RhythmError(Exception):
    """Base class for all typed failures. ``message`` is safe to show the user."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AnchorNotFoundError(RhythmError):
    """An operation referenced an anchor id that no longer exists."""
    status_code = 404


class ReminderNotFoundError(RhythmError):
    status_code = 404


class ReminderValidationError(RhythmError):
    """Parsed reminder names an anchor title outside the known set."""
    status_code = 422


class ReminderParseError(RhythmError):
    """The natural-language parser failed or returned unusable data."""
    status_code = 422


class InvalidReminderActionError(RhythmError):
    status_code = 409


class InvalidResolutionError(RhythmError):
    status_code = 409


class NothingToUndoError(RhythmError):
    status_code = 409


class PersistenceError(RhythmError):
    """Storage backend failure. Never retried here; the caller decides."""
    status_code = 503


class ConflictPendingError(RhythmError):
    """A previous drop is still waiting for the user's decision."""
    status_code = 409
