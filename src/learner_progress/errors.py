"""Error taxonomy shared by the engines, storage and API layers."""


class ProgressError(Exception):
    """Base class for learner progress errors.

    ``status_code`` is the HTTP status the API layer maps the error to.
    ``public`` errors carry a message that is safe to show to the caller.
    """

    status_code: int = 500
    public: bool = False

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context


class NotFound(ProgressError):
    """A user or record does not exist."""

    status_code = 404
    public = True


class InvalidInput(ProgressError):
    """The caller supplied a value the operation cannot accept."""

    status_code = 400
    public = True


class Conflict(ProgressError):
    """The user document changed between read and write."""

    status_code = 409
    public = True


class StorageError(ProgressError):
    """Unexpected failure reading or writing persistent state."""
