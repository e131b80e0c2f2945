"""Domain errors — image cleanup exception hierarchy."""


class CleanupError(Exception):
    """Base error for all image cleanup operations.

    Use ``raise CleanupError("msg") from cause`` for exception chaining.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(CleanupError):
    """Invalid configuration, missing environment variables, or bad settings."""


class InventoryError(CleanupError):
    """Container runtime command failed, timed out, or returned unparseable output."""


class NotificationError(CleanupError):
    """Notification channel unreachable or rejected the message."""


class ResultStoreError(CleanupError):
    """Persisting or querying cleanup results failed."""


class RunInProgressError(CleanupError):
    """A cleanup run is already active; the new trigger is rejected."""
