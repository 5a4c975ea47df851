"""
Domain-specific exceptions for the notifications app.

Per-token delivery failures are never raised; they are counted in the
delivery report. These exceptions abort a whole dispatch call.
"""


class PushDispatchError(Exception):
    """Base exception for all push dispatch errors."""
    pass


class DependencyError(PushDispatchError):
    """Raised when the device token store can't be reached."""
    pass


class ConfigurationError(PushDispatchError):
    """Raised when the APNs signing key is present but can't be loaded."""
    pass


class InvalidPushRequestError(PushDispatchError):
    """Raised when a push request has no recipients, title or body."""
    pass
