"""Exception types raised by the session core.

InvalidStateError and ConfigurationError are programmer errors and are raised
immediately. BackendFailure is raised by storage backends and converted to
boolean results by the lifecycle operations that report success.
"""

from typing import Optional


class SessionError(Exception):
    """Base class for all session errors."""


class InvalidStateError(SessionError):
    """Raised when an operation is attempted in the wrong lifecycle state."""


class InvalidSessionIdError(SessionError, ValueError):
    """Raised when a session identifier has an unusable format."""


class BackendFailure(SessionError):
    """Raised when the storage backend cannot complete an operation.

    Attributes:
        operation: Name of the failed storage operation (load, save, ...)
        session_id: Identifier the operation targeted, if any
    """

    def __init__(
        self,
        operation: str,
        message: str,
        session_id: Optional[str] = None,
    ):
        self.operation = operation
        self.session_id = session_id
        super().__init__(f"Session {operation} failed: {message}")
