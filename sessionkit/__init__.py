"""Server-side session management with pluggable storage backends."""

from sessionkit.config import ConfigurationError, SessionConfig, get_config
from sessionkit.exceptions import (
    BackendFailure,
    InvalidSessionIdError,
    InvalidStateError,
    SessionError,
)
from sessionkit.models import CookieParams, SessionState
from sessionkit.session import ABSENT, AttributeStore, SessionManager

__version__ = "0.1.0"

__all__ = [
    "SessionManager",
    "AttributeStore",
    "ABSENT",
    "SessionConfig",
    "get_config",
    "CookieParams",
    "SessionState",
    # Exceptions
    "SessionError",
    "InvalidStateError",
    "InvalidSessionIdError",
    "BackendFailure",
    "ConfigurationError",
]
