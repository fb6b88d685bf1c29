"""Session lifecycle and attribute access.

This module provides the SessionManager, which owns a session's lifecycle,
the AttributeStore view over its attributes, and the cookie transport
helpers for FastAPI applications.
"""

from sessionkit.session.attributes import ABSENT, AttributeStore
from sessionkit.session.manager import (
    SessionManager,
    generate_session_id,
    is_valid_session_id,
)
from sessionkit.session.transport import (
    SessionMiddleware,
    apply_session_cookie,
    clear_session_cookie,
    resume_from_request,
)

__all__ = [
    "ABSENT",
    "AttributeStore",
    "SessionManager",
    "generate_session_id",
    "is_valid_session_id",
    "SessionMiddleware",
    "apply_session_cookie",
    "clear_session_cookie",
    "resume_from_request",
]
