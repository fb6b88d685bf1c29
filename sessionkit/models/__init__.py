"""Data models for the session core."""

from sessionkit.models.session import (
    SessionState,
    CookieParams,
    Session,
    SessionRecord,
)

__all__ = [
    "SessionState",
    "CookieParams",
    "Session",
    "SessionRecord",
]
