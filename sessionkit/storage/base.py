"""Storage capability shared by all session backends.

Backends persist SessionRecord objects keyed by session id. Every method
raises BackendFailure when the underlying store cannot be reached; ordinary
absence of a record is not a failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


class SessionStorage(ABC):
    """Base session storage interface.

    Writes are last-writer-wins. Backends that can offer per-id locking or
    atomic renames may do so, but callers only rely on success or failure.

    Attributes:
        max_lifetime: Seconds a record stays valid after its last write
    """

    def __init__(self, max_lifetime: int = 1440):
        self.max_lifetime = max_lifetime

    @abstractmethod
    def load(self, session_id: str) -> Optional[Dict[str, Any]]:
        """Read the attribute mapping stored for a session.

        Args:
            session_id: Session identifier

        Returns:
            Attribute mapping, or None if no live record exists
        """

    @abstractmethod
    def save(self, session_id: str, attributes: Dict[str, Any]) -> None:
        """Write the attribute mapping for a session.

        Args:
            session_id: Session identifier
            attributes: Attributes to persist
        """

    @abstractmethod
    def delete(self, session_id: str) -> None:
        """Remove the record for a session. Missing records are ignored.

        Args:
            session_id: Session identifier
        """

    @abstractmethod
    def regenerate(
        self, old_id: str, new_id: str, attributes: Dict[str, Any]
    ) -> None:
        """Move a session's attributes to a new id and retire the old one.

        Args:
            old_id: Identifier being retired
            new_id: Identifier the attributes are stored under afterwards
            attributes: Attributes to persist under new_id
        """

    @abstractmethod
    def gc(self, max_lifetime: int) -> int:
        """Remove records idle for longer than max_lifetime seconds.

        Args:
            max_lifetime: Maximum idle time in seconds

        Returns:
            Number of records removed
        """

    def exists(self, session_id: str) -> bool:
        """Check whether a live record exists for a session.

        Args:
            session_id: Session identifier

        Returns:
            True if a record exists and has not expired
        """
        return self.load(session_id) is not None
