"""Session data models.

This module defines the in-memory session aggregate owned by the session
manager, the cookie parameter value object, and the record format persisted
by storage backends. Records are stored with session_id as the key.
"""

import json
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class SessionState(str, Enum):
    """Lifecycle states of a session."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    DESTROYED = "destroyed"


@dataclass(frozen=True)
class CookieParams:
    """Cookie parameters the transport layer uses for the session cookie.

    Attributes:
        lifetime: Cookie lifetime in seconds (0 = until the browser closes)
        path: Path the cookie is valid for
        domain: Domain the cookie is valid for ('' = host only)
        secure: Only send the cookie over secure connections
        http_only: Hide the cookie from client-side scripts
        samesite: SameSite policy ('lax', 'strict', 'none')
    """
    lifetime: int = 0
    path: str = "/"
    domain: str = ""
    secure: bool = False
    http_only: bool = True
    samesite: str = "lax"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dictionary.

        Returns:
            Dictionary representation of the cookie parameters
        """
        return {
            "lifetime": self.lifetime,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.http_only,
            "samesite": self.samesite,
        }

    def to_options(self) -> Dict[str, Any]:
        """Convert to the cookie_* runtime option keys."""
        return {
            "cookie_lifetime": self.lifetime,
            "cookie_path": self.path,
            "cookie_domain": self.domain,
            "cookie_secure": self.secure,
            "cookie_httponly": self.http_only,
            "cookie_samesite": self.samesite,
        }

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "CookieParams":
        """Create cookie parameters from cookie_* runtime options.

        Args:
            options: Mapping that may contain cookie_* keys

        Returns:
            CookieParams instance, with defaults for missing keys
        """
        return cls(
            lifetime=options.get("cookie_lifetime", 0),
            path=options.get("cookie_path", "/"),
            domain=options.get("cookie_domain", ""),
            secure=options.get("cookie_secure", False),
            http_only=options.get("cookie_httponly", True),
            samesite=options.get("cookie_samesite", "lax").lower(),
        )


@dataclass
class Session:
    """The session aggregate owned by a SessionManager.

    Attributes:
        id: Opaque session identifier ('' when no identifier is assigned)
        name: Session namespace, also the cookie name
        state: Current lifecycle state
        attributes: Session-scoped key/value data
        options: Runtime configuration (cookie_* keys live in cookie_params)
        cookie_params: Cookie parameters for the transport layer
    """
    name: str
    id: str = ""
    state: SessionState = SessionState.NOT_STARTED
    attributes: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    cookie_params: CookieParams = field(default_factory=CookieParams)

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE


@dataclass
class SessionRecord:
    """A persisted session record.

    Attributes:
        session_id: Key of the record
        attributes: Session attributes at the time of the write
        last_access: Epoch seconds of the last write
        expires_at: Epoch seconds after which the record is stale
    """
    session_id: str
    attributes: Dict[str, Any]
    last_access: float
    expires_at: int

    @classmethod
    def create(
        cls,
        session_id: str,
        attributes: Dict[str, Any],
        max_lifetime: int,
        now: Optional[float] = None,
    ) -> "SessionRecord":
        """Build a record stamped with access and expiry times.

        Args:
            session_id: Key of the record
            attributes: Attribute mapping to persist
            max_lifetime: Seconds the record stays valid without another write
            now: Current epoch seconds (defaults to time.time())

        Returns:
            SessionRecord instance
        """
        now = time.time() if now is None else now
        return cls(
            session_id=session_id,
            attributes=dict(attributes),
            last_access=now,
            expires_at=int(now) + max_lifetime,
        )

    def is_expired(self, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return now >= self.expires_at

    def to_dynamodb_item(self) -> Dict[str, Any]:
        """Convert to DynamoDB item format.

        Returns:
            Dictionary suitable for DynamoDB put_item operation
        """
        return {
            "session_id": {"S": self.session_id},
            "attributes": {"S": json.dumps(self.attributes)},
            "last_access": {"N": str(self.last_access)},
            "expires_at": {"N": str(self.expires_at)},
        }

    @classmethod
    def from_dynamodb_item(cls, item: Dict[str, Any]) -> "SessionRecord":
        """Create instance from DynamoDB item.

        Args:
            item: DynamoDB item with typed attribute values

        Returns:
            SessionRecord instance
        """
        attributes = json.loads(item.get("attributes", {}).get("S", "{}"))
        if not isinstance(attributes, dict):
            raise ValueError("Session record attributes must be a JSON object")
        return cls(
            session_id=item.get("session_id", {}).get("S", ""),
            attributes=attributes,
            last_access=float(item.get("last_access", {}).get("N", "0")),
            expires_at=int(item.get("expires_at", {}).get("N", "0")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to plain dictionary.

        Returns:
            Dictionary representation of the record
        """
        return {
            "session_id": self.session_id,
            "attributes": self.attributes,
            "last_access": self.last_access,
            "expires_at": self.expires_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        """Create record from dictionary.

        Args:
            data: Dictionary with record data

        Returns:
            SessionRecord instance

        Raises:
            ValueError: If the data is not a record object
        """
        if not isinstance(data, dict):
            raise ValueError(f"Session record must be a JSON object, got {type(data).__name__}")
        if not isinstance(data.get("attributes", {}), dict):
            raise ValueError("Session record attributes must be a JSON object")
        return cls(
            session_id=data["session_id"],
            attributes=data.get("attributes", {}),
            last_access=float(data.get("last_access", 0)),
            expires_at=int(data.get("expires_at", 0)),
        )
