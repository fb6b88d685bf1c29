"""Session manager for server-side sessions.

This module provides the SessionManager, which owns one session and drives
its lifecycle (not started, active, destroyed): identifier generation and
rotation, invalidation, flushing to storage, and runtime configuration of the
session name, options and cookie parameters.
"""

import logging
import random
import re
import secrets
from typing import Any, Dict, Optional

from sessionkit.config import COOKIE_OPTION_KEYS, SessionConfig, check_option
from sessionkit.exceptions import (
    BackendFailure,
    InvalidSessionIdError,
    InvalidStateError,
)
from sessionkit.logger import fingerprint
from sessionkit.models.session import CookieParams, Session, SessionState
from sessionkit.session.attributes import ABSENT, AttributeStore, check_attributes
from sessionkit.storage.base import SessionStorage
from sessionkit.storage.factory import create_storage

logger = logging.getLogger(__name__)

# 32 random bytes, well above the 128 bit minimum for unguessable ids
SESSION_ID_BYTES = 32

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,256}$")

# Options whose change requires binding a new storage backend
STORAGE_OPTION_KEYS = ("save_handler", "save_path", "table_name", "region")


def generate_session_id() -> str:
    """Generate a new unguessable session id.

    Returns:
        URL-safe id built from the operating system's secure random source
    """
    return secrets.token_urlsafe(SESSION_ID_BYTES)


def is_valid_session_id(session_id: Any) -> bool:
    return isinstance(session_id, str) and bool(SESSION_ID_PATTERN.match(session_id))


class SessionManager:
    """Manages the lifecycle of a single session.

    One manager serves one request or execution context; it is not meant to
    be shared between threads. Attribute access goes through ``attributes``
    (or the delegating methods on the manager) and is only allowed while the
    session is active.

    Attributes:
        attributes: AttributeStore view over the session's attributes
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        storage: Optional[SessionStorage] = None,
    ):
        """Initialize SessionManager.

        Args:
            config: Session configuration (defaults to SessionConfig())
            storage: Storage backend to use instead of the one named by the
                save_handler option
        """
        options = (config or SessionConfig()).to_options()
        cookie_params = CookieParams.from_options(options)
        for key in COOKIE_OPTION_KEYS:
            options.pop(key)
        name = options.pop("name")

        self._session = Session(
            name=name,
            options=options,
            cookie_params=cookie_params,
        )
        self._storage = storage
        self._storage_injected = storage is not None
        self.attributes = AttributeStore(self)

    # Lifecycle

    @property
    def state(self) -> SessionState:
        return self._session.state

    @property
    def storage(self) -> Optional[SessionStorage]:
        """The bound storage backend, or None before the first start()."""
        return self._storage

    def start(self) -> bool:
        """Start the session, resuming stored state for the current id if any.

        An id assigned with set_id() (usually taken from the request cookie)
        is resumed when storage holds a live record for it. Otherwise a new
        session begins; in strict mode it always gets a freshly generated id.

        Returns:
            True if the session is active, False if the storage backend failed
        """
        if self._session.is_active:
            return True

        incoming_id = self._session.id
        try:
            storage = self._bind_storage()
            attributes = storage.load(incoming_id) if incoming_id else None

            if attributes is not None:
                session_id = incoming_id
                logger.info(
                    "Session resumed",
                    extra={"session_id": fingerprint(session_id), "session_name": self._session.name},
                )
            else:
                attributes = {}
                if incoming_id and not self._session.options["use_strict_mode"]:
                    session_id = incoming_id
                else:
                    if incoming_id:
                        logger.warning(
                            "Rejected uninitialized session id",
                            extra={"session_id": fingerprint(incoming_id)},
                        )
                    session_id = self._new_id(storage, "start")
                logger.info(
                    "Session started",
                    extra={"session_id": fingerprint(session_id), "session_name": self._session.name},
                )

            self._collect_garbage(storage)
        except BackendFailure as e:
            logger.error(
                "Failed to start session",
                extra={"session_name": self._session.name, "error": str(e)},
            )
            return False

        self._session.id = session_id
        self._session.attributes = attributes
        self._session.state = SessionState.ACTIVE
        return True

    def is_started(self) -> bool:
        return self._session.is_active

    def regenerate_id(self, lifetime: Optional[int] = None) -> bool:
        """Move the session to a new id, keeping all attributes.

        Call this after any privilege change (such as login) to defeat
        session fixation. The old id is removed from storage.

        Args:
            lifetime: New cookie lifetime in seconds for the re-issued cookie

        Returns:
            True if the session was migrated, False if storage failed. On
            failure the id, state and attributes are unchanged.

        Raises:
            InvalidStateError: If the session is not active
            ConfigurationError: If lifetime is malformed
            TypeError: If a stored attribute value was mutated into one that is
                not JSON native
        """
        self._require_active("regenerate the session id")
        if lifetime is not None:
            check_option("cookie_lifetime", lifetime)

        old_id = self._session.id
        attributes = dict(self._session.attributes)
        check_attributes(attributes)
        storage = self._storage
        try:
            new_id = self._new_id(storage, "regenerate")
            storage.regenerate(old_id, new_id, attributes)
        except BackendFailure as e:
            logger.error(
                "Failed to regenerate session id",
                extra={"session_id": fingerprint(old_id), "error": str(e)},
            )
            return False

        self._session.id = new_id
        if lifetime is not None:
            self._update_cookie_params(lifetime=lifetime)
        logger.info(
            "Session id regenerated",
            extra={"old_session_id": fingerprint(old_id), "session_id": fingerprint(new_id)},
        )
        return True

    def destroy(self) -> bool:
        """Invalidate the session and delete its stored record.

        The session is always left destroyed with no attributes and no id,
        even when storage fails. In that case the stored record may outlive
        the session until garbage collection removes it.

        Returns:
            True if the stored record was removed (or none existed), False if
            storage failed
        """
        was_active = self._session.is_active
        old_id = self._session.id

        self._session.attributes = {}
        self._session.id = ""
        self._session.state = SessionState.DESTROYED

        if not was_active or not old_id or self._storage is None:
            return True

        try:
            self._storage.delete(old_id)
        except BackendFailure as e:
            logger.error(
                "Session destroyed but stored record could not be deleted",
                extra={"session_id": fingerprint(old_id), "error": str(e)},
            )
            return False

        logger.info("Session destroyed", extra={"session_id": fingerprint(old_id)})
        return True

    def save(self) -> None:
        """Write the current attributes to storage now.

        The session stays active. Calling save() on a session that is not
        active does nothing.

        Raises:
            BackendFailure: If storage cannot persist the attributes
            TypeError: If an attribute value is not JSON native
        """
        if not self._session.is_active:
            logger.debug("Skipping save for inactive session")
            return
        attributes = dict(self._session.attributes)
        check_attributes(attributes)
        self._storage.save(self._session.id, attributes)

    # Identity

    def get_id(self) -> str:
        return self._session.id

    def set_id(self, session_id: str) -> None:
        """Set the id to resume on the next start().

        Raises:
            InvalidStateError: If the session is active
            InvalidSessionIdError: If the id is empty or malformed
        """
        self._require_inactive("change the session id")
        if not is_valid_session_id(session_id):
            raise InvalidSessionIdError(
                "Session id must be 1-256 characters of letters, digits, '-' or '_'"
            )
        self._session.id = session_id

    def get_name(self) -> str:
        return self._session.name

    def set_name(self, name: str) -> None:
        """Set the session name.

        Raises:
            InvalidStateError: Cannot change session name when session is active
            ConfigurationError: If the name is not a non-empty alphanumeric string
        """
        self._require_inactive("change the session name")
        check_option("name", name)
        self._session.name = name

    # Configuration

    def set_options(self, config: Dict[str, Any]) -> None:
        """Merge runtime options into the current configuration.

        All keys are validated before any is applied. cookie_* keys update
        the cookie parameters and 'name' updates the session name.

        Raises:
            InvalidStateError: If the session is active
            ConfigurationError: If a key is not recognized or a value is malformed
        """
        self._require_inactive("change session options")
        for key, value in config.items():
            check_option(key, value)

        cookie_updates = {}
        for key, value in config.items():
            if key == "name":
                self._session.name = value
            elif key in COOKIE_OPTION_KEYS:
                cookie_updates[key] = value
            else:
                self._session.options[key] = value

        if cookie_updates:
            merged = {**self._session.cookie_params.to_options(), **cookie_updates}
            self._session.cookie_params = CookieParams.from_options(merged)

        if not self._storage_injected and any(k in config for k in STORAGE_OPTION_KEYS):
            self._storage = None

    def get_options(self) -> Dict[str, Any]:
        return {
            "name": self._session.name,
            **self._session.options,
            **self._session.cookie_params.to_options(),
        }

    def set_cookie_params(
        self,
        lifetime: int,
        path: Optional[str] = None,
        domain: Optional[str] = None,
        secure: bool = False,
        http_only: bool = False,
        samesite: Optional[str] = None,
    ) -> None:
        """Set cookie parameters.

        Args:
            lifetime: The lifetime of the cookie in seconds
            path: The path where the cookie is valid (None keeps the current path)
            domain: The domain of the cookie (None keeps the current domain)
            secure: The cookie should only be sent over secure connections
            http_only: The cookie can only be accessed through the HTTP protocol
            samesite: SameSite policy (None keeps the current policy)

        Raises:
            ConfigurationError: If a parameter is malformed
        """
        check_option("cookie_lifetime", lifetime)
        check_option("cookie_secure", secure)
        check_option("cookie_httponly", http_only)
        if path is not None:
            check_option("cookie_path", path)
        if domain is not None:
            check_option("cookie_domain", domain)
        if samesite is not None:
            check_option("cookie_samesite", samesite)

        self._update_cookie_params(
            lifetime=lifetime,
            path=path,
            domain=domain,
            secure=secure,
            http_only=http_only,
            samesite=samesite.lower() if samesite is not None else None,
        )

    def get_cookie_params(self) -> CookieParams:
        return self._session.cookie_params

    # Attribute delegation

    def has(self, key: str) -> bool:
        return self.attributes.has(key)

    def get(self, key: str, default: Any = ABSENT) -> Any:
        return self.attributes.get(key, default)

    def all(self) -> Dict[str, Any]:
        return self.attributes.all()

    def set(self, key: str, value: Any) -> None:
        self.attributes.set(key, value)

    def replace(self, attributes: Dict[str, Any]) -> None:
        self.attributes.replace(attributes)

    def remove(self, key: str) -> None:
        self.attributes.remove(key)

    def clear(self) -> None:
        self.attributes.clear()

    def count(self) -> int:
        return self.attributes.count()

    # Internals

    def _active_attributes(self) -> Dict[str, Any]:
        self._require_active("access session attributes")
        return self._session.attributes

    def _require_active(self, action: str) -> None:
        if not self._session.is_active:
            raise InvalidStateError(
                f"Cannot {action}: session is {self._session.state.value}"
            )

    def _require_inactive(self, action: str) -> None:
        if self._session.is_active:
            raise InvalidStateError(f"Cannot {action} when session is active")

    def _bind_storage(self) -> SessionStorage:
        if self._storage is None:
            self._storage = create_storage(self._session.options)
        elif not self._storage_injected:
            self._storage.max_lifetime = self._session.options["gc_maxlifetime"]
        return self._storage

    def _new_id(self, storage: SessionStorage, operation: str) -> str:
        for _ in range(3):
            session_id = generate_session_id()
            if not storage.exists(session_id):
                return session_id
        raise BackendFailure(operation, "could not allocate an unused session id")

    def _collect_garbage(self, storage: SessionStorage) -> None:
        probability = self._session.options["gc_probability"]
        divisor = self._session.options["gc_divisor"]
        if probability <= 0 or random.randint(1, divisor) > probability:
            return

        max_lifetime = self._session.options["gc_maxlifetime"]
        try:
            removed = storage.gc(max_lifetime)
        except BackendFailure as e:
            logger.warning("Session garbage collection failed", extra={"error": str(e)})
            return
        logger.debug("Session garbage collection ran", extra={"removed": removed})

    def _update_cookie_params(self, **changes: Any) -> None:
        current = self._session.cookie_params.to_dict()
        current["http_only"] = current.pop("httponly")
        current.update({k: v for k, v in changes.items() if v is not None})
        self._session.cookie_params = CookieParams(**current)
